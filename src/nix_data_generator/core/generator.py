"""
Nix Data Generator — Snapshot-to-SQLite pipeline.

Runs strictly in sequence:

    resolve channel -> staleness check -> fetch manifest -> normalize -> load -> marker

The staleness check short-circuits the run when the recorded version matches
and the database exists. New databases are staged and only moved into place
after every writer succeeded; the marker is written after that.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import httpx
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)

from nix_data_generator.core.fetcher import fetch_manifest
from nix_data_generator.core.flavors import Flavor, channels_base_url
from nix_data_generator.core.resolver import ResolvedChannel, resolve_channel
from nix_data_generator.core.staleness import check_up_to_date, write_marker
from nix_data_generator.exporters import get_exporters
from nix_data_generator.models.package import PackageRecord
from nix_data_generator.parsers.manifest import parse_manifest

logger = logging.getLogger("NixDataGenerator")


class RunStatus(Enum):
    """Outcome of a successful run."""

    UP_TO_DATE = "up_to_date"
    GENERATED = "generated"


@dataclass
class RunResult:
    status: RunStatus
    channel: str
    snapshot_id: str
    version: str
    package_count: int = 0
    manifest_bytes: int = 0
    elapsed: float = 0.0


class DataGenerator:
    """
    Builds the package databases of one flavor inside a source directory.

    Features:
    - Version resolution with a single nixos-unstable fallback
    - Marker-based skip when the snapshot is already loaded
    - Staged databases published only on full success
    """

    TIMEOUT = httpx.Timeout(300.0, connect=60.0)

    def __init__(
        self,
        flavor: Flavor,
        source_dir: Path,
        transport: httpx.AsyncBaseTransport | None = None,
        console: Console | None = None,
        base_url: str | None = None,
    ):
        self.flavor = flavor
        self.source_dir = source_dir
        self.transport = transport
        self.console = console or Console()
        self.base_url = base_url or channels_base_url()

    # ──────────────────────────────────────────────
    # Main Run
    # ──────────────────────────────────────────────

    async def run(self, channel: str) -> RunResult:
        """
        Run the pipeline once for ``channel``.

        Raises:
            GeneratorError: Any failure; the previous database and marker are left untouched
        """
        start_time = time.time()

        async with httpx.AsyncClient(
            timeout=self.TIMEOUT, follow_redirects=True, transport=self.transport
        ) as client:
            # --- 1. RESOLVE ---
            resolved = await resolve_channel(client, self.flavor, channel, self.base_url)

            # --- 2. STALENESS CHECK ---
            if await check_up_to_date(self.flavor, self.source_dir, resolved.version):
                logger.info(f"{self.flavor.name} {resolved.version} is already up to date")
                return self._result(RunStatus.UP_TO_DATE, resolved, start_time)

            # --- 3. FETCH ---
            with self.console.status(
                f"[bold cyan]Downloading {self.flavor.name} {resolved.channel} packages.json...[/bold cyan]"
            ):
                content = await fetch_manifest(client, self.flavor, resolved.channel, self.base_url)

        # --- 4. NORMALIZE ---
        with self.console.status("[bold cyan]Decoding packages.json...[/bold cyan]"):
            records = parse_manifest(content)

        # --- 5. LOAD ---
        await self._load(records)

        # --- 6. COMMIT MARKER ---
        await write_marker(self.flavor, self.source_dir, resolved.version)

        result = self._result(
            RunStatus.GENERATED,
            resolved,
            start_time,
            package_count=len(records),
            manifest_bytes=len(content),
        )
        self._print_summary(result)
        return result

    # ──────────────────────────────────────────────
    # Loading
    # ──────────────────────────────────────────────

    async def _load(self, records: dict[str, PackageRecord]) -> None:
        """Stage every database of the flavor, then publish them together."""
        exporters = get_exporters(self.flavor, self.source_dir)

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TimeRemainingColumn(),
                console=self.console,
            ) as progress:
                task_id = progress.add_task("[green]Loading...[/green]", total=len(records))
                for record in records.values():
                    for exporter in exporters:
                        await exporter.export(record)
                    progress.advance(task_id)

            for exporter in exporters:
                await exporter.finalize()
            # main database last, so a failed publish leaves it untouched
            for exporter in reversed(exporters):
                exporter.publish()
        except Exception:
            for exporter in exporters:
                exporter.abort()
            raise

    # ──────────────────────────────────────────────
    # Reporting
    # ──────────────────────────────────────────────

    @staticmethod
    def _result(
        status: RunStatus, resolved: ResolvedChannel, start_time: float, **counts
    ) -> RunResult:
        return RunResult(
            status=status,
            channel=resolved.channel,
            snapshot_id=resolved.snapshot_id,
            version=resolved.version,
            elapsed=time.time() - start_time,
            **counts,
        )

    def _print_summary(self, result: RunResult) -> None:
        manifest_mb = result.manifest_bytes / (1024 * 1024)
        self.console.print(
            f"\n[bold green][DONE] {self.flavor.name} {result.version}[/bold green] "
            f"(channel {result.channel})"
        )
        self.console.print(
            f"Packages: {result.package_count} | Manifest: {manifest_mb:.2f} MB | "
            f"Elapsed: {result.elapsed:.0f}s"
        )
