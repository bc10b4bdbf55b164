"""
Flavor definitions.

A flavor fixes the channel URL template, the version prefixes to strip and the
names of the files written into the source directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CHANNELS_URL = "https://channels.nixos.org"
FALLBACK_CHANNEL = "unstable"


def channels_base_url() -> str:
    """Base URL of the channel host, overridable with NIX_DATA_CHANNELS_URL."""
    return os.environ.get("NIX_DATA_CHANNELS_URL", DEFAULT_CHANNELS_URL).rstrip("/")


@dataclass(frozen=True)
class Flavor:
    name: str
    channel_prefix: str
    strip_prefixes: tuple[str, ...]
    builds_versions_db: bool = False

    @property
    def marker_name(self) -> str:
        return f"{self.name}.ver"

    @property
    def database_name(self) -> str:
        return f"{self.name}.db"

    @property
    def versions_database_name(self) -> str:
        return f"{self.name}_versions.db"

    def channel_url(self, channel: str, base_url: str | None = None) -> str:
        base = base_url or channels_base_url()
        return f"{base}/{self.channel_prefix}{channel}"

    def manifest_url(self, channel: str, base_url: str | None = None) -> str:
        return f"{self.channel_url(channel, base_url)}/packages.json.br"

    def canonical_version(self, snapshot_id: str) -> str:
        """
        Strip the recognized prefixes from a snapshot identifier.

        Prefixes are removed in order, each at most once:
        ``nixpkgs-23.11pre1.abc`` -> ``23.11pre1.abc``.
        """
        version = snapshot_id
        for prefix in self.strip_prefixes:
            version = version.removeprefix(prefix)
        return version

    def marker_path(self, source_dir: Path) -> Path:
        return source_dir / self.marker_name

    def database_path(self, source_dir: Path) -> Path:
        return source_dir / self.database_name

    def versions_database_path(self, source_dir: Path) -> Path:
        return source_dir / self.versions_database_name


NIXOS = Flavor(
    name="nixos",
    channel_prefix="nixos-",
    strip_prefixes=("nixos-",),
)

NIXPKGS = Flavor(
    name="nixpkgs",
    channel_prefix="nixpkgs-",
    strip_prefixes=("nixos-", "nixpkgs-"),
    builds_versions_db=True,
)

FLAVORS: dict[str, Flavor] = {NIXOS.name: NIXOS, NIXPKGS.name: NIXPKGS}


def fallback_probe_url(base_url: str | None = None) -> str:
    """The fixed probe target used when the requested channel does not resolve."""
    return NIXOS.channel_url(FALLBACK_CHANNEL, base_url)


def get_flavor(name: str) -> Flavor:
    """Look up a flavor by name."""
    try:
        return FLAVORS[name]
    except KeyError:
        raise ValueError(f"Unknown flavor: {name!r}. Use 'nixos' or 'nixpkgs'.") from None
