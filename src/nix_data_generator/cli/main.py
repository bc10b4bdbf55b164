"""
Nix Data Generator CLI — Build SQLite package databases from channel snapshots.

Usage:
    nix-data-generator generate --flavor nixpkgs --ver unstable --src ./data
    nix-data-generator generate -f nixos -v 23.05 -s ./data --verbose
    nix-data-generator status --flavor nixos --src ./data
"""

import asyncio
import logging
import sys

import click

FLAVOR_CHOICE = click.Choice(["nixos", "nixpkgs"])

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="nix-data-generator")
def cli():
    """Nix Data Generator — Channel package metadata to SQLite."""
    pass


@cli.command()
@click.option("--flavor", "-f", type=FLAVOR_CHOICE, default="nixpkgs", help="Channel flavor to build.")
@click.option("--ver", "-v", "channel", required=True, help="Channel version to build (e.g. 23.05, unstable).")
@click.option("--src", "-s", "source_dir", type=click.Path(), required=True, help="Source directory.")
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def generate(flavor, channel, source_dir, verbose):
    """Build the flavor's databases if the channel has a new snapshot."""
    from pathlib import Path

    from nix_data_generator.core.errors import GeneratorError
    from nix_data_generator.core.flavors import get_flavor
    from nix_data_generator.core.generator import DataGenerator

    # Configure logging
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    generator = DataGenerator(flavor=get_flavor(flavor), source_dir=Path(source_dir))

    try:
        asyncio.run(generator.run(channel))
    except GeneratorError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)


@cli.command()
@click.option("--flavor", "-f", type=FLAVOR_CHOICE, default="nixpkgs", help="Channel flavor.")
@click.option("--src", "-s", "source_dir", type=click.Path(), required=True, help="Source directory.")
def status(flavor, source_dir):
    """Show the recorded version and table sizes without touching the network."""
    import sqlite3
    from pathlib import Path

    from nix_data_generator.core.flavors import get_flavor
    from nix_data_generator.exporters.sqlite import count_rows

    selected = get_flavor(flavor)
    src = Path(source_dir)
    marker = selected.marker_path(src)

    version = marker.read_text(encoding="utf-8") if marker.exists() else None
    click.echo(f"{selected.name} version: {version or '(none)'}")

    for db_path in (selected.database_path(src), selected.versions_database_path(src)):
        if not db_path.exists():
            if db_path == selected.database_path(src) or selected.builds_versions_db:
                click.echo(f"{db_path.name}: missing")
            continue
        try:
            counts = count_rows(db_path)
        except sqlite3.Error as e:
            click.echo(f"{db_path.name}: unreadable ({e})")
            sys.exit(1)
        tables = ", ".join(f"{name}={count}" for name, count in counts.items())
        click.echo(f"{db_path.name}: {tables}")


if __name__ == "__main__":
    cli()
