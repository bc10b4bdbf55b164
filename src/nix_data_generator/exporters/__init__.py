"""Database writers for normalized snapshots."""

from pathlib import Path

from nix_data_generator.core.flavors import Flavor
from nix_data_generator.exporters.base import Exporter
from nix_data_generator.exporters.sqlite import (
    PackageDatabaseExporter,
    SQLiteExporter,
    VersionsDatabaseExporter,
)


def get_exporters(flavor: Flavor, source_dir: Path) -> list[Exporter]:
    """Create the writers a flavor needs, staging each under its target path."""
    exporters: list[Exporter] = [PackageDatabaseExporter(db_path=flavor.database_path(source_dir))]
    if flavor.builds_versions_db:
        try:
            exporters.append(
                VersionsDatabaseExporter(db_path=flavor.versions_database_path(source_dir))
            )
        except Exception:
            exporters[0].abort()
            raise
    return exporters


__all__ = [
    "Exporter",
    "SQLiteExporter",
    "PackageDatabaseExporter",
    "VersionsDatabaseExporter",
    "get_exporters",
]
