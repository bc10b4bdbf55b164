"""Tests for the SQLite database writers."""

import json
import sqlite3

import pytest

from nix_data_generator.core.errors import LoadFailed
from nix_data_generator.core.flavors import NIXOS, NIXPKGS
from nix_data_generator.exporters import Exporter, get_exporters
from nix_data_generator.exporters.sqlite import (
    PackageDatabaseExporter,
    VersionsDatabaseExporter,
    count_rows,
)
from nix_data_generator.models.package import (
    License,
    LicenseKind,
    PackageMeta,
    PackageRecord,
    Platforms,
    PlatformsKind,
)


@pytest.fixture
def records():
    return [
        PackageRecord(attribute="foo", system="x86_64-linux", name="foo", version="1.0"),
        PackageRecord(
            attribute="bar",
            system="x86_64-linux",
            name="bar",
            version="2.0",
            meta=PackageMeta(
                broken=True,
                license=License(LicenseKind.SINGLE_STR, "MIT"),
                platforms=Platforms(PlatformsKind.UNKNOWN, 3),
            ),
        ),
    ]


def query(db_path, sql, *params):
    conn = sqlite3.connect(str(db_path))
    try:
        return conn.execute(sql, params).fetchall()
    finally:
        conn.close()


# ═══════════════════════════════════════════
# Package Database
# ═══════════════════════════════════════════


class TestPackageDatabaseExporter:
    @pytest.mark.asyncio
    async def test_loads_both_tables(self, tmp_path, records):
        db_path = tmp_path / "nixpkgs.db"
        exporter = PackageDatabaseExporter(db_path=db_path)
        for record in records:
            await exporter.export(record)
        await exporter.finalize()
        exporter.publish()

        assert query(db_path, "SELECT COUNT(*) FROM pkgs") == [(2,)]
        assert query(db_path, "SELECT COUNT(*) FROM meta") == [(2,)]
        assert query(db_path, "SELECT system, pname, version FROM pkgs WHERE attribute = 'foo'") == [
            ("x86_64-linux", "foo", "1.0")
        ]

        broken, license, platforms = query(
            db_path, "SELECT broken, license, platforms FROM meta WHERE attribute = ?", "bar"
        )[0]
        assert broken == 1
        assert json.loads(license) == "MIT"
        assert platforms is None

    @pytest.mark.asyncio
    async def test_indexes_created(self, tmp_path):
        db_path = tmp_path / "nixos.db"
        exporter = PackageDatabaseExporter(db_path=db_path)
        await exporter.finalize()
        exporter.publish()

        indexes = {row[0] for row in query(db_path, "SELECT name FROM sqlite_master WHERE type = 'index'")}
        assert {"attributes", "metaattributes", "pnames"} <= indexes

    @pytest.mark.asyncio
    async def test_nothing_visible_before_publish(self, tmp_path, records):
        db_path = tmp_path / "nixos.db"
        exporter = PackageDatabaseExporter(db_path=db_path)
        await exporter.export(records[0])
        await exporter.finalize()

        assert not db_path.exists()
        assert exporter.staging_path.exists()

    @pytest.mark.asyncio
    async def test_publish_replaces_previous_database(self, tmp_path, records):
        db_path = tmp_path / "nixos.db"
        db_path.write_bytes(b"old")

        exporter = PackageDatabaseExporter(db_path=db_path)
        await exporter.export(records[0])
        await exporter.finalize()
        exporter.publish()

        assert query(db_path, "SELECT attribute FROM pkgs") == [("foo",)]
        assert not exporter.staging_path.exists()

    @pytest.mark.asyncio
    async def test_abort_keeps_previous_database(self, tmp_path, records):
        db_path = tmp_path / "nixos.db"
        db_path.write_bytes(b"old")

        exporter = PackageDatabaseExporter(db_path=db_path)
        await exporter.export(records[0])
        exporter.abort()

        assert db_path.read_bytes() == b"old"
        assert not exporter.staging_path.exists()

    @pytest.mark.asyncio
    async def test_duplicate_attribute_fails(self, tmp_path, records):
        exporter = PackageDatabaseExporter(db_path=tmp_path / "nixos.db")
        await exporter.export(records[0])
        await exporter.export(records[0])
        with pytest.raises(LoadFailed):
            await exporter.finalize()
        exporter.abort()

    def test_publish_requires_finalize(self, tmp_path):
        exporter = PackageDatabaseExporter(db_path=tmp_path / "nixos.db")
        with pytest.raises(LoadFailed):
            exporter.publish()
        exporter.abort()

    @pytest.mark.asyncio
    async def test_stale_staging_file_replaced(self, tmp_path, records):
        db_path = tmp_path / "nixos.db"
        (tmp_path / "nixos.db.tmp").write_bytes(b"garbage from a crashed run")

        exporter = PackageDatabaseExporter(db_path=db_path)
        await exporter.export(records[0])
        await exporter.finalize()
        exporter.publish()

        assert count_rows(db_path) == {"meta": 1, "pkgs": 1}


# ═══════════════════════════════════════════
# Versions Database
# ═══════════════════════════════════════════


class TestVersionsDatabaseExporter:
    @pytest.mark.asyncio
    async def test_lightweight_table(self, tmp_path, records):
        db_path = tmp_path / "nixpkgs_versions.db"
        exporter = VersionsDatabaseExporter(db_path=db_path)
        for record in records:
            await exporter.export(record)
        await exporter.finalize()
        exporter.publish()

        rows = query(db_path, "SELECT attribute, pname, version FROM pkgs ORDER BY attribute")
        assert rows == [("bar", "bar", "2.0"), ("foo", "foo", "1.0")]
        assert count_rows(db_path) == {"pkgs": 2}


# ═══════════════════════════════════════════
# Factory
# ═══════════════════════════════════════════


class TestGetExporters:
    def test_nixos_has_one_writer(self, tmp_path):
        exporters = get_exporters(NIXOS, tmp_path)
        assert [type(e) for e in exporters] == [PackageDatabaseExporter]
        assert all(isinstance(e, Exporter) for e in exporters)
        for e in exporters:
            e.abort()

    def test_nixpkgs_adds_versions_writer(self, tmp_path):
        exporters = get_exporters(NIXPKGS, tmp_path)
        assert [type(e) for e in exporters] == [PackageDatabaseExporter, VersionsDatabaseExporter]
        assert exporters[1].db_path == tmp_path / "nixpkgs_versions.db"
        for e in exporters:
            e.abort()


# ═══════════════════════════════════════════
# Row Counts
# ═══════════════════════════════════════════


class TestCountRows:
    @pytest.mark.asyncio
    async def test_path_with_uri_characters(self, tmp_path, records):
        src = tmp_path / "data?v=1#main"
        db_path = src / "nixos.db"
        exporter = PackageDatabaseExporter(db_path=db_path)
        for record in records:
            await exporter.export(record)
        await exporter.finalize()
        exporter.publish()

        assert count_rows(db_path) == {"meta": 2, "pkgs": 2}
