"""
SQLite Exporters — Write a snapshot into the flavor's SQLite databases.

Each database is built under ``<name>.tmp`` and only replaces the live file
on ``publish``. A failed run therefore leaves the previous database intact.
"""

import logging
import os
import sqlite3
from pathlib import Path

from nix_data_generator.core.errors import LoadFailed
from nix_data_generator.models.package import PackageRecord

logger = logging.getLogger(__name__)

BATCH_SIZE = 5000


PACKAGES_SCHEMA_SQL = """
CREATE TABLE "pkgs" (
    "attribute" TEXT NOT NULL UNIQUE,
    "system"    TEXT,
    "pname"     TEXT,
    "version"   TEXT,
    PRIMARY KEY("attribute")
);
CREATE TABLE "meta" (
    "attribute"       TEXT NOT NULL UNIQUE,
    "broken"          INTEGER,
    "insecure"        INTEGER,
    "unsupported"     INTEGER,
    "unfree"          INTEGER,
    "description"     TEXT,
    "longdescription" TEXT,
    "homepage"        TEXT,
    "maintainers"     JSON,
    "position"        TEXT,
    "license"         JSON,
    "platforms"       JSON,
    FOREIGN KEY("attribute") REFERENCES "pkgs"("attribute"),
    PRIMARY KEY("attribute")
);
CREATE UNIQUE INDEX "attributes" ON "pkgs" ("attribute");
CREATE UNIQUE INDEX "metaattributes" ON "meta" ("attribute");
CREATE INDEX "pnames" ON "pkgs" ("pname");
"""

VERSIONS_SCHEMA_SQL = """
CREATE TABLE "pkgs" (
    "attribute" TEXT NOT NULL UNIQUE,
    "pname"     TEXT,
    "version"   TEXT,
    PRIMARY KEY("attribute")
);
CREATE UNIQUE INDEX "attributes" ON "pkgs" ("attribute");
CREATE INDEX "pnames" ON "pkgs" ("pname");
"""

INSERT_PKGS_SQL = 'INSERT INTO "pkgs" VALUES (?, ?, ?, ?)'
INSERT_META_SQL = 'INSERT INTO "meta" VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)'
INSERT_VERSIONS_SQL = 'INSERT INTO "pkgs" VALUES (?, ?, ?)'


class SQLiteExporter:
    """
    Common staging logic for a single SQLite database file.

    Subclasses provide the schema and the (table insert, row) pairs for a
    record. Rows are buffered per statement and written with ``executemany``
    in statement order, so parent rows always land before child rows.
    """

    SCHEMA_SQL = ""
    STATEMENTS: tuple[str, ...] = ()

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.staging_path = db_path.with_name(db_path.name + ".tmp")
        self.count = 0
        self.finalized = False
        self._buffers: dict[str, list[tuple]] = {sql: [] for sql in self.STATEMENTS}
        self.conn: sqlite3.Connection | None = None

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.staging_path.unlink(missing_ok=True)
            self.conn = sqlite3.connect(str(self.staging_path))
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.executescript(self.SCHEMA_SQL)
        except (sqlite3.Error, OSError) as e:
            self.abort()
            raise LoadFailed(f"Could not create database: {e}", path=self.staging_path) from e

        logger.debug(f"[SQLite] Staging {self.db_path.name} at {self.staging_path}")

    def rows_for(self, record: PackageRecord) -> tuple[tuple, ...]:
        """One row per entry of STATEMENTS."""
        raise NotImplementedError

    async def export(self, record: PackageRecord) -> None:
        """Buffer one record; flush when the batch is full."""
        for sql, row in zip(self.STATEMENTS, self.rows_for(record)):
            self._buffers[sql].append(row)
        self.count += 1

        if self.count % BATCH_SIZE == 0:
            self._flush()

    def _flush(self) -> None:
        try:
            for sql in self.STATEMENTS:
                rows = self._buffers[sql]
                if rows:
                    self.conn.executemany(sql, rows)
                    rows.clear()
        except sqlite3.Error as e:
            raise LoadFailed(f"Bulk insert failed: {e}", path=self.staging_path) from e

    async def finalize(self) -> None:
        """Flush remaining rows, commit and close the staged database."""
        self._flush()
        try:
            self.conn.commit()
            self.conn.close()
        except sqlite3.Error as e:
            raise LoadFailed(f"Commit failed: {e}", path=self.staging_path) from e
        self.conn = None
        self.finalized = True
        logger.info(f"[SQLite] {self.db_path.name}: {self.count} packages staged")

    def publish(self) -> None:
        if not self.finalized:
            raise LoadFailed("Cannot publish a database that was not finalized", path=self.db_path)
        try:
            os.replace(self.staging_path, self.db_path)
        except OSError as e:
            raise LoadFailed(f"Could not move database into place: {e}", path=self.db_path) from e
        logger.info(f"[SQLite] Published {self.db_path}")

    def abort(self) -> None:
        if self.conn is not None:
            try:
                self.conn.close()
            except sqlite3.Error as e:
                logger.warning(f"[SQLite] Error closing {self.staging_path}: {e}")
            self.conn = None
        try:
            self.staging_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[SQLite] Could not remove {self.staging_path}: {e}")


class PackageDatabaseExporter(SQLiteExporter):
    """The main database: ``pkgs`` plus the 1:1 ``meta`` table."""

    SCHEMA_SQL = PACKAGES_SCHEMA_SQL
    STATEMENTS = (INSERT_PKGS_SQL, INSERT_META_SQL)

    def rows_for(self, record: PackageRecord) -> tuple[tuple, ...]:
        return (record.to_row(), record.meta.to_row(record.attribute))


class VersionsDatabaseExporter(SQLiteExporter):
    """Lightweight attribute/pname/version lookup database."""

    SCHEMA_SQL = VERSIONS_SCHEMA_SQL
    STATEMENTS = (INSERT_VERSIONS_SQL,)

    def rows_for(self, record: PackageRecord) -> tuple[tuple, ...]:
        return (record.to_version_row(),)


def count_rows(db_path: Path) -> dict[str, int]:
    """Row count of every table in an existing database, opened read-only."""
    conn = sqlite3.connect(db_path.resolve().as_uri() + "?mode=ro", uri=True)
    try:
        tables = [
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
        ]
        return {table: conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0] for table in tables}
    finally:
        conn.close()
