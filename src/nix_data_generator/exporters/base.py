"""
Exporter Protocol — Base interface for the database writers.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from nix_data_generator.models.package import PackageRecord


@runtime_checkable
class Exporter(Protocol):
    """
    Protocol that all database writers must implement.

    A writer receives every record of one snapshot, then is either finalized
    and published, or aborted. Nothing becomes visible at the target path
    before ``publish``.
    """

    async def export(self, record: PackageRecord) -> None:
        """Add a single record to the database being built."""
        ...

    async def finalize(self) -> None:
        """Flush and commit everything exported so far. The output stays staged."""
        ...

    def publish(self) -> None:
        """Move the finalized database into place, replacing any previous one."""
        ...

    def abort(self) -> None:
        """Discard the staged database. Safe to call in any state."""
        ...
