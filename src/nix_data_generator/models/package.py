"""
Package Model — one record per package attribute of a channel snapshot.

The polymorphic manifest fields (``homepage``, ``license``, ``platforms``) are
kept as tagged values: the kind records which of the legal shapes was found,
the value is the decoded JSON tree. Nested license and maintainer objects are
not modelled further; they are stored as serialized JSON text.
"""

import json
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


def to_json_text(value: Any) -> str:
    """Serialize a decoded JSON tree deterministically (source key order, compact)."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


class HomepageKind(Enum):
    SINGLE = auto()  # "https://..."
    LIST = auto()  # ["https://...", ...]


class LicenseKind(Enum):
    SINGLE = auto()  # {"spdxId": "MIT", ...}
    LIST = auto()  # [{...}, {...}]
    SINGLE_STR = auto()  # "MIT"
    LIST_STR = auto()  # ["MIT", "BSD"]
    MIXED = auto()  # [{...}, "MIT", [...]]


class PlatformsKind(Enum):
    SINGLE = auto()  # "x86_64-linux"
    LIST = auto()  # ["x86_64-linux", ...]
    LIST_LIST = auto()  # [["x86_64-linux"], [...]]
    UNKNOWN = auto()  # anything else; stored as NULL


@dataclass(frozen=True)
class Homepage:
    kind: HomepageKind
    value: str | list[str]

    def first(self) -> str | None:
        """The stored homepage: the value itself, or the first entry of a list."""
        if self.kind is HomepageKind.SINGLE:
            return self.value
        return self.value[0] if self.value else None


@dataclass(frozen=True)
class License:
    kind: LicenseKind
    value: Any

    def to_text(self) -> str:
        return to_json_text(self.value)


@dataclass(frozen=True)
class Platforms:
    kind: PlatformsKind
    value: Any

    def to_text(self) -> str | None:
        if self.kind is PlatformsKind.UNKNOWN:
            return None
        return to_json_text(self.value)


@dataclass
class PackageMeta:
    """Optional metadata owned by exactly one PackageRecord."""

    broken: bool | None = None
    insecure: bool | None = None
    unsupported: bool | None = None
    unfree: bool | None = None
    description: str | None = None
    long_description: str | None = None
    homepage: Homepage | None = None
    maintainers: Any = None
    position: str | None = None
    license: License | None = None
    platforms: Platforms | None = None

    @staticmethod
    def _flag(value: bool | None) -> int:
        return 1 if value else 0

    def to_row(self, attribute: str) -> tuple:
        """Column values for the ``meta`` table, in table order."""
        return (
            attribute,
            self._flag(self.broken),
            self._flag(self.insecure),
            self._flag(self.unsupported),
            self._flag(self.unfree),
            self.description,
            self.long_description,
            self.homepage.first() if self.homepage else None,
            to_json_text(self.maintainers) if self.maintainers is not None else None,
            self.position,
            self.license.to_text() if self.license else None,
            self.platforms.to_text() if self.platforms else None,
        )


@dataclass
class PackageRecord:
    """
    A single package of a snapshot, keyed by its attribute name.

    ``name`` and ``version`` are informational; only ``attribute`` is unique.
    """

    attribute: str
    system: str
    name: str
    version: str
    meta: PackageMeta = field(default_factory=PackageMeta)

    def to_row(self) -> tuple:
        """Column values for the ``pkgs`` table."""
        return (self.attribute, self.system, self.name, self.version)

    def to_version_row(self) -> tuple:
        """Column values for the lightweight versions ``pkgs`` table."""
        return (self.attribute, self.name, self.version)
