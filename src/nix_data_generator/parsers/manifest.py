"""
Manifest Parser
===============

Normalizes a channel's ``packages.json`` into PackageRecord objects.

The manifest is a single object ``{"packages": {<attribute>: {...}}}``. Most
fields have a single legal shape; a few are polymorphic:

- ``homepage``: a string or a list of strings
- ``license``: a license object, a list of them, a string, a list of strings,
  or a list mixing any of these
- ``platforms``: a string, a list of strings or a list of string lists

Shapes are tried in that fixed order. A ``platforms`` value matching none of
its shapes is kept as UNKNOWN (stored as NULL); any other mismatch aborts the
whole decode with DecodeFailed.
"""

import json
import logging
from typing import Any

from nix_data_generator.core.errors import DecodeFailed
from nix_data_generator.models.package import (
    Homepage,
    HomepageKind,
    License,
    LicenseKind,
    PackageMeta,
    PackageRecord,
    Platforms,
    PlatformsKind,
)

logger = logging.getLogger(__name__)

# Optional keys of a license object and the JSON type each must have
LICENSE_FIELDS: dict[str, type] = {
    "free": bool,
    "fullName": str,
    "spdxId": str,
    "url": str,
}

FLAG_FIELDS = ("broken", "insecure", "unsupported", "unfree")


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _is_license_object(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    for key, expected in LICENSE_FIELDS.items():
        item = value.get(key)
        if item is not None and not isinstance(item, expected):
            return False
    return True


def license_kind(value: Any) -> LicenseKind | None:
    """Classify a license value, or return None if no shape matches."""
    if _is_license_object(value):
        return LicenseKind.SINGLE
    if isinstance(value, list) and all(_is_license_object(v) for v in value):
        return LicenseKind.LIST
    if isinstance(value, str):
        return LicenseKind.SINGLE_STR
    if _is_str_list(value):
        return LicenseKind.LIST_STR
    if isinstance(value, list) and all(license_kind(v) is not None for v in value):
        return LicenseKind.MIXED
    return None


def platforms_kind(value: Any) -> PlatformsKind:
    """Classify a platforms value; never fails."""
    if isinstance(value, str):
        return PlatformsKind.SINGLE
    if _is_str_list(value):
        return PlatformsKind.LIST
    if isinstance(value, list) and all(_is_str_list(v) for v in value):
        return PlatformsKind.LIST_LIST
    return PlatformsKind.UNKNOWN


class ManifestParser:
    """
    Decodes a packages.json document into ``{attribute: PackageRecord}``.

    Tracks how many packages carried an unrecognized ``platforms`` shape so
    the caller can report it.
    """

    def __init__(self):
        self.unknown_platforms = 0

    def parse(self, content: bytes | str) -> dict[str, PackageRecord]:
        """
        Parse the full manifest.

        Args:
            content: The decompressed JSON document

        Returns:
            Mapping of attribute name to PackageRecord

        Raises:
            DecodeFailed: The document is not JSON or a field has an illegal shape
        """
        self.unknown_platforms = 0

        try:
            document = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeFailed(f"Manifest is not valid JSON: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("packages"), dict):
            raise DecodeFailed("Manifest has no 'packages' object")

        records = {
            attribute: self._parse_package(attribute, data)
            for attribute, data in document["packages"].items()
        }

        logger.info(
            f"[NORMALIZE] {len(records)} packages decoded, "
            f"{self.unknown_platforms} with unrecognized platforms"
        )
        return records

    def _parse_package(self, attribute: str, data: Any) -> PackageRecord:
        if not isinstance(data, dict):
            raise DecodeFailed("Package entry is not an object", attribute=attribute)

        core = {}
        for key in ("system", "pname", "version"):
            value = data.get(key)
            if not isinstance(value, str):
                raise DecodeFailed(f"Field '{key}' must be a string", attribute=attribute)
            core[key] = value

        meta = data.get("meta")
        if not isinstance(meta, dict):
            raise DecodeFailed("Field 'meta' must be an object", attribute=attribute)

        return PackageRecord(
            attribute=attribute,
            system=core["system"],
            name=core["pname"],
            version=core["version"],
            meta=self._parse_meta(attribute, meta),
        )

    def _parse_meta(self, attribute: str, meta: dict) -> PackageMeta:
        flags = {name: self._optional(attribute, meta, name, bool) for name in FLAG_FIELDS}

        return PackageMeta(
            **flags,
            description=self._optional(attribute, meta, "description", str),
            long_description=self._optional(attribute, meta, "longDescription", str),
            homepage=self._parse_homepage(attribute, meta.get("homepage")),
            maintainers=meta.get("maintainers"),
            position=self._optional(attribute, meta, "position", str),
            license=self._parse_license(attribute, meta.get("license")),
            platforms=self._parse_platforms(attribute, meta.get("platforms")),
        )

    @staticmethod
    def _optional(attribute: str, meta: dict, key: str, expected: type) -> Any:
        value = meta.get(key)
        if value is not None and not isinstance(value, expected):
            raise DecodeFailed(
                f"Field 'meta.{key}' must be {expected.__name__} or absent",
                attribute=attribute,
            )
        return value

    @staticmethod
    def _parse_homepage(attribute: str, value: Any) -> Homepage | None:
        if value is None:
            return None
        if isinstance(value, str):
            return Homepage(HomepageKind.SINGLE, value)
        if _is_str_list(value):
            return Homepage(HomepageKind.LIST, value)
        raise DecodeFailed("Field 'meta.homepage' has an unrecognized shape", attribute=attribute)

    @staticmethod
    def _parse_license(attribute: str, value: Any) -> License | None:
        if value is None:
            return None
        kind = license_kind(value)
        if kind is None:
            raise DecodeFailed("Field 'meta.license' has an unrecognized shape", attribute=attribute)
        return License(kind, value)

    def _parse_platforms(self, attribute: str, value: Any) -> Platforms | None:
        if value is None:
            return None
        kind = platforms_kind(value)
        if kind is PlatformsKind.UNKNOWN:
            self.unknown_platforms += 1
            logger.debug(f"[NORMALIZE] {attribute}: unrecognized platforms shape, storing NULL")
        return Platforms(kind, value)


def parse_manifest(content: bytes | str) -> dict[str, PackageRecord]:
    """Parse a packages.json document with a fresh ManifestParser."""
    return ManifestParser().parse(content)
