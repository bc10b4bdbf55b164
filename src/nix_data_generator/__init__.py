"""
Nix Data Generator - Channel package metadata to SQLite.

Fetches the packages.json snapshot of a NixOS / nixpkgs channel, normalizes
it and stores it as queryable SQLite databases, skipping the work when the
channel has not moved since the last run.
"""

__version__ = "0.3.0"


def __getattr__(name: str):
    """Lazy import for heavy dependencies."""
    if name == "DataGenerator":
        from nix_data_generator.core.generator import DataGenerator

        return DataGenerator
    if name == "PackageRecord":
        from nix_data_generator.models.package import PackageRecord

        return PackageRecord
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["DataGenerator", "PackageRecord", "__version__"]
