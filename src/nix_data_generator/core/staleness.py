"""
Marker file handling.

``<flavor>.ver`` holds exactly the canonical version of the last snapshot
that was fully loaded. It is written last, so it is the single source of
truth for whether the database on disk is current.
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from nix_data_generator.core.errors import IoFailed
from nix_data_generator.core.flavors import Flavor

logger = logging.getLogger(__name__)


async def read_marker(flavor: Flavor, source_dir: Path) -> str | None:
    """Return the recorded version, or None when there is no readable marker."""
    path = flavor.marker_path(source_dir)
    try:
        async with aiofiles.open(path, encoding="utf-8") as f:
            return await f.read()
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Unreadable marker {path}, forcing refresh: {e}")
        return None


async def check_up_to_date(flavor: Flavor, source_dir: Path, version: str) -> bool:
    """
    Decide whether the database for ``version`` is already in place.

    Creates ``source_dir`` if needed. A missing marker or database simply
    means a refresh is required.
    """
    try:
        source_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoFailed(f"Could not create source directory: {e}", path=source_dir) from e

    previous = await read_marker(flavor, source_dir)
    if previous != version:
        logger.debug(f"Recorded version {previous!r} differs from {version!r}")
        return False

    if not flavor.database_path(source_dir).exists():
        logger.debug(f"Marker matches but {flavor.database_name} is missing")
        return False

    return True


async def write_marker(flavor: Flavor, source_dir: Path, version: str) -> None:
    """Record ``version`` as the loaded snapshot, replacing the marker atomically."""
    path = flavor.marker_path(source_dir)
    staging = path.with_name(path.name + ".tmp")
    try:
        async with aiofiles.open(staging, "w", encoding="utf-8") as f:
            await f.write(version)
        await aiofiles.os.replace(staging, path)
    except OSError as e:
        raise IoFailed(f"Could not write marker: {e}", path=path) from e
    logger.debug(f"Marker {path} set to {version}")
