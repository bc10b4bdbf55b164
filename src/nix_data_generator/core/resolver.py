"""
Channel resolution.

A channel URL on the channel host redirects to the concrete snapshot; the
last path segment of the final URL is the snapshot identifier. The body is
never read.
"""

import logging
from dataclasses import dataclass

import httpx

from nix_data_generator.core.errors import ResolutionFailed
from nix_data_generator.core.flavors import FALLBACK_CHANNEL, Flavor, fallback_probe_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedChannel:
    channel: str  # active channel, "unstable" after a fallback
    snapshot_id: str  # e.g. "nixos-23.05.1234.abcdef0"
    version: str  # snapshot_id with flavor prefixes stripped


async def probe_snapshot_id(client: httpx.AsyncClient, url: str) -> str | None:
    """Follow redirects from ``url`` and return the last path segment, or None on failure."""
    try:
        async with client.stream("GET", url) as resp:
            if not resp.is_success:
                logger.debug(f"[RESOLVE] {url} returned {resp.status_code}")
                return None
            final_url = resp.url
    except httpx.HTTPError as e:
        logger.debug(f"[RESOLVE] {url} failed ({type(e).__name__}): {e}")
        return None

    segment = final_url.path.rstrip("/").rsplit("/", 1)[-1]
    if not segment:
        logger.debug(f"[RESOLVE] {final_url} has no path segment")
        return None
    return segment


async def resolve_channel(
    client: httpx.AsyncClient,
    flavor: Flavor,
    channel: str,
    base_url: str | None = None,
) -> ResolvedChannel:
    """
    Resolve the latest snapshot for a channel.

    Falls back once to nixos-unstable when the requested channel does not
    resolve; the active channel then becomes "unstable".

    Raises:
        ResolutionFailed: Both probes failed
    """
    url = flavor.channel_url(channel, base_url)
    snapshot_id = await probe_snapshot_id(client, url)

    if snapshot_id is None:
        fallback = fallback_probe_url(base_url)
        logger.warning(f"[RESOLVE] Could not resolve {url}, falling back to {fallback}")
        snapshot_id = await probe_snapshot_id(client, fallback)
        if snapshot_id is None:
            raise ResolutionFailed(
                "Could not find latest nixpkgs version", url=url, fallback=fallback
            )
        channel = FALLBACK_CHANNEL

    version = flavor.canonical_version(snapshot_id)
    logger.info(f"[RESOLVE] {flavor.name} channel {channel}: {snapshot_id} -> {version}")
    return ResolvedChannel(channel=channel, snapshot_id=snapshot_id, version=version)
