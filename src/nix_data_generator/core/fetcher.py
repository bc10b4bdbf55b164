"""
Manifest download.

``packages.json.br`` is brotli-compressed. When the server labels it with
``Content-Encoding: br`` httpx decodes it transparently; otherwise the raw
body is decompressed here. An uncompressed JSON body is passed through.
"""

import logging

import brotli
import httpx

from nix_data_generator.core.errors import FetchFailed
from nix_data_generator.core.flavors import Flavor

logger = logging.getLogger(__name__)


def _decode_body(content: bytes, content_encoding: str, url: str) -> bytes:
    if "br" in content_encoding.lower():
        return content
    try:
        return brotli.decompress(content)
    except brotli.error as e:
        if content.lstrip()[:1] in (b"{", b"["):
            return content
        raise FetchFailed(f"Manifest is neither JSON nor brotli data: {e}", url=url) from e


async def fetch_manifest(
    client: httpx.AsyncClient,
    flavor: Flavor,
    channel: str,
    base_url: str | None = None,
) -> bytes:
    """
    Download the decoded packages.json for ``channel``.

    Raises:
        FetchFailed: Network error or a non-success status
    """
    url = flavor.manifest_url(channel, base_url)
    logger.debug(f"[FETCH] Downloading {url}")

    try:
        resp = await client.get(url)
    except httpx.HTTPError as e:
        raise FetchFailed(f"Failed to download packages.json ({type(e).__name__})", url=url) from e

    if not resp.is_success:
        raise FetchFailed("Failed to download latest packages.json", url=url, status=resp.status_code)

    content = _decode_body(resp.content, resp.headers.get("content-encoding", ""), url)
    logger.info(f"[FETCH] {len(content) / (1024 * 1024):.2f} MB manifest from {resp.url}")
    return content
