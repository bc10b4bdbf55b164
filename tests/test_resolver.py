"""Tests for channel resolution via redirect probing."""

import httpx
import pytest

from nix_data_generator.core.errors import ResolutionFailed
from nix_data_generator.core.flavors import NIXOS, NIXPKGS
from nix_data_generator.core.resolver import probe_snapshot_id, resolve_channel

BASE_URL = "https://channels.test"


def client_for(host) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=host.transport, follow_redirects=True)


class TestProbe:
    @pytest.mark.asyncio
    async def test_last_segment_of_final_url(self, channel_host):
        async with client_for(channel_host) as client:
            snapshot = await probe_snapshot_id(client, f"{BASE_URL}/nixos-unstable")
        assert snapshot == "nixos-24.05pre123.abcdef"

    @pytest.mark.asyncio
    async def test_not_found(self, channel_host):
        async with client_for(channel_host) as client:
            assert await probe_snapshot_id(client, f"{BASE_URL}/nixos-00.00") is None

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            assert await probe_snapshot_id(client, f"{BASE_URL}/nixos-unstable") is None


class TestResolveChannel:
    @pytest.mark.asyncio
    async def test_requested_channel(self, channel_host):
        channel_host.snapshots["nixos-23.05"] = "nixos-23.05.4567.0123abc"
        async with client_for(channel_host) as client:
            resolved = await resolve_channel(client, NIXOS, "23.05", BASE_URL)

        assert resolved.channel == "23.05"
        assert resolved.snapshot_id == "nixos-23.05.4567.0123abc"
        assert resolved.version == "23.05.4567.0123abc"

    @pytest.mark.asyncio
    async def test_nixpkgs_prefix_stripped(self, channel_host):
        async with client_for(channel_host) as client:
            resolved = await resolve_channel(client, NIXPKGS, "unstable", BASE_URL)

        assert resolved.snapshot_id == "nixpkgs-24.05pre456.fedcba"
        assert resolved.version == "24.05pre456.fedcba"

    @pytest.mark.asyncio
    async def test_fallback_switches_to_unstable(self, channel_host):
        async with client_for(channel_host) as client:
            resolved = await resolve_channel(client, NIXOS, "99.99", BASE_URL)

        assert resolved.channel == "unstable"
        assert resolved.version == "24.05pre123.abcdef"
        assert f"{BASE_URL}/nixos-unstable" in channel_host.requests

    @pytest.mark.asyncio
    async def test_nixpkgs_fallback_probes_nixos_unstable(self, channel_host):
        del channel_host.snapshots["nixpkgs-unstable"]
        async with client_for(channel_host) as client:
            resolved = await resolve_channel(client, NIXPKGS, "unstable", BASE_URL)

        assert resolved.channel == "unstable"
        assert resolved.version == "24.05pre123.abcdef"

    @pytest.mark.asyncio
    async def test_both_probes_fail(self, channel_host):
        channel_host.snapshots.clear()
        async with client_for(channel_host) as client:
            with pytest.raises(ResolutionFailed):
                await resolve_channel(client, NIXOS, "23.05", BASE_URL)

        # one primary probe and exactly one fallback probe
        assert channel_host.requests == [f"{BASE_URL}/nixos-23.05", f"{BASE_URL}/nixos-unstable"]
