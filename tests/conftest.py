"""Shared fixtures: a fake channel host and sample manifests."""

import io
import json

import httpx
import pytest
from rich.console import Console

BASE_URL = "https://channels.test"
RELEASES_URL = "https://releases.test"


def make_manifest(packages: dict) -> bytes:
    return json.dumps({"version": 2, "packages": packages}).encode()


class FakeChannelHost:
    """
    Serves channel redirects and packages.json.br for httpx.MockTransport.

    ``snapshots`` maps a channel path (``nixpkgs-unstable``) to the snapshot
    identifier its redirect ends at. Every requested URL is recorded.
    """

    def __init__(self, manifest: bytes, snapshots: dict[str, str] | None = None, manifest_status: int = 200):
        self.manifest = manifest
        self.snapshots = snapshots if snapshots is not None else {
            "nixos-unstable": "nixos-24.05pre123.abcdef",
            "nixpkgs-unstable": "nixpkgs-24.05pre456.fedcba",
        }
        self.manifest_status = manifest_status
        self.manifest_headers: dict[str, str] = {}
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        path = request.url.path.strip("/")

        if request.url.host == "releases.test":
            return httpx.Response(200, text="snapshot index")

        if path.endswith("/packages.json.br"):
            channel = path.removesuffix("/packages.json.br")
            if channel not in self.snapshots or self.manifest_status != 200:
                return httpx.Response(self.manifest_status if channel in self.snapshots else 404)
            return httpx.Response(200, content=self.manifest, headers=self.manifest_headers)

        if path in self.snapshots:
            location = f"{RELEASES_URL}/{path.split('-')[0]}/{self.snapshots[path]}"
            return httpx.Response(302, headers={"Location": location})

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def manifest_requests(self) -> list[str]:
        return [url for url in self.requests if url.endswith("/packages.json.br")]


@pytest.fixture
def quiet_console():
    return Console(file=io.StringIO(), force_terminal=False)


@pytest.fixture
def sample_packages():
    return {
        "foo": {
            "pname": "foo",
            "version": "1.0",
            "system": "x86_64-linux",
            "meta": {},
        },
        "bar": {
            "pname": "bar",
            "version": "2.0",
            "system": "x86_64-linux",
            "meta": {"broken": True, "license": "MIT"},
        },
    }


@pytest.fixture
def sample_manifest(sample_packages):
    return make_manifest(sample_packages)


@pytest.fixture
def manifest_of():
    return make_manifest


@pytest.fixture
def channel_host(sample_manifest):
    return FakeChannelHost(sample_manifest)


@pytest.fixture
def host_for():
    return FakeChannelHost
