"""Pytest configuration and fixtures."""

import hashlib
import tempfile
from pathlib import Path

import pytest

from autoupdater.exceptions import FetchError


def md5_of(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


class FakeServer:
    """
    In-memory stand-in for the file server.

    files maps the server-side path (as listed, data folder included) to
    its bytes. Paths in `missing` answer as failures even if present.
    """

    def __init__(self, data_folder: str = "data"):
        self.data_folder = data_folder
        self.files = {}
        self.missing = set()
        self.fetched = []
        self.events = []

    def put(self, rel_path: str, data: bytes):
        key = f"{self.data_folder}/{rel_path}" if self.data_folder else rel_path
        self.files[key] = data

    def listing(self) -> list:
        return [{"path": path, "md5": md5_of(data)} for path, data in self.files.items()]

    def transport_factory(self):
        return FakeTransport(self)


class FakeTransport:
    """Async transport serving a FakeServer, recording every fetch."""

    def __init__(self, server: FakeServer):
        self.server = server

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def fetch(self, remote_path: str) -> bytes:
        self.server.fetched.append(remote_path)
        self.server.events.append(("fetch", remote_path))
        if remote_path in self.server.missing or remote_path not in self.server.files:
            raise FetchError("HTTP 404")
        return self.server.files[remote_path]


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_server():
    return FakeServer()

