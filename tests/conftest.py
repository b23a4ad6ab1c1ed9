"""Pytest configuration and fixtures."""
import asyncio
import errno
from pathlib import Path
from typing import Dict, Iterable, Optional

import httpx
import pytest

from common.storage import ImageStore


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


class FakeRemote:
    """Stands in for the remote web servers behind an httpx.MockTransport."""

    def __init__(self):
        self.routes: Dict[str, dict] = {}
        self.requests = []
        self.body_reads = 0

    def add(
        self,
        url: str,
        status: int = 200,
        content_type: Optional[str] = "image/png",
        body: bytes = PNG_BYTES,
        chunks: Optional[Iterable[bytes]] = None,
        fail_after_chunks: bool = False,
        stall_after_chunks: bool = False,
        connect_error: bool = False,
    ) -> None:
        self.routes[url] = {
            "status": status,
            "content_type": content_type,
            "body": body,
            "chunks": list(chunks) if chunks is not None else None,
            "fail_after_chunks": fail_after_chunks,
            "stall_after_chunks": stall_after_chunks,
            "connect_error": connect_error,
        }

    def _stream(self, route: dict, request: httpx.Request):
        remote = self

        async def gen():
            remote.body_reads += 1
            for chunk in route["chunks"] or [route["body"]]:
                yield chunk
            if route["fail_after_chunks"]:
                raise httpx.ReadError("connection reset mid-transfer", request=request)
            if route["stall_after_chunks"]:
                await asyncio.Event().wait()

        return gen()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            raise httpx.ConnectError("Name or service not known", request=request)
        if route["connect_error"]:
            raise httpx.ConnectError("Connection refused", request=request)
        headers = {}
        if route["content_type"] is not None:
            headers["content-type"] = route["content_type"]
        return httpx.Response(route["status"], headers=headers, content=self._stream(route, request))


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def http_client(remote):
    client = httpx.AsyncClient(transport=httpx.MockTransport(remote.handler))
    yield client
    # own loop, so the current event loop of the test session is left alone
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(client.aclose())
    finally:
        loop.close()


@pytest.fixture
def store(tmp_path):
    return ImageStore(image_dir=tmp_path / "images")


class _NoSpaceLeft:
    """File handle that accepts the open but fails every write."""

    def __init__(self, fh):
        self._fh = fh

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._fh.close()

    def write(self, data):
        raise OSError(errno.ENOSPC, "No space left on device")


@pytest.fixture
def full_disk(monkeypatch):
    """Makes every binary write through Path.open fail with ENOSPC."""
    real_open = Path.open

    def fake_open(self, mode="r", *args, **kwargs):
        fh = real_open(self, mode, *args, **kwargs)
        if "w" in mode and "b" in mode:
            return _NoSpaceLeft(fh)
        return fh

    monkeypatch.setattr(Path, "open", fake_open)
    return monkeypatch
