"""Test fixtures for reqbody unit tests."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import pytest

from reqbody.body.request_body import RequestBody


# -----------------------------------------------------------------------------
# Mock classes for server requests
# -----------------------------------------------------------------------------


@dataclass
class MockHeaders:
    """Mock case-preserving header collection."""

    _data: dict = field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def items(self):
        return self._data.items()

    def __contains__(self, key: str) -> bool:
        return key.lower() in {k.lower() for k in self._data}


class MockBodyReader:
    """Single-pass async reader handing out at most ``chunk_size`` bytes per read."""

    def __init__(self, data: bytes, chunk_size: int = 4) -> None:
        self._data = data
        self._offset = 0
        self._chunk_size = chunk_size
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        self.reads += 1
        size = min(size if size > 0 else len(self._data), self._chunk_size)
        chunk = self._data[self._offset : self._offset + size]
        self._offset += len(chunk)
        return chunk


@dataclass
class MockRequest:
    """Mock request exposing headers and a raw body source."""

    body: Any = None
    headers: MockHeaders = field(default_factory=MockHeaders)
    method: str = "POST"
    path: str = "/"


def make_request(
    body: str | bytes | None = None,
    headers: dict[str, str] | None = None,
    chunk_size: int = 4,
) -> MockRequest:
    """Build a request whose body is a chunked single-pass reader with a content-length."""
    mock_headers = MockHeaders()
    mock_headers.set("host", "localhost")
    for key, value in (headers or {}).items():
        mock_headers.set(key, value)

    reader = None
    if body:
        data = body.encode("utf-8") if isinstance(body, str) else body
        if "content-length" not in mock_headers:
            mock_headers.set("content-length", str(len(data)))
        reader = MockBodyReader(data, chunk_size)
    return MockRequest(body=reader, headers=mock_headers)


async def chunks_of(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


MULTIPART_CONTENT_TYPE = "multipart/form-data; boundary=OAK-SERVER-BOUNDARY"

MULTIPART_FIXTURE = """
--OAK-SERVER-BOUNDARY
Content-Disposition: form-data; name="hello"

world
--OAK-SERVER-BOUNDARY--
"""

FORM_FIXTURE = "foo=bar&bar=1&baz=qux+%2B+quux"

FORM_PAIRS = [("foo", "bar"), ("bar", "1"), ("baz", "qux + quux")]


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def make_request_body():
    """Factory fixture to create a RequestBody over a mock request."""

    def _make(body: str | bytes | None = None, headers: dict[str, str] | None = None, **kwargs) -> RequestBody:
        return RequestBody(make_request(body, headers), **kwargs)

    return _make
