"""Raw body sources and the replaying tee.

A request body arrives as a single-pass source. ``iter_source`` normalizes
the shapes collaborators hand over (buffered bytes, async or sync chunk
iterables, objects with a ``read(size)`` method) into one async iterator,
and ``BodyTee`` makes that iterator safe to consume from several
independent branches: the upstream is pulled at most once and every
branch replays the retained chunks from its own cursor.
"""

import asyncio
import inspect
from collections.abc import AsyncIterator
from typing import Any

from reqbody.core.logger import LogIcon, logger


async def iter_source(source: Any, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield the non-empty byte chunks of a raw body source."""
    match source:
        case None:
            return
        case bytes() | bytearray() | memoryview():
            if source:
                yield bytes(source)
        case str():
            if source:
                yield source.encode("utf-8")
        case _ if hasattr(source, "__aiter__"):
            async for chunk in source:
                if chunk:
                    yield bytes(chunk)
        case _ if hasattr(source, "read"):
            while True:
                chunk = source.read(chunk_size)
                if inspect.isawaitable(chunk):
                    chunk = await chunk
                if not chunk:
                    break
                yield bytes(chunk)
        case _ if hasattr(source, "__iter__"):
            for chunk in source:
                if chunk:
                    yield bytes(chunk)
        case _:
            raise TypeError(f"Unsupported body source: {type(source).__name__}")


class BodyTee:
    """Single upstream reader feeding any number of independent branches."""

    def __init__(self, upstream: AsyncIterator[bytes]) -> None:
        self._upstream = upstream
        self._chunks: list[bytes] = []
        self._exhausted = False
        self._error: BaseException | None = None
        self._lock = asyncio.Lock()
        self._branches = 0

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def buffered(self) -> int:
        """Number of bytes pulled from upstream so far."""
        return sum(len(chunk) for chunk in self._chunks)

    def branch(self) -> "BodyStream":
        """Create a new branch that will see the whole body from the start."""
        self._branches += 1
        logger.debug("Body tee branch created", branch=self._branches, icon=LogIcon.STREAMING)
        return BodyStream(self)

    async def chunk_at(self, index: int) -> bytes | None:
        """Get the chunk at ``index``, pulling upstream as needed; None at end of body."""
        while index >= len(self._chunks):
            if self._error is not None:
                raise self._error
            if self._exhausted:
                return None
            async with self._lock:
                # another branch may have pulled while we waited
                if index < len(self._chunks) or self._exhausted or self._error is not None:
                    continue
                try:
                    chunk = await anext(self._upstream)
                except StopAsyncIteration:
                    self._exhausted = True
                except Exception as ex:
                    self._error = ex
                    raise
                else:
                    self._chunks.append(chunk)
        return self._chunks[index]


class BodyStream:
    """Independently consumable async iterator over the body chunks."""

    __slots__ = ("_tee", "_index")

    def __init__(self, tee: BodyTee) -> None:
        self._tee = tee
        self._index = 0

    def __aiter__(self) -> "BodyStream":
        return self

    async def __anext__(self) -> bytes:
        chunk = await self._tee.chunk_at(self._index)
        if chunk is None:
            raise StopAsyncIteration
        self._index += 1
        return chunk

    async def read_all(self) -> bytes:
        """Drain the remaining chunks into one bytes object."""
        return b"".join([chunk async for chunk in self])


class BodyReader:
    """Pull-based reader over a body branch."""

    __slots__ = ("_stream", "_pending", "_eof")

    def __init__(self, stream: BodyStream) -> None:
        self._stream = stream
        self._pending = bytearray()
        self._eof = False

    async def _fill(self, size: int) -> None:
        while not self._eof and (size < 0 or len(self._pending) < size):
            try:
                self._pending.extend(await anext(self._stream))
            except StopAsyncIteration:
                self._eof = True

    async def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left when negative; b"" at end of body."""
        if size == 0:
            return b""
        await self._fill(size)
        if size < 0 or size >= len(self._pending):
            data = bytes(self._pending)
            self._pending.clear()
        else:
            data = bytes(self._pending[:size])
            del self._pending[:size]
        return data

    async def read_all(self) -> bytes:
        return await self.read(-1)

    @property
    def at_eof(self) -> bool:
        return self._eof and not self._pending
