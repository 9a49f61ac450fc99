"""Broadcast of one byte stream to independent readers.

A Tee owns any number of StreamBranch readers. Writing to the tee appends
the bytes to every branch's own buffer; writing never waits on a reader, so
a branch nobody reads cannot hold back the others or the source pump.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import BinaryIO

from sevenspawn.core.logging import get_logger

log = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class StreamBranch:
    """Readable end of a Tee.

    Usable before any data arrives; reads wait until data or EOF shows up.
    """

    def __init__(self, name: str = "branch") -> None:
        self.name = name
        self._buffer = bytearray()
        self._eof = False
        self._wakeup = asyncio.Event()

    def __repr__(self) -> str:
        return f"StreamBranch({self.name!r}, buffered={len(self._buffer)}, eof={self._eof})"

    @property
    def buffered(self) -> int:
        """Number of bytes received but not yet read."""
        return len(self._buffer)

    def feed_data(self, data: bytes) -> None:
        if self._eof:
            raise RuntimeError(f"{self.name}: feed_data after feed_eof")
        if not data:
            return
        self._buffer.extend(data)
        self._wakeup.set()

    def feed_eof(self) -> None:
        self._eof = True
        self._wakeup.set()

    def at_eof(self) -> bool:
        """True once EOF was fed and the buffer is empty."""
        return self._eof and not self._buffer

    async def _wait_for_data(self) -> None:
        while not self._buffer and not self._eof:
            self._wakeup.clear()
            await self._wakeup.wait()

    async def read(self, n: int = -1) -> bytes:
        """Read up to ``n`` bytes, or everything until EOF when ``n`` < 0.

        Returns b"" only at EOF.
        """
        if n == 0:
            return b""
        if n < 0:
            while not self._eof:
                self._wakeup.clear()
                await self._wakeup.wait()
            data = bytes(self._buffer)
            self._buffer.clear()
            return data

        await self._wait_for_data()
        data = bytes(self._buffer[:n])
        del self._buffer[:n]
        return data

    async def readline(self) -> bytes:
        """Read one line including its b"\\n"; the last line may lack it."""
        while True:
            idx = self._buffer.find(b"\n")
            if idx >= 0:
                line = bytes(self._buffer[: idx + 1])
                del self._buffer[: idx + 1]
                return line
            if self._eof:
                line = bytes(self._buffer)
                self._buffer.clear()
                return line
            self._wakeup.clear()
            await self._wakeup.wait()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        line = await self.readline()
        if not line:
            raise StopAsyncIteration
        return line

    async def pipe_to(self, sink: BinaryIO) -> int:
        """Copy everything up to EOF into a binary file object.

        Writes run in a worker thread, so a sink that blocks (a full pipe
        to a pager, a slow disk) stalls only this copy and not the loop.

        Returns:
            Number of bytes written
        """
        total = 0
        while True:
            chunk = await self.read(CHUNK_SIZE)
            if not chunk:
                return total
            await asyncio.to_thread(_write_and_flush, sink, chunk)
            total += len(chunk)


def _write_and_flush(sink: BinaryIO, data: bytes) -> None:
    sink.write(data)
    sink.flush()


class Tee:
    """Fan one source out to every branch, each receiving a full copy."""

    def __init__(self) -> None:
        self._branches: list[StreamBranch] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def branch(self, name: str = "branch") -> StreamBranch:
        """Create a new reader. It only sees data written after this call."""
        b = StreamBranch(name)
        if self._closed:
            b.feed_eof()
        self._branches.append(b)
        return b

    def write(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("write to closed Tee")
        for b in self._branches:
            b.feed_data(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for b in self._branches:
            b.feed_eof()

    async def pump_from(self, reader: asyncio.StreamReader, chunk_size: int = CHUNK_SIZE) -> int:
        """Copy ``reader`` into every branch until EOF, then close.

        Returns:
            Number of bytes pumped
        """
        total = 0
        try:
            while True:
                chunk = await reader.read(chunk_size)
                if not chunk:
                    break
                total += len(chunk)
                self.write(chunk)
        finally:
            self.close()
        log.debug(f"tee drained after {total} bytes to {len(self._branches)} branch(es)")
        return total
