# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Full-duplex byte stream over an upgraded connection.

The read half and the write half are separate objects wrapping asyncio's
``StreamReader`` and ``StreamWriter``.  They share no state, so one task
can pull output while another pushes stdin.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from dockwire.errors import CommunicationError

if TYPE_CHECKING:
    from types import TracebackType

    from typing_extensions import Self

DEFAULT_READ_SIZE = 65536
DEFAULT_MAX_WRITE = 65536


class ReadHalf:
    """Read side of a :class:`DuplexStream`."""

    def __init__(self, reader: asyncio.StreamReader) -> None:
        self._reader = reader

    async def read(self, n: int = DEFAULT_READ_SIZE) -> bytes:
        """Read up to *n* bytes.  ``b""`` means the peer closed its side."""
        try:
            return await self._reader.read(n)
        except OSError as exc:
            raise CommunicationError(str(exc)) from exc

    async def read_exact(self, n: int) -> bytes:
        """Read exactly *n* bytes.

        Raises:
            asyncio.IncompleteReadError: The stream ended first.

        """
        try:
            return await self._reader.readexactly(n)
        except OSError as exc:
            raise CommunicationError(str(exc)) from exc

    def at_eof(self) -> bool:
        return self._reader.at_eof()


class WriteHalf:
    """Write side of a :class:`DuplexStream`."""

    def __init__(self, writer: asyncio.StreamWriter, *, max_write: int = DEFAULT_MAX_WRITE) -> None:
        self._writer = writer
        self._max_write = max_write

    async def write(self, data: bytes) -> int:
        """Write a prefix of *data* and return how many bytes were taken.

        At most ``max_write`` bytes go out per call; the caller re-offers
        the rest.
        """
        if not data:
            return 0
        n = min(len(data), self._max_write)
        try:
            self._writer.write(bytes(data[:n]))
            await self._writer.drain()
        except OSError as exc:
            raise CommunicationError(str(exc)) from exc
        return n

    async def write_all(self, data: bytes) -> None:
        """Write all of *data*, looping over partial writes."""
        view = memoryview(data)
        while view:
            n = await self.write(view)
            view = view[n:]

    async def flush(self) -> None:
        try:
            await self._writer.drain()
        except OSError as exc:
            raise CommunicationError(str(exc)) from exc

    async def shutdown(self) -> None:
        """Flush pending bytes, then close the write side.

        The read side stays open when the transport supports half-close
        (plain TCP and Unix sockets); TLS connections are closed outright.
        """
        await self.flush()
        if self._writer.can_write_eof():
            self._writer.write_eof()
            return
        self._writer.close()
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()

    def abort(self) -> None:
        """Drop the connection immediately, discarding unflushed bytes."""
        self._writer.transport.abort()

    @property
    def closing(self) -> bool:
        return self._writer.is_closing()


class DuplexStream:
    """A raw bidirectional byte channel, typically from an HTTP upgrade."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        max_write: int = DEFAULT_MAX_WRITE,
    ) -> None:
        self._read_half = ReadHalf(reader)
        self._write_half = WriteHalf(writer, max_write=max_write)

    async def read(self, n: int = DEFAULT_READ_SIZE) -> bytes:
        return await self._read_half.read(n)

    async def read_exact(self, n: int) -> bytes:
        return await self._read_half.read_exact(n)

    async def write(self, data: bytes) -> int:
        return await self._write_half.write(data)

    async def write_all(self, data: bytes) -> None:
        await self._write_half.write_all(data)

    async def shutdown(self) -> None:
        """Graceful close of the write side; see :meth:`WriteHalf.shutdown`."""
        await self._write_half.shutdown()

    def close(self) -> None:
        """Abrupt close; unflushed writes are abandoned."""
        self._write_half.abort()

    def split(self) -> tuple[ReadHalf, WriteHalf]:
        """Return the independently owned read and write halves."""
        return self._read_half, self._write_half

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
