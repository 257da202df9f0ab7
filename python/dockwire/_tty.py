# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Stream demultiplexing for attach/exec output.

Without a TTY, the daemon multiplexes stdin, stdout and stderr over one
connection.  Each frame has an 8-byte header:
  - byte 0: stream type (0 = stdin, 1 = stdout, 2 = stderr)
  - bytes 1-3: padding (zero)
  - bytes 4-7: payload length (big-endian uint32)

followed by exactly that many payload bytes.  Any other stream type is a
protocol violation.  The stream may end cleanly only between frames.
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING, Protocol

from dockwire.errors import CommunicationError, ProtocolViolation
from dockwire.types import STREAM_STDERR, STREAM_STDIN, STREAM_STDOUT, TtyChunk

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator, Awaitable, Callable
    from types import TracebackType

    from typing_extensions import Self

    from dockwire._duplex import DuplexStream, WriteHalf

HEADER_SIZE = 8
_HEADER_FORMAT = ">BxxxI"  # 1 byte type, 3 padding, 4 byte length
_VALID_STREAMS = frozenset({STREAM_STDIN, STREAM_STDOUT, STREAM_STDERR})
_RAW_READ_SIZE = 65536


class ByteReader(Protocol):
    async def read(self, n: int) -> bytes: ...


def parse_stream_header(header: bytes) -> tuple[int, int]:
    """Parse an 8-byte stream frame header.

    Returns:
        Tuple of (stream_type, payload_length).

    """
    stream_type, payload_length = struct.unpack(_HEADER_FORMAT, header)
    return stream_type, payload_length


def encode_frame(stream_type: int, data: bytes) -> bytes:
    """Build one multiplexed frame."""
    if stream_type not in _VALID_STREAMS:
        msg = f"invalid stream type: {stream_type}"
        raise ValueError(msg)
    return struct.pack(_HEADER_FORMAT, stream_type, len(data)) + data


async def decode_chunk(reader: ByteReader) -> TtyChunk | None:
    """Read one frame from *reader*.

    Returns ``None`` when the stream ends on a frame boundary.

    Raises:
        ProtocolViolation: Unknown stream type, or the stream ended inside
            a header or payload.
        CommunicationError: The underlying read failed.

    """
    header = await _read_exact(reader, HEADER_SIZE)
    if not header:
        return None
    if len(header) < HEADER_SIZE:
        msg = f"stream ended inside a frame header ({len(header)} of {HEADER_SIZE} bytes)"
        raise ProtocolViolation(msg)

    stream_type, payload_length = parse_stream_header(header)
    if stream_type not in _VALID_STREAMS:
        msg = f"invalid stream number from daemon: {stream_type}"
        raise ProtocolViolation(msg)

    payload = await _read_exact(reader, payload_length) if payload_length else b""
    if len(payload) < payload_length:
        msg = f"stream ended inside a frame payload ({len(payload)} of {payload_length} bytes)"
        raise ProtocolViolation(msg)
    return TtyChunk(stream_type, payload)


async def decode_raw(reader: ByteReader) -> TtyChunk | None:
    """Read whatever is available from a TTY-mode stream (no framing).

    Everything is reported as stdout.  Returns ``None`` at end of stream.
    """
    try:
        data = await reader.read(_RAW_READ_SIZE)
    except OSError as exc:
        raise CommunicationError(str(exc)) from exc
    if not data:
        return None
    return TtyChunk(STREAM_STDOUT, data)


async def decode(
    reader: ByteReader,
    read_fn: Callable[[ByteReader], Awaitable[TtyChunk | None]] = decode_chunk,
) -> AsyncGenerator[TtyChunk, None]:
    """Yield frames from *reader* until it ends cleanly."""
    while True:
        chunk = await read_fn(reader)
        if chunk is None:
            return
        yield chunk


def decode_chunks(chunks: AsyncIterable[bytes]) -> AsyncGenerator[TtyChunk, None]:
    """Demultiplex a raw chunk stream, e.g. a non-upgraded logs response.

    Chunk boundaries need not line up with frame boundaries.
    """
    return decode(ChunkReader(chunks))


class ChunkReader:
    """Presents an async iterable of byte chunks as a ``read(n)`` source."""

    def __init__(self, chunks: AsyncIterable[bytes]) -> None:
        self._chunks = chunks.__aiter__()
        self._buf = bytearray()
        self._eof = False

    async def read(self, n: int = -1) -> bytes:
        while not self._buf and not self._eof:
            try:
                self._buf.extend(await self._chunks.__anext__())
            except StopAsyncIteration:
                self._eof = True
        if n < 0:
            n = len(self._buf)
        data = bytes(self._buf[:n])
        del self._buf[:n]
        return data


class Multiplexer:
    """Frames from an upgraded connection plus a writer for stdin.

    Iterating yields :class:`TtyChunk` objects.  ``write`` and
    ``shutdown`` go straight to the write half.  :meth:`split` hands the two
    sides to different tasks; they need no locking between them.
    """

    def __init__(
        self,
        duplex: DuplexStream,
        read_fn: Callable[[ByteReader], Awaitable[TtyChunk | None]] = decode_chunk,
    ) -> None:
        self._duplex = duplex
        read_half, self._write_half = duplex.split()
        self._chunks = decode(read_half, read_fn)

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> TtyChunk:
        return await self._chunks.__anext__()

    async def write(self, data: bytes) -> int:
        return await self._write_half.write(data)

    async def write_all(self, data: bytes) -> None:
        await self._write_half.write_all(data)

    async def shutdown(self) -> None:
        """Flush stdin and half-close the write side."""
        await self._write_half.shutdown()

    def close(self) -> None:
        """Drop the connection."""
        self._duplex.close()

    def split(self) -> tuple[AsyncIterator[TtyChunk], WriteHalf]:
        """Return the frame iterator and the stdin writer."""
        return self._chunks, self._write_half

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self._chunks.aclose()
        self.close()


async def _read_exact(reader: ByteReader, n: int) -> bytes:
    """Read up to n bytes, stopping early only at end of stream."""
    data = bytearray()
    while len(data) < n:
        try:
            chunk = await reader.read(n - len(data))
        except OSError as exc:
            raise CommunicationError(str(exc)) from exc
        if not chunk:
            break
        data.extend(chunk)
    return bytes(data)
