"""Unit tests for multiplexed stdio frame decoding."""

from __future__ import annotations

import asyncio
import random
import struct
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest
from dockwire._duplex import DuplexStream
from dockwire._tty import (
    HEADER_SIZE,
    ChunkReader,
    Multiplexer,
    decode,
    decode_chunk,
    decode_chunks,
    decode_raw,
    encode_frame,
    parse_stream_header,
)
from dockwire.errors import CommunicationError, ProtocolViolation
from dockwire.types import STREAM_STDERR, STREAM_STDIN, STREAM_STDOUT, TtyChunk

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


def _reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


async def _chunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


# -- header --


def test_header_size_is_eight() -> None:
    assert HEADER_SIZE == 8


def test_parse_stream_header_stderr() -> None:
    header = struct.pack(">BxxxI", STREAM_STDERR, 100)
    assert parse_stream_header(header) == (STREAM_STDERR, 100)


def test_encode_frame() -> None:
    assert encode_frame(STREAM_STDOUT, b"hello") == bytes([1, 0, 0, 0, 0, 0, 0, 5]) + b"hello"


def test_encode_frame_rejects_unknown_stream() -> None:
    with pytest.raises(ValueError, match="invalid stream type"):
        encode_frame(3, b"x")


# -- decode_chunk --


async def test_decode_chunk_stdout() -> None:
    reader = _reader(bytes([1, 0, 0, 0, 0, 0, 0, 5]) + b"hello")
    chunk = await decode_chunk(reader)
    assert chunk == TtyChunk(STREAM_STDOUT, b"hello")
    assert await decode_chunk(reader) is None


async def test_decode_chunk_empty_payload() -> None:
    reader = _reader(encode_frame(STREAM_STDERR, b""))
    assert await decode_chunk(reader) == TtyChunk(STREAM_STDERR, b"")


async def test_decode_chunk_clean_eof() -> None:
    assert await decode_chunk(_reader(b"")) is None


async def test_decode_chunk_invalid_stream_number() -> None:
    reader = _reader(bytes([9, 0, 0, 0, 0, 0, 0, 1]) + b"x")
    with pytest.raises(ProtocolViolation, match="invalid stream number"):
        await decode_chunk(reader)


async def test_decode_chunk_eof_inside_header() -> None:
    with pytest.raises(ProtocolViolation, match="frame header"):
        await decode_chunk(_reader(b"\x01\x00\x00"))


async def test_decode_chunk_eof_inside_payload() -> None:
    with pytest.raises(ProtocolViolation, match="frame payload"):
        await decode_chunk(_reader(bytes([2, 0, 0, 0, 0, 0, 0, 10]) + b"abc"))


async def test_decode_chunk_read_error() -> None:
    reader = MagicMock()
    reader.read = AsyncMock(side_effect=ConnectionResetError("reset"))
    with pytest.raises(CommunicationError, match="reset"):
        await decode_chunk(reader)


# -- decode / decode_raw --


async def test_decode_round_trip() -> None:
    rng = random.Random(1234)
    streams = [STREAM_STDIN, STREAM_STDOUT, STREAM_STDERR]
    expected = [
        TtyChunk(streams[i % 3], rng.randbytes(rng.randint(0, 65536)))
        for i in range(24)
    ]
    wire = b"".join(encode_frame(c.stream, c.data) for c in expected)

    decoded = [chunk async for chunk in decode(_reader(wire))]

    assert decoded == expected


async def test_decode_stops_on_violation() -> None:
    wire = encode_frame(STREAM_STDOUT, b"ok") + bytes([7, 0, 0, 0, 0, 0, 0, 0])
    frames = decode(_reader(wire))
    assert await frames.__anext__() == TtyChunk(STREAM_STDOUT, b"ok")
    with pytest.raises(ProtocolViolation):
        await frames.__anext__()


async def test_decode_raw_reports_stdout() -> None:
    frames = [chunk async for chunk in decode(_reader(b"plain tty output"), decode_raw)]
    assert frames == [TtyChunk(STREAM_STDOUT, b"plain tty output")]


async def test_decode_raw_eof() -> None:
    assert await decode_raw(_reader(b"")) is None


# -- decode_chunks --


async def test_decode_chunks_across_chunk_boundaries() -> None:
    wire = encode_frame(STREAM_STDOUT, b"hello\n") + encode_frame(STREAM_STDERR, b"oops\n")
    parts = [wire[:3], wire[3:9], wire[9:17], wire[17:]]

    frames = [chunk async for chunk in decode_chunks(_chunks(*parts))]

    assert frames == [TtyChunk(STREAM_STDOUT, b"hello\n"), TtyChunk(STREAM_STDERR, b"oops\n")]


async def test_chunk_reader_serves_partial_reads() -> None:
    reader = ChunkReader(_chunks(b"abcdef", b"gh"))
    assert await reader.read(4) == b"abcd"
    assert await reader.read(4) == b"ef"
    assert await reader.read(4) == b"gh"
    assert await reader.read(4) == b""


# -- Multiplexer --


async def test_multiplexer_reads_and_writes() -> None:
    wire = encode_frame(STREAM_STDOUT, b"out") + encode_frame(STREAM_STDERR, b"err")
    writer = _make_mock_writer()
    mux = Multiplexer(DuplexStream(_reader(wire), writer))

    frames = [chunk async for chunk in mux]
    assert [f.stream_name for f in frames] == ["stdout", "stderr"]

    assert await mux.write(b"input\n") == 6
    writer.write.assert_called_once_with(b"input\n")

    await mux.shutdown()
    writer.write_eof.assert_called_once()


async def test_multiplexer_split() -> None:
    writer = _make_mock_writer()
    mux = Multiplexer(DuplexStream(_reader(encode_frame(STREAM_STDOUT, b"x")), writer))
    frames, stdin = mux.split()

    await stdin.write_all(b"abc")
    assert [chunk async for chunk in frames] == [TtyChunk(STREAM_STDOUT, b"x")]
    writer.write.assert_called_once_with(b"abc")


async def test_multiplexer_context_manager_aborts() -> None:
    writer = _make_mock_writer()
    async with Multiplexer(DuplexStream(_reader(b""), writer)):
        pass
    writer.transport.abort.assert_called_once()


# -- Helpers --


def _make_mock_writer() -> MagicMock:
    writer = MagicMock()
    writer.drain = AsyncMock()
    writer.wait_closed = AsyncMock()
    writer.can_write_eof.return_value = True
    return writer
