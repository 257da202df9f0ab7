# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Decoders for streaming response bodies.

Two shapes of stream come back from the daemon:

- raw byte chunks, passed through exactly as the socket delivered them;
- JSON progress streams, where each message ends with ``\\r\\n`` and one
  message may hold several concatenated JSON documents.

Both decoders are async generators: nothing is read until the caller pulls,
and a read failure is raised from the pull that hit it.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any, Protocol

from dockwire._request import decode_body
from dockwire.errors import ResponseDecodeError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterable, Iterator

_log = logging.getLogger(__name__)

JSON_TERMINATOR = b"\r\n"
_WHITESPACE = re.compile(r"[ \t\n\r]*")


class ChunkSource(Protocol):
    """Anything that hands out body chunks, ``b""`` meaning the end."""

    async def read_chunk(self) -> bytes: ...


async def stream_body(body: ChunkSource) -> AsyncGenerator[bytes, None]:
    """Yield each body chunk unchanged until the body is exhausted."""
    while True:
        chunk = await body.read_chunk()
        if not chunk:
            return
        yield chunk


async def split_json_frames(chunks: AsyncIterable[bytes]) -> AsyncGenerator[bytes, None]:
    """Regroup raw chunks into ``\\r\\n``-terminated frames.

    Chunks accumulate until the buffer ends with the terminator; the buffer
    is then emitted and reset.  A tail that is still unterminated when the
    chunks run out is dropped without being emitted.
    """
    buf = bytearray()
    async for chunk in chunks:
        buf.extend(chunk)
        if buf.endswith(JSON_TERMINATOR):
            yield bytes(buf)
            buf.clear()
    if buf:
        _log.debug("dropping %d unterminated bytes at end of JSON stream", len(buf))


def stream_json_body(body: ChunkSource) -> AsyncGenerator[bytes, None]:
    """JSON frames of a response body."""
    return split_json_frames(stream_body(body))


def iter_json_values(frame: bytes) -> Iterator[Any]:
    """Yield every JSON document in *frame*, in order.

    Documents may be separated by any JSON whitespace, or by nothing at all.

    Raises:
        MalformedResponseEncoding: *frame* is not UTF-8.
        ResponseDecodeError: *frame* holds something that is not JSON.

    """
    text = decode_body(frame)
    decoder = json.JSONDecoder()
    end = len(text)
    idx = _WHITESPACE.match(text, 0).end()  # type: ignore[union-attr]
    while idx < end:
        try:
            value, idx = decoder.raw_decode(text, idx)
        except json.JSONDecodeError as exc:
            raise ResponseDecodeError(str(exc)) from exc
        yield value
        idx = _WHITESPACE.match(text, idx).end()  # type: ignore[union-attr]


async def stream_json_values(frames: AsyncIterable[bytes]) -> AsyncGenerator[Any, None]:
    """Flatten frames into the JSON documents they contain."""
    async for frame in frames:
        for value in iter_json_values(frame):
            yield value
