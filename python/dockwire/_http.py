# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""HTTP/1.1 over an asyncio stream pair.

One connection carries one request.  The request is written in full, the
status line and headers are read eagerly, and the body is left on the
socket for the caller to pull chunk by chunk (or to take over entirely
after a ``101 Switching Protocols``).
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from dockwire._duplex import DuplexStream
from dockwire.errors import CommunicationError

if TYPE_CHECKING:
    from types import TracebackType

    from typing_extensions import Self

    from dockwire._request import Request

READ_SIZE = 65536

# Responses to these never carry a body, whatever the headers say.
_BODILESS_STATUSES = frozenset({101, 204, 304})


async def write_request(writer: asyncio.StreamWriter, request: Request) -> None:
    """Write an HTTP/1.1 request to the writer.

    ``Content-Length`` is added when the request has a body, and
    ``Connection: close`` unless the caller already chose a connection mode.
    """
    lines = [f"{request.method} {request.target} HTTP/1.1"]
    lines.extend(f"{key}: {value}" for key, value in request.headers)
    if request.body is not None:
        lines.append(f"Content-Length: {len(request.body)}")
    if request.header("connection") is None:
        lines.append("Connection: close")
    lines.append("")
    lines.append("")

    writer.write("\r\n".join(lines).encode("latin-1"))
    if request.body is not None:
        writer.write(request.body)
    await writer.drain()


async def read_status_line(reader: asyncio.StreamReader) -> tuple[int, str]:
    """Read the HTTP status line and return ``(status_code, reason)``."""
    line = await reader.readline()
    if not line:
        msg = "empty response"
        raise CommunicationError(msg)
    parts = line.decode("latin-1").strip().split(None, 2)
    if len(parts) < 2 or not parts[1].isdigit():  # noqa: PLR2004
        msg = f"malformed status line: {line!r}"
        raise CommunicationError(msg)
    reason = parts[2] if len(parts) > 2 else ""  # noqa: PLR2004
    return int(parts[1]), reason


async def read_headers(reader: asyncio.StreamReader) -> dict[str, str]:
    """Read HTTP headers until the blank line.  Keys are lower-cased."""
    headers: dict[str, str] = {}
    while True:
        line = await reader.readline()
        stripped = line.strip()
        if not stripped:
            break
        decoded = stripped.decode("latin-1")
        if ":" in decoded:
            key, value = decoded.split(":", 1)
            headers[key.strip().lower()] = value.strip()
    return headers


class ResponseBody:
    """Pull-based view of a response body.

    Framing follows the response headers: chunked transfer encoding,
    ``Content-Length``, or read-until-EOF.  Each :meth:`read_chunk` returns
    one piece exactly as the socket (or one HTTP chunk) delivered it, and
    ``b""`` once the body is exhausted.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        headers: dict[str, str],
        *,
        has_body: bool = True,
    ) -> None:
        self._reader = reader
        self._remaining: int | None = None
        self._done = not has_body
        self._chunked = False
        if headers.get("transfer-encoding", "").lower() == "chunked":
            self._chunked = True
        elif "content-length" in headers:
            try:
                self._remaining = int(headers["content-length"])
            except ValueError as exc:
                msg = f"bad Content-Length: {headers['content-length']!r}"
                raise CommunicationError(msg) from exc
            if self._remaining == 0:
                self._done = True

    @property
    def done(self) -> bool:
        """True once the whole body has been read."""
        return self._done

    async def read_chunk(self) -> bytes:
        """Return the next piece of the body, or ``b""`` at the end."""
        if self._done:
            return b""
        try:
            if self._chunked:
                return await self._read_http_chunk()
            if self._remaining is not None:
                return await self._read_sized()
            return await self._read_until_eof()
        except (OSError, asyncio.IncompleteReadError, ValueError) as exc:
            self._done = True
            raise CommunicationError(str(exc)) from exc

    async def read_all(self) -> bytes:
        """Drain the body and return it as one buffer."""
        parts: list[bytes] = []
        while True:
            chunk = await self.read_chunk()
            if not chunk:
                break
            parts.append(chunk)
        return b"".join(parts)

    async def _read_sized(self) -> bytes:
        assert self._remaining is not None  # noqa: S101
        chunk = await self._reader.read(min(self._remaining, READ_SIZE))
        if not chunk:
            self._done = True
            msg = f"body ended with {self._remaining} bytes still expected"
            raise CommunicationError(msg)
        self._remaining -= len(chunk)
        if self._remaining == 0:
            self._done = True
        return chunk

    async def _read_until_eof(self) -> bytes:
        chunk = await self._reader.read(READ_SIZE)
        if not chunk:
            self._done = True
        return chunk

    async def _read_http_chunk(self) -> bytes:
        while True:
            size_line = await self._reader.readline()
            if not size_line:
                self._done = True
                msg = "chunked body ended without a terminating chunk"
                raise CommunicationError(msg)
            size_str = size_line.strip().split(b";", 1)[0].decode("ascii")
            if size_str:
                break
        chunk_size = int(size_str, 16)
        if chunk_size == 0:
            # Skip optional trailers up to the closing blank line
            while (await self._reader.readline()).strip():
                pass
            self._done = True
            return b""
        data = await self._reader.readexactly(chunk_size)
        await self._reader.readline()  # trailing \r\n after chunk
        return data


class Response:
    """Status, headers and a streaming body of one HTTP exchange.

    The response owns its connection.  Close it (or use it as an async
    context manager) once done, or hand the connection over with
    :meth:`into_duplex` after a protocol upgrade.
    """

    def __init__(
        self,
        status: int,
        reason: str,
        headers: dict[str, str],
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        has_body: bool = True,
    ) -> None:
        self.status = status
        self.reason = reason
        self.headers = headers
        self._reader = reader
        self._writer = writer
        self.body = ResponseBody(reader, headers, has_body=has_body)

    def __repr__(self) -> str:
        return f"<Response [{self.status} {self.reason}]>"

    async def close(self) -> None:
        """Close the underlying connection."""
        self._writer.close()
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()

    def into_duplex(self) -> DuplexStream:
        """Take over the raw connection as a full-duplex byte stream."""
        return DuplexStream(self._reader, self._writer)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


async def read_response(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    method: str,
) -> Response:
    """Read the status line and headers, leaving the body on the socket."""
    status, reason = await read_status_line(reader)
    headers = await read_headers(reader)
    has_body = method.upper() != "HEAD" and status >= 200 and status not in _BODILESS_STATUSES  # noqa: PLR2004
    return Response(status, reason, headers, reader, writer, has_body=has_body)
