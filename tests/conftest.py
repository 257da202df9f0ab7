"""Shared fixtures for dockwire tests."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import os
import pathlib
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    Handler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


def _path_exists(path: pathlib.Path) -> bool:
    """Check if *path* exists, returning ``False`` on ``PermissionError``."""
    try:
        return path.exists()
    except PermissionError:
        return False


def _find_socket() -> str | None:
    """Detect an available container engine socket."""
    explicit = os.environ.get("DOCKWIRE_SOCKET")
    if explicit and _path_exists(pathlib.Path(explicit)):
        return explicit

    xdg = os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    candidates = [
        pathlib.Path(xdg) / "podman" / "podman.sock",
        pathlib.Path("/run/podman/podman.sock"),
        pathlib.Path("/var/run/docker.sock"),
    ]
    for candidate in candidates:
        if _path_exists(candidate):
            return str(candidate)
    return None


SOCKET_PATH = _find_socket()
HAS_ENGINE = SOCKET_PATH is not None

requires_engine = pytest.mark.skipif(
    not HAS_ENGINE,
    reason="No container engine socket found (Podman or Docker)",
)


@pytest.fixture
def socket_path() -> str:
    """Return the detected socket path, or skip the test."""
    if SOCKET_PATH is None:
        pytest.skip("No container engine socket found")
    return SOCKET_PATH


# -- Fake daemon --


@dataclasses.dataclass
class ReceivedRequest:
    """One request as the fake daemon saw it."""

    request_line: str
    headers: list[tuple[str, str]]
    body: bytes

    def header(self, name: str) -> str | None:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


@dataclasses.dataclass
class FakeDaemon:
    """Loopback HTTP server answering every request with canned bytes."""

    host: str
    port: int
    requests: list[ReceivedRequest] = dataclasses.field(default_factory=list)

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


async def read_request(reader: asyncio.StreamReader) -> ReceivedRequest:
    """Parse one request head and its Content-Length body."""
    request_line = (await reader.readline()).decode("latin-1").rstrip("\r\n")
    headers: list[tuple[str, str]] = []
    while True:
        line = (await reader.readline()).decode("latin-1").rstrip("\r\n")
        if not line:
            break
        key, value = line.split(":", 1)
        headers.append((key, value.strip()))
    length = next((int(v) for k, v in headers if k.lower() == "content-length"), 0)
    body = await reader.readexactly(length) if length else b""
    return ReceivedRequest(request_line, headers, body)


def http_response(status: int, body: bytes = b"", *, reason: str = "X", chunked: bool = False) -> bytes:
    """Build raw response bytes, sized or chunked."""
    head = f"HTTP/1.1 {status} {reason}\r\n"
    if chunked:
        head += "Transfer-Encoding: chunked\r\n\r\n"
        return head.encode() + body
    head += f"Content-Length: {len(body)}\r\n\r\n"
    return head.encode() + body


def chunked(*parts: bytes) -> bytes:
    """Encode *parts* as HTTP chunks plus the terminating chunk."""
    out = b"".join(f"{len(p):x}\r\n".encode() + p + b"\r\n" for p in parts)
    return out + b"0\r\n\r\n"


@pytest.fixture
async def fake_daemon() -> AsyncIterator[Callable[..., Awaitable[FakeDaemon]]]:
    """Factory starting a loopback server that records requests.

    ``await fake_daemon(raw)`` answers each request with *raw* and closes.
    ``await fake_daemon(handler=fn)`` hands the connection to *fn* after the
    request has been read.
    """
    servers: list[asyncio.Server] = []

    async def _start(raw: bytes = b"", *, handler: Handler | None = None) -> FakeDaemon:
        daemon: FakeDaemon

        async def _handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            with contextlib.suppress(ConnectionError, asyncio.IncompleteReadError):
                daemon.requests.append(await read_request(reader))
                if handler is not None:
                    await handler(reader, writer)
                else:
                    writer.write(raw)
                    await writer.drain()
            writer.close()

        server = await asyncio.start_server(_handle, "127.0.0.1", 0)
        servers.append(server)
        daemon = FakeDaemon("127.0.0.1", server.sockets[0].getsockname()[1])
        return daemon

    yield _start

    for server in servers:
        server.close()
        await server.wait_closed()
