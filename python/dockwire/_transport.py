# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Connection backends for reaching a container daemon.

A daemon is addressed in one of three ways: plain TCP, TCP wrapped in TLS,
or a local Unix domain socket.  The endpoint is chosen once when the
:class:`Transport` is built; after that every request goes through the
same ``make_uri`` / ``request`` pair and only the addressing differs.

Each request opens its own connection and closes it when the response is
done (connection-per-operation).
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import pathlib
import socket
import ssl
import urllib.parse
from typing import TYPE_CHECKING

from dockwire._http import read_response, write_request
from dockwire._request import decode_body
from dockwire.errors import CommunicationError, ConnectError, InvalidEndpoint

if TYPE_CHECKING:
    from dockwire._http import Response
    from dockwire._request import Request

_log = logging.getLogger(__name__)

# Path and query characters left as-is by make_uri
_EP_SAFE = "/?&=%:@,+;!$'()*[]~"


@dataclasses.dataclass(frozen=True)
class TcpEndpoint:
    """Plain TCP, e.g. ``http://127.0.0.1:2375``."""

    host: str


@dataclasses.dataclass(frozen=True)
class TlsEndpoint:
    """TCP with TLS.  Client certificate and key are optional."""

    host: str
    cert: str | None = None
    key: str | None = None
    ca: str | None = None
    verify: bool = True

    @classmethod
    def from_cert_path(cls, host: str, cert_path: str | os.PathLike[str], *, verify: bool = True) -> TlsEndpoint:
        """Use ``cert.pem``, ``key.pem`` and ``ca.pem`` from *cert_path*."""
        base = pathlib.Path(cert_path)
        return cls(
            host=host,
            cert=str(base / "cert.pem"),
            key=str(base / "key.pem"),
            ca=str(base / "ca.pem") if verify else None,
            verify=verify,
        )


@dataclasses.dataclass(frozen=True)
class UnixEndpoint:
    """A local Unix domain socket."""

    path: str


Endpoint = TcpEndpoint | TlsEndpoint | UnixEndpoint


# ---------------------------------------------------------------------------
# Socket detection
# ---------------------------------------------------------------------------


def detect_socket() -> str | None:
    """Auto-detect an available container engine socket.

    Detection order:
    1. ``DOCKWIRE_SOCKET`` env var
    2. Podman rootless: ``$XDG_RUNTIME_DIR/podman/podman.sock``
    3. Podman system: ``/run/podman/podman.sock``
    4. Docker: ``/var/run/docker.sock``

    Returns:
        The path to the first socket found, or ``None``.

    """
    explicit = os.environ.get("DOCKWIRE_SOCKET")
    if explicit and pathlib.Path(explicit).exists():
        return explicit

    xdg = os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    candidates = [
        pathlib.Path(xdg) / "podman" / "podman.sock",
        pathlib.Path("/run/podman/podman.sock"),
        pathlib.Path("/var/run/docker.sock"),
    ]
    for candidate in candidates:
        if candidate.exists():
            return str(candidate)
    return None


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class Transport:
    """Sends requests to one daemon endpoint."""

    def __init__(self, endpoint: Endpoint, *, connect_timeout: float | None = None) -> None:
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._ssl: ssl.SSLContext | None = None

        if isinstance(endpoint, UnixEndpoint):
            if not hasattr(socket, "AF_UNIX"):
                raise InvalidEndpoint(endpoint.path, "Unix sockets are not available on this platform")
        else:
            _check_host(endpoint.host)
        if isinstance(endpoint, TlsEndpoint):
            self._ssl = _ssl_context(endpoint)

    @classmethod
    def from_host(
        cls,
        host: str,
        *,
        cert_path: str | os.PathLike[str] | None = None,
        verify: bool = True,
        connect_timeout: float | None = None,
    ) -> Transport:
        """Build a transport from a ``DOCKER_HOST`` style string.

        Accepts ``unix:///path``, a bare absolute socket path, ``tcp://``,
        ``http://`` and ``https://``.  A ``tcp://`` host with *cert_path*
        becomes a TLS endpoint.
        """
        parts = urllib.parse.urlsplit(host)
        endpoint: Endpoint
        if parts.scheme == "unix":
            endpoint = UnixEndpoint(parts.path or parts.netloc)
        elif not parts.scheme and host.startswith("/"):
            endpoint = UnixEndpoint(host)
        elif parts.scheme in ("tcp", "https"):
            if parts.scheme == "https" or cert_path is not None:
                url = f"https://{parts.netloc}"
                if cert_path is not None:
                    endpoint = TlsEndpoint.from_cert_path(url, cert_path, verify=verify)
                else:
                    endpoint = TlsEndpoint(url, verify=verify)
            else:
                endpoint = TcpEndpoint(f"http://{parts.netloc}")
        elif parts.scheme == "http":
            endpoint = TcpEndpoint(f"http://{parts.netloc}")
        else:
            raise InvalidEndpoint(host, "expected unix://, tcp://, http:// or https://")
        return cls(endpoint, connect_timeout=connect_timeout)

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def remote_addr(self) -> str:
        """Host URL for TCP/TLS, socket path for Unix."""
        if isinstance(self._endpoint, UnixEndpoint):
            return self._endpoint.path
        return self._endpoint.host

    def make_uri(self, ep: str) -> str:
        """Turn an endpoint like ``/containers/json?all=true`` into a request URI.

        For Unix sockets the socket path is percent-encoded into the URI
        authority, so the URI alone says where to connect.  Characters that
        may not appear in a request target (spaces, non-ASCII) are
        percent-encoded as UTF-8; existing ``%XX`` escapes are kept.
        """
        if not ep.startswith("/"):
            ep = f"/{ep}"
        ep = urllib.parse.quote(ep, safe=_EP_SAFE)
        if isinstance(self._endpoint, UnixEndpoint):
            return f"unix://{urllib.parse.quote(self._endpoint.path, safe='')}{ep}"
        return f"{self._endpoint.host.rstrip('/')}{ep}"

    async def request(self, req: Request) -> Response:
        """Send *req* and return the response with its body still unread.

        Raises:
            ConnectError: The daemon could not be reached.
            CommunicationError: The exchange failed after connecting.

        """
        _log.debug("sending request %s %s", req.method, req.uri)
        reader, writer = await self._open_connection(req.uri)
        try:
            await write_request(writer, req)
            return await read_response(reader, writer, req.method)
        except (OSError, asyncio.IncompleteReadError, ValueError) as exc:
            # readline raises ValueError for lines over the stream limit
            writer.close()
            raise CommunicationError(str(exc)) from exc
        except BaseException:
            writer.close()
            raise

    async def request_string(self, req: Request) -> str:
        """Send *req* and return the whole body as text, whatever the status."""
        response = await self.request(req)
        try:
            raw = await response.body.read_all()
        finally:
            await response.close()
        return decode_body(raw)

    async def _open_connection(
        self,
        uri: str,
    ) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        parts = urllib.parse.urlsplit(uri)
        endpoint = self._endpoint
        if isinstance(endpoint, UnixEndpoint):
            if parts.scheme != "unix":
                raise InvalidEndpoint(uri, "expected a unix:// URI")
            address = urllib.parse.unquote(parts.netloc)
            connect = asyncio.open_unix_connection(address)
        elif isinstance(endpoint, TlsEndpoint):
            address = parts.netloc
            connect = asyncio.open_connection(
                parts.hostname,
                parts.port or 443,
                ssl=self._ssl,
                server_hostname=parts.hostname,
            )
        else:
            address = parts.netloc
            connect = asyncio.open_connection(parts.hostname, parts.port or 80)

        try:
            if self._connect_timeout is not None:
                return await asyncio.wait_for(connect, timeout=self._connect_timeout)
            return await connect
        except (TimeoutError, asyncio.TimeoutError) as exc:
            raise ConnectError(address, "timed out") from exc
        except OSError as exc:
            raise ConnectError(address, str(exc)) from exc

    def __repr__(self) -> str:
        return f"Transport({self._endpoint!r})"


def _check_host(host: str) -> None:
    parts = urllib.parse.urlsplit(host)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidEndpoint(host, "expected an http:// or https:// URL with a host")
    try:
        _ = parts.port
    except ValueError as exc:
        raise InvalidEndpoint(host, str(exc)) from exc


def _ssl_context(endpoint: TlsEndpoint) -> ssl.SSLContext:
    """Build the client-side TLS context for *endpoint*."""
    try:
        ctx = ssl.create_default_context(cafile=endpoint.ca if endpoint.verify else None)
        if not endpoint.verify:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        if endpoint.cert is not None:
            ctx.load_cert_chain(endpoint.cert, endpoint.key)
    except (OSError, ssl.SSLError) as exc:
        raise ConnectError(endpoint.host, f"cannot load TLS material: {exc}") from exc
    return ctx
