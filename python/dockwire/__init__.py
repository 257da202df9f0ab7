# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Transport and stream-decoding layer for container daemon HTTP APIs.

Usage::

    from dockwire import Payload, RequestClient, Transport, UnixEndpoint

    async def main():
        client = RequestClient(Transport(UnixEndpoint("/var/run/docker.sock")))
        info = await client.get_json("/info")
        async for event in client.get_json_stream("/events"):
            print(event)
"""

from __future__ import annotations

from importlib.metadata import version as _dist_version

from dockwire._client import RequestClient
from dockwire._config import DockwireConfig, client_from_config, load_config, transport_from_config
from dockwire._duplex import DuplexStream, ReadHalf, WriteHalf
from dockwire._http import Response, ResponseBody
from dockwire._logger import TrafficLogger
from dockwire._request import Request, build_request, classify_response
from dockwire._stream import iter_json_values, split_json_frames, stream_body, stream_json_body
from dockwire._transport import (
    Endpoint,
    TcpEndpoint,
    TlsEndpoint,
    Transport,
    UnixEndpoint,
    detect_socket,
)
from dockwire._tty import Multiplexer, decode, decode_chunk, decode_chunks, decode_raw, encode_frame
from dockwire.errors import (
    CommunicationError,
    ConnectError,
    DockwireError,
    Fault,
    InvalidEndpoint,
    InvalidHeader,
    MalformedResponseEncoding,
    MalformedVersion,
    NoDaemonFound,
    ProtocolViolation,
    ResponseDecodeError,
    TransportError,
    UpgradeRefused,
)
from dockwire.types import STREAM_STDERR, STREAM_STDIN, STREAM_STDOUT, Headers, Payload, TtyChunk
from dockwire.version import ApiVersion

__version__ = _dist_version("dockwire")


def get_version() -> str:
    """Return the dockwire package version string."""
    return __version__


__all__ = [
    "STREAM_STDERR",
    "STREAM_STDIN",
    "STREAM_STDOUT",
    "ApiVersion",
    "CommunicationError",
    "ConnectError",
    "DockwireConfig",
    "DockwireError",
    "DuplexStream",
    "Endpoint",
    "Fault",
    "Headers",
    "InvalidEndpoint",
    "InvalidHeader",
    "MalformedResponseEncoding",
    "MalformedVersion",
    "Multiplexer",
    "NoDaemonFound",
    "Payload",
    "ProtocolViolation",
    "ReadHalf",
    "Request",
    "RequestClient",
    "Response",
    "ResponseBody",
    "ResponseDecodeError",
    "TcpEndpoint",
    "TlsEndpoint",
    "TrafficLogger",
    "Transport",
    "TransportError",
    "TtyChunk",
    "UnixEndpoint",
    "UpgradeRefused",
    "WriteHalf",
    "__version__",
    "build_request",
    "classify_response",
    "client_from_config",
    "decode",
    "decode_chunk",
    "decode_chunks",
    "decode_raw",
    "detect_socket",
    "encode_frame",
    "get_version",
    "iter_json_values",
    "load_config",
    "split_json_frames",
    "stream_body",
    "stream_json_body",
    "transport_from_config",
]
