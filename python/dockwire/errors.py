# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

from __future__ import annotations


class DockwireError(Exception):
    """Base exception for all dockwire errors."""


class TransportError(DockwireError):
    """Error raised by the connection backend, before or during I/O."""


class ConnectError(TransportError):
    """Cannot connect to the daemon."""

    def __init__(self, address: str, detail: str = "") -> None:
        self.address = address
        msg = f"Cannot connect to daemon at {address}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class CommunicationError(TransportError):
    """Error while writing a request or reading a response."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        msg = "Communication error"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class NoDaemonFound(TransportError):
    """No daemon host configured and no local engine socket found."""

    def __init__(self) -> None:
        super().__init__(
            "No container daemon found. "
            "Set DOCKWIRE_HOST (or DOCKER_HOST), or start Podman or Docker."
        )


class InvalidEndpoint(DockwireError):
    """A host or endpoint could not be turned into a request URI."""

    def __init__(self, uri: str, detail: str = "") -> None:
        self.uri = uri
        msg = f"Invalid endpoint {uri!r}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class InvalidHeader(DockwireError):
    """A request header name or value cannot be sent on the wire."""

    def __init__(self, name: str, detail: str) -> None:
        self.name = name
        super().__init__(f"Invalid header {name!r}: {detail}")


class Fault(DockwireError):
    """The daemon answered with a non-success HTTP status."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"error {code} - {message}")


class UpgradeRefused(DockwireError):
    """An upgrade was requested but the daemon did not switch protocols."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"The HTTP connection was not upgraded by the daemon (HTTP {status})")


class MalformedResponseEncoding(DockwireError):
    """Response body bytes are not valid UTF-8."""

    def __init__(self, detail: str = "") -> None:
        msg = "Response body is not valid UTF-8"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class ResponseDecodeError(DockwireError):
    """Response body is not the JSON the caller asked for."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        msg = "Cannot decode JSON response"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class ProtocolViolation(DockwireError):
    """The multiplexed stdio stream broke its framing rules."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Protocol violation: {detail}")


class MalformedVersion(DockwireError):
    """An API version string could not be parsed."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid version - {detail}")
