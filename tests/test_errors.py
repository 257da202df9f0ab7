"""Tests for the dockwire error hierarchy."""

from __future__ import annotations

import dockwire
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

# -- Inheritance --


def test_transport_errors_share_a_base() -> None:
    for cls in (ConnectError, CommunicationError, NoDaemonFound):
        assert issubclass(cls, TransportError)
    assert issubclass(TransportError, DockwireError)


def test_everything_is_dockwire_error() -> None:
    for cls in (
        InvalidEndpoint,
        InvalidHeader,
        Fault,
        UpgradeRefused,
        MalformedResponseEncoding,
        ResponseDecodeError,
        ProtocolViolation,
        MalformedVersion,
    ):
        assert issubclass(cls, DockwireError)


def test_errors_exported_from_package() -> None:
    assert dockwire.Fault is Fault
    assert dockwire.ProtocolViolation is ProtocolViolation
    assert dockwire.InvalidHeader is InvalidHeader


# -- Messages and attributes --


def test_connect_error() -> None:
    err = ConnectError("/var/run/docker.sock", "No such file or directory")
    assert err.address == "/var/run/docker.sock"
    assert str(err) == "Cannot connect to daemon at /var/run/docker.sock: No such file or directory"


def test_connect_error_without_detail() -> None:
    assert str(ConnectError("h:1")) == "Cannot connect to daemon at h:1"


def test_communication_error() -> None:
    err = CommunicationError("connection reset")
    assert err.detail == "connection reset"
    assert "connection reset" in str(err)


def test_no_daemon_found_mentions_env_var() -> None:
    assert "DOCKWIRE_HOST" in str(NoDaemonFound())


def test_fault() -> None:
    err = Fault(404, "No such image: alpine:nope")
    assert err.code == 404
    assert err.message == "No such image: alpine:nope"
    assert str(err) == "error 404 - No such image: alpine:nope"


def test_upgrade_refused() -> None:
    err = UpgradeRefused(200)
    assert err.status == 200
    assert "not upgraded" in str(err)


def test_invalid_endpoint() -> None:
    err = InvalidEndpoint("ftp://x", "bad scheme")
    assert err.uri == "ftp://x"
    assert str(err) == "Invalid endpoint 'ftp://x': bad scheme"


def test_invalid_header() -> None:
    err = InvalidHeader("X-Registry-Auth", "value contains CR, LF or NUL")
    assert err.name == "X-Registry-Auth"
    assert str(err) == "Invalid header 'X-Registry-Auth': value contains CR, LF or NUL"


def test_protocol_violation() -> None:
    err = ProtocolViolation("invalid stream number from daemon: 9")
    assert err.detail == "invalid stream number from daemon: 9"
    assert str(err).startswith("Protocol violation:")


def test_malformed_version() -> None:
    assert str(MalformedVersion("unexpected extra tokens")) == "Invalid version - unexpected extra tokens"
