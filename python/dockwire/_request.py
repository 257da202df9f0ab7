# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Request assembly and response classification."""

from __future__ import annotations

import dataclasses
import http
import json
import re
import urllib.parse
from typing import TYPE_CHECKING

from dockwire.errors import Fault, InvalidEndpoint, InvalidHeader, MalformedResponseEncoding
from dockwire.types import Headers, Payload

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from dockwire._http import Response

    ValidateFn = Callable[[Response], Awaitable[Response]]

SUCCESS_STATUSES = frozenset({200, 201, 101, 204})
UNKNOWN_ERROR = "unknown error code"

# RFC 9110 token characters
_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_BAD_HEADER_VALUE = re.compile(r"[\r\n\x00]")
# Request targets must be printable ASCII without spaces
_BAD_URI = re.compile(r"[^\x21-\x7e]")


@dataclasses.dataclass(frozen=True)
class Request:
    """A fully assembled request, ready for a transport to send."""

    method: str
    uri: str
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes | None = None

    @property
    def target(self) -> str:
        """Request-line target: path plus query string."""
        parts = urllib.parse.urlsplit(self.uri)
        target = parts.path or "/"
        if parts.query:
            target = f"{target}?{parts.query}"
        return target

    def header(self, name: str) -> str | None:
        """Return the first value of header *name* (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


def build_request(
    method: str,
    uri: str,
    payload: Payload | None = None,
    headers: Headers | None = None,
) -> Request:
    """Assemble a request.

    ``Host`` always comes first: the URI authority for TCP and TLS, an
    empty string for Unix sockets.  Caller headers follow in order, then
    ``Content-Type`` as implied by the payload kind.  An empty payload
    yields no body and no content type.

    Raises:
        InvalidEndpoint: *uri* holds whitespace, control or non-ASCII
            characters.
        InvalidHeader: A caller header has a malformed name, or a value
            containing CR, LF, NUL or characters outside latin-1.

    """
    if payload is None:
        payload = Payload.empty()

    if _BAD_URI.search(uri):
        raise InvalidEndpoint(uri, "URI contains whitespace, control or non-ASCII characters")
    parts = urllib.parse.urlsplit(uri)
    host = "" if parts.scheme == "unix" else parts.netloc
    pairs: list[tuple[str, str]] = [("Host", host)]
    if headers is not None:
        for name, value in headers:
            _check_header(name, value)
            pairs.append((name, value))

    if payload.is_none():
        return Request(method.upper(), uri, tuple(pairs))

    mime = payload.mime_type
    if mime is not None:
        pairs.append(("Content-Type", mime))
    return Request(method.upper(), uri, tuple(pairs), payload.body)


def _check_header(name: str, value: str) -> None:
    if not _HEADER_NAME.fullmatch(name):
        raise InvalidHeader(name, "name is not a valid HTTP token")
    if _BAD_HEADER_VALUE.search(value):
        raise InvalidHeader(name, "value contains CR, LF or NUL")
    try:
        value.encode("latin-1")
    except UnicodeEncodeError as exc:
        raise InvalidHeader(name, "value is not latin-1 encodable") from exc


async def classify_response(response: Response) -> Response:
    """Default response validation.

    200, 201, 101 and 204 pass through untouched.  Anything else drains the
    body, closes the connection and raises :class:`Fault` with the message
    from a ``{"message": ...}`` body, falling back to the reason phrase.

    Raises:
        Fault: Non-success status.
        MalformedResponseEncoding: The error body is not valid UTF-8.

    """
    if response.status in SUCCESS_STATUSES:
        return response

    try:
        raw = await response.body.read_all()
    finally:
        await response.close()

    text = decode_body(raw)
    raise Fault(response.status, fault_message(response.status, text))


def fault_message(status: int, text: str) -> str:
    """Pick the message for a fault from its body text or the status code."""
    try:
        data = json.loads(text)
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    try:
        return http.HTTPStatus(status).phrase
    except ValueError:
        return UNKNOWN_ERROR


def decode_body(raw: bytes) -> str:
    """Decode body bytes as UTF-8, raising on invalid data."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedResponseEncoding(str(exc)) from exc


async def response_string(response: Response) -> str:
    """Read a whole response body as text and close the connection."""
    try:
        raw = await response.body.read_all()
    finally:
        await response.close()
    return decode_body(raw)
