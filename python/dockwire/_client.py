# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Verb-level client over a :class:`~dockwire._transport.Transport`.

Every call builds a fresh request, sends it over a new connection, and
passes the response through the validation hook before anything else looks
at it.  Nothing here retries: a failed or faulted call simply raises, and
the caller decides whether to issue a new one.

Streaming verbs return async generators.  The request is only sent on the
first pull, so a fault surfaces from that pull; the connection is closed
when the generator finishes or is closed early.
"""

from __future__ import annotations

import datetime
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from dockwire._request import build_request, classify_response, response_string
from dockwire._stream import iter_json_values, stream_body, stream_json_body, stream_json_values
from dockwire.errors import DockwireError, Fault, ResponseDecodeError, UpgradeRefused
from dockwire.types import Headers

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from dockwire._duplex import DuplexStream
    from dockwire._http import Response
    from dockwire._logger import TrafficLogger
    from dockwire._request import Request, ValidateFn
    from dockwire._transport import Transport
    from dockwire.types import Payload

_log = logging.getLogger(__name__)


class RequestClient:
    """Sends requests to a daemon and interprets the responses.

    Args:
        transport: Where requests go.
        validate_fn: Async function applied to every response before it is
            used.  Returns the response to accept it, raises to reject it.
            Defaults to :func:`~dockwire._request.classify_response`.
        traffic_logger: Optional on-disk request history.

    """

    def __init__(
        self,
        transport: Transport,
        validate_fn: ValidateFn = classify_response,
        *,
        traffic_logger: TrafficLogger | None = None,
    ) -> None:
        self._transport = transport
        self._validate_fn = validate_fn
        self._traffic_logger = traffic_logger

    @property
    def transport(self) -> Transport:
        return self._transport

    def _make_request(
        self,
        method: str,
        endpoint: str,
        payload: Payload | None = None,
        headers: Headers | None = None,
    ) -> Request:
        uri = self._transport.make_uri(endpoint)
        return build_request(method, uri, payload, headers)

    async def _send_request(self, request: Request) -> Response:
        started_at = datetime.datetime.now(tz=datetime.timezone.utc)
        start = time.monotonic()
        status: int | None = None
        error: str | None = None
        try:
            response = await self._transport.request(request)
            status = response.status
            return await self._validate_fn(response)
        except Fault as exc:
            error = exc.message
            raise
        except DockwireError as exc:
            error = str(exc)
            raise
        finally:
            if self._traffic_logger is not None:
                self._traffic_logger.log_exchange(
                    request.method,
                    request.uri,
                    status=status,
                    duration_ms=(time.monotonic() - start) * 1000,
                    started_at=started_at,
                    error=error,
                )

    # -----------------------------------------------------------------------
    # GET
    # -----------------------------------------------------------------------

    async def get(self, endpoint: str) -> Response:
        """Make a GET request to *endpoint* and return the response."""
        return await self._send_request(self._make_request("GET", endpoint))

    async def get_string(self, endpoint: str) -> str:
        """Make a GET request and return the body as a string."""
        return await response_string(await self.get(endpoint))

    async def get_json(self, endpoint: str) -> Any:
        """Make a GET request and return the body decoded from JSON."""
        raw = await self.get_string(endpoint)
        _log.debug("%s", raw)
        return _loads(raw)

    async def get_stream(self, endpoint: str) -> AsyncGenerator[bytes, None]:
        """Make a GET request and yield the body's raw chunks."""
        response = await self.get(endpoint)
        try:
            async for chunk in stream_body(response.body):
                yield chunk
        finally:
            await response.close()

    async def get_json_stream(self, endpoint: str) -> AsyncGenerator[Any, None]:
        """Make a GET request and yield the JSON values in each raw chunk.

        Each chunk is parsed on its own, so the daemon is expected to flush
        whole documents (as ``/events`` does).
        """
        chunks = self.get_stream(endpoint)
        try:
            async for chunk in chunks:
                for value in iter_json_values(chunk):
                    yield value
        finally:
            await chunks.aclose()

    # -----------------------------------------------------------------------
    # POST
    # -----------------------------------------------------------------------

    async def post(
        self,
        endpoint: str,
        payload: Payload | None = None,
        headers: Headers | None = None,
    ) -> Response:
        """Make a POST request to *endpoint* and return the response."""
        return await self._send_request(self._make_request("POST", endpoint, payload, headers))

    async def post_string(
        self,
        endpoint: str,
        payload: Payload | None = None,
        headers: Headers | None = None,
    ) -> str:
        """Make a POST request and return the body as a string."""
        return await response_string(await self.post(endpoint, payload, headers))

    async def post_json(
        self,
        endpoint: str,
        payload: Payload | None = None,
        headers: Headers | None = None,
    ) -> Any:
        """Make a POST request and return the body decoded from JSON."""
        raw = await self.post_string(endpoint, payload, headers)
        _log.debug("%s", raw)
        return _loads(raw)

    async def post_stream(
        self,
        endpoint: str,
        payload: Payload | None = None,
        headers: Headers | None = None,
    ) -> AsyncGenerator[bytes, None]:
        """Make a streaming POST request and yield the body's raw chunks.

        Use :meth:`post_into_stream` if the endpoint returns JSON values.
        """
        response = await self.post(endpoint, payload, headers)
        try:
            async for chunk in stream_body(response.body):
                yield chunk
        finally:
            await response.close()

    async def _post_json_stream(
        self,
        endpoint: str,
        payload: Payload | None = None,
        headers: Headers | None = None,
    ) -> AsyncGenerator[bytes, None]:
        response = await self.post(endpoint, payload, headers)
        try:
            async for frame in stream_json_body(response.body):
                yield frame
        finally:
            await response.close()

    async def post_into_stream(
        self,
        endpoint: str,
        payload: Payload | None = None,
        headers: Headers | None = None,
    ) -> AsyncGenerator[Any, None]:
        """Make a streaming POST request and yield the JSON values it returns.

        The body is split into ``\\r\\n``-terminated frames first (image
        pulls and builds report progress this way).
        """
        frames = self._post_json_stream(endpoint, payload, headers)
        try:
            async for value in stream_json_values(frames):
                yield value
        finally:
            await frames.aclose()

    async def post_upgrade_stream(
        self,
        endpoint: str,
        payload: Payload | None = None,
    ) -> DuplexStream:
        """Make a POST request asking to upgrade the connection to raw TCP.

        Raises:
            UpgradeRefused: The daemon answered with anything but 101.

        """
        return await self._stream_upgrade("POST", endpoint, payload)

    # -----------------------------------------------------------------------
    # PUT
    # -----------------------------------------------------------------------

    async def put(self, endpoint: str, payload: Payload | None = None) -> Response:
        """Make a PUT request to *endpoint* and return the response."""
        return await self._send_request(self._make_request("PUT", endpoint, payload))

    async def put_string(self, endpoint: str, payload: Payload | None = None) -> str:
        """Make a PUT request and return the body as a string."""
        return await response_string(await self.put(endpoint, payload))

    # -----------------------------------------------------------------------
    # DELETE
    # -----------------------------------------------------------------------

    async def delete(self, endpoint: str) -> Response:
        """Make a DELETE request to *endpoint* and return the response."""
        return await self._send_request(self._make_request("DELETE", endpoint))

    async def delete_string(self, endpoint: str) -> str:
        return await response_string(await self.delete(endpoint))

    async def delete_json(self, endpoint: str) -> Any:
        raw = await self.delete_string(endpoint)
        _log.debug("%s", raw)
        return _loads(raw)

    # -----------------------------------------------------------------------
    # HEAD
    # -----------------------------------------------------------------------

    async def head(self, endpoint: str) -> Response:
        """Make a HEAD request to *endpoint* and return the response."""
        return await self._send_request(self._make_request("HEAD", endpoint))

    # -----------------------------------------------------------------------
    # Upgrade
    # -----------------------------------------------------------------------

    async def _stream_upgrade(
        self,
        method: str,
        endpoint: str,
        payload: Payload | None,
    ) -> DuplexStream:
        headers = Headers()
        headers.add("Connection", "Upgrade")
        headers.add("Upgrade", "tcp")

        request = self._make_request(method, endpoint, payload, headers)
        response = await self._send_request(request)
        if response.status != 101:  # noqa: PLR2004
            await response.close()
            raise UpgradeRefused(response.status)
        _log.debug("connection upgraded for %s %s", method, request.uri)
        return response.into_duplex()


def _loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ResponseDecodeError(str(exc)) from exc
