# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

from __future__ import annotations

import dataclasses
import json
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from collections.abc import Iterator

PayloadKind = Literal["none", "text", "json", "tar", "x-tar"]

_MIME_TYPES: dict[str, str | None] = {
    "none": None,
    "text": None,
    "json": "application/json",
    "tar": "application/tar",
    "x-tar": "application/x-tar",
}

STREAM_STDIN = 0
STREAM_STDOUT = 1
STREAM_STDERR = 2

_STREAM_NAMES = {STREAM_STDIN: "stdin", STREAM_STDOUT: "stdout", STREAM_STDERR: "stderr"}


@dataclasses.dataclass
class Headers:
    """Ordered request headers.  Duplicate names are kept."""

    items: list[tuple[str, str]] = dataclasses.field(default_factory=list)

    @staticmethod
    def none() -> Headers | None:
        """Shortcut for a request without extra headers."""
        return None

    @classmethod
    def single(cls, key: str, value: str) -> Headers:
        """Build headers holding one pair."""
        headers = cls()
        headers.add(key, value)
        return headers

    def add(self, key: str, value: str) -> None:
        """Append a ``key: value`` pair."""
        self.items.append((key, str(value)))

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclasses.dataclass(frozen=True)
class Payload:
    """Request body tagged with the kind of data it carries.

    The kind alone decides the ``Content-Type`` sent with the request.
    ``Payload.empty()`` sends no body and no content type at all.
    """

    kind: PayloadKind = "none"
    body: bytes | None = None

    def __post_init__(self) -> None:
        if self.kind not in _MIME_TYPES:
            msg = f"unknown payload kind: {self.kind!r}"
            raise ValueError(msg)
        if (self.kind == "none") != (self.body is None):
            msg = "a body is required for every payload kind except 'none'"
            raise ValueError(msg)

    @classmethod
    def empty(cls) -> Payload:
        return cls()

    @classmethod
    def text(cls, data: str | bytes) -> Payload:
        return cls("text", _to_bytes(data))

    @classmethod
    def json(cls, data: Any) -> Payload:
        """JSON payload from bytes/str (sent as-is) or any serializable value."""
        if isinstance(data, (bytes, str)):
            return cls("json", _to_bytes(data))
        return cls("json", json.dumps(data).encode("utf-8"))

    @classmethod
    def tar(cls, data: bytes) -> Payload:
        return cls("tar", data)

    @classmethod
    def x_tar(cls, data: bytes) -> Payload:
        return cls("x-tar", data)

    @property
    def mime_type(self) -> str | None:
        """Content type implied by the payload kind."""
        return _MIME_TYPES[self.kind]

    def is_none(self) -> bool:
        return self.kind == "none"


@dataclasses.dataclass(frozen=True)
class TtyChunk:
    """One frame of a multiplexed stdio stream."""

    stream: int
    data: bytes

    @property
    def stream_name(self) -> str:
        """``"stdin"``, ``"stdout"`` or ``"stderr"``."""
        return _STREAM_NAMES[self.stream]

    def text(self) -> str:
        """Decode the payload to a string."""
        return self.data.decode("utf-8", errors="replace")

    def __bytes__(self) -> bytes:
        return self.data


def _to_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data
