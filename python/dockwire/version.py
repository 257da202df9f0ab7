# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""API version used to prefix endpoints, e.g. ``/v1.41/containers/json``."""

from __future__ import annotations

import dataclasses
import functools

from dockwire.errors import MalformedVersion


@functools.total_ordering
@dataclasses.dataclass(frozen=True)
class ApiVersion:
    """``major[.minor[.patch]]``.  A missing part sorts before any number."""

    major: int
    minor: int | None = None
    patch: int | None = None

    @classmethod
    def parse(cls, s: str) -> ApiVersion:
        """Parse ``"1"``, ``"1.41"`` or ``"4.0.0"``.

        The major part must be numeric.  A non-numeric minor or patch part is
        treated as absent.  More than three parts is an error.
        """
        elems = s.split(".")
        if len(elems) > 3:  # noqa: PLR2004
            msg = "unexpected extra tokens"
            raise MalformedVersion(msg)
        major = _parse_part(elems[0])
        if major is None:
            msg = f"expected major version, got {elems[0]!r}"
            raise MalformedVersion(msg)
        minor = _parse_part(elems[1]) if len(elems) > 1 else None
        patch = _parse_part(elems[2]) if len(elems) > 2 else None  # noqa: PLR2004
        return cls(major, minor, patch)

    def make_endpoint(self, ep: str) -> str:
        """Prefix *ep* with ``/v{version}``."""
        sep = "" if ep.startswith("/") else "/"
        return f"/v{self}{sep}{ep}"

    def _key(self) -> tuple[int, int, int]:
        return (
            self.major,
            -1 if self.minor is None else self.minor,
            -1 if self.patch is None else self.patch,
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ApiVersion):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        parts = [str(self.major)]
        if self.minor is not None:
            parts.append(str(self.minor))
        if self.patch is not None:
            parts.append(str(self.patch))
        return ".".join(parts)


def _parse_part(part: str) -> int | None:
    return int(part) if part.isdigit() else None
