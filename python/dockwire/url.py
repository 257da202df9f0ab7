# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Endpoint and query-string helpers."""

from __future__ import annotations

import urllib.parse
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def construct_ep(ep: str, query: str | None = None) -> str:
    """Return *ep* with ``?query`` appended when a query is given."""
    if query is not None:
        return append_query(ep, query)
    return ep


def append_query(ep: str, query: str) -> str:
    return f"{ep}?{query}"


def encoded_pair(key: str, value: object) -> str:
    """Form-encode a single ``key=value`` pair."""
    return urllib.parse.urlencode({key: str(value)})


def encoded_pairs(pairs: Iterable[tuple[str, str]]) -> str:
    """Form-encode pairs in order.  An empty value encodes the bare key."""
    parts = []
    for key, value in pairs:
        if value:
            parts.append(urllib.parse.urlencode({key: value}))
        else:
            parts.append(urllib.parse.quote_plus(key))
    return "&".join(parts)


def encoded_vec_pairs(pairs: Iterable[tuple[str, Iterable[str]]]) -> str:
    """Form-encode several values per key, e.g. ``tag=a&tag=b``."""
    flat = [(key, value) for key, values in pairs for value in values]
    return urllib.parse.urlencode(flat)
