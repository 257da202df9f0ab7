# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Fire-and-forget request history on disk.

All I/O is synchronous filesystem writes.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import datetime
    from pathlib import Path

HISTORY_FILENAME = "history.jsonl"


class TrafficLogger:
    """Appends one JSONL line per request to ``<log_dir>/history.jsonl``."""

    def __init__(self, log_dir: Path, *, enabled: bool = True) -> None:
        self._log_dir = log_dir
        self._history_path = log_dir / HISTORY_FILENAME
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        """Whether logging is active."""
        return self._enabled

    @property
    def history_path(self) -> Path:
        return self._history_path

    def log_exchange(  # noqa: PLR0913
        self,
        method: str,
        uri: str,
        *,
        status: int | None,
        duration_ms: float,
        started_at: datetime.datetime,
        error: str | None = None,
    ) -> None:
        """Record one request and how it ended."""
        if not self._enabled:
            return
        entry: dict[str, object] = {
            "type": "request",
            "method": method,
            "uri": uri,
            "status": status,
            "duration_ms": round(duration_ms, 1),
            "timestamp": started_at.isoformat(),
        }
        if error is not None:
            entry["error"] = error
        self.append_history(entry)

    def append_history(self, entry: dict[str, object]) -> None:
        """Append one JSONL line to ``history.jsonl``."""
        if not self._enabled:
            return
        self._log_dir.mkdir(parents=True, exist_ok=True)
        with self._history_path.open("a") as f:
            f.write(json.dumps(entry, default=str) + "\n")
