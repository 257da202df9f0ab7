# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Rich output formatters for the CLI."""

from __future__ import annotations

import codecs
import json
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from dockwire.errors import DockwireError
    from dockwire.types import TtyChunk

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

_console = Console()
_err_console = Console(stderr=True)


def enable_trace() -> None:
    """Send dockwire's debug log lines to stderr."""
    logger = logging.getLogger("dockwire")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=_err_console, show_path=False))
    logger.setLevel(logging.DEBUG)


def format_mapping(title: str, data: Mapping[str, object], *, json_output: bool = False) -> None:
    """Print the scalar fields of a JSON object as a two-column table."""
    if json_output:
        click_echo_json(data)
        return

    table = Table(title=title, show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            continue
        table.add_row(str(key), str(value))
    _console.print(table)


class TtyWriter:
    """Write demultiplexed frames to the matching local stream.

    Each stream keeps its own UTF-8 decoder, so a character split across
    two frames is printed whole.
    """

    def __init__(self) -> None:
        self._decoders: dict[str, codecs.IncrementalDecoder] = {}

    def write(self, chunk: TtyChunk) -> None:
        name = chunk.stream_name
        decoder = self._decoders.get(name)
        if decoder is None:
            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            self._decoders[name] = decoder
        _emit(name, decoder.decode(chunk.data))

    def finish(self) -> None:
        """Flush bytes still held back at the end of the stream."""
        for name, decoder in self._decoders.items():
            _emit(name, decoder.decode(b"", final=True))
        self._decoders.clear()


def _emit(stream_name: str, text: str) -> None:
    if not text:
        return
    out = sys.stderr if stream_name == "stderr" else sys.stdout
    out.write(text)
    out.flush()


def format_error(err: DockwireError) -> None:
    """Print an SDK error as a rich panel with suggestions."""
    title, suggestion = _error_info(err)
    lines = [str(err)]
    if suggestion:
        lines.append(f"\n[dim]{suggestion}[/dim]")

    panel = Panel(
        "\n".join(lines),
        title=f"[red]{title}[/red]",
        expand=False,
    )
    _err_console.print(panel)


def _error_info(err: DockwireError) -> tuple[str, str]:
    """Map an SDK error to a title and suggestion string."""
    from dockwire.errors import (  # noqa: PLC0415
        ConnectError,
        Fault,
        InvalidEndpoint,
        InvalidHeader,
        NoDaemonFound,
        ProtocolViolation,
    )

    if isinstance(err, NoDaemonFound):
        return "Daemon Not Found", "Start Podman or Docker, or pass --host."
    if isinstance(err, ConnectError):
        return "Connection Failed", "Check that the daemon is running and --host is correct."
    if isinstance(err, InvalidEndpoint):
        return "Invalid Endpoint", "Hosts look like unix:///var/run/docker.sock or tcp://host:2375."
    if isinstance(err, InvalidHeader):
        return "Invalid Header", "Header names are HTTP tokens; values may not contain line breaks."
    if isinstance(err, Fault):
        return f"Daemon Error {err.code}", ""
    if isinstance(err, ProtocolViolation):
        return "Protocol Error", "Pass --tty if the container was started with a TTY."
    return "Error", ""


def print_success(msg: str) -> None:
    """Print a success message with a checkmark."""
    _console.print(f"[green]✓[/green] {msg}")


def click_echo_json(data: object) -> None:
    """Serialize data to JSON and echo to stdout."""
    sys.stdout.write(json.dumps(data, indent=2, default=str) + "\n")


def echo_json_line(data: object) -> None:
    """Write one compact JSON document per line."""
    sys.stdout.write(json.dumps(data, default=str) + "\n")
    sys.stdout.flush()
