# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""CLI command implementations."""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import click

from dockwire._config import client_from_config, load_config
from dockwire._tty import decode_chunks
from dockwire.cli._output import (
    TtyWriter,
    click_echo_json,
    echo_json_line,
    format_error,
    format_mapping,
    print_success,
)
from dockwire.errors import DockwireError
from dockwire.types import STREAM_STDOUT, TtyChunk
from dockwire.url import construct_ep, encoded_pairs

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from dockwire._client import RequestClient
    from dockwire.cli.main import CliContext

T = TypeVar("T")


def _get_ctx(ctx: click.Context) -> CliContext:
    """Extract the CliContext from Click's context object."""
    return ctx.obj  # type: ignore[no-any-return]


def _client_for(cli_ctx: CliContext) -> RequestClient:
    """Build a client from config files, env vars and CLI flags."""
    config = load_config(Path.cwd())
    overrides: dict[str, Any] = {}
    if cli_ctx.host is not None:
        overrides["host"] = cli_ctx.host
    if cli_ctx.cert_path is not None:
        overrides["cert_path"] = cli_ctx.cert_path
    return client_from_config(dataclasses.replace(config, **overrides))


def _run(cli_ctx: CliContext, fn: Callable[[RequestClient], Awaitable[T]]) -> T:
    """Run *fn* against a fresh client, turning SDK errors into exit code 1."""
    try:
        client = _client_for(cli_ctx)
        return asyncio.run(fn(client))  # type: ignore[arg-type]
    except DockwireError as exc:
        format_error(exc)
        raise SystemExit(1) from exc


@click.command("ping")
@click.pass_context
def ping_cmd(ctx: click.Context) -> None:
    """Check that the daemon answers."""
    cli_ctx = _get_ctx(ctx)
    reply = _run(cli_ctx, lambda client: client.get_string("/_ping"))
    print_success(f"Daemon replied {reply.strip()!r}")


@click.command("version")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def version_cmd(ctx: click.Context, *, json_output: bool) -> None:
    """Show the daemon's version information."""
    cli_ctx = _get_ctx(ctx)
    data = _run(cli_ctx, lambda client: client.get_json("/version"))
    format_mapping("Daemon Version", data, json_output=json_output)


@click.command("get")
@click.argument("endpoint")
@click.option("--raw", is_flag=True, help="Print the body as-is instead of parsing JSON.")
@click.pass_context
def get_cmd(ctx: click.Context, endpoint: str, *, raw: bool) -> None:
    """GET an API endpoint, e.g. /containers/json."""
    cli_ctx = _get_ctx(ctx)
    if raw:
        click.echo(_run(cli_ctx, lambda client: client.get_string(endpoint)), nl=False)
        return
    click_echo_json(_run(cli_ctx, lambda client: client.get_json(endpoint)))


@click.command("stream")
@click.argument("endpoint")
@click.option("--post", is_flag=True, help="POST and split the body on CRLF (pull/build progress).")
@click.pass_context
def stream_cmd(ctx: click.Context, endpoint: str, *, post: bool) -> None:
    """Print each JSON value streamed by an endpoint, one per line."""
    cli_ctx = _get_ctx(ctx)

    async def _consume(client: RequestClient) -> None:
        values = client.post_into_stream(endpoint) if post else client.get_json_stream(endpoint)
        async for value in values:
            echo_json_line(value)

    _run(cli_ctx, _consume)


@click.command("logs")
@click.argument("container")
@click.option("--follow", "-f", is_flag=True, help="Keep streaming new output.")
@click.option("--tail", default="all", help="Number of lines from the end to show.")
@click.option("--tty", is_flag=True, help="Container runs with a TTY (output is not multiplexed).")
@click.pass_context
def logs_cmd(ctx: click.Context, container: str, tail: str, *, follow: bool, tty: bool) -> None:
    """Print a container's stdout and stderr."""
    cli_ctx = _get_ctx(ctx)
    query = encoded_pairs(
        [
            ("stdout", "true"),
            ("stderr", "true"),
            ("follow", "true" if follow else "false"),
            ("tail", tail),
        ]
    )
    endpoint = construct_ep(f"/containers/{container}/logs", query)

    async def _consume(client: RequestClient) -> None:
        chunks = client.get_stream(endpoint)
        writer = TtyWriter()
        try:
            if tty:
                async for data in chunks:
                    writer.write(TtyChunk(STREAM_STDOUT, data))
            else:
                async for chunk in decode_chunks(chunks):
                    writer.write(chunk)
        finally:
            writer.finish()

    _run(cli_ctx, _consume)
