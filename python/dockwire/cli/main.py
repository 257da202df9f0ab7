# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""CLI entry point for dockwire."""

from __future__ import annotations

import dataclasses

import click

from dockwire import __version__
from dockwire.cli._output import enable_trace


@dataclasses.dataclass
class CliContext:
    """Shared state passed through Click's context object."""

    host: str | None = None
    cert_path: str | None = None
    verbose: bool = False


@click.group()
@click.option(
    "--host",
    "-H",
    envvar="DOCKWIRE_HOST",
    default=None,
    help="Daemon address: unix:///path, tcp://host:port or https://host:port.",
)
@click.option(
    "--cert-path",
    envvar="DOCKWIRE_CERT_PATH",
    default=None,
    help="Directory holding cert.pem, key.pem and ca.pem for TLS.",
)
@click.option("--verbose", "-v", is_flag=True, help="Trace requests to stderr.")
@click.version_option(version=__version__, prog_name="dockwire")
@click.pass_context
def cli(ctx: click.Context, host: str | None, cert_path: str | None, *, verbose: bool) -> None:
    """Talk to a Docker or Podman daemon over its HTTP API."""
    ctx.ensure_object(dict)
    ctx.obj = CliContext(host=host, cert_path=cert_path, verbose=verbose)
    if verbose:
        enable_trace()


# --- Register commands ---

from dockwire.cli._commands import (  # noqa: E402
    get_cmd,
    logs_cmd,
    ping_cmd,
    stream_cmd,
    version_cmd,
)

cli.add_command(ping_cmd)
cli.add_command(version_cmd)
cli.add_command(get_cmd)
cli.add_command(stream_cmd)
cli.add_command(logs_cmd)
