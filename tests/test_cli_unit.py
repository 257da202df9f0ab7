"""Unit tests for the CLI using Click's CliRunner with a mocked client."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner
from dockwire import __version__
from dockwire._config import DockwireConfig
from dockwire._tty import encode_frame
from dockwire.cli.main import CliContext, cli
from dockwire.errors import ConnectError, Fault, NoDaemonFound
from dockwire.types import STREAM_STDERR, STREAM_STDOUT

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


async def _agen(*items: object) -> AsyncIterator[object]:
    for item in items:
        yield item


def _mock_client() -> MagicMock:
    client = MagicMock()
    client.get_string = AsyncMock(return_value="OK")
    client.get_json = AsyncMock(return_value={"Version": "24.0.7", "ApiVersion": "1.43"})
    return client


# --- Scaffold ---


def test_cli_help() -> None:
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_cli_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_context_defaults() -> None:
    ctx = CliContext()
    assert ctx.host is None
    assert ctx.cert_path is None
    assert ctx.verbose is False


@patch("dockwire.cli._commands.load_config")
@patch("dockwire.cli._commands.client_from_config")
def test_host_option_overrides_config(mock_client_from_config: MagicMock, mock_load: MagicMock) -> None:
    mock_load.return_value = DockwireConfig(host="unix:///from/config.sock", connect_timeout=3.0)
    mock_client_from_config.return_value = _mock_client()

    result = CliRunner().invoke(cli, ["--host", "tcp://h:2375", "ping"])

    assert result.exit_code == 0
    config = mock_client_from_config.call_args.args[0]
    assert config.host == "tcp://h:2375"
    assert config.connect_timeout == 3.0


def test_host_option_from_env() -> None:
    with patch("dockwire.cli._commands._client_for", return_value=_mock_client()) as mock_for:
        result = CliRunner().invoke(cli, ["ping"], env={"DOCKWIRE_HOST": "tcp://env:2375"})
    assert result.exit_code == 0
    assert mock_for.call_args.args[0].host == "tcp://env:2375"


# --- ping / version / get ---


@patch("dockwire.cli._commands._client_for")
def test_ping(mock_for: MagicMock) -> None:
    client = _mock_client()
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["ping"])
    assert result.exit_code == 0
    assert "OK" in result.output
    client.get_string.assert_awaited_once_with("/_ping")


@patch("dockwire.cli._commands._client_for")
def test_version_json(mock_for: MagicMock) -> None:
    mock_for.return_value = _mock_client()
    result = CliRunner().invoke(cli, ["version", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.output)["ApiVersion"] == "1.43"


@patch("dockwire.cli._commands._client_for")
def test_version_table(mock_for: MagicMock) -> None:
    mock_for.return_value = _mock_client()
    result = CliRunner().invoke(cli, ["version"])
    assert result.exit_code == 0
    assert "24.0.7" in result.output


@patch("dockwire.cli._commands._client_for")
def test_get_json(mock_for: MagicMock) -> None:
    client = _mock_client()
    client.get_json = AsyncMock(return_value=[{"Id": "abc"}])
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["get", "/containers/json"])
    assert result.exit_code == 0
    assert json.loads(result.output) == [{"Id": "abc"}]


@patch("dockwire.cli._commands._client_for")
def test_get_raw(mock_for: MagicMock) -> None:
    client = _mock_client()
    client.get_string = AsyncMock(return_value="plain body")
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["get", "--raw", "/_ping"])
    assert result.exit_code == 0
    assert result.output == "plain body"


# --- stream / logs ---


@patch("dockwire.cli._commands._client_for")
def test_stream_get(mock_for: MagicMock) -> None:
    client = _mock_client()
    client.get_json_stream = MagicMock(return_value=_agen({"status": "start"}, {"status": "die"}))
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["stream", "/events"])
    assert result.exit_code == 0
    assert [json.loads(line) for line in result.output.splitlines()] == [
        {"status": "start"},
        {"status": "die"},
    ]


@patch("dockwire.cli._commands._client_for")
def test_stream_post(mock_for: MagicMock) -> None:
    client = _mock_client()
    client.post_into_stream = MagicMock(return_value=_agen({"status": "Pulling"}))
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["stream", "--post", "/images/create?fromImage=alpine"])
    assert result.exit_code == 0
    client.post_into_stream.assert_called_once_with("/images/create?fromImage=alpine")


@patch("dockwire.cli._commands._client_for")
def test_logs_demultiplexes(mock_for: MagicMock) -> None:
    client = _mock_client()
    wire = encode_frame(STREAM_STDOUT, b"hello\n") + encode_frame(STREAM_STDERR, b"oops\n")
    client.get_stream = MagicMock(return_value=_agen(wire[:10], wire[10:]))
    mock_for.return_value = client

    result = CliRunner().invoke(cli, ["logs", "--tail", "5", "web"])

    assert result.exit_code == 0
    assert "hello" in result.output
    endpoint = client.get_stream.call_args.args[0]
    assert endpoint == "/containers/web/logs?stdout=true&stderr=true&follow=false&tail=5"


@patch("dockwire.cli._commands._client_for")
def test_logs_keeps_character_split_across_frames(mock_for: MagicMock) -> None:
    client = _mock_client()
    text = "naïve\n".encode()
    wire = encode_frame(STREAM_STDOUT, text[:3]) + encode_frame(STREAM_STDOUT, text[3:])
    client.get_stream = MagicMock(return_value=_agen(wire))
    mock_for.return_value = client

    result = CliRunner().invoke(cli, ["logs", "web"])

    assert result.exit_code == 0
    assert "naïve" in result.output
    assert "�" not in result.output


@patch("dockwire.cli._commands._client_for")
def test_logs_tty_passes_raw_output(mock_for: MagicMock) -> None:
    client = _mock_client()
    client.get_stream = MagicMock(return_value=_agen(b"raw tty\n"))
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["logs", "--tty", "-f", "web"])
    assert result.exit_code == 0
    assert "raw tty" in result.output
    assert "follow=true" in client.get_stream.call_args.args[0]


# --- errors ---


@patch("dockwire.cli._commands._client_for")
def test_fault_exits_1(mock_for: MagicMock) -> None:
    client = _mock_client()
    client.get_json = AsyncMock(side_effect=Fault(404, "page not found"))
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["get", "/nope"])
    assert result.exit_code == 1


@patch("dockwire.cli._commands._client_for")
def test_connect_error_exits_1(mock_for: MagicMock) -> None:
    client = _mock_client()
    client.get_string = AsyncMock(side_effect=ConnectError("h:1", "refused"))
    mock_for.return_value = client
    result = CliRunner().invoke(cli, ["ping"])
    assert result.exit_code == 1


@patch("dockwire.cli._commands._client_for", side_effect=NoDaemonFound())
def test_no_daemon_exits_1(_mock_for: MagicMock) -> None:
    result = CliRunner().invoke(cli, ["ping"])
    assert result.exit_code == 1
