# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Configuration loading with install-level -> project-level -> env precedence."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from dockwire._client import RequestClient
from dockwire._logger import TrafficLogger
from dockwire._transport import Transport, detect_socket
from dockwire.errors import NoDaemonFound

if TYPE_CHECKING:
    from collections.abc import Mapping

_CONFIG_DIRNAME = ".dockwire"
_CONFIG_FILENAME = "dockwire.yaml"
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclasses.dataclass(frozen=True)
class DockwireConfig:
    """Resolved dockwire configuration."""

    host: str | None = None
    cert_path: str | None = None
    tls_verify: bool = True
    connect_timeout: float | None = None
    traffic_log: bool = False
    log_dir: str | None = None


def load_config(
    project_root: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> DockwireConfig:
    """Load configuration with precedence: env > project > install > defaults.

    1. Start with defaults
    2. Overlay install-level ``~/.dockwire/dockwire.yaml`` (if exists)
    3. Overlay project-level ``.dockwire/dockwire.yaml`` (if exists)
    4. Overlay ``DOCKWIRE_*`` variables (``DOCKER_HOST`` and
       ``DOCKER_CERT_PATH`` are honoured when the ``DOCKWIRE_`` ones are unset)
    """
    overrides: dict[str, Any] = {}

    install_config = Path.home() / _CONFIG_DIRNAME / _CONFIG_FILENAME
    if install_config.is_file():
        _merge_yaml(overrides, install_config)

    if project_root is not None:
        project_config = project_root / _CONFIG_DIRNAME / _CONFIG_FILENAME
        if project_config.is_file():
            _merge_yaml(overrides, project_config)

    _merge_env(overrides, os.environ if env is None else env)
    return _build_config(overrides)


def _merge_yaml(target: dict[str, Any], path: Path) -> None:
    """Parse a YAML file and merge its values into *target*."""
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError:
        return
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if key == "logging" and isinstance(value, dict):
            # Flatten logging sub-keys into top-level config keys
            target.update(value)
        else:
            target[key] = value


def _merge_env(target: dict[str, Any], env: Mapping[str, str]) -> None:
    host = env.get("DOCKWIRE_HOST") or env.get("DOCKER_HOST")
    if host:
        target["host"] = host
    cert_path = env.get("DOCKWIRE_CERT_PATH") or env.get("DOCKER_CERT_PATH")
    if cert_path:
        target["cert_path"] = cert_path
    verify = env.get("DOCKWIRE_TLS_VERIFY")
    if verify is not None:
        target["tls_verify"] = verify.strip().lower() not in _FALSE_VALUES


def _build_config(overrides: dict[str, Any]) -> DockwireConfig:
    """Build a ``DockwireConfig`` from a dict of overrides."""
    field_names = {f.name for f in dataclasses.fields(DockwireConfig)}
    filtered = {k: v for k, v in overrides.items() if k in field_names}
    return DockwireConfig(**filtered)


def transport_from_config(config: DockwireConfig) -> Transport:
    """Build a transport for the configured host, or a detected local socket.

    Raises:
        NoDaemonFound: No host configured and no engine socket on this machine.

    """
    host = config.host
    if host is None:
        host = detect_socket()
        if host is None:
            raise NoDaemonFound
    return Transport.from_host(
        host,
        cert_path=config.cert_path,
        verify=config.tls_verify,
        connect_timeout=config.connect_timeout,
    )


def client_from_config(config: DockwireConfig) -> RequestClient:
    """Build a :class:`RequestClient`, with request history if enabled."""
    traffic_logger = None
    if config.traffic_log:
        log_dir = Path(config.log_dir) if config.log_dir else Path.home() / _CONFIG_DIRNAME / "logs"
        traffic_logger = TrafficLogger(log_dir)
    return RequestClient(transport_from_config(config), traffic_logger=traffic_logger)
