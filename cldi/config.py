"""Settings loader for cldi.

Every setting is resolved in the same order: explicit override (usually a
command-line flag), then the ``CITA_CLOUD_*`` environment variable, then the
``cli`` section of ``<data dir>/config.yaml``, then the built-in default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .crypto import CRYPTO_PROVIDERS, DEFAULT_CRYPTO
from .errors import ConfigurationError

DEFAULT_DATA_DIR = Path.home() / ".cloud-cli"
CONFIG_FILE_NAME = "config.yaml"

DEFAULT_USER = "default"
DEFAULT_CONTROLLER_ADDR = "localhost:50004"
DEFAULT_EXECUTOR_ADDR = "localhost:50002"
DEFAULT_RPC_TIMEOUT = 30.0
DEFAULT_BENCH_INTERVAL = 1.0

ENV_USER = "CITA_CLOUD_USER"
ENV_CONTROLLER_ADDR = "CITA_CLOUD_CONTROLLER_ADDR"
ENV_EXECUTOR_ADDR = "CITA_CLOUD_EXECUTOR_ADDR"
ENV_EVM_ADDR = "CITA_CLOUD_EVM_ADDR"
ENV_CRYPTO = "CITA_CLOUD_CRYPTO"
ENV_DATA_DIR = "CITA_CLOUD_DATA_DIR"
ENV_RPC_TIMEOUT = "CITA_CLOUD_RPC_TIMEOUT"


@dataclass
class Settings:
    """Resolved configuration for one invocation."""

    user: str = DEFAULT_USER
    controller_addr: str = DEFAULT_CONTROLLER_ADDR
    executor_addr: str = DEFAULT_EXECUTOR_ADDR
    evm_addr: str | None = None
    crypto: str = DEFAULT_CRYPTO
    data_dir: Path = DEFAULT_DATA_DIR
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    bench_interval: float = DEFAULT_BENCH_INTERVAL
    bench_timeout: float | None = None
    user_from_default: bool = True

    @property
    def resolved_evm_addr(self) -> str:
        # the EVM service listens on the executor unless told otherwise
        return self.evm_addr or self.executor_addr


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'cli' section")
    return loaded


def _coerce_float(raw: Any, *, source: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number in {source}: {raw}") from exc
    if value <= 0:
        raise ConfigurationError(f"Expected a positive number in {source}: {raw}")
    return value


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return default


def load_settings(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Resolve settings from overrides, environment and the optional YAML file."""

    env_map = os.environ if env is None else env
    override_map = {key: value for key, value in (overrides or {}).items() if value is not None}

    data_dir = Path(
        _first_value(override_map.get("data_dir"), env_map.get(ENV_DATA_DIR), default=DEFAULT_DATA_DIR)
    ).expanduser()
    path = Path(config_path).expanduser() if config_path is not None else data_dir / CONFIG_FILE_NAME

    file_config = _load_config_file(path, required=config_path is not None)
    section = file_config.get("cli", {})
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'cli' to be a mapping in {path}")

    explicit_user = _first_value(override_map.get("user"), env_map.get(ENV_USER), section.get("user"))
    crypto = str(
        _first_value(
            override_map.get("crypto"), env_map.get(ENV_CRYPTO), section.get("crypto"), default=DEFAULT_CRYPTO
        )
    ).lower()
    if crypto not in CRYPTO_PROVIDERS:
        choices = ", ".join(sorted(CRYPTO_PROVIDERS))
        raise ConfigurationError(f"Unknown crypto algorithm `{crypto}` (choose one of: {choices})")

    rpc_timeout = _first_value(
        _coerce_float(override_map.get("rpc_timeout"), source="overrides"),
        _coerce_float(env_map.get(ENV_RPC_TIMEOUT), source=ENV_RPC_TIMEOUT),
        _coerce_float(section.get("rpc_timeout"), source=f"{path} cli.rpc_timeout"),
        default=DEFAULT_RPC_TIMEOUT,
    )
    bench_interval = _first_value(
        _coerce_float(override_map.get("bench_interval"), source="overrides"),
        _coerce_float(section.get("bench_interval"), source=f"{path} cli.bench_interval"),
        default=DEFAULT_BENCH_INTERVAL,
    )
    bench_timeout = _first_value(
        _coerce_float(override_map.get("bench_timeout"), source="overrides"),
        _coerce_float(section.get("bench_timeout"), source=f"{path} cli.bench_timeout"),
    )

    return Settings(
        user=str(explicit_user or DEFAULT_USER),
        controller_addr=str(
            _first_value(
                override_map.get("controller_addr"),
                env_map.get(ENV_CONTROLLER_ADDR),
                section.get("controller_addr"),
                default=DEFAULT_CONTROLLER_ADDR,
            )
        ),
        executor_addr=str(
            _first_value(
                override_map.get("executor_addr"),
                env_map.get(ENV_EXECUTOR_ADDR),
                section.get("executor_addr"),
                default=DEFAULT_EXECUTOR_ADDR,
            )
        ),
        evm_addr=_first_value(
            override_map.get("evm_addr"), env_map.get(ENV_EVM_ADDR), section.get("evm_addr")
        ),
        crypto=crypto,
        data_dir=data_dir,
        rpc_timeout=float(rpc_timeout),
        bench_interval=float(bench_interval),
        bench_timeout=float(bench_timeout) if bench_timeout is not None else None,
        user_from_default=explicit_user is None,
    )
