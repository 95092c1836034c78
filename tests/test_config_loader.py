from pathlib import Path

import pytest

from cldi.config import ConfigurationError, Settings, load_settings


def _write_config(data_dir: Path, body: str) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "config.yaml").write_text(body)


def test_load_settings_defaults(tmp_path: Path) -> None:
    settings = load_settings(env={"CITA_CLOUD_DATA_DIR": str(tmp_path)})

    assert isinstance(settings, Settings)
    assert settings.controller_addr == "localhost:50004"
    assert settings.executor_addr == "localhost:50002"
    assert settings.resolved_evm_addr == "localhost:50002"
    assert settings.crypto == "sm"
    assert settings.user == "default"
    assert settings.user_from_default is True
    assert settings.data_dir == tmp_path


def test_overrides_beat_environment_beat_yaml(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
        cli:
          user: file_user
          controller_addr: filehost:1
          executor_addr: filehost:2
          evm_addr: filehost:3
          crypto: eth
          rpc_timeout: 5
        """,
    )
    env_map = {
        "CITA_CLOUD_DATA_DIR": str(tmp_path),
        "CITA_CLOUD_USER": "env_user",
        "CITA_CLOUD_CONTROLLER_ADDR": "envhost:1",
        "CITA_CLOUD_RPC_TIMEOUT": "7.5",
    }

    settings = load_settings(env=env_map, overrides={"user": "flag_user", "executor_addr": None})

    assert settings.user == "flag_user"
    assert settings.user_from_default is False
    assert settings.controller_addr == "envhost:1"
    assert settings.executor_addr == "filehost:2"
    assert settings.resolved_evm_addr == "filehost:3"
    assert settings.crypto == "eth"
    assert settings.rpc_timeout == 7.5


def test_data_dir_override_selects_config_file(tmp_path: Path) -> None:
    other = tmp_path / "other"
    _write_config(other, "cli:\n  bench_interval: 0.25\n  bench_timeout: 60\n")

    settings = load_settings(env={}, overrides={"data_dir": str(other)})

    assert settings.data_dir == other
    assert settings.bench_interval == 0.25
    assert settings.bench_timeout == 60.0


def test_unknown_crypto_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="choose one of"):
        load_settings(env={"CITA_CLOUD_DATA_DIR": str(tmp_path), "CITA_CLOUD_CRYPTO": "rsa"})


def test_invalid_timeout_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(env={"CITA_CLOUD_DATA_DIR": str(tmp_path), "CITA_CLOUD_RPC_TIMEOUT": "soon"})


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_settings(config_path=tmp_path / "missing.yaml", env={})


def test_cli_section_must_be_a_mapping(tmp_path: Path) -> None:
    _write_config(tmp_path, "cli: [1, 2]\n")

    with pytest.raises(ConfigurationError):
        load_settings(env={"CITA_CLOUD_DATA_DIR": str(tmp_path)})
