"""Tests for settings and configuration loading."""

from __future__ import annotations

import pathlib

import pytest

from sshgate.adapters.config.loader import ConfigLoader, load_settings
from sshgate.core.exceptions import ConfigError
from sshgate.core.settings import SSHSettings


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for suffix in ("SSH_BINARY", "STRICT_HOST_KEY_CHECKING", "MAX_TUNNELS", "DEFAULT_TIMEOUT"):
        monkeypatch.delenv(f"SSHGATE_{suffix}", raising=False)


class TestSSHSettings:
    def test_defaults_do_not_bypass_host_keys(self) -> None:
        settings = SSHSettings()
        settings.validate()
        assert settings.strict_host_key_checking == "accept-new"
        assert not settings.host_key_checking_disabled

    def test_invalid_host_key_policy(self) -> None:
        with pytest.raises(ConfigError):
            SSHSettings(strict_host_key_checking="maybe").validate()

    def test_from_dict_ignores_unknown_keys(self) -> None:
        settings = SSHSettings.from_dict({"max_tunnels": 3, "colour": "blue"})
        assert settings.max_tunnels == 3

    @pytest.mark.parametrize(
        "data",
        [
            {"max_tunnels": "5"},
            {"max_tunnels": True},
            {"default_timeout": "30"},
            {"ssh_binary": 42},
            {"temp_dir": ["/tmp"]},
        ],
    )
    def test_wrongly_typed_values_are_config_errors(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            SSHSettings.from_dict(data)


class TestConfigLoader:
    def test_toml_ssh_table(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "sshgate.toml"
        path.write_text('[ssh]\nssh_binary = "/usr/bin/ssh"\nmax_tunnels = 8\n')
        settings = load_settings(toml_path=path, use_env=False)
        assert settings.ssh_binary == "/usr/bin/ssh"
        assert settings.max_tunnels == 8

    def test_env_overrides_toml_and_overrides(
        self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "sshgate.toml"
        path.write_text('[ssh]\nmax_tunnels = 8\nstrict_host_key_checking = "yes"\n')
        monkeypatch.setenv("SSHGATE_MAX_TUNNELS", "2")
        monkeypatch.setenv("SSHGATE_DEFAULT_TIMEOUT", "12.5")
        settings = load_settings(path, overrides={"max_tunnels": 4, "ssh_binary": "/opt/ssh"})
        assert settings.max_tunnels == 2
        assert settings.default_timeout == 12.5
        assert settings.ssh_binary == "/opt/ssh"
        assert settings.strict_host_key_checking == "yes"

    def test_toml_string_for_number(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "sshgate.toml"
        path.write_text('[ssh]\nmax_tunnels = "5"\n')
        with pytest.raises(ConfigError, match="max_tunnels"):
            load_settings(toml_path=path, use_env=False)

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigError):
            ConfigLoader().load_toml(tmp_path / "missing.toml")

    def test_malformed_toml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[ssh\n")
        with pytest.raises(ConfigError):
            ConfigLoader().load_toml(path)

    def test_bad_env_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SSHGATE_MAX_TUNNELS", "lots")
        with pytest.raises(ConfigError):
            ConfigLoader().load_env()
