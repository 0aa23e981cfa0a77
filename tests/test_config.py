"""Tests for configuration loading."""

from pathlib import Path
from textwrap import dedent

import pytest

from rconstatus.config import (
    DEFAULT_REFRESH_INTERVAL_MS,
    ConfigError,
    ServerConfig,
    load_config,
)


class TestLoadConfig:
    def test_empty_config_when_no_file(self, tmp_path: Path):
        config = load_config(tmp_path / "nonexistent.toml")

        assert config.default_server is None
        assert config.servers == {}

    def test_load_full_config(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            dedent("""\
            [defaults]
            server = "test-server"

            [servers.test-server]
            name = "Test Server"
            host = "192.168.1.1"
            port = 25580
            password = "hunter2"
            refresh_interval_ms = 60000
            timeout = 2.5
            motd = "Welcome"
            max_players = 50
        """)
        )

        config = load_config(config_file)

        assert config.default_server == "test-server"
        server = config.servers["test-server"]
        assert server.host == "192.168.1.1"
        assert server.name == "Test Server"
        assert server.port == 25580
        assert server.password == "hunter2"
        assert server.refresh_interval_ms == 60000
        assert server.refresh_interval == 60.0
        assert server.timeout == 2.5
        assert server.motd == "Welcome"
        assert server.max_players == 50

    def test_defaults(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            dedent("""\
            [servers.s1]
            host = "10.0.0.1"
        """)
        )

        server = load_config(config_file).servers["s1"]
        assert server.port == 25575
        assert server.password == ""
        assert server.refresh_interval_ms == DEFAULT_REFRESH_INTERVAL_MS == 1_800_000
        assert server.timeout == 10.0
        assert server.max_players == 20

    def test_name_defaults_to_key(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            dedent("""\
            [servers.myserver]
            host = "10.0.0.1"
        """)
        )

        config = load_config(config_file)
        assert config.servers["myserver"].name == "myserver"

    def test_empty_config(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("")

        config = load_config(config_file)
        assert config.default_server is None
        assert config.servers == {}

    def test_missing_host(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            dedent("""\
            [servers.broken]
            port = 25575
        """)
        )

        with pytest.raises(ConfigError, match="no host"):
            load_config(config_file)

    def test_invalid_toml(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("[servers\nhost = ")

        with pytest.raises(ConfigError, match="Invalid config file"):
            load_config(config_file)


class TestValidate:
    def _server(self, **overrides) -> ServerConfig:
        values = {"name": "s", "host": "h", "password": "pw"}
        values.update(overrides)
        return ServerConfig(**values)

    def test_valid_config_returns_self(self):
        server = self._server()
        assert server.validate() is server

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_port_out_of_range(self, port):
        with pytest.raises(ConfigError, match="port"):
            self._server(port=port).validate()

    def test_empty_password(self):
        with pytest.raises(ConfigError, match="password"):
            self._server(password="").validate()

    def test_empty_host(self):
        with pytest.raises(ConfigError, match="host"):
            self._server(host="").validate()

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigError, match="timeout"):
            self._server(timeout=0).validate()

    def test_negative_refresh_interval(self):
        with pytest.raises(ConfigError, match="refresh_interval_ms"):
            self._server(refresh_interval_ms=-1).validate()

    def test_zero_refresh_interval_allowed(self):
        assert self._server(refresh_interval_ms=0).validate()

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            self._server(password="").validate()
