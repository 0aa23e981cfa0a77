"""Tests for CLI server resolution and one-shot commands."""

from argparse import Namespace
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from rconstatus.cli import (
    apply_overrides,
    build_parser,
    resolve_server,
    run_command,
    watch,
)
from rconstatus.config import AppConfig, ConfigError, ServerConfig
from rconstatus.models import ResourceUsage, RetrievalRecord, ServerStatus


def _make_config(**overrides) -> AppConfig:
    """Build an AppConfig with sensible defaults."""
    defaults = {
        "default_server": "mc-1",
        "servers": {
            "mc-1": ServerConfig(name="MC-1", host="10.0.0.112", password="pw"),
            "mc-3": ServerConfig(name="MC-3", host="10.0.0.114", password="pw"),
        },
    }
    defaults.update(overrides)
    return AppConfig(**defaults)


class TestResolveServer:
    def test_resolve_by_config_name(self):
        server = resolve_server("mc-3", _make_config())

        assert server.name == "MC-3"
        assert server.host == "10.0.0.114"

    def test_resolve_host_port(self):
        server = resolve_server("192.168.1.1:25580", _make_config())

        assert server.host == "192.168.1.1"
        assert server.port == 25580

    def test_resolve_bare_hostname(self):
        server = resolve_server("mc.example.net", _make_config())

        assert server.host == "mc.example.net"
        assert server.port == 25575

    def test_resolve_host_with_non_numeric_port(self):
        server = resolve_server("host:abc", _make_config())

        assert server.host == "host:abc"
        assert server.port == 25575

    def test_resolve_default_server(self):
        server = resolve_server(None, _make_config())

        assert server.host == "10.0.0.112"

    def test_resolve_single_configured_server(self):
        only = ServerConfig(name="Only", host="10.0.0.9")
        config = _make_config(default_server=None, servers={"only": only})

        assert resolve_server(None, config) is only

    def test_resolve_nothing_configured(self):
        config = _make_config(default_server=None, servers={})

        with pytest.raises(ConfigError, match="No server given"):
            resolve_server(None, config)


class TestApplyOverrides:
    def test_password_and_timeout(self):
        server = ServerConfig(name="s", host="h", password="old")
        args = Namespace(password="new", timeout=3.0)

        result = apply_overrides(server, args)

        assert result.password == "new"
        assert result.timeout == 3.0
        assert server.password == "old"

    def test_no_overrides(self):
        server = ServerConfig(name="s", host="h", password="pw")
        args = Namespace(password=None, timeout=None)

        assert apply_overrides(server, args) == server


class TestParser:
    def test_command_and_status_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-c", "list", "--status"])

    def test_watch_interval(self):
        args = build_parser().parse_args(["mc-1", "--watch", "5"])

        assert args.server == "mc-1"
        assert args.watch == 5.0

    @pytest.mark.parametrize("value", ["0", "-1", "nan", "inf", "soon"])
    def test_watch_interval_must_be_positive(self, value, capsys):
        with pytest.raises(SystemExit) as info:
            build_parser().parse_args(["mc-1", "--watch", value])

        assert info.value.code == 2
        assert "--watch" in capsys.readouterr().err


class TestRunCommand:
    def test_prints_stripped_response(self, capsys):
        cache = MagicMock()
        cache.send_command.return_value = "§aThere are 0 of a max of 20 players online"

        assert run_command(cache, "list") == 0
        assert capsys.readouterr().out == "There are 0 of a max of 20 players online\n"

    def test_raw_keeps_formatting(self, capsys):
        cache = MagicMock()
        cache.send_command.return_value = "§aDone"

        run_command(cache, "save-all", raw=True)
        assert capsys.readouterr().out == "§aDone\n"

    def test_error_goes_to_stderr(self, capsys):
        cache = MagicMock()
        cache.send_command.return_value = "Error: Unable to connect to server - refused"

        assert run_command(cache, "list") == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.startswith("Error: Unable to connect")

    def test_empty_response_prints_nothing(self, capsys):
        cache = MagicMock()
        cache.send_command.return_value = ""

        assert run_command(cache, "say hi") == 0
        assert capsys.readouterr().out == ""


class TestWatch:
    def test_polls_until_interrupted_then_prints_history(self, capsys, monkeypatch):
        usage = ResourceUsage(tps="20.0", memory_used="512.0MB", memory_max="1024.0MB")
        status = ServerStatus(
            motd="m",
            max_players=20,
            player_list="There are 1 of a max of 20 players online",
            resource_usage=usage,
            fetched_at=datetime(2026, 1, 1, 12, 30, 5, tzinfo=UTC),
        )
        record = RetrievalRecord(
            timestamp=status.fetched_at,
            success=True,
            player_count=1,
            resource_usage=usage,
        )
        cache = MagicMock()
        cache.get_status.return_value = status
        cache.get_history.return_value = (record,)
        sleeps = iter([None, KeyboardInterrupt])

        def fake_sleep(_seconds):
            outcome = next(sleeps)
            if outcome is not None:
                raise outcome

        monkeypatch.setattr("rconstatus.cli.time.sleep", fake_sleep)

        assert watch(cache, 5.0) == 0

        out = capsys.readouterr().out
        assert out.count("12:30:05 online tps=20.0 mem=512.0MB/1024.0MB") == 2
        assert "ok   players=1" in out
        assert cache.get_status.call_count == 2
