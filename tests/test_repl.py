"""Tests for console line handling."""

from unittest.mock import MagicMock

from rconstatus.models import ResourceUsage, ServerStatus
from rconstatus.repl import handle_line


def _cache():
    cache = MagicMock()
    cache.send_command.return_value = (
        "§6There are §c0§6 of a max of §c20§6 players online"
    )
    cache.get_status.return_value = ServerStatus(
        motd="Test",
        max_players=20,
        player_list="There are 0 of a max of 20 players online",
        resource_usage=ResourceUsage.unavailable(),
    )
    cache.get_history.return_value = ()
    return cache


def test_server_command_is_sent_and_stripped():
    cache = _cache()

    output = handle_line(cache, "list")

    cache.send_command.assert_called_once_with("list")
    assert output == "There are 0 of a max of 20 players online"


def test_raw_output_keeps_formatting():
    output = handle_line(_cache(), "list", raw=True)
    assert output.startswith("§6There are")


def test_status_command_is_local():
    cache = _cache()

    output = handle_line(cache, ":status")

    cache.send_command.assert_not_called()
    assert "Server:  Test (online)" in output


def test_history_command_is_local():
    cache = _cache()

    assert handle_line(cache, ":history") == "No status retrievals yet."
    cache.send_command.assert_not_called()


def test_exit_commands():
    cache = _cache()

    assert handle_line(cache, "exit") is None
    assert handle_line(cache, "quit") is None
    cache.send_command.assert_not_called()


def test_error_text_is_shown():
    cache = _cache()
    cache.send_command.return_value = "Error: Unable to connect to server - refused"

    assert handle_line(cache, "list") == "Error: Unable to connect to server - refused"
