"""Interactive console using prompt_toolkit."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.key_binding import KeyBindings

if TYPE_CHECKING:
    from prompt_toolkit.key_binding.key_processor import KeyPressEvent

    from rconstatus.status import StatusCache

from rconstatus.config import HISTORY_FILE, ensure_config_dir
from rconstatus.parsing import strip_formatting
from rconstatus.report import format_history, format_status

log = logging.getLogger(__name__)

# Console commands handled locally instead of being sent to the server
STATUS_COMMAND = ":status"
HISTORY_COMMAND = ":history"
EXIT_COMMANDS = ("exit", "quit")

_SUGGESTIONS = [
    STATUS_COMMAND,
    HISTORY_COMMAND,
    *EXIT_COMMANDS,
    "list",
    "tps",
    "forge tps",
    "say",
    "save-all",
    "whitelist",
]


def _create_key_bindings() -> KeyBindings:
    """Create custom key bindings for the console.

    Ctrl+C and Ctrl+D abandon the current line if it has text, and exit the
    console if it is empty.
    """
    kb = KeyBindings()

    def _abandon_or_exit(event: KeyPressEvent, exception: type[Exception]) -> None:
        buffer = event.app.current_buffer
        if buffer.text:
            print()
            buffer.reset()
            event.app.renderer.reset()
        else:
            event.app.exit(exception=exception)

    @kb.add("c-c")
    def _(event: KeyPressEvent) -> None:
        _abandon_or_exit(event, KeyboardInterrupt)

    @kb.add("c-d")
    def _(event: KeyPressEvent) -> None:
        _abandon_or_exit(event, EOFError)

    return kb


def handle_line(cache: StatusCache, text: str, *, raw: bool = False) -> str | None:
    """Run one console line and return the text to display.

    Returns None when the line asks to leave the console.
    """
    if text in EXIT_COMMANDS:
        return None
    if text == STATUS_COMMAND:
        return format_status(cache.get_status())
    if text == HISTORY_COMMAND:
        return format_history(cache.get_history())

    response = cache.send_command(text)
    return response if raw else strip_formatting(response)


def run_repl(cache: StatusCache, *, raw: bool = False) -> None:
    """Run the interactive console loop.

    Every line is sent over its own connection through the status cache, so
    a server restart never leaves the console holding a dead socket.

    Args:
        cache: The status cache for the selected server.
        raw: If True, show responses with formatting codes left in.
    """
    ensure_config_dir()

    session: PromptSession[str] = PromptSession(
        history=FileHistory(str(HISTORY_FILE)),
        completer=WordCompleter(_SUGGESTIONS, sentence=True),
        complete_while_typing=False,
        key_bindings=_create_key_bindings(),
    )

    while True:
        try:
            text = session.prompt(
                HTML("<ansigreen>rcon</ansigreen>> "),
            ).strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break

        if not text:
            continue

        output = handle_line(cache, text, raw=raw)
        if output is None:
            print("Goodbye.")
            break
        if output:
            print(output)
        log.debug("Console command %r produced %d chars", text, len(output))
