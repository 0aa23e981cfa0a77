"""Plain-text and JSON rendering of status values for the terminal."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rconstatus.parsing import extract_player_count, strip_formatting

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rconstatus.models import RetrievalRecord, ServerStatus


def format_status(status: ServerStatus) -> str:
    """Render a status as aligned ``label: value`` lines."""
    usage = status.resource_usage
    state = "online" if status.online else "offline"
    if status.online:
        players = f"{extract_player_count(status.player_list)}/{status.max_players}"
    else:
        players = strip_formatting(status.player_list)
    lines = [
        f"Server:  {status.motd} ({state})",
        f"Players: {players}",
        f"TPS:     {usage.tps}",
        f"Memory:  {usage.memory_used} / {usage.memory_max} "
        f"({usage.memory_used_percent:.1f}% used, {usage.memory_free} free)",
    ]
    if status.fetched_at is not None:
        lines.append(f"Fetched: {status.fetched_at:%Y-%m-%d %H:%M:%S %Z}")
    return "\n".join(lines)


def format_history(history: Sequence[RetrievalRecord]) -> str:
    """Render refresh history, one line per record, newest first."""
    if not history:
        return "No status retrievals yet."
    lines = []
    for record in history:
        mark = "ok  " if record.success else "FAIL"
        lines.append(
            f"{record.timestamp:%Y-%m-%d %H:%M:%S} {mark} "
            f"players={record.player_count} tps={record.resource_usage.tps} "
            f"mem={record.resource_usage.memory_used}"
        )
    return "\n".join(lines)


def status_json(status: ServerStatus) -> str:
    return json.dumps(status.to_dict(), indent=2)


def history_json(history: Sequence[RetrievalRecord]) -> str:
    return json.dumps([record.to_dict() for record in history], indent=2)
