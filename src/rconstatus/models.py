"""Status values handed to callers of the status cache."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rconstatus.parsing import ERROR_PREFIX, NOT_AVAILABLE

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class ResourceUsage:
    """Server performance figures parsed from the ``tps`` family of commands.

    Text fields carry a unit suffix or ``"N/A"``.
    """

    tps: str = NOT_AVAILABLE
    memory_used: str = NOT_AVAILABLE
    memory_max: str = NOT_AVAILABLE
    memory_free: str = NOT_AVAILABLE
    memory_used_percent: float = 0.0

    @classmethod
    def unavailable(cls) -> ResourceUsage:
        """Usage figures for a server that could not be reached."""
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticksPerSecond": self.tps,
            "memoryUsed": self.memory_used,
            "memoryMax": self.memory_max,
            "memoryFree": self.memory_free,
            "memoryUsedPercent": self.memory_used_percent,
        }


@dataclass(frozen=True)
class ServerStatus:
    """A snapshot of the server as seen by one refresh.

    ``motd`` and ``max_players`` come from configuration; ``player_list`` is
    the raw ``list`` response, or sentinel error text when the server could
    not be reached.
    """

    motd: str
    max_players: int
    player_list: str
    resource_usage: ResourceUsage
    fetched_at: datetime | None = None

    @property
    def online(self) -> bool:
        return not self.player_list.startswith(ERROR_PREFIX)

    def to_dict(self) -> dict[str, Any]:
        return {
            "messageOfTheDay": self.motd,
            "maxPlayers": self.max_players,
            "rawPlayerListResponse": self.player_list,
            "online": self.online,
            "resourceUsage": self.resource_usage.to_dict(),
            "fetchedAt": self.fetched_at.isoformat() if self.fetched_at else None,
        }


@dataclass(frozen=True)
class RetrievalRecord:
    """One entry of the refresh history."""

    timestamp: datetime
    success: bool
    player_count: int
    resource_usage: ResourceUsage

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "playerCount": self.player_count,
            "resourceUsage": self.resource_usage.to_dict(),
        }
