"""Cached view of server status with a bounded refresh history.

Callers such as web handlers ask for the status on every request; the cache
only goes to the server once the configured refresh interval has passed.
Failures never escape as exceptions: an unreachable server shows up as a
status whose player list starts with ``"Error:"``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from rconstatus.client import (
    AuthenticationError,
    CommandError,
    InvalidPortError,
    RconClient,
    RconError,
)
from rconstatus.client import ConnectionError as RconConnectionError
from rconstatus.models import ResourceUsage, RetrievalRecord, ServerStatus
from rconstatus.parsing import (
    ERROR_PREFIX,
    NOT_AVAILABLE,
    MemoryReading,
    MemoryUnmatched,
    extract_memory,
    extract_player_count,
    extract_tps,
    memory_used_percent,
)
from rconstatus.protocol import PacketError

if TYPE_CHECKING:
    from collections.abc import Callable

    from rconstatus.config import ServerConfig

    ClientFactory = Callable[[str, int, str, float], RconClient]

log = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 10


def _utcnow() -> datetime:
    return datetime.now(UTC)


def error_text(error: Exception) -> str:
    """Render a client failure as sentinel ``"Error: ..."`` text."""
    cause = error.cause if isinstance(error, CommandError) else error
    if isinstance(cause, AuthenticationError):
        return f"{ERROR_PREFIX} Authentication failed - {cause}"
    if isinstance(cause, (RconConnectionError, InvalidPortError)):
        return f"{ERROR_PREFIX} Unable to connect to server - {cause}"
    return f"{ERROR_PREFIX} Command failed - {cause}"


class StatusCache:
    """Serves server status from a time-limited cache.

    Refreshes are serialised by a lock, so concurrent callers that all find
    the cache stale trigger a single round trip and then share its result.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config.validate()
        self._open_client = client_factory or RconClient.open
        self._clock = clock
        self._now = now

        self._lock = threading.Lock()
        self._cached: ServerStatus | None = None
        self._refreshed_at: float | None = None

        self._history_lock = threading.Lock()
        self._history: deque[RetrievalRecord] = deque(maxlen=MAX_HISTORY_SIZE)

    @property
    def last_fetch_time(self) -> datetime | None:
        """When the cached status was fetched, or None before the first fetch."""
        cached = self._cached
        return cached.fetched_at if cached is not None else None

    def get_status(self) -> ServerStatus:
        """Return the cached status, refreshing it first if it is stale."""
        with self._lock:
            if self._cached is not None and not self._is_stale():
                log.debug("Serving cached status from %s", self._cached.fetched_at)
                return self._cached
            return self._refresh()

    def refresh(self) -> ServerStatus:
        """Fetch a fresh status regardless of the cache age."""
        with self._lock:
            return self._refresh()

    def get_history(self) -> tuple[RetrievalRecord, ...]:
        """Return a snapshot of recent refreshes, newest first."""
        with self._history_lock:
            return tuple(self._history)

    def get_resource_usage(self) -> ResourceUsage:
        """Poll TPS and memory figures over a fresh connection, bypassing the cache."""
        try:
            session = self._open()
        except (RconError, PacketError) as e:
            log.debug("Resource usage poll failed: %s", e)
            return ResourceUsage.unavailable()
        with session:
            return self._collect_resource_usage(session)

    def send_command(self, command: str) -> str:
        """Run one command on its own connection and return the response text.

        Any failure is returned as text starting with ``"Error:"``.
        """
        try:
            with self._open() as session:
                return session.command(command)
        except (RconError, PacketError) as e:
            log.debug("Command %r failed: %s", command, e)
            return error_text(e)

    def _is_stale(self) -> bool:
        if self._refreshed_at is None:
            return True
        return self._clock() - self._refreshed_at >= self.config.refresh_interval

    def _open(self) -> RconClient:
        return self._open_client(
            self.config.host,
            self.config.port,
            self.config.password,
            self.config.timeout,
        )

    def _refresh(self) -> ServerStatus:
        """Fetch the status and replace the cache. Caller holds the lock."""
        log.debug("Refreshing status of %s:%d", self.config.host, self.config.port)
        try:
            session = self._open()
        except (RconError, PacketError) as e:
            log.warning("Status refresh of %s failed: %s", self.config.name, e)
            player_list = error_text(e)
            resource_usage = ResourceUsage.unavailable()
        else:
            with session:
                player_list = self._run(session, "list")
                resource_usage = self._collect_resource_usage(session)

        fetched_at = self._now()
        status = ServerStatus(
            motd=self.config.motd,
            max_players=self.config.max_players,
            player_list=player_list,
            resource_usage=resource_usage,
            fetched_at=fetched_at,
        )
        self._cached = status
        self._refreshed_at = self._clock()

        self._record(
            RetrievalRecord(
                timestamp=fetched_at,
                success=status.online,
                player_count=extract_player_count(player_list),
                resource_usage=resource_usage,
            )
        )
        return status

    def _record(self, record: RetrievalRecord) -> None:
        with self._history_lock:
            # deque(maxlen=...) drops the oldest entry from the right
            self._history.appendleft(record)
            size = len(self._history)
        log.debug(
            "Recorded retrieval (success=%s), history size %d", record.success, size
        )

    def _run(self, session: RconClient, command: str) -> str:
        try:
            return session.command(command)
        except RconError as e:
            log.debug("Command %r failed during refresh: %s", command, e)
            return error_text(e)

    def _collect_resource_usage(self, session: RconClient) -> ResourceUsage:
        """Run ``tps``, falling back to ``forge tps`` for memory figures."""
        tps = NOT_AVAILABLE
        memory: MemoryReading = MemoryUnmatched()

        response = self._run(session, "tps")
        if not response.startswith(ERROR_PREFIX):
            tps = _parse_tps(response)
            memory = extract_memory(response)

        if not memory.matched:
            forge = self._run(session, "forge tps")
            if not forge.startswith(ERROR_PREFIX):
                memory = extract_memory(forge)
                if tps == NOT_AVAILABLE:
                    tps = _parse_tps(forge)

        return ResourceUsage(
            tps=tps,
            memory_used=memory.used,
            memory_max=memory.max,
            memory_free=memory.free,
            memory_used_percent=memory_used_percent(memory.used, memory.max),
        )


def _parse_tps(response: str) -> str:
    if "tps" not in response.lower():
        return NOT_AVAILABLE
    return extract_tps(response)
