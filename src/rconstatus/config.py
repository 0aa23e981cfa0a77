"""Configuration loading for the status client."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from rconstatus.client import DEFAULT_PORT, DEFAULT_TIMEOUT, MAX_PORT, MIN_PORT

CONFIG_DIR = Path.home() / ".config" / "rcon-status"
CONFIG_FILE = CONFIG_DIR / "config.toml"
HISTORY_FILE = CONFIG_DIR / "history"

DEFAULT_REFRESH_INTERVAL_MS = 30 * 60 * 1000
DEFAULT_MOTD = "A Minecraft Server"
DEFAULT_MAX_PLAYERS = 20


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for a single Minecraft server."""

    name: str
    host: str
    port: int = DEFAULT_PORT
    password: str = ""
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    timeout: float = DEFAULT_TIMEOUT
    motd: str = DEFAULT_MOTD
    max_players: int = DEFAULT_MAX_PLAYERS

    @property
    def refresh_interval(self) -> float:
        """Refresh interval in seconds."""
        return self.refresh_interval_ms / 1000

    def validate(self) -> ServerConfig:
        """Check the settings can be used to open a connection.

        Returns self so the call can be chained.
        """
        if not self.host:
            msg = f"{self.name}: host must not be empty"
            raise ConfigError(msg)
        if not MIN_PORT <= self.port <= MAX_PORT:
            msg = (
                f"{self.name}: port must be between {MIN_PORT} and {MAX_PORT}, "
                f"got {self.port}"
            )
            raise ConfigError(msg)
        if not self.password:
            msg = f"{self.name}: RCON password must not be empty"
            raise ConfigError(msg)
        if self.timeout <= 0:
            msg = f"{self.name}: timeout must be positive, got {self.timeout}"
            raise ConfigError(msg)
        if self.refresh_interval_ms < 0:
            msg = (
                f"{self.name}: refresh_interval_ms must not be negative, "
                f"got {self.refresh_interval_ms}"
            )
            raise ConfigError(msg)
        return self


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    default_server: str | None
    servers: dict[str, ServerConfig]


def load_config(path: Path = CONFIG_FILE) -> AppConfig:
    """Load and parse the configuration file.

    Returns an empty configuration if no config file exists.
    """
    if not path.exists():
        return AppConfig(default_server=None, servers={})

    try:
        with path.open("rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid config file {path}: {e}"
        raise ConfigError(msg) from e

    defaults = raw.get("defaults", {})

    servers: dict[str, ServerConfig] = {}
    for key, val in raw.get("servers", {}).items():
        if "host" not in val:
            msg = f"Server {key!r} in {path} has no host"
            raise ConfigError(msg)
        servers[key] = ServerConfig(
            name=val.get("name", key),
            host=val["host"],
            port=int(val.get("port", DEFAULT_PORT)),
            password=val.get("password", ""),
            refresh_interval_ms=int(
                val.get("refresh_interval_ms", DEFAULT_REFRESH_INTERVAL_MS)
            ),
            timeout=float(val.get("timeout", DEFAULT_TIMEOUT)),
            motd=val.get("motd", DEFAULT_MOTD),
            max_players=int(val.get("max_players", DEFAULT_MAX_PLAYERS)),
        )

    return AppConfig(
        default_server=defaults.get("server"),
        servers=servers,
    )


def ensure_config_dir() -> None:
    """Create the config directory if it does not exist."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
