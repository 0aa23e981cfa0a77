"""CLI entry point for the status client."""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from dataclasses import replace

from rconstatus.config import (
    CONFIG_FILE,
    AppConfig,
    ConfigError,
    ServerConfig,
    load_config,
)
from rconstatus.parsing import ERROR_PREFIX, strip_formatting
from rconstatus.repl import run_repl
from rconstatus.report import (
    format_history,
    format_status,
    history_json,
    status_json,
)
from rconstatus.status import StatusCache

log = logging.getLogger(__name__)


def positive_seconds(value: str) -> float:
    """Parse a polling interval, which must be a positive number of seconds."""
    try:
        seconds = float(value)
    except ValueError:
        msg = f"invalid number: {value!r}"
        raise argparse.ArgumentTypeError(msg) from None
    if not (math.isfinite(seconds) and seconds > 0):
        msg = f"must be a positive number of seconds, got {value!r}"
        raise argparse.ArgumentTypeError(msg)
    return seconds


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="rcon-status",
        description="Query and control a Minecraft server over RCON",
    )
    parser.add_argument(
        "server",
        nargs="?",
        help="Server name (from config) or host:port (e.g., 10.0.0.112:25575)",
    )
    parser.add_argument(
        "-p",
        "--password",
        help="RCON password (overrides the configured one)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Socket timeout in seconds (default: from config, or 10)",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "-c",
        "--command",
        help="Execute a single command and exit (non-interactive mode)",
    )
    action.add_argument(
        "--status",
        action="store_true",
        default=False,
        help="Print the server status and exit",
    )
    action.add_argument(
        "--watch",
        type=positive_seconds,
        metavar="SECONDS",
        help="Poll the status every SECONDS until interrupted, then print history",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print status and history as JSON",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        default=False,
        help="Leave formatting codes in command responses",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log debug output to stderr",
    )
    return parser


def resolve_server(server_arg: str | None, config: AppConfig) -> ServerConfig:
    """Resolve the target server from the CLI argument or the configured default."""
    if server_arg is not None:
        # Check if it's a configured server name
        if server_arg in config.servers:
            return config.servers[server_arg]

        # Try parsing as host:port
        if ":" in server_arg:
            host, port_str = server_arg.rsplit(":", 1)
            try:
                return ServerConfig(name=server_arg, host=host, port=int(port_str))
            except ValueError:
                pass

        # Treat as hostname with default port
        return ServerConfig(name=server_arg, host=server_arg)

    if config.default_server and config.default_server in config.servers:
        return config.servers[config.default_server]

    if len(config.servers) == 1:
        return next(iter(config.servers.values()))

    msg = f"No server given and no default server configured in {CONFIG_FILE}"
    raise ConfigError(msg)


def apply_overrides(server: ServerConfig, args: argparse.Namespace) -> ServerConfig:
    """Apply command-line password and timeout over the configured values."""
    if args.password is not None:
        server = replace(server, password=args.password)
    if args.timeout is not None:
        server = replace(server, timeout=args.timeout)
    return server


def run_command(cache: StatusCache, command: str, *, raw: bool = False) -> int:
    """Send one command and print the response. Returns the exit status."""
    response = cache.send_command(command)
    if response.startswith(ERROR_PREFIX):
        print(response, file=sys.stderr)
        return 1
    if response:
        print(response if raw else strip_formatting(response))
    return 0


def watch(cache: StatusCache, interval: float, *, as_json: bool = False) -> int:
    """Poll the status until interrupted, then print the refresh history."""
    try:
        while True:
            status = cache.get_status()
            state = "online" if status.online else "offline"
            usage = status.resource_usage
            print(
                f"{status.fetched_at:%H:%M:%S} {state} tps={usage.tps} "
                f"mem={usage.memory_used}/{usage.memory_max}",
                flush=True,
            )
            time.sleep(interval)
    except KeyboardInterrupt:
        print()

    history = cache.get_history()
    print(history_json(history) if as_json else format_history(history))
    return 0


def main() -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config()
        server = apply_overrides(resolve_server(args.server, config), args)
        cache = StatusCache(server)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    log.debug("Using server %s (%s:%d)", server.name, server.host, server.port)

    if args.command:
        sys.exit(run_command(cache, args.command, raw=args.raw))

    if args.status:
        status = cache.get_status()
        print(status_json(status) if args.json else format_status(status))
        sys.exit(0 if status.online else 1)

    if args.watch is not None:
        # Every poll should go to the server, whatever the configured interval
        cache = StatusCache(
            replace(server, refresh_interval_ms=int(args.watch * 1000))
        )
        sys.exit(watch(cache, args.watch, as_json=args.json))

    print(f"Console for {server.name} ({server.host}:{server.port})")
    print("Type ':status' or ':history', Ctrl+D or 'exit' to quit.\n")
    run_repl(cache, raw=args.raw)
