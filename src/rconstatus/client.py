"""RCON client owning a single authenticated TCP session."""

from __future__ import annotations

import contextlib
import itertools
import logging
import socket
from enum import Enum
from typing import TYPE_CHECKING

from rconstatus.protocol import Packet, PacketError, PacketType, read_length

if TYPE_CHECKING:
    from types import TracebackType

log = logging.getLogger(__name__)

DEFAULT_PORT = 25575
DEFAULT_TIMEOUT = 10.0
MIN_PORT = 1
MAX_PORT = 65535

# The server answers a failed login with this request id
_AUTH_FAILED_ID = -1


class RconError(Exception):
    """Base exception for RCON errors."""


class InvalidPortError(RconError, ValueError):
    """Raised when a port lies outside the valid TCP range."""


class ConnectionError(RconError):  # noqa: A001
    """Raised when the connection to the server is lost or cannot be established."""


class AuthenticationError(RconError):
    """Raised when RCON authentication fails."""


class ProtocolError(RconError):
    """Raised when the server sends something the protocol does not allow."""


class CommandError(RconError):
    """Raised when a command exchange fails.

    The underlying ConnectionError, ProtocolError or EncodingError is kept
    on ``cause`` and chained as ``__cause__``.
    """

    def __init__(self, command: str, cause: Exception) -> None:
        super().__init__(f"Command {command!r} failed: {cause}")
        self.command = command
        self.cause = cause


class SessionState(Enum):
    """Lifecycle of an RCON session."""

    CREATED = "created"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


def validate_port(port: int) -> int:
    """Return the port unchanged, or raise InvalidPortError."""
    if not MIN_PORT <= port <= MAX_PORT:
        msg = f"Port must be between {MIN_PORT} and {MAX_PORT}, got {port}"
        raise InvalidPortError(msg)
    return port


class RconClient:
    """Manages one TCP connection to a Minecraft RCON server.

    A client moves through CREATED -> CONNECTED -> AUTHENTICATED -> CLOSED
    and is not reused after it is closed. It is not safe to share one client
    between threads.
    """

    def __init__(
        self, host: str, port: int = DEFAULT_PORT, timeout: float = DEFAULT_TIMEOUT
    ) -> None:
        self.host = host
        self.port = validate_port(port)
        self.timeout = timeout
        self._sock: socket.socket | None = None
        self._request_ids = itertools.count(1)
        self._state = SessionState.CREATED

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        password: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> RconClient:
        """Connect and authenticate, returning a ready client.

        The socket is closed before any error propagates.
        """
        client = cls(host, port, timeout=timeout)
        try:
            client.connect()
            client.authenticate(password)
        except (RconError, PacketError):
            client.close()
            raise
        return client

    def __enter__(self) -> RconClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Whether the client has an active socket connection."""
        return self._sock is not None

    def connect(self) -> None:
        """Establish a TCP connection to the RCON server."""
        if self._state is not SessionState.CREATED:
            msg = f"Cannot connect a session in state {self._state.value}"
            raise ConnectionError(msg)

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.timeout)
            sock.connect((self.host, self.port))
        except OSError as e:
            with contextlib.suppress(OSError):
                sock.close()
            self._state = SessionState.CLOSED
            msg = f"Failed to connect to {self.host}:{self.port}: {e}"
            raise ConnectionError(msg) from e

        self._sock = sock
        self._state = SessionState.CONNECTED
        log.debug("Connected to %s:%d", self.host, self.port)

    def close(self) -> None:
        """Close the TCP connection. Calling it again does nothing."""
        if self._sock is not None:
            with contextlib.suppress(OSError):
                self._sock.close()
            self._sock = None
            log.debug("Closed connection to %s:%d", self.host, self.port)
        self._state = SessionState.CLOSED

    def authenticate(self, password: str) -> None:
        """Authenticate with the RCON server.

        Raises AuthenticationError if the server rejects the password.
        """
        if self._state is not SessionState.CONNECTED:
            msg = "Not connected"
            raise ConnectionError(msg)
        if not password:
            msg = "RCON password is empty"
            raise AuthenticationError(msg)

        request_id = next(self._request_ids)
        self._send(
            Packet(
                request_id=request_id,
                packet_type=PacketType.AUTH,
                payload=password,
            )
        )

        while True:
            try:
                response = self._recv()
            except TimeoutError as e:
                self.close()
                msg = "Timed out waiting for authentication response"
                raise ConnectionError(msg) from e

            if response.request_id == _AUTH_FAILED_ID:
                self.close()
                msg = "Incorrect RCON password"
                raise AuthenticationError(msg)
            if response.packet_type == PacketType.AUTH_RESPONSE:
                break
            # Source-style servers send an empty RESPONSE_VALUE ahead of the
            # real AUTH_RESPONSE
            if response.packet_type == PacketType.RESPONSE_VALUE:
                continue

            self.close()
            msg = f"Unexpected packet type {response.packet_type} during login"
            raise ProtocolError(msg)

        if response.request_id != request_id:
            self.close()
            msg = (
                f"Login response carried request id {response.request_id}, "
                f"expected {request_id}"
            )
            raise ProtocolError(msg)

        self._state = SessionState.AUTHENTICATED
        log.debug("Authenticated with %s:%d", self.host, self.port)

    def command(self, cmd: str) -> str:
        """Send a command and return the full response text.

        Uses the sentinel technique for multi-packet responses: after sending
        the real command, a follow-up empty packet is sent. Responses are
        collected until the sentinel packet's response arrives.

        Raises CommandError wrapping the underlying failure.
        """
        try:
            return self._exchange(cmd)
        except (ConnectionError, ProtocolError, PacketError) as e:
            raise CommandError(cmd, e) from e

    def _exchange(self, cmd: str) -> str:
        if self._state is not SessionState.AUTHENTICATED:
            msg = "Not connected"
            raise ConnectionError(msg)

        request_id = next(self._request_ids)
        sentinel_id = next(self._request_ids)
        command_packet = Packet(
            request_id=request_id,
            packet_type=PacketType.EXEC_COMMAND,
            payload=cmd,
        )
        sentinel_packet = Packet(
            request_id=sentinel_id,
            packet_type=PacketType.EXEC_COMMAND,
            payload="",
        )

        self._send(command_packet)
        # The server processes packets in order, so when the sentinel's
        # response arrives every fragment of the real response has too.
        self._send(sentinel_packet)

        fragments: list[str] = []
        while True:
            try:
                response = self._recv()
            except TimeoutError as e:
                self.close()
                if fragments:
                    log.debug(
                        "Timed out waiting for sentinel after %d fragments of %r",
                        len(fragments),
                        cmd,
                    )
                    break
                msg = f"Timed out after {self.timeout}s waiting for a response"
                raise ConnectionError(msg) from e

            if response.request_id == sentinel_id:
                break
            if response.request_id != request_id:
                log.debug("Ignoring stray packet for request %d", response.request_id)
                continue
            if response.packet_type != PacketType.RESPONSE_VALUE:
                self.close()
                msg = f"Unexpected packet type {response.packet_type} in response"
                raise ProtocolError(msg)
            fragments.append(response.payload)

        log.debug("Command %r answered in %d packet(s)", cmd, len(fragments))
        if len(fragments) == 1:
            return fragments[0]
        return "".join(fragments)

    def _send(self, packet: Packet) -> None:
        """Send an encoded packet over the socket."""
        if self._sock is None:
            msg = "Not connected"
            raise ConnectionError(msg)
        data = packet.encode()
        try:
            self._sock.sendall(data)
        except OSError as e:
            self.close()
            msg = f"Failed to send data: {e}"
            raise ConnectionError(msg) from e

    def _recv(self) -> Packet:
        """Receive a single packet from the socket."""
        prefix = self._recv_exact(4)
        try:
            length = read_length(prefix)
            body = self._recv_exact(length)
            return Packet.decode(prefix + body)
        except PacketError as e:
            self.close()
            msg = f"Malformed packet from server: {e}"
            raise ProtocolError(msg) from e

    def _recv_exact(self, num_bytes: int) -> bytes:
        """Read exactly num_bytes from the socket, handling partial reads."""
        if self._sock is None:
            msg = "Not connected"
            raise ConnectionError(msg)

        data = bytearray()
        while len(data) < num_bytes:
            try:
                chunk = self._sock.recv(num_bytes - len(data))
            except TimeoutError:
                raise
            except OSError as e:
                self.close()
                msg = f"Connection lost: {e}"
                raise ConnectionError(msg) from e

            if not chunk:
                self.close()
                msg = "Connection closed by server"
                raise ConnectionError(msg)

            data.extend(chunk)

        return bytes(data)
