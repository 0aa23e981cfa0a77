"""Minecraft RCON wire protocol encoding and decoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum


class PacketType(IntEnum):
    """RCON packet types.

    The protocol reuses type 2 for both a command request and the server's
    reply to an authentication request.
    """

    RESPONSE_VALUE = 0
    EXEC_COMMAND = 2
    AUTH_RESPONSE = 2
    AUTH = 3


# 4 bytes each for length, request_id, and type
HEADER_SIZE = 12
# request_id + type + the two terminating nulls
MIN_PACKET_LENGTH = 10
MAX_PACKET_SIZE = 4096

_TERMINATOR = b"\x00\x00"


class PacketError(Exception):
    """Base exception for malformed packets."""


class EncodingError(PacketError):
    """Raised when a packet cannot be encoded for transmission."""


class FramingError(PacketError):
    """Raised when received bytes do not form a valid packet."""


@dataclass(frozen=True)
class Packet:
    """A single RCON packet.

    Wire format: [length:i32][request_id:i32][type:i32][payload\\0\\0]
    Length covers everything after itself (req_id + type + payload + 2 nulls).
    """

    request_id: int
    packet_type: int
    payload: str

    def encode(self) -> bytes:
        """Encode the packet into bytes for transmission.

        Raises EncodingError if the payload holds a null byte or text that
        UTF-8 cannot encode, or if the frame would exceed MAX_PACKET_SIZE.
        """
        if "\x00" in self.payload:
            msg = "Payload must not contain null bytes"
            raise EncodingError(msg)

        try:
            body = self.payload.encode("utf-8")
        except UnicodeEncodeError as e:
            msg = f"Payload is not valid UTF-8 text: {e.reason}"
            raise EncodingError(msg) from e
        if len(body) + HEADER_SIZE + len(_TERMINATOR) > MAX_PACKET_SIZE:
            msg = (
                f"Payload of {len(body)} bytes exceeds the "
                f"{MAX_PACKET_SIZE}-byte packet limit"
            )
            raise EncodingError(msg)

        payload_bytes = body + _TERMINATOR
        length = 4 + 4 + len(payload_bytes)
        try:
            return struct.pack(
                f"<iii{len(payload_bytes)}s",
                length,
                self.request_id,
                self.packet_type,
                payload_bytes,
            )
        except struct.error as e:
            msg = f"Cannot encode packet: {e}"
            raise EncodingError(msg) from e

    @classmethod
    def decode(cls, data: bytes) -> Packet:
        """Decode a packet from a complete frame, length prefix included.

        Bytes past the declared length are ignored.
        """
        if len(data) < 4:
            msg = f"Frame too short for a length prefix: {len(data)} bytes"
            raise FramingError(msg)

        (length,) = struct.unpack_from("<i", data, 0)
        if length < MIN_PACKET_LENGTH:
            msg = f"Declared packet length {length} is below the minimum"
            raise FramingError(msg)
        if len(data) - 4 < length:
            msg = f"Frame truncated: expected {length} bytes, got {len(data) - 4}"
            raise FramingError(msg)

        body = data[4 : 4 + length]
        if body[-2:] != _TERMINATOR:
            msg = "Packet is missing its null terminators"
            raise FramingError(msg)

        request_id, packet_type = struct.unpack_from("<ii", body, 0)
        payload = body[8:-2].decode("utf-8", errors="replace")
        return cls(
            request_id=request_id,
            packet_type=packet_type,
            payload=payload,
        )


def read_length(prefix: bytes) -> int:
    """Parse and validate the 4-byte length prefix of an incoming packet."""
    if len(prefix) != 4:
        msg = f"Length prefix must be 4 bytes, got {len(prefix)}"
        raise FramingError(msg)
    (length,) = struct.unpack("<i", prefix)
    if not MIN_PACKET_LENGTH <= length <= MAX_PACKET_SIZE + MIN_PACKET_LENGTH:
        msg = f"Invalid packet length: {length}"
        raise FramingError(msg)
    return length
