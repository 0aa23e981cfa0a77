"""Parse status figures out of free-form server command output.

Servers report TPS and memory through whichever plugin answers the ``tps``
command (Paper, Spigot, Forge, Essentials, ...), each with its own wording
and colouring. Everything here is best effort and never raises: text that
cannot be understood degrades to ``"N/A"``, ``0`` or an echo of the input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

NOT_AVAILABLE = "N/A"
ERROR_PREFIX = "Error:"

# Longer input is not searched for memory figures
MAX_MEMORY_INPUT = 1000

# Matches: §x§R§R§G§G§B§B (RGB) or §X (single char code)
_MC_FORMAT_PATTERN = re.compile(r"§x(?:§[0-9A-Fa-f]){6}|§[0-9A-Fa-fK-Ok-oRrXx]")
_TPS_LABEL = re.compile(r"\bTPS\b", re.IGNORECASE)
_TPS_DELIMITER = re.compile(r"[:=]")
_MEMORY_PATTERN = re.compile(
    r"(?P<used>\d+(?:\.\d+)?)\s*(?:(?P<used_unit>[MG])B?)?"
    r"\s*/\s*"
    r"(?P<max>\d+(?:\.\d+)?)\s*(?P<unit>[MG])B?",
    re.IGNORECASE,
)
_MEGABYTES_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([MG])?B?\s*$", re.IGNORECASE)

_MB_PER_GB = 1024


@dataclass(frozen=True)
class MemoryMatched:
    """Memory figures found in a response, formatted with a unit suffix."""

    used: str
    max: str
    free: str

    matched = True


@dataclass(frozen=True)
class MemoryUnmatched:
    """No memory figures could be found."""

    used: str = NOT_AVAILABLE
    max: str = NOT_AVAILABLE
    free: str = NOT_AVAILABLE

    matched = False


MemoryReading = MemoryMatched | MemoryUnmatched


def strip_formatting(text: str) -> str:
    """Remove all Minecraft formatting codes from text.

    Args:
        text: Raw text from the Minecraft server.

    Returns:
        Clean text with all formatting codes removed.
    """
    return _MC_FORMAT_PATTERN.sub("", text)


def extract_tps(text: str) -> str:
    """Extract the TPS figures from a ``tps`` command response.

    ``"§6TPS from last 1m, 5m, 15m: §a*20.0§6, §a20.0§6, §a20.0"`` becomes
    ``"20.0, 20.0, 20.0"``. Without a TPS label the trimmed input is
    returned unchanged.
    """
    cleaned = strip_formatting(text).replace("*", "")

    label = _TPS_LABEL.search(cleaned)
    if label is None:
        return text.strip()

    # Essentials writes "Current TPS = 20.0" instead of using a colon
    line = cleaned[label.end() :].split("\n", 1)[0]
    delimiter = _TPS_DELIMITER.search(line)
    if delimiter is None:
        return text.strip()

    return line[delimiter.end() :].strip()


def extract_memory(text: str) -> MemoryReading:
    """Find a ``used/max`` memory pair such as ``1024MB/2048MB``.

    The first pair in the text wins, whatever label precedes it.
    """
    if len(text) > MAX_MEMORY_INPUT:
        return MemoryUnmatched()

    match = _MEMORY_PATTERN.search(strip_formatting(text))
    if match is None:
        return MemoryUnmatched()

    unit = match["unit"].upper()
    used = float(match["used"])
    maximum = float(match["max"])

    # "1G/2048M": express both sides in the unit of the maximum
    used_unit = (match["used_unit"] or unit).upper()
    if used_unit != unit:
        used = used * _MB_PER_GB if used_unit == "G" else used / _MB_PER_GB

    suffix = f"{unit}B"
    return MemoryMatched(
        used=f"{used:.1f}{suffix}",
        max=f"{maximum:.1f}{suffix}",
        free=f"{maximum - used:.1f}{suffix}",
    )


def to_megabytes(memory: str) -> float:
    """Convert a figure like ``"1024MB"`` or ``"2.5G"`` to megabytes.

    Returns 0.0 for ``"N/A"`` or anything unparsable.
    """
    match = _MEGABYTES_PATTERN.match(memory)
    if match is None:
        return 0.0
    value = float(match.group(1))
    if (match.group(2) or "M").upper() == "G":
        value *= _MB_PER_GB
    return value


def memory_used_percent(used: str, maximum: str) -> float:
    """Percentage of ``maximum`` taken by ``used``; 0.0 when unknown."""
    max_mb = to_megabytes(maximum)
    if max_mb <= 0:
        return 0.0
    return to_megabytes(used) / max_mb * 100.0


def extract_player_count(text: str) -> int:
    """Read the player count from a ``list`` response.

    Takes the integer after the first ``are`` token, as in
    ``"There are 3 of a max of 20 players online"``. Any other phrasing
    (another language, a plugin's own format) silently yields 0.
    """
    if text.startswith(ERROR_PREFIX):
        return 0

    tokens = text.split(" ")
    for i, token in enumerate(tokens[:-1]):
        if token == "are":
            try:
                return max(int(tokens[i + 1]), 0)
            except ValueError:
                return 0
    return 0
