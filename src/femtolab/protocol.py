"""
Laser shooter wire protocol: command tokens, argument formatting, and
response parsing.

This module sits between the transport (raw serial I/O) and the
controller (user-facing API).  It knows how to:

* map logical operations to the fixed ASCII tokens the device expects,
* format numeric arguments,
* parse the shot counter out of a response line.

It does **not** own the serial port; that belongs to
:class:`~femtolab.transport.SerialTransport`.
"""

from __future__ import annotations

import re
from enum import Enum, IntEnum

from .exceptions import ParseError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FiringMode(IntEnum):
    """Shooter firing modes."""

    FREQUENCY = 0
    EXTERNAL_SYNC = 1
    SINGLE_SHOT = 2


class ExternalSource(IntEnum):
    """External synchronisation inputs (used in ``EXTERNAL_SYNC`` mode)."""

    IN1 = 1
    IN2 = 2


class Command(Enum):
    """Every token the shooter understands."""

    SINGLE_SHOT = b"S"
    MODE_SINGLE = b"MM"
    MODE_EXTERNAL = b"ME"
    MODE_FREQUENCY = b"MF"
    SET_PERIOD = b"P"
    EXTERNAL_IN1 = b"I1"
    EXTERNAL_IN2 = b"I2"
    GET_COUNT = b"C?"
    RESET_COUNT = b"CR"
    DISALLOW = b"D"
    ALLOW = b"A"
    VERBOSE_FULL = b"VF"
    VERBOSE_NONE = b"VN"


MODE_COMMANDS: dict[FiringMode, Command] = {
    FiringMode.FREQUENCY: Command.MODE_FREQUENCY,
    FiringMode.EXTERNAL_SYNC: Command.MODE_EXTERNAL,
    FiringMode.SINGLE_SHOT: Command.MODE_SINGLE,
}

SOURCE_COMMANDS: dict[ExternalSource, Command] = {
    ExternalSource.IN1: Command.EXTERNAL_IN1,
    ExternalSource.IN2: Command.EXTERNAL_IN2,
}

# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def format_number(value: int) -> bytes:
    """Return *value* as plain base-10 ASCII (``1000`` -> ``b"1000"``)."""
    return str(int(value)).encode("ascii")


def encode(command: Command, value: int | None = None) -> bytes:
    """Return the bytes for *command*, with *value* appended if given.

    The device parses the digits greedily right after the token, so no
    separator is inserted.
    """
    if value is None:
        return command.value
    return command.value + format_number(value)


def enable_command(enable: bool) -> Command:
    return Command.ALLOW if enable else Command.DISALLOW


def verbose_command(enable: bool) -> Command:
    return Command.VERBOSE_FULL if enable else Command.VERBOSE_NONE


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_shots_count(line: str) -> int:
    """Extract the shot counter from a ``C?`` response line.

    Surrounding whitespace (including the device's ``\\r``) is ignored;
    anything other than a plain decimal integer is rejected.

    Raises:
        ParseError: If *line* is not a clean decimal integer.
    """
    text = line.strip()
    if not _INTEGER.fullmatch(text):
        raise ParseError(f"Cannot parse shot count from {line!r}", response=line)
    return int(text)
