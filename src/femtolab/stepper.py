"""
Stepper-motor delay line driver.

Single-threaded send/await wrapper: every command is written as a bare
ASCII token (optionally followed by decimal digits) and the controller
answers with one or more lines, the last of which contains ``#``.
"""

from __future__ import annotations

import logging
import re

from .constants import DEFAULT_BAUD, DEFAULT_TIMEOUT
from .exceptions import ParseError, ValidationError
from .transport import SerialTransport

logger = logging.getLogger(__name__)

_END_MARKER = "#"
_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def _parse_position(response: str) -> int:
    match = _LEADING_INT.match(response)
    if match is None:
        raise ParseError(f"Cannot parse position from {response!r}", response=response)
    return int(match.group(1))


class StepperMotor:
    """Interface for the stepper-motor delay line.

    Opens the port and reads the firmware banner on construction::

        with StepperMotor("COM27") as stage:
            stage.enable()
            stage.move(1000)
            print(stage.ask_position())
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUD,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.port = port
        self._tx = SerialTransport(port, baudrate, timeout)
        self._tx.open()
        try:
            self.firmware_info = self.send_command("?f").strip()
        except BaseException:
            self._tx.close()
            raise
        logger.info("Stepper motor on %s, firmware: %s", port, self.firmware_info)

    def __enter__(self) -> StepperMotor:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._tx.close()

    # -- Low-level I/O ------------------------------------------------------

    def send_command(self, cmd: str) -> str:
        """Write *cmd* and collect response lines up to the one containing ``#``.

        Raises:
            TransportError: If the write fails or a line does not arrive.
        """
        self._tx.write(cmd.encode("ascii"))
        lines = []
        while True:
            line = self._tx.read_line()
            lines.append(line + "\n")
            if _END_MARKER in line:
                break
        return "".join(lines)

    def _set(self, token: str, value: int) -> None:
        self.send_command(f"{token}{int(value)}")

    # -- Power --------------------------------------------------------------

    def enable(self) -> None:
        """Power the motor."""
        self.send_command("e")

    def disable(self) -> None:
        """Cut motor power."""
        self.send_command("d")

    # -- Motion parameters --------------------------------------------------

    def set_acceleration(self, acceleration: int) -> None:
        self._set("a", acceleration)

    def ask_acceleration(self) -> str:
        return self.send_command("?a")

    def set_max_speed(self, speed: int) -> None:
        self._set("s", speed)

    def ask_max_speed(self) -> str:
        return self.send_command("?s")

    # -- Limit switches -----------------------------------------------------

    def set_limit_switch_enable_bits(self, bits: int) -> None:
        """Enable limit switches by bit mask (0-3)."""
        if not (0 <= bits <= 3):
            raise ValidationError(f"Limit switch bits must be 0-3, got {bits}")
        self._set("t", bits)

    def set_limit_switch_active_state(self, active: bool) -> None:
        self._set("i", 1 if active else 0)

    def set_limit_switch_pins(self, swap: bool) -> None:
        self._set("w", 1 if swap else 0)

    def ask_limit_switch_calibration_position(self) -> str:
        return self.send_command("?l")

    # -- Position -----------------------------------------------------------

    def go_to(self, position: int) -> None:
        """Move to absolute *position* (steps)."""
        self._set("p", position)

    def move(self, steps: int) -> None:
        """Move by *steps* relative to the current position."""
        self._set("m", steps)

    def restore_position(self, position: int) -> None:
        """Overwrite the controller's notion of the current position."""
        self._set("r", position)

    def ask_position(self) -> int:
        """Return the current position in steps.

        Raises:
            ParseError: If the response does not start with an integer.
        """
        return _parse_position(self.send_command("?p"))
