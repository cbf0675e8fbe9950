"""
SCPI oscilloscope driver over a serial link.

Commands are newline-terminated SCPI strings; after each write the driver
waits for the instrument to settle and reads back one line.
"""

from __future__ import annotations

import logging
import time

from .constants import (
    DEFAULT_BAUD,
    MAX_SCOPE_CHANNEL,
    MIN_SCOPE_CHANNEL,
    OSCILLOSCOPE_SETTLE,
    OSCILLOSCOPE_TIMEOUT,
)
from .exceptions import TimeoutError, ValidationError
from .transport import SerialTransport

logger = logging.getLogger(__name__)


def _validate_channel(channel: int) -> None:
    if not (MIN_SCOPE_CHANNEL <= channel <= MAX_SCOPE_CHANNEL):
        raise ValidationError(
            f"Channel must be {MIN_SCOPE_CHANNEL}-{MAX_SCOPE_CHANNEL}, got {channel}"
        )


class Oscilloscope:
    """Interface for a SCPI digital oscilloscope.

    Args:
        port: Serial port path.
        baudrate: Baud rate.
        timeout: Per-read timeout in seconds.
        settle: Seconds to wait between writing a command and reading.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUD,
        timeout: float = OSCILLOSCOPE_TIMEOUT,
        settle: float = OSCILLOSCOPE_SETTLE,
    ) -> None:
        self.port = port
        self.settle = settle
        self._tx = SerialTransport(port, baudrate, timeout)
        self._tx.open()
        try:
            self.idn = self.get_idn().strip()
        except BaseException:
            self._tx.close()
            raise
        logger.info("Oscilloscope on %s: %s", port, self.idn)

    def __enter__(self) -> Oscilloscope:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._tx.close()

    # -- Low-level I/O ------------------------------------------------------

    def send_command(self, cmd: str) -> str:
        """Send *cmd* and return the line the instrument answers with.

        Commands that produce no output leave the read empty; that is not
        an error.

        Raises:
            TimeoutError: If an answer started but its newline never came;
                the received text is on the exception's ``partial``.
        """
        self._tx.write(f"{cmd}\n".encode("ascii"))
        time.sleep(self.settle)
        try:
            return self._tx.read_line()
        except TimeoutError as exc:
            if exc.partial:
                raise
            return ""

    def query(self, cmd: str) -> str:
        return self.send_command(cmd)

    def read_bytes(self, size: int) -> bytes:
        """Read exactly *size* bytes of binary block data."""
        return self._tx.read_exact(size)

    # -- Basic configuration ------------------------------------------------

    def reset(self) -> None:
        self.send_command("*RST")

    def get_idn(self) -> str:
        return self.query("*IDN?")

    # -- Channels -----------------------------------------------------------

    def enable_channel(self, channel: int) -> None:
        _validate_channel(channel)
        self.send_command(f"SELECT:CH{channel} ON")

    def set_vertical_scale(self, channel: int, volts_per_div: float) -> None:
        _validate_channel(channel)
        self.send_command(f"CH{channel}:VOLTS/DIV {volts_per_div:f}")

    # -- Measurements -------------------------------------------------------

    def measure_vpp(self, channel: int) -> str:
        _validate_channel(channel)
        return self.query(f"MEASURE:VPP? CH{channel}")

    def measure_frequency(self, channel: int) -> str:
        _validate_channel(channel)
        return self.query(f"MEASURE:FREQUENCY? CH{channel}")

    # -- Acquisition --------------------------------------------------------

    def single_capture(self) -> None:
        """Arm a single-sequence acquisition."""
        self.send_command("ACQUIRE:STOPAFTER SEQUENCE")
        self.send_command("ACQUIRE:STATE RUN")

    def configure_waveform(self, channel: int) -> None:
        """Select *channel* as the ``CURVE?`` source, 16-bit signed binary."""
        _validate_channel(channel)
        for cmd in (f"DATA:SOURCE CH{channel}", "DATA:WIDTH 2", "DATA:ENC RIBINARY"):
            self.send_command(cmd)

    def get_waveform(self) -> str:
        return self.query("CURVE?")
