"""
Serial transport layer shared by the femtolab instrument drivers.

Handles the physical serial connection, newline-terminated line reads
with a timeout, and buffer hygiene.  Knows nothing about what commands
mean, which is left to :mod:`protocol` and the drivers.

Typical usage (via :class:`~femtolab.shooter.LaserShooter`)::

    transport = SerialTransport("/dev/ttyUSB0", 115200)
    transport.open()
    transport.write(b"C?")
    line = transport.read_line()
    transport.close()
"""

from __future__ import annotations

import logging

import serial

from .constants import DEFAULT_BAUD, DEFAULT_TIMEOUT, DRAIN_TIMEOUT
from .exceptions import ConnectionError, FemtolabError, TimeoutError, TransportError

logger = logging.getLogger(__name__)

_LINE_TERMINATOR = b"\n"


class SerialTransport:
    """Manages a serial connection to one instrument.

    Args:
        port: Serial port path (e.g. ``/dev/ttyUSB0`` or ``COM3``).
        baudrate: Baud rate (default 115200).
        timeout: Per-read timeout in seconds.  Also the upper bound on how
            long :meth:`read_line` waits for a complete line.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUD,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._ser: serial.Serial | None = None

    # -- Lifecycle ----------------------------------------------------------

    def open(self) -> None:
        """Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        logger.info("Opening serial port %s at %d baud", self.port, self.baudrate)
        try:
            self._ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout,
            )
        except serial.SerialException as exc:
            raise ConnectionError(f"Cannot open {self.port}: {exc}") from exc

    def close(self) -> None:
        """Close the serial port (safe to call multiple times)."""
        if self._ser and self._ser.is_open:
            self._ser.close()
            logger.info("Serial port %s closed", self.port)

    @property
    def is_open(self) -> bool:
        """Return ``True`` if the serial port is currently open."""
        return self._ser is not None and self._ser.is_open

    # -- I/O ----------------------------------------------------------------

    def write(self, data: bytes) -> None:
        """Write *data* verbatim; no terminator is appended.

        Raises:
            ConnectionError: If the port is not open.
            TransportError: If the write fails.
        """
        ser = self._require_open()
        logger.debug("TX: %r", data)
        try:
            ser.write(data)
            ser.flush()
        except serial.SerialException as exc:
            raise TransportError(f"Write to {self.port} failed: {exc}") from exc

    def read_line(self) -> str:
        """Read one ``\\n``-terminated line and return it without the ``\\n``.

        Anything else (including a trailing ``\\r``) is returned untouched.

        Raises:
            ConnectionError: If the port is not open.
            TimeoutError: If the timeout expires before a full line arrives;
                whatever did arrive is kept on its ``partial`` attribute.
            TransportError: If the read fails.
        """
        ser = self._require_open()
        try:
            raw = ser.read_until(_LINE_TERMINATOR)
        except serial.SerialException as exc:
            raise TransportError(f"Read from {self.port} failed: {exc}") from exc

        if not raw.endswith(_LINE_TERMINATOR):
            raise TimeoutError(
                f"No complete line from {self.port} (got {raw!r})",
                partial=raw.decode("ascii", errors="replace"),
            )

        line = raw[: -len(_LINE_TERMINATOR)].decode("ascii", errors="replace")
        logger.debug("RX: %r", line)
        return line

    def read_exact(self, size: int) -> bytes:
        """Read exactly *size* bytes.

        Raises:
            TimeoutError: If fewer bytes arrive before the timeout.
            TransportError: If the read fails.
        """
        ser = self._require_open()
        try:
            data = ser.read(size)
        except serial.SerialException as exc:
            raise TransportError(f"Read from {self.port} failed: {exc}") from exc
        if len(data) < size:
            raise TimeoutError(f"Expected {size} bytes from {self.port}, got {len(data)}")
        return data

    def drain(self, timeout: float = DRAIN_TIMEOUT) -> int:
        """Discard pending input and return the number of stale lines read.

        Flushes the OS input buffer, then reads lines with a very short
        *timeout* until a read fails, and finally restores the normal
        timeout.  Errors only end the loop; they are never raised.
        """
        ser = self._require_open()
        discarded = 0
        try:
            ser.reset_input_buffer()
            ser.timeout = timeout
            while True:
                try:
                    self.read_line()
                except FemtolabError:
                    break
                discarded += 1
        except serial.SerialException as exc:
            logger.debug("Drain on %s stopped: %s", self.port, exc)
        finally:
            ser.timeout = self.timeout
        if discarded:
            logger.debug("Discarded %d stale line(s) on %s", discarded, self.port)
        return discarded

    # -- Internal -----------------------------------------------------------

    def _require_open(self) -> serial.Serial:
        """Return the open serial port or raise."""
        if not self.is_open:
            raise ConnectionError("Serial port not open — call open() first.")
        assert self._ser is not None  # for type-checker
        return self._ser
