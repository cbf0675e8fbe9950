"""
Laser shooter controller.

Drives a pulsed-laser shooter over a serial link.  Construction opens the
port, waits for the device to report a freshly reset shot counter, and
starts a background thread that keeps :attr:`LaserShooter.shots_count`
approximately fresh.

Protocol details:
    - Commands are bare ASCII tokens (see :class:`~femtolab.protocol.Command`)
    - Only ``C?`` produces a response: the counter as ``<digits>\\r\\n``
    - There is no "are you ready" query; a zero counter after ``CR`` is the
      only readiness signal

Every exchange with the device goes through one lock, so the poller's
``C?`` can never interleave with a foreground command on the wire.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import suppress

from .constants import (
    DEFAULT_BATCH_COUNT,
    DEFAULT_BAUD,
    DEFAULT_PERIOD_US,
    DEFAULT_TIMEOUT,
    MAX_PERIOD_US,
    MIN_PERIOD_US,
    POLL_INTERVAL,
    READY_ATTEMPTS,
    READY_LINE,
    READY_RETRY_INTERVAL,
)
from .exceptions import (
    DeviceNotReadyError,
    FemtolabError,
    ShootingDisabledError,
    ValidationError,
)
from .protocol import (
    MODE_COMMANDS,
    SOURCE_COMMANDS,
    Command,
    ExternalSource,
    FiringMode,
    enable_command,
    encode,
    format_number,
    parse_shots_count,
    verbose_command,
)
from .transport import SerialTransport

logger = logging.getLogger(__name__)


class LaserShooter:
    """Interface for the pulsed-laser shooter.

    The instance is ready to use as soon as the constructor returns; use it
    as a context manager to guarantee :meth:`close`::

        with LaserShooter("COM3") as shooter:
            shooter.set_period(2000)
            shooter.set_is_enable(True)
            shooter.shoot()

    Args:
        port: Serial port path.
        baudrate: Baud rate.
        timeout: Per-read timeout in seconds.
        attempts: Handshake retry budget.
        retry_interval: Seconds to wait before each handshake attempt.
        poll_interval: Seconds between background shot-count refreshes.

    Raises:
        ConnectionError: If the port cannot be opened.
        DeviceNotReadyError: If the device never reports a reset counter.
        TransportError: If the post-handshake initialisation writes fail.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUD,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        attempts: int = READY_ATTEMPTS,
        retry_interval: float = READY_RETRY_INTERVAL,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.port = port
        self._attempts = attempts
        self._retry_interval = retry_interval
        self._poll_interval = poll_interval

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._poller: threading.Thread | None = None
        self._closed = False

        # Device state mirror
        self.shots_count = 0
        self.enable_shooting = False
        self.batch_count = DEFAULT_BATCH_COUNT
        self.period = DEFAULT_PERIOD_US
        self.min_period = MIN_PERIOD_US
        self.max_period = MAX_PERIOD_US
        self.mode = FiringMode.SINGLE_SHOT
        self.external_source = ExternalSource.IN1
        self.verbose = False

        self._tx = SerialTransport(port, baudrate, timeout)
        self._tx.open()
        try:
            self._wait_until_ready()
            self.set_verbose_full(False)
            # Known-state flicker of the safety flag
            self.set_is_enable(True)
            self.set_is_enable(False)
        except BaseException:
            self._tx.close()
            raise

        self._start_poller()
        logger.info("Laser shooter on %s ready", self.port)

    # -- Context manager ----------------------------------------------------

    def __enter__(self) -> LaserShooter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -- Lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """Stop the poller, wait for its last tick, then close the port.

        Safe to call multiple times.  Commands issued concurrently with
        ``close`` are the caller's problem.
        """
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        if self._poller is not None:
            self._poller.join()
            self._poller = None
        self._tx.close()

    @property
    def is_connected(self) -> bool:
        """Return True if the serial port is open."""
        return self._tx.is_open

    # -- Startup ------------------------------------------------------------

    def _wait_until_ready(self) -> None:
        """Query ``C?`` until the device answers ``0``, resetting in between."""
        self._discard_buffers()

        last_line = ""
        for attempt in range(1, self._attempts + 1):
            time.sleep(self._retry_interval)
            try:
                with self._lock:
                    self._tx.drain()
                    self._tx.write(encode(Command.GET_COUNT))
                    line = self._tx.read_line()
            except FemtolabError as exc:
                logger.warning(
                    "Readiness check %d/%d on %s failed: %s", attempt, self._attempts, self.port, exc
                )
                continue

            last_line = line
            if line == READY_LINE:
                logger.info("Device on %s ready after %d attempt(s)", self.port, attempt)
                return

            logger.warning(
                "Readiness check %d/%d on %s read %r; resetting counter",
                attempt,
                self._attempts,
                self.port,
                line,
            )
            with suppress(FemtolabError):
                self.reset_shots_count()

        raise DeviceNotReadyError(self.port, last_line)

    # -- Poller -------------------------------------------------------------

    def _start_poller(self) -> None:
        self._poller = threading.Thread(
            target=self._poll_loop, name=f"shots-poller-{self.port}", daemon=True
        )
        self._poller.start()

    def _poll_loop(self) -> None:
        while not self._stop.wait(self._poll_interval):
            try:
                self.get_shots_count()
            except FemtolabError as exc:
                logger.debug("Shot count refresh on %s failed: %s", self.port, exc)

    # -- Gateway ------------------------------------------------------------

    def _discard_buffers(self) -> None:
        with self._lock:
            self._tx.drain()

    def _write(self, command: Command) -> None:
        with self._lock:
            self._tx.write(encode(command))

    # -- Shot counter -------------------------------------------------------

    def get_shots_count(self) -> int:
        """Query the device counter, cache it in :attr:`shots_count`, and return it.

        Raises:
            TransportError: If the exchange fails.
            ParseError: If the response is not a decimal integer; the cache
                is left unchanged.
        """
        with self._lock:
            self._tx.drain()
            self._tx.write(encode(Command.GET_COUNT))
            line = self._tx.read_line()
            count = parse_shots_count(line)
            self.shots_count = count
        return count

    def reset_shots_count(self) -> None:
        """Reset the device counter.  The device sends no response."""
        with self._lock:
            self._tx.write(encode(Command.RESET_COUNT))
            self.shots_count = 0

    # -- Mode control -------------------------------------------------------

    def set_mode(self, mode: FiringMode) -> None:
        """Switch the firing mode (see :class:`FiringMode`).

        Raises:
            ValidationError: If *mode* is not a :class:`FiringMode`; nothing
                is written.
        """
        mode = _validate_mode(mode)
        with self._lock:
            self._tx.write(encode(MODE_COMMANDS[mode]))
            self.mode = mode

    def set_mode_single(self) -> None:
        self.set_mode(FiringMode.SINGLE_SHOT)

    def set_mode_external(self) -> None:
        self.set_mode(FiringMode.EXTERNAL_SYNC)

    def set_mode_freq(self) -> None:
        self.set_mode(FiringMode.FREQUENCY)

    def set_external_source(self, source: ExternalSource) -> None:
        """Select the trigger input used in ``EXTERNAL_SYNC`` mode.

        Raises:
            ValidationError: If *source* is not an :class:`ExternalSource`.
        """
        source = _validate_source(source)
        with self._lock:
            self._tx.write(encode(SOURCE_COMMANDS[source]))
            self.external_source = source

    def set_external_in1(self) -> None:
        self.set_external_source(ExternalSource.IN1)

    def set_external_in2(self) -> None:
        self.set_external_source(ExternalSource.IN2)

    def set_verbose_full(self, enable: bool) -> None:
        """Turn the device's verbose output on or off."""
        with self._lock:
            self._tx.write(encode(verbose_command(enable)))
            self.verbose = enable

    def set_is_enable(self, enable: bool) -> None:
        """Allow (``A``) or disallow (``D``) shooting."""
        with self._lock:
            self._tx.write(encode(enable_command(enable)))
            self.enable_shooting = enable

    # -- Timing -------------------------------------------------------------

    def set_period(self, period_us: int) -> None:
        """Set the shot period in microseconds.

        The token and the digits go out as two writes inside one exchange.

        Raises:
            ValidationError: If *period_us* is not an integer or is outside
                ``[min_period, max_period]``; nothing is written.
        """
        if not isinstance(period_us, int) or isinstance(period_us, bool):
            raise ValidationError(f"Period must be an integer, got {period_us!r}")
        if not (self.min_period <= period_us <= self.max_period):
            raise ValidationError(
                f"Period must be {self.min_period}-{self.max_period} µs, got {period_us}"
            )
        with self._lock:
            self._tx.write(encode(Command.SET_PERIOD))
            self._tx.write(format_number(period_us))
            self.period = period_us

    def set_batch_count(self, count: int) -> None:
        """Set how many shots one :meth:`shoot` call fires.  Local only."""
        if count < 1:
            raise ValidationError(f"Batch count must be >= 1, got {count}")
        self.batch_count = count

    # -- Firing -------------------------------------------------------------

    def shoot(self) -> None:
        """Fire :attr:`batch_count` single shots, :attr:`period` apart.

        Does nothing unless the mode is ``SINGLE_SHOT``.  The enable and mode
        checks read the cached flags without the lock, so a concurrent
        setter can slip in between check and write: the gate is best effort.

        Raises:
            ShootingDisabledError: If shooting is disallowed.
            TransportError: If a write fails; the rest of the batch is dropped.
        """
        if not self.enable_shooting:
            raise ShootingDisabledError("Shooting is disabled; call set_is_enable(True) first.")
        if self.mode != FiringMode.SINGLE_SHOT:
            return

        wait = (self.period // 1000) / 1000
        for i in range(self.batch_count):
            if i > 0:
                time.sleep(wait)
            self._write(Command.SINGLE_SHOT)
        logger.debug("Fired %d shot(s) on %s", self.batch_count, self.port)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _validate_mode(mode: int) -> FiringMode:
    try:
        return FiringMode(mode)
    except ValueError as err:
        raise ValidationError(
            f"Invalid firing mode {mode!r}; expected one of {list(FiringMode)}"
        ) from err


def _validate_source(source: int) -> ExternalSource:
    try:
        return ExternalSource(source)
    except ValueError as err:
        raise ValidationError(
            f"Invalid external source {source!r}; expected one of {list(ExternalSource)}"
        ) from err
