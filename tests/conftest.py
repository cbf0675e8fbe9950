"""Shared pytest fixtures for femtolab tests."""

from __future__ import annotations

import threading
from collections import defaultdict, deque
from unittest.mock import patch

import pytest
import serial

from femtolab import LaserShooter
from femtolab.transport import SerialTransport


class FakeSerial:
    """Lightweight stand-in for ``serial.Serial``.

    Implements the subset of the pyserial API used by
    :class:`~femtolab.transport.SerialTransport`:
    ``write``, ``flush``, ``read``, ``read_until``, ``reset_input_buffer``,
    ``timeout``, ``close``, and ``is_open``.

    Each :meth:`write` queues the reply for that exact byte string.  Replies
    staged with :meth:`stage` win; otherwise the fake behaves like a laser
    shooter (``C?`` answers the counter, ``CR`` zeroes it, ``S`` bumps it)
    and answers anything else with :attr:`fallback`.

    ``reset_input_buffer`` is a no-op, so stale bytes put there with
    :meth:`inject` have to be drained by reading them.
    """

    def __init__(self) -> None:
        self.is_open: bool = True
        self.timeout: float | None = None
        self.written: list[bytes] = []
        self.timeouts_seen: list[float | None] = []
        self.close_calls = 0

        self.counter = 0
        self.resettable = True  # False: CR leaves the counter alone
        self.fallback = b""
        self.write_failures = 0  # fail this many upcoming writes

        # Set read_gate to an Event to park the next read until it is set
        self.read_gate: threading.Event | None = None
        self.read_entered = threading.Event()

        self._rx = bytearray()
        self._staged: dict[bytes, deque[bytes]] = defaultdict(deque)
        self._mutex = threading.Lock()

    # -- Helpers for tests --------------------------------------------------

    def stage(self, command: bytes, *replies: str) -> None:
        """Queue *replies* for the next writes of *command*, one per write."""
        self._staged[command].extend(r.encode("ascii") for r in replies)

    def inject(self, text: str) -> None:
        """Put bytes in the input buffer as if left over from a previous session."""
        with self._mutex:
            self._rx.extend(text.encode("ascii"))

    def count(self, command: bytes) -> int:
        return self.written.count(command)

    # -- pyserial interface -------------------------------------------------

    def write(self, data: bytes) -> int:
        if not self.is_open:
            raise serial.SerialException("Attempting to use a port that is not open")
        if self.write_failures:
            self.write_failures -= 1
            raise serial.SerialException("write failed")
        self.written.append(data)
        reply = self._reply_for(data)
        with self._mutex:
            self._rx.extend(reply)
        return len(data)

    def _reply_for(self, data: bytes) -> bytes:
        if self._staged[data]:
            return self._staged[data].popleft()
        if data == b"C?":
            return f"{self.counter}\r\n".encode("ascii")
        if data == b"CR":
            if self.resettable:
                self.counter = 0
            return b""
        if data == b"S":
            self.counter += 1
            return b""
        return self.fallback

    def flush(self) -> None:
        pass

    def reset_input_buffer(self) -> None:
        pass

    def read(self, size: int = 1) -> bytes:
        with self._mutex:
            data = bytes(self._rx[:size])
            del self._rx[:size]
        return data

    def read_until(self, expected: bytes = b"\n", size: int | None = None) -> bytes:
        """Return everything up to and including *expected*, or all of it on "timeout"."""
        if self.read_gate is not None:
            self.read_entered.set()
            self.read_gate.wait()
        self.timeouts_seen.append(self.timeout)
        with self._mutex:
            idx = self._rx.find(expected)
            end = len(self._rx) if idx == -1 else idx + len(expected)
            data = bytes(self._rx[:end])
            del self._rx[:end]
        return data

    def close(self) -> None:
        self.close_calls += 1
        self.is_open = False


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_serial() -> FakeSerial:
    """Return a fresh ``FakeSerial`` instance."""
    return FakeSerial()


@pytest.fixture()
def transport(fake_serial: FakeSerial) -> SerialTransport:
    """Return an open ``SerialTransport`` wired to a fake serial port."""
    with patch("femtolab.transport.serial.Serial", return_value=fake_serial):
        tx = SerialTransport("/dev/fake")
        tx.open()
        fake_serial.timeout = tx.timeout
        return tx


@pytest.fixture()
def make_shooter(fake_serial: FakeSerial):
    """Return a factory building ``LaserShooter`` instances on the fake port.

    Handshake attempts are not spaced out and the poller is effectively idle
    unless a test asks for a short ``poll_interval``.
    """
    created: list[LaserShooter] = []

    def _make(**kwargs) -> LaserShooter:
        kwargs.setdefault("retry_interval", 0)
        kwargs.setdefault("poll_interval", 3600)
        with patch("femtolab.transport.serial.Serial", return_value=fake_serial):
            shooter = LaserShooter("/dev/fake", **kwargs)
        created.append(shooter)
        return shooter

    yield _make
    for shooter in created:
        shooter.close()


@pytest.fixture()
def shooter(make_shooter, fake_serial: FakeSerial) -> LaserShooter:
    """Return a ready ``LaserShooter`` with the startup traffic cleared."""
    laser = make_shooter()
    fake_serial.written.clear()
    return laser
