"""
Tests for the stepper-motor delay line driver.

Covers:
* Construction (firmware banner, open failure, cleanup on failure)
* Command formatting on the wire
* Multi-line responses and position parsing
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from femtolab import ParseError, StepperMotor, TimeoutError, ValidationError

# ══════════════════════════════════════════════════════════════════════════
#  Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def stage(fake_serial):
    """Return a ``StepperMotor`` on the fake port; every command is acked with ``#``."""
    fake_serial.fallback = b"#\r\n"
    fake_serial.stage(b"?f", "StepperDriver 2.4\r\n#\r\n")
    with patch("femtolab.transport.serial.Serial", return_value=fake_serial):
        motor = StepperMotor("/dev/fake")
    fake_serial.written.clear()
    yield motor
    motor.close()


# ══════════════════════════════════════════════════════════════════════════
#  Construction
# ══════════════════════════════════════════════════════════════════════════


class TestConstruction:
    def test_reads_firmware_banner(self, stage):
        assert stage.firmware_info.startswith("StepperDriver 2.4")

    def test_silent_device_fails_and_closes(self, fake_serial):
        with patch("femtolab.transport.serial.Serial", return_value=fake_serial):
            with pytest.raises(TimeoutError):
                StepperMotor("/dev/fake")
        assert fake_serial.close_calls == 1

    def test_context_manager_closes(self, fake_serial):
        fake_serial.fallback = b"#\r\n"
        with patch("femtolab.transport.serial.Serial", return_value=fake_serial):
            with StepperMotor("/dev/fake"):
                pass
        assert fake_serial.close_calls == 1


# ══════════════════════════════════════════════════════════════════════════
#  Commands
# ══════════════════════════════════════════════════════════════════════════


class TestCommands:
    @pytest.mark.parametrize(
        ("method", "args", "wire"),
        [
            ("enable", (), b"e"),
            ("disable", (), b"d"),
            ("set_acceleration", (6400,), b"a6400"),
            ("set_max_speed", (3200,), b"s3200"),
            ("set_limit_switch_enable_bits", (3,), b"t3"),
            ("set_limit_switch_active_state", (True,), b"i1"),
            ("set_limit_switch_active_state", (False,), b"i0"),
            ("set_limit_switch_pins", (True,), b"w1"),
            ("set_limit_switch_pins", (False,), b"w0"),
            ("go_to", (250,), b"p250"),
            ("move", (-1000,), b"m-1000"),
            ("restore_position", (42,), b"r42"),
            ("ask_acceleration", (), b"?a"),
            ("ask_max_speed", (), b"?s"),
            ("ask_limit_switch_calibration_position", (), b"?l"),
        ],
    )
    def test_wire_format(self, stage, fake_serial, method, args, wire):
        getattr(stage, method)(*args)
        assert fake_serial.written == [wire]

    @pytest.mark.parametrize("bits", [-1, 4])
    def test_limit_switch_bits_validated(self, stage, fake_serial, bits):
        with pytest.raises(ValidationError, match="0-3"):
            stage.set_limit_switch_enable_bits(bits)
        assert fake_serial.written == []


class TestResponses:
    def test_collects_lines_until_marker(self, stage, fake_serial):
        fake_serial.stage(b"?a", "acc=6400\r\nunits=steps/s2\r\n#\r\n")
        response = stage.ask_acceleration()
        assert "acc=6400" in response
        assert "units=steps/s2" in response

    def test_missing_marker_times_out(self, stage, fake_serial):
        fake_serial.stage(b"?s", "3200\r\n")
        with pytest.raises(TimeoutError):
            stage.ask_max_speed()

    def test_ask_position(self, stage, fake_serial):
        fake_serial.stage(b"?p", "1000\r\n#\r\n")
        assert stage.ask_position() == 1000

    def test_ask_position_negative(self, stage, fake_serial):
        fake_serial.stage(b"?p", "-35#\r\n")
        assert stage.ask_position() == -35

    def test_ask_position_garbage(self, stage, fake_serial):
        fake_serial.stage(b"?p", "busy#\r\n")
        with pytest.raises(ParseError, match="position"):
            stage.ask_position()
