"""Tests for the SCPI oscilloscope driver."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from femtolab import Oscilloscope, TimeoutError, ValidationError

IDN = "TEKTRONIX,TDS 2012B,0,CF:91.1CT FV:v22.11"


@pytest.fixture()
def scope(fake_serial):
    fake_serial.stage(b"*IDN?\n", f"{IDN}\r\n")
    with patch("femtolab.transport.serial.Serial", return_value=fake_serial):
        osc = Oscilloscope("/dev/fake", settle=0)
    fake_serial.written.clear()
    yield osc
    osc.close()


class TestConstruction:
    def test_reads_idn(self, scope):
        assert scope.idn == IDN

    def test_settles_before_reading(self, fake_serial):
        with (
            patch("femtolab.transport.serial.Serial", return_value=fake_serial),
            patch("femtolab.oscilloscope.time.sleep") as sleep,
        ):
            Oscilloscope("/dev/fake").close()
        sleep.assert_called_once_with(0.3)


class TestCommands:
    def test_commands_are_newline_terminated(self, scope, fake_serial):
        scope.reset()
        assert fake_serial.written == [b"*RST\n"]

    def test_silent_command_returns_empty(self, scope):
        assert scope.send_command("*RST") == ""

    def test_unterminated_answer_keeps_partial_text(self, scope, fake_serial):
        fake_serial.stage(b"MEASUREMENT:IMMED:VALUE?\n", "1.04E0")
        with pytest.raises(TimeoutError) as excinfo:
            scope.send_command("MEASUREMENT:IMMED:VALUE?")
        assert excinfo.value.partial == "1.04E0"

    def test_enable_channel(self, scope, fake_serial):
        scope.enable_channel(2)
        assert fake_serial.written == [b"SELECT:CH2 ON\n"]

    def test_vertical_scale(self, scope, fake_serial):
        scope.set_vertical_scale(1, 0.5)
        assert fake_serial.written == [b"CH1:VOLTS/DIV 0.500000\n"]

    @pytest.mark.parametrize("channel", [0, 5])
    def test_invalid_channel(self, scope, fake_serial, channel):
        with pytest.raises(ValidationError, match="Channel"):
            scope.enable_channel(channel)
        assert fake_serial.written == []

    def test_single_capture(self, scope, fake_serial):
        scope.single_capture()
        assert fake_serial.written == [b"ACQUIRE:STOPAFTER SEQUENCE\n", b"ACQUIRE:STATE RUN\n"]

    def test_configure_waveform(self, scope, fake_serial):
        scope.configure_waveform(3)
        assert fake_serial.written == [
            b"DATA:SOURCE CH3\n",
            b"DATA:WIDTH 2\n",
            b"DATA:ENC RIBINARY\n",
        ]


class TestQueries:
    def test_measure_vpp(self, scope, fake_serial):
        fake_serial.stage(b"MEASURE:VPP? CH1\n", "1.04E0\r\n")
        assert scope.measure_vpp(1).strip() == "1.04E0"

    def test_measure_frequency(self, scope, fake_serial):
        fake_serial.stage(b"MEASURE:FREQUENCY? CH2\n", "1.0E3\r\n")
        assert scope.measure_frequency(2).strip() == "1.0E3"

    def test_get_waveform(self, scope, fake_serial):
        fake_serial.stage(b"CURVE?\n", "1,2,3,4\r\n")
        assert scope.get_waveform().strip() == "1,2,3,4"

    def test_read_bytes(self, scope, fake_serial):
        fake_serial.inject("\x00\x10\x00\x20")
        assert scope.read_bytes(4) == b"\x00\x10\x00\x20"

    def test_read_bytes_short(self, scope, fake_serial):
        fake_serial.inject("\x00")
        with pytest.raises(TimeoutError):
            scope.read_bytes(4)
