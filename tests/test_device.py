"""Tests for mhz19c.device."""

import pytest
import serial

from conftest import FakeChannel, FakeChannelFactory, co2_reply, make_reply
from mhz19c.device import MHZ19C
from mhz19c.errors import (
    AlreadyClosed,
    AlreadyOpen,
    ChannelOpenError,
    ChecksumMismatch,
    NotOpen,
    ReadTimeout,
    UnsupportedCommand,
)

VERSION_REPLY = make_reply(0xA0, b"0513")


class FailingFlushChannel(FakeChannel):
    """FakeChannel whose port vanishes before the first exchange."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail = True

    def flush_input(self):
        if self.fail:
            raise serial.SerialException("device disconnected")
        super().flush_input()


def _sensor(*replies, retries=10, **kwargs):
    """Build an unopened MHZ19C over a scripted FakeChannel."""
    channel = FakeChannel(replies)
    factory = FakeChannelFactory(channel)
    sensor = MHZ19C(
        "/dev/test", retries=retries, channel_factory=factory, **kwargs
    )
    return sensor, channel, factory


class TestLifecycle:
    """Tests for the new -> open -> closed state machine."""

    def test_open_caches_version(self):
        """open() reads and caches the firmware version."""
        sensor, channel, factory = _sensor(VERSION_REPLY)
        sensor.open()
        assert sensor.is_open
        assert sensor.version == "0513"
        assert factory.opened == [("/dev/test", 500)]

    def test_open_passes_timeout(self):
        """The per-read timeout reaches the channel factory."""
        sensor, _, factory = _sensor(VERSION_REPLY, timeout_ms=200)
        sensor.open()
        assert factory.opened == [("/dev/test", 200)]

    def test_open_survives_silent_sensor(self):
        """A sensor that never answers still opens, without a version."""
        sensor, channel, _ = _sensor(retries=3)
        sensor.open()
        assert sensor.is_open
        assert sensor.version is None
        # one version request, bounded by the read ceiling
        assert len(channel.written) == 1
        assert channel.reads == 3

    def test_open_bad_version_reply(self, caplog):
        """A corrupted version reply is logged and open() still succeeds."""
        bad = bytearray(VERSION_REPLY)
        bad[8] ^= 0x01
        sensor, channel, _ = _sensor(bytes(bad))
        with caplog.at_level("WARNING", logger="mhz19c.device"):
            sensor.open()
        assert sensor.is_open
        assert sensor.version is None
        assert len(channel.written) == 1
        assert "no firmware version from /dev/test" in caplog.text

    def test_open_failure_after_channel_closes_it(self):
        """An unexpected error during open() releases the channel."""
        channel = FailingFlushChannel()
        sensor = MHZ19C("/dev/test", channel_factory=FakeChannelFactory(channel))
        with pytest.raises(serial.SerialException):
            sensor.open()
        assert channel.closed
        assert not sensor.is_open
        assert sensor._tx is None

    def test_with_block_failing_open_closes_channel(self):
        """A with block whose open() fails still releases the channel."""
        channel = FailingFlushChannel()
        factory = FakeChannelFactory(channel)
        with pytest.raises(serial.SerialException):
            with MHZ19C("/dev/test", channel_factory=factory):
                pass
        assert channel.closed

    def test_open_retry_after_failure(self):
        """A handle whose open() failed is still new and may try again."""
        channel = FailingFlushChannel()
        sensor = MHZ19C("/dev/test", channel_factory=FakeChannelFactory(channel))
        with pytest.raises(serial.SerialException):
            sensor.open()
        channel.fail = False
        channel.queue(VERSION_REPLY)
        sensor.open()
        assert sensor.is_open
        assert sensor.version == "0513"

    @pytest.mark.parametrize("retries", [0, -1])
    def test_bad_retries(self, retries):
        """A read ceiling below one is rejected before any port is opened."""
        factory = FakeChannelFactory(FakeChannel())
        with pytest.raises(ValueError, match="retries"):
            MHZ19C("/dev/test", retries=retries, channel_factory=factory)
        assert factory.opened == []

    def test_open_failure(self):
        """A channel that cannot be opened raises ChannelOpenError."""
        def factory(port, timeout_ms):
            raise ChannelOpenError("cannot open %s" % port)

        sensor = MHZ19C("/dev/missing", channel_factory=factory)
        with pytest.raises(ChannelOpenError):
            sensor.open()
        assert not sensor.is_open

    def test_open_twice(self):
        """Opening an open handle raises AlreadyOpen."""
        sensor, _, _ = _sensor(VERSION_REPLY)
        sensor.open()
        with pytest.raises(AlreadyOpen):
            sensor.open()

    def test_close_once(self):
        """close() after open() releases the channel exactly once."""
        sensor, channel, _ = _sensor(VERSION_REPLY)
        sensor.open()
        sensor.close()
        assert channel.closed
        assert not sensor.is_open
        assert channel.calls.count("close") == 1

    def test_close_without_open(self):
        """close() on a new handle raises NotOpen."""
        sensor, _, _ = _sensor()
        with pytest.raises(NotOpen):
            sensor.close()

    def test_double_close(self):
        """A second close() raises AlreadyClosed."""
        sensor, _, _ = _sensor(VERSION_REPLY)
        sensor.open()
        sensor.close()
        with pytest.raises(AlreadyClosed):
            sensor.close()

    def test_reopen_after_close(self):
        """A closed handle cannot be reopened."""
        sensor, _, _ = _sensor(VERSION_REPLY)
        sensor.open()
        sensor.close()
        with pytest.raises(AlreadyClosed):
            sensor.open()

    @pytest.mark.parametrize("method, args", [
        ("read_co2", ()),
        ("read_temperature", ()),
        ("set_auto_calib", (True,)),
        ("get_auto_calib", ()),
        ("zero_calibration", ()),
        ("get_version", ()),
    ])
    def test_commands_before_open(self, method, args):
        """Every command on a new handle raises NotOpen."""
        sensor, channel, _ = _sensor()
        with pytest.raises(NotOpen):
            getattr(sensor, method)(*args)
        assert channel.written == []

    @pytest.mark.parametrize("method, args", [
        ("read_co2", ()),
        ("read_temperature", ()),
        ("set_auto_calib", (False,)),
        ("get_auto_calib", ()),
        ("zero_calibration", ()),
        ("get_version", ()),
    ])
    def test_commands_after_close(self, method, args):
        """Every command on a closed handle raises NotOpen."""
        sensor, _, _ = _sensor(VERSION_REPLY)
        sensor.open()
        sensor.close()
        with pytest.raises(NotOpen):
            getattr(sensor, method)(*args)


class TestContextManager:
    """Tests for scoped open/close."""

    def test_with_block(self):
        """The with block opens and closes the handle."""
        sensor, channel, _ = _sensor(VERSION_REPLY, co2_reply(650, 23))
        with sensor as s:
            assert s is sensor
            assert s.read_co2().co2_ppm == 650
        assert channel.closed
        assert not sensor.is_open

    def test_closes_on_command_failure(self):
        """A failing command still releases the channel."""
        sensor, channel, _ = _sensor(VERSION_REPLY)
        with pytest.raises(ReadTimeout):
            with sensor:
                sensor.read_co2()
        assert channel.closed

    def test_exit_after_manual_close(self):
        """Leaving the block after close() does not raise."""
        sensor, channel, _ = _sensor(VERSION_REPLY)
        with sensor:
            sensor.close()
        assert channel.calls.count("close") == 1


class TestCommands:
    """Tests for command methods on an open handle."""

    def test_end_to_end_co2(self):
        """open -> read_co2 -> close with plausible values."""
        sensor, _, _ = _sensor(VERSION_REPLY, co2_reply(600, 5))
        sensor.open()
        reading = sensor.read_co2()
        assert 0 <= reading.co2_ppm <= 5000
        assert reading.co2_ppm == 600
        assert reading.temperature == 5
        sensor.close()

    def test_read_temperature(self):
        """read_temperature returns float degrees."""
        sensor, _, _ = _sensor(
            VERSION_REPLY, make_reply(0x85, bytes([0, 0, 0x09, 0x60]))
        )
        sensor.open()
        assert sensor.read_temperature() == pytest.approx(24.0)

    def test_auto_calib_roundtrip(self):
        """set then get auto calibration."""
        sensor, channel, _ = _sensor(
            VERSION_REPLY,
            make_reply(0x79),
            make_reply(0x7D, bytes([0, 0, 0, 0, 0, 0])),
        )
        sensor.open()
        sensor.set_auto_calib(False)
        assert sensor.get_auto_calib() is False
        assert channel.written[1][2:4] == b"\x79\x00"

    def test_zero_calibration(self):
        """zero_calibration writes the 0x87 frame."""
        sensor, channel, _ = _sensor(VERSION_REPLY)
        sensor.open()
        sensor.zero_calibration()
        assert channel.written[-1][2] == 0x87

    def test_get_version_refreshes_cache(self):
        """get_version overwrites the cached version."""
        sensor, _, _ = _sensor(VERSION_REPLY, make_reply(0xA0, b"0600"))
        sensor.open()
        assert sensor.get_version() == "0600"
        assert sensor.version == "0600"

    def test_error_is_terminal(self):
        """A corrupted reply fails the command, no silent retry."""
        bad = bytearray(co2_reply(600, 5))
        bad[2] ^= 0x01
        sensor, channel, _ = _sensor(VERSION_REPLY, bytes(bad), co2_reply(600, 5))
        sensor.open()
        with pytest.raises(ChecksumMismatch):
            sensor.read_co2()
        assert len(channel.written) == 2

    def test_handle_usable_after_error(self):
        """The next command after a failure works normally."""
        sensor, channel, _ = _sensor(VERSION_REPLY)
        sensor.open()
        with pytest.raises(ReadTimeout):
            sensor.read_co2()
        channel.queue(co2_reply(700, 21))
        assert sensor.read_co2().co2_ppm == 700

    def test_set_verbose(self):
        """Verbosity can be toggled on an open handle."""
        sensor, _, _ = _sensor(VERSION_REPLY)
        sensor.open()
        sensor.set_verbose(True)
        assert sensor.verbose is True
        assert sensor._tx.verbose is True


class TestVariant:
    """Tests for the basic protocol variant."""

    def test_basic_skips_version_query(self):
        """The basic variant never sends GET_VERSION."""
        sensor, channel, _ = _sensor(variant="basic")
        sensor.open()
        assert channel.written == []
        assert sensor.version is None

    def test_basic_co2_without_temperature(self):
        """The basic variant reports ppm only."""
        sensor, _, _ = _sensor(make_reply(0x86, b"\x01\xf4"), variant="basic")
        sensor.open()
        reading = sensor.read_co2()
        assert reading.co2_ppm == 500
        assert reading.temperature is None

    @pytest.mark.parametrize("method", [
        "read_temperature", "get_auto_calib", "zero_calibration", "get_version",
    ])
    def test_basic_rejects_unknown_commands(self, method):
        """Commands outside the basic set raise UnsupportedCommand."""
        sensor, channel, _ = _sensor(variant="basic")
        sensor.open()
        with pytest.raises(UnsupportedCommand):
            getattr(sensor, method)()
        assert channel.written == []

    def test_unknown_variant(self):
        """An unknown variant name is rejected at construction."""
        with pytest.raises(ValueError):
            MHZ19C("/dev/test", variant="bogus")
