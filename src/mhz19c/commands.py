"""Sensor command catalogue.

Each function is one transceiver exchange with a fixed opcode followed
by interpretation of the reply data.  Errors from the exchange are
never caught here; the transceiver's read loop is the only retry.

Example:
    >>> from mhz19c.commands import read_co2
    >>> read_co2(tx)
    SensorReading(co2_ppm=600, temperature=5)
"""

import logging

from mhz19c.protocol import (
    GET_AUTO_CALIB,
    GET_VERSION,
    PROTO_CALIB_OFF,
    PROTO_CALIB_ON,
    READ_CO2,
    READ_TEMPERATURE,
    SET_AUTO_CALIB,
    ZERO_CALIBRATION,
    parse_auto_calib,
    parse_co2,
    parse_temperature,
    parse_version,
)
from mhz19c.reading import SensorReading

log = logging.getLogger(__name__)


def read_co2(tx, with_temperature: bool = True) -> SensorReading:
    """Read CO2 concentration (0x86), plus the coarse temperature byte.

    Args:
        tx: A ``Transceiver``.
        with_temperature: False for revisions whose reply carries no
            temperature; the reading then has ``temperature=None``.
    """
    payload = tx.exchange(READ_CO2)
    ppm, temp = parse_co2(payload, with_temperature)
    log.debug("co2=%d ppm temperature=%s", ppm, temp)
    return SensorReading(co2_ppm=ppm, temperature=temp)


def read_temperature(tx) -> float:
    """Read temperature in hundredths of a degree (0x85, undocumented)."""
    payload = tx.exchange(READ_TEMPERATURE)
    temp = parse_temperature(payload)
    log.debug("temperature=%.2f", temp)
    return temp


def set_auto_calib(tx, on: bool) -> None:
    """Switch automatic baseline calibration on or off (0x79)."""
    tx.exchange(SET_AUTO_CALIB, build_auto_calib_payload(on))
    log.debug("auto calibration set %s", "on" if on else "off")


def build_auto_calib_payload(on: bool) -> bytes:
    """Request payload for SET_AUTO_CALIB.

    Example:
        >>> build_auto_calib_payload(True)
        b'\\xa0'
    """
    return bytes([PROTO_CALIB_ON if on else PROTO_CALIB_OFF])


def get_auto_calib(tx) -> bool:
    """Return True if automatic baseline calibration is on (0x7D)."""
    return parse_auto_calib(tx.exchange(GET_AUTO_CALIB))


def zero_calibration(tx) -> None:
    """Take the current ambient air as the zero point (0x87).

    The sensor sends no reply; success means the frame went out whole.
    """
    tx.exchange(ZERO_CALIBRATION)
    log.debug("zero calibration requested")


def get_version(tx) -> str:
    """Return the 4-character firmware version (0xA0)."""
    return parse_version(tx.exchange(GET_VERSION))
