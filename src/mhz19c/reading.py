"""Sensor reading dataclass.

Example:
    >>> from mhz19c.reading import SensorReading
    >>> r = SensorReading(co2_ppm=600, temperature=5)
    >>> fmt_reading(r)
    '600 5'
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SensorReading:
    """One CO2 measurement.

    ``temperature`` is whole degrees C from the CO2 reply, a float from
    the separate temperature command, or None when not reported.
    """

    co2_ppm: int
    temperature: int | float | None = None


def fmt_temp(t: int | float | None) -> str:
    """Format a temperature for display.

    Example:
        >>> fmt_temp(24.5)
        '24.50'
        >>> fmt_temp(None)
        '--'
    """
    if t is None:
        return "--"
    if isinstance(t, float):
        return f"{t:.2f}"
    return str(t)


def fmt_reading(r: SensorReading) -> str:
    """Format a reading as ``"PPM TEMP"``, or just ``"PPM"``."""
    if r.temperature is None:
        return str(r.co2_ppm)
    return f"{r.co2_ppm} {fmt_temp(r.temperature)}"
