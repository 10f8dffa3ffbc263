"""Project-wide configuration constants and config-file loading.

Central place for tuneable parameters shared across modules.
Import individual names where needed.

Example:
    >>> from mhz19c.config import load_config, TIMEOUT_MS
    >>> cfg = load_config("mhz19c.toml")
    >>> cfg["port"]
    '/dev/serial0'
"""

import tomllib

from mhz19c.protocol import VARIANTS

# UART the sensor is wired to on a Raspberry Pi.
DEFAULT_PORT = "/dev/serial0"

# The sensor only speaks 9600 8-N-1.
BAUDRATE = 9600

# Per-attempt read timeout in milliseconds.
TIMEOUT_MS = 500

# Read attempts per exchange before giving up.
RETRY_LIMIT = 10

DEFAULT_VARIANT = "full"


def load_config(path: str) -> dict:
    """Read a TOML config file and validate the ``[sensor]`` table.

    Keys (all optional): ``port`` (str), ``timeout_ms`` (int > 0),
    ``retries`` (int > 0), ``variant`` (str, "full" or "basic").
    Missing keys fall back to the module defaults; unknown keys are
    ignored.

    Raises:
        ValueError: If a key has the wrong type or value.

    Example:
        >>> cfg = load_config("mhz19c.toml")
        >>> cfg["retries"]
        10
    """
    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("sensor", {})
    if not isinstance(section, dict):
        raise ValueError("[sensor] must be a table")

    result = {
        "port": DEFAULT_PORT,
        "timeout_ms": TIMEOUT_MS,
        "retries": RETRY_LIMIT,
        "variant": DEFAULT_VARIANT,
    }

    if "port" in section:
        _require_str(section, "port")
        result["port"] = section["port"]
    if "timeout_ms" in section:
        _require_positive_int(section, "timeout_ms")
        result["timeout_ms"] = section["timeout_ms"]
    if "retries" in section:
        _require_positive_int(section, "retries")
        result["retries"] = section["retries"]
    if "variant" in section:
        _require_str(section, "variant")
        if section["variant"] not in VARIANTS:
            raise ValueError(
                "variant must be one of %s, got '%s'"
                % (", ".join(sorted(VARIANTS)), section["variant"])
            )
        result["variant"] = section["variant"]

    return result


def _require_str(raw: dict[str, object], key: str) -> None:
    """Validate that *key* in *raw* is a str."""
    if not isinstance(raw[key], str):
        raise ValueError("%s must be str, got %s" % (key, type(raw[key]).__name__))


def _require_positive_int(raw: dict[str, object], key: str) -> None:
    """Validate that *key* in *raw* is an int greater than zero."""
    value = raw[key]
    # bool is an int subclass; TOML true/false is not a count.
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError("%s must be int, got %s" % (key, type(value).__name__))
    if value < 1:
        raise ValueError("%s must be positive, got %d" % (key, value))
