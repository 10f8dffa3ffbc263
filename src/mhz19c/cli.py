"""Command-line front end for the MH-Z19C driver.

Parses the arguments into an immutable ``Request``, opens the sensor,
runs exactly one action and maps driver errors to exit status 1.

Example:
    Run from the command line::

        mhz19c -c -t
        mhz19c --set-calib off -v
        mhz19c --config /etc/mhz19c.toml --firmware
"""

import argparse
import logging
import sys
from dataclasses import dataclass

from mhz19c.config import (
    DEFAULT_PORT,
    DEFAULT_VARIANT,
    RETRY_LIMIT,
    TIMEOUT_MS,
    load_config,
)
from mhz19c.device import MHZ19C
from mhz19c.errors import MHZ19Error
from mhz19c.reading import fmt_temp

log = logging.getLogger(__name__)

PROG = "mhz19c"


@dataclass(frozen=True)
class Request:
    """Everything one invocation asks of the sensor."""

    port: str = DEFAULT_PORT
    timeout_ms: int = TIMEOUT_MS
    retries: int = RETRY_LIMIT
    variant: str = DEFAULT_VARIANT
    verbose: bool = False
    co2: bool = False
    temperature: bool = False
    set_calib: bool | None = None
    get_calib: bool = False
    zero_calib: bool = False
    firmware: bool = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG, description="Query and configure an MH-Z19C CO2 sensor",
    )
    parser.add_argument(
        "-p", "--port", help="serial port (default: %s)" % DEFAULT_PORT,
    )
    parser.add_argument("--config", help="path to TOML config file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log every frame",
    )

    actions = parser.add_argument_group("actions")
    actions.add_argument(
        "-c", "--co2", action="store_true", help="print the CO2 concentration",
    )
    actions.add_argument(
        "-t", "--temperature", action="store_true",
        help="print the temperature",
    )
    actions.add_argument(
        "--set-calib", choices=("on", "off"), metavar="STATE",
        help="set auto calibration, STATE is on or off",
    )
    actions.add_argument(
        "--get-calib", action="store_true",
        help="print the auto calibration state",
    )
    actions.add_argument(
        "--zero-calib", action="store_true",
        help="calibrate the zero point against ambient air",
    )
    actions.add_argument(
        "--firmware", action="store_true", help="print the firmware version",
    )
    return parser


def parse_args(argv=None) -> Request:
    """Parse *argv* into a Request.

    ``-c`` and ``-t`` combine; every other action stands alone.  Bad
    combinations exit via ``parser.error`` with status 2.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    reading = args.co2 or args.temperature
    others = [
        args.set_calib is not None,
        args.get_calib,
        args.zero_calib,
        args.firmware,
    ]
    chosen = sum(others) + (1 if reading else 0)
    if chosen == 0:
        parser.error("no action given")
    if chosen > 1:
        parser.error(
            "--set-calib, --get-calib, --zero-calib and --firmware "
            "cannot be combined with each other or with -c/-t"
        )

    settings = {}
    if args.config is not None:
        try:
            settings = load_config(args.config)
        except (OSError, ValueError) as exc:
            parser.error("config %s: %s" % (args.config, exc))
    if args.port is not None:
        settings["port"] = args.port

    return Request(
        verbose=args.verbose,
        co2=args.co2,
        temperature=args.temperature,
        set_calib=None if args.set_calib is None else args.set_calib == "on",
        get_calib=args.get_calib,
        zero_calib=args.zero_calib,
        firmware=args.firmware,
        **settings,
    )


def run(request: Request, out=None, sensor_factory=MHZ19C) -> int:
    """Carry out *request* and return the process exit status.

    Output goes to *out* (stdout by default).  Driver errors are
    reported on stderr and yield status 1.
    """
    out = out if out is not None else sys.stdout
    sensor = sensor_factory(
        request.port,
        verbose=request.verbose,
        variant=request.variant,
        timeout_ms=request.timeout_ms,
        retries=request.retries,
    )
    try:
        with sensor:
            text = _perform(sensor, request)
    except MHZ19Error as exc:
        log.debug("command failed", exc_info=True)
        print("%s: error: %s" % (PROG, exc), file=sys.stderr)
        return 1
    if text is not None:
        print(text, file=out)
    return 0


def _perform(sensor, request: Request) -> str | None:
    """Run the single action in *request*; return text to print."""
    if request.set_calib is not None:
        sensor.set_auto_calib(request.set_calib)
        return None
    if request.get_calib:
        return "on" if sensor.get_auto_calib() else "off"
    if request.zero_calib:
        sensor.zero_calibration()
        return None
    if request.firmware:
        return sensor.version or sensor.get_version()

    fields = []
    if request.co2:
        fields.append(str(sensor.read_co2().co2_ppm))
    if request.temperature:
        fields.append(fmt_temp(sensor.read_temperature()))
    return " ".join(fields)


def main(argv=None) -> None:
    """CLI entry point -- parse args, talk to the sensor, exit."""
    request = parse_args(argv)

    level = logging.DEBUG if request.verbose else logging.WARNING
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=level,
    )
    log.debug("request: %s", request)

    sys.exit(run(request))


if __name__ == "__main__":
    main()
