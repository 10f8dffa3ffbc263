#!/usr/bin/env python3
"""Virtual MH-Z19C for testing without hardware.

Listens on a serial port (typically one end of a socat PTY pair) and
answers request frames the way the sensor does.  CO2 wanders around
600 ppm, temperature around 24 C.  The auto-calibration state is kept
in memory so set/get round-trips behave.  Zero calibration gets no
reply, as on the real device.

Usage:
    python simulator.py <port> [version]

Example:
    socat -d -d PTY,raw,echo=0,link=/tmp/mhz19c-host PTY,raw,echo=0,link=/tmp/mhz19c-sensor
    python simulator.py /tmp/mhz19c-sensor 0513
"""

import random
import sys

from mhz19c.channel import SerialChannel
from mhz19c.errors import FrameError
from mhz19c.protocol import (
    GET_AUTO_CALIB,
    GET_VERSION,
    PROTO_CALIB_ON,
    PROTO_FRAME_LEN,
    PROTO_START,
    PROTO_TEMP_OFFSET,
    READ_CO2,
    READ_TEMPERATURE,
    SET_AUTO_CALIB,
    decode_request,
    encode_response,
)


class SimulatedSensor:
    """Reply generator holding the simulated sensor state.

    Args:
        version: 4-character firmware version to report.
    """

    def __init__(self, version="0513"):
        self.version = version
        self.auto_calib = True
        self.base_ppm = 600
        self.base_temp = 24.0

    def reply(self, request):
        """Return the reply frame for a raw request, or None for no reply."""
        try:
            frame = decode_request(request)
        except FrameError:
            return None

        cmd = frame.command
        if cmd == READ_CO2.opcode:
            ppm = self.base_ppm + random.randint(-20, 20)
            temp = int(self.base_temp) + PROTO_TEMP_OFFSET
            data = ppm.to_bytes(2, "big") + bytes([temp])
        elif cmd == READ_TEMPERATURE.opcode:
            hundredths = int(self.base_temp * 100) + random.randint(-10, 10)
            data = bytes(2) + hundredths.to_bytes(2, "big")
        elif cmd == SET_AUTO_CALIB.opcode:
            self.auto_calib = frame.payload[0] == PROTO_CALIB_ON
            data = b""
        elif cmd == GET_AUTO_CALIB.opcode:
            data = bytes(5) + bytes([1 if self.auto_calib else 0])
        elif cmd == GET_VERSION.opcode:
            data = self.version.encode("ascii")[:4]
        else:
            return None
        return encode_response(cmd, data)


def run(port, version="0513"):
    """Run the simulator loop on *port* until interrupted."""
    sensor = SimulatedSensor(version)
    channel = SerialChannel(port, 100)
    buf = b""

    print("simulator: listening on {}".format(port), flush=True)

    try:
        while True:
            buf += channel.read(PROTO_FRAME_LEN - len(buf))
            # Resync on the START byte after line noise.
            start = buf.find(bytes([PROTO_START]))
            buf = buf[start:] if start >= 0 else b""
            if len(buf) < PROTO_FRAME_LEN:
                continue
            request, buf = buf, b""
            reply = sensor.reply(request)
            if reply is not None:
                channel.write(reply)
                channel.drain_output()
    except KeyboardInterrupt:
        pass
    finally:
        channel.close()


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("usage: simulator.py <port> [version]", file=sys.stderr)
        sys.exit(1)
    run(*sys.argv[1:])
