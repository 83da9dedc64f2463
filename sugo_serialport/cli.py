#!/usr/bin/env python3
"""Command line access to the serial port adapter."""

import argparse
import json
import logging
import signal
import sys
import threading
import time
from types import FrameType
from typing import Any

import serial

from sugo_serialport.adapter import SerialportModule
from sugo_serialport.config import AdapterConfig
from sugo_serialport.errors import SerialportError
from sugo_serialport.interface import SerialportInterface
from sugo_serialport.protocol import DEFAULT_BAUDRATE, TRACE

logger = logging.getLogger(__name__)

MONITOR_POLL_S = 0.1


def cmd_list(module: SerialportModule, args: argparse.Namespace) -> int:
    ports = module.list()
    if args.json:
        print(json.dumps(ports, indent=2))
        return 0
    if not ports:
        print("No serial ports found")
        return 0
    for port in ports:
        ids = ""
        if port["vendorId"] is not None:
            ids = f" [{port['vendorId']}:{port['productId']}]"
        print(f"{port['comName']}\t{port['description']}{ids}")
    return 0


def cmd_ping(module: SerialportModule, args: argparse.Namespace) -> int:
    print(module.ping(args.message) if args.message else module.ping())
    return 0


def cmd_assert(module: SerialportModule, args: argparse.Namespace) -> int:
    module.assert_()
    print("System is OK")
    return 0


def cmd_spec(module: SerialportModule, args: argparse.Namespace) -> int:
    spec = SerialportInterface().spec if args.variant == "interface" else module.spec
    print(json.dumps(spec, indent=2))
    return 0


def unescape(text: str) -> bytes:
    """Interpret backslash escapes in text; \\xNN gives the raw byte NN.

    Characters typed as-is keep their UTF-8 encoding.
    """
    return text.encode("utf-8").decode("unicode_escape").encode("latin-1")


def cmd_monitor(module: SerialportModule, args: argparse.Namespace) -> int:
    """Connect, optionally write once, and print received data until stopped."""
    running = True
    closed = threading.Event()

    def handler(_sig: int, _frame: FrameType | None) -> None:
        nonlocal running
        running = False

    signal.signal(signal.SIGINT, handler)

    def on_data(data: Any) -> None:
        sys.stdout.write(data.decode("utf-8", errors="replace"))
        sys.stdout.flush()

    module.on("data", on_data)
    module.on("disconnect", lambda err: logger.warning(f"Disconnected: {err}"))
    module.on("close", lambda _: closed.set())

    options: dict[str, Any] = {}
    if args.baudrate is not None:
        options["baudRate"] = args.baudrate
    module.connect(args.device, options)
    if args.write:
        module.write(unescape(args.write))
        module.drain()

    start = time.monotonic()
    while running and not closed.is_set():
        if args.duration and time.monotonic() - start >= args.duration:
            break
        time.sleep(MONITOR_POLL_S)

    if module.is_open():
        module.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sugo-serialport",
        description="Access serial ports through the SUGOS serial port adapter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list                          List serial ports
  %(prog)s monitor -d /dev/ttyUSB0       Print data received on a port
  %(prog)s monitor -d COM3 -b 57600 -w '#M6\\n'
  %(prog)s spec --variant interface      Print the interface descriptor
""",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="-v for DEBUG, -vv for TRACE"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List available serial ports")
    list_parser.add_argument("--json", action="store_true", help="Print descriptors as JSON")
    list_parser.set_defaults(func=cmd_list)

    ping_parser = subparsers.add_parser("ping", help="Echo a message (default: pong)")
    ping_parser.add_argument("message", nargs="?", default=None)
    ping_parser.set_defaults(func=cmd_ping)

    assert_parser = subparsers.add_parser("assert", help="Check host system requirements")
    assert_parser.set_defaults(func=cmd_assert)

    spec_parser = subparsers.add_parser("spec", help="Print the capability descriptor")
    spec_parser.add_argument(
        "--variant", choices=["module", "interface"], default="module", help="Adapter variant"
    )
    spec_parser.set_defaults(func=cmd_spec)

    monitor_parser = subparsers.add_parser("monitor", help="Print data received on a port")
    monitor_parser.add_argument(
        "-d", "--device", type=str, default=None, help="Serial device path (e.g., /dev/ttyUSB0)"
    )
    monitor_parser.add_argument(
        "-b",
        "--baudrate",
        type=int,
        default=None,
        help=f"Baud rate (default: SUGO_SERIALPORT_BAUDRATE or {DEFAULT_BAUDRATE})",
    )
    monitor_parser.add_argument(
        "-w", "--write", type=str, default=None, help="Text to write once the port is open"
    )
    monitor_parser.add_argument(
        "-t",
        "--duration",
        type=float,
        default=0,
        help="Stop after this many seconds, 0 = until Ctrl-C (default: 0)",
    )
    monitor_parser.set_defaults(func=cmd_monitor)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.INFO
    if args.verbose == 1:
        level = logging.DEBUG
    elif args.verbose > 1:
        level = TRACE
    logging.basicConfig(level=level)

    try:
        module = SerialportModule(AdapterConfig.from_env())
        return args.func(module, args)
    except serial.SerialException as e:
        logger.error(f"Serial error: {e}")
        return 1
    except SerialportError as e:
        logger.error(f"Error: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid value: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
