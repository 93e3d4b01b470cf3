"""Argument parser for the ``flightaxis`` command."""

from __future__ import annotations

import argparse
from typing import NoReturn

from .errors import CliError

__all__ = ["build_parser", "parse_port"]


class _Parser(argparse.ArgumentParser):
    """Raise :class:`CliError` instead of printing usage and exiting."""

    def error(self, message: str) -> NoReturn:
        raise CliError(message, category="usage", context={"usage": self.format_usage().strip()})


def parse_port(value: str) -> int:
    """Validate a TCP port given on the command line."""

    try:
        port = int(value, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from exc
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="flightaxis",
        description=(
            "Connect to a RealFlight FlightAxis server, inject the controller "
            "interface and exchange control inputs for telemetry until interrupted."
        ),
    )
    parser.add_argument(
        "host",
        nargs="?",
        default=None,
        help="Simulator IP address or hostname (default: 127.0.0.1 or [tool.flightaxis].host).",
    )
    parser.add_argument(
        "port",
        nargs="?",
        type=parse_port,
        default=None,
        help="FlightAxis SOAP port (default: 18083 or [tool.flightaxis].port).",
    )
    return parser
