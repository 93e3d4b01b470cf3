"""Command line utilities for the FlightAxis bridge."""

from flightaxis.cli.app import main, run_cli, run_session
from flightaxis.cli.errors import CliError

__all__ = ["CliError", "main", "run_cli", "run_session"]
