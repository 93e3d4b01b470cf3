"""Logging utilities for the FlightAxis bridge."""

from flightaxis.logging.config import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "setup_logging"]
