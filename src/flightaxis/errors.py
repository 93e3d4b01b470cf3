"""Exception hierarchy shared by the FlightAxis transport and session layers."""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "EndpointConnectionError",
    "FlightAxisError",
    "ParseError",
    "PoolClosedError",
    "ReplyTimeoutError",
    "SendError",
    "TransportError",
]


class FlightAxisError(Exception):
    """Base class for every error raised by :mod:`flightaxis`."""


class TransportError(FlightAxisError):
    """A single request/response transaction could not be completed.

    Transport errors abort the current transaction only.  The socket involved
    has already been closed by the time the error reaches the caller.
    """


class EndpointConnectionError(TransportError, ConnectionError):
    """Socket creation, address resolution or connect failed.

    Also raised when the peer closes a connection without sending any reply
    bytes.
    """


class PoolClosedError(EndpointConnectionError):
    """A socket was requested from a pool that has been shut down."""


class SendError(TransportError):
    """Writing a request to an established socket failed."""


class ReplyTimeoutError(TransportError, TimeoutError):
    """The socket never became readable within the request deadline."""


class ParseError(FlightAxisError, ValueError):
    """A telemetry field could not be converted to a number."""


class ConfigurationError(FlightAxisError, ValueError):
    """Project or command line settings are invalid."""
