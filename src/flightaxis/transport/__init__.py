"""TCP transport to the FlightAxis SOAP server."""

from __future__ import annotations

from flightaxis.transport.connection import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    Endpoint,
    open_connection,
)
from flightaxis.transport.pools import (
    DEFAULT_POOL_SIZE,
    DEFAULT_REFILL_INTERVAL,
    ConnectionPool,
    Connector,
)

__all__ = [
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_HOST",
    "DEFAULT_POOL_SIZE",
    "DEFAULT_PORT",
    "DEFAULT_REFILL_INTERVAL",
    "ConnectionPool",
    "Connector",
    "Endpoint",
    "open_connection",
]
