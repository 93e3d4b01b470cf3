"""Client bridge for the RealFlight FlightAxis SOAP interface.

The package keeps a pool of pre-connected sockets to the simulator, frames
``InjectUAVControllerInterface`` and ``ExchangeData`` requests, and extracts
vehicle telemetry from the replies.  :class:`SessionController` ties the
pieces together::

    pool = ConnectionPool.configure(Endpoint("127.0.0.1", 18083))
    session = SessionController(pool)
    session.update(ControlInput(throttle=0.4))
    print(session.state.airspeed_mps)
"""

from ._version import __version__
from .configuration import FlightAxisSettings, load_settings
from .errors import (
    ConfigurationError,
    EndpointConnectionError,
    FlightAxisError,
    ParseError,
    PoolClosedError,
    ReplyTimeoutError,
    SendError,
    TransportError,
)
from .protocol import ChannelVector, ControlInput, SoapCodec
from .session import SessionController, SessionState
from .telemetry import DEFAULT_FIELDS, TelemetryExtractor, TelemetryField, VehicleState
from .transport import ConnectionPool, Endpoint

__all__ = [
    "ChannelVector",
    "ConfigurationError",
    "ConnectionPool",
    "ControlInput",
    "DEFAULT_FIELDS",
    "Endpoint",
    "EndpointConnectionError",
    "FlightAxisError",
    "FlightAxisSettings",
    "ParseError",
    "PoolClosedError",
    "ReplyTimeoutError",
    "SendError",
    "SessionController",
    "SessionState",
    "SoapCodec",
    "TelemetryExtractor",
    "TelemetryField",
    "TransportError",
    "VehicleState",
    "load_settings",
    "__version__",
]
