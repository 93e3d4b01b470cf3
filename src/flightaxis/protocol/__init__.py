"""FlightAxis SOAP protocol: request framing, replies and channel payloads."""

from __future__ import annotations

from flightaxis.protocol.channels import (
    CHANNEL_COUNT,
    CHANNEL_LAYOUT,
    NEUTRAL_VALUE,
    SELECTED_CHANNELS_MASK,
    ChannelVector,
    ControlInput,
    format_channel_value,
)
from flightaxis.protocol.soap import (
    DEFAULT_REPLY_CAPACITY,
    DEFAULT_REQUEST_TIMEOUT,
    ENVELOPE_TERMINATOR,
    SoapCodec,
    build_envelope,
    build_request,
)

EXCHANGE_ACTION = "ExchangeData"
HANDSHAKE_ACTION = "InjectUAVControllerInterface"
# Opaque body accepted by RealFlight when injecting the controller interface.
HANDSHAKE_PAYLOAD = "<a>1</a><b>2</b>"

__all__ = [
    "CHANNEL_COUNT",
    "CHANNEL_LAYOUT",
    "DEFAULT_REPLY_CAPACITY",
    "DEFAULT_REQUEST_TIMEOUT",
    "ENVELOPE_TERMINATOR",
    "EXCHANGE_ACTION",
    "HANDSHAKE_ACTION",
    "HANDSHAKE_PAYLOAD",
    "NEUTRAL_VALUE",
    "SELECTED_CHANNELS_MASK",
    "ChannelVector",
    "ControlInput",
    "SoapCodec",
    "build_envelope",
    "build_request",
    "format_channel_value",
]
