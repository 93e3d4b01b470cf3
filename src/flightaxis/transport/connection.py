"""Remote endpoint description and the single connection attempt."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Tuple

from flightaxis.errors import EndpointConnectionError

__all__ = [
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "Endpoint",
    "open_connection",
]


logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18083
DEFAULT_CONNECT_TIMEOUT = 1.0


@dataclass(frozen=True, slots=True)
class Endpoint:
    """Address of the FlightAxis SOAP server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise ValueError("endpoint host must be a non-empty string")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"endpoint port must be an integer, got {self.port!r}")
        if not 0 < self.port < 65536:
            raise ValueError(f"endpoint port out of range: {self.port}")

    @property
    def address(self) -> Tuple[str, int]:
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def open_connection(
    endpoint: Endpoint, timeout: float = DEFAULT_CONNECT_TIMEOUT
) -> socket.socket:
    """Connect a fresh TCP socket to ``endpoint``.

    The socket timeout is applied before connecting and kept afterwards so the
    same short bound covers connect, send and receive.  Any failure (socket
    creation, name resolution, connect) is reported as
    :class:`~flightaxis.errors.EndpointConnectionError`; the attempt is never
    retried here.
    """

    try:
        sock = socket.create_connection(endpoint.address, timeout=timeout)
    except OSError as exc:
        raise EndpointConnectionError(
            f"Unable to connect to FlightAxis at {endpoint}: {exc}"
        ) from exc
    try:
        sock.settimeout(timeout)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    except OSError as exc:
        sock.close()
        raise EndpointConnectionError(
            f"Unable to configure socket for {endpoint}: {exc}"
        ) from exc
    return sock
