"""Handshake and data exchange sequencing for a FlightAxis session.

RealFlight only accepts ``ExchangeData`` requests once the controller
interface has been injected.  :class:`SessionController` performs that
handshake on the first :meth:`~SessionController.update` call (retrying on
later calls until it succeeds) and afterwards sends the control channels and
refreshes :attr:`~SessionController.state` from every reply.

Transaction failures are logged and swallowed: the caller's polling loop is
the retry mechanism, and the vehicle state only changes after a complete
reply has been parsed.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

from flightaxis.configuration import FlightAxisSettings
from flightaxis.errors import TransportError
from flightaxis.protocol import (
    EXCHANGE_ACTION,
    HANDSHAKE_ACTION,
    HANDSHAKE_PAYLOAD,
    ChannelVector,
    ControlInput,
    SoapCodec,
)
from flightaxis.protocol.soap import DEFAULT_REQUEST_TIMEOUT
from flightaxis.telemetry import TelemetryExtractor, VehicleState
from flightaxis.transport import ConnectionPool

__all__ = ["SessionController", "SessionState"]


logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    """Controller interface status on the simulator side."""

    NOT_READY = "not_ready"
    READY = "ready"


class SessionController:
    """Drive handshake and exchange transactions over a :class:`ConnectionPool`."""

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        codec: Optional[SoapCodec] = None,
        extractor: Optional[TelemetryExtractor] = None,
        state: Optional[VehicleState] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._pool = pool
        self._codec = codec or SoapCodec()
        self._extractor = extractor or TelemetryExtractor()
        self._state = state if state is not None else VehicleState(self._extractor.fields)
        self._request_timeout = float(request_timeout)
        self._session_state = SessionState.NOT_READY
        self._handshakes = 0
        self._exchanges = 0
        self._refreshes = 0
        self._failures = 0
        self._consecutive_failures = 0

    @classmethod
    def from_settings(cls, settings: FlightAxisSettings) -> "SessionController":
        """Build a controller around a freshly started pool for ``settings``."""

        pool = ConnectionPool.configure(
            settings.endpoint,
            settings.pool_size,
            connect_timeout=settings.connect_timeout,
        )
        return cls(pool, request_timeout=settings.request_timeout)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def state(self) -> VehicleState:
        """Most recent telemetry, zero until the first successful exchange."""

        return self._state

    @property
    def session_state(self) -> SessionState:
        return self._session_state

    @property
    def ready(self) -> bool:
        return self._session_state is SessionState.READY

    @property
    def statistics(self) -> dict[str, int]:
        return {
            "handshakes": self._handshakes,
            "exchanges": self._exchanges,
            "refreshes": self._refreshes,
            "failures": self._failures,
        }

    def update(self, control: ControlInput) -> bool:
        """Send ``control`` to the simulator and refresh :attr:`state`.

        The first call (and every call until it succeeds) injects the
        controller interface before exchanging data.  Returns ``True`` when
        the state was refreshed, ``False`` when any transaction failed.
        """

        if not self.ready and not self._handshake():
            return False

        channels = ChannelVector.from_input(control)
        reply = self._transact(EXCHANGE_ACTION, channels.to_payload())
        if reply is None:
            return False
        self._exchanges += 1
        self._extractor.extract(reply, self._state)
        self._refreshes += 1
        return True

    def close(self) -> None:
        """Shut down the underlying connection pool."""

        self._pool.shutdown()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------
    def _handshake(self) -> bool:
        reply = self._transact(HANDSHAKE_ACTION, HANDSHAKE_PAYLOAD)
        if reply is None:
            return False
        self._handshakes += 1
        self._session_state = SessionState.READY
        logger.info(
            "FlightAxis controller interface injected.",
            extra={"event": "session.ready", "endpoint": str(self._pool.endpoint)},
        )
        return True

    def _transact(self, action: str, payload: str) -> Optional[bytes]:
        try:
            with self._pool.lease() as sock:
                self._codec.send(sock, action, payload)
                reply = self._codec.receive(sock, self._request_timeout)
        except TransportError as exc:
            self._failures += 1
            self._consecutive_failures += 1
            # Only the first failure of a streak is a warning.
            level = logging.WARNING if self._consecutive_failures == 1 else logging.DEBUG
            logger.log(
                level,
                "FlightAxis transaction failed.",
                extra={
                    "event": "session.transaction_failed",
                    "action": action,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "consecutive_failures": self._consecutive_failures,
                },
            )
            return None
        self._consecutive_failures = 0
        return reply
