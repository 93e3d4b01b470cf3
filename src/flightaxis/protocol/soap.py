"""SOAP-over-HTTP request framing and bounded reply reads.

The FlightAxis server speaks a minimal SOAP dialect: every request is an HTTP
``POST /`` carrying a ``Soapaction`` header and an XML envelope whose body
holds a single element named after the action.  Replies carry no usable
length information, so :meth:`SoapCodec.receive` accumulates bytes until the
closing ``</SOAP-ENV:Envelope>`` tag shows up, the reply buffer is full or the
peer stops sending.  Every socket serves exactly one transaction and is closed
by the codec once the reply has been read.
"""

from __future__ import annotations

import logging
import re
import socket
import time

from flightaxis.errors import EndpointConnectionError, ReplyTimeoutError, SendError
from flightaxis.transport._socket_poll import remaining_time, wait_for_read_ready

__all__ = [
    "DEFAULT_REPLY_CAPACITY",
    "DEFAULT_REQUEST_TIMEOUT",
    "ENVELOPE_TERMINATOR",
    "SoapCodec",
    "build_envelope",
    "build_request",
]


logger = logging.getLogger(__name__)

DEFAULT_REPLY_CAPACITY = 4096
DEFAULT_REQUEST_TIMEOUT = 1.0
ENVELOPE_TERMINATOR = b"</SOAP-ENV:Envelope>"

_ENVELOPE_PREFIX = (
    "<?xml version='1.0' encoding='UTF-8'?>"
    "<soap:Envelope xmlns:soap='http://schemas.xmlsoap.org/soap/envelope/' "
    "xmlns:xsd='http://www.w3.org/2001/XMLSchema' "
    "xmlns:xsi='http://www.w3.org/2001/XMLSchema-instance'>"
    "<soap:Body>"
)
_ENVELOPE_SUFFIX = "</soap:Body></soap:Envelope>"
_ACTION_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")


def _validate_action(action: str) -> str:
    if not isinstance(action, str) or not _ACTION_PATTERN.match(action):
        raise ValueError(f"invalid SOAP action name: {action!r}")
    return action


def build_envelope(action: str, payload: str = "") -> str:
    """Wrap ``payload`` in ``<action>`` inside a SOAP 1.1 envelope."""

    _validate_action(action)
    return f"{_ENVELOPE_PREFIX}<{action}>{payload}</{action}>{_ENVELOPE_SUFFIX}"


def build_request(action: str, payload: str = "") -> bytes:
    """Return the complete HTTP request for ``action`` as bytes."""

    body = build_envelope(action, payload).encode("utf-8")
    header = (
        "POST / HTTP/1.1\r\n"
        f"Soapaction: '{action}'\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Content-Type: text/xml;charset=utf-8\r\n"
        "\r\n"
    )
    return header.encode("ascii") + body


class SoapCodec:
    """Send SOAP requests and read their replies on single-use sockets."""

    def __init__(self, *, reply_capacity: int = DEFAULT_REPLY_CAPACITY) -> None:
        capacity = int(reply_capacity)
        if capacity <= 0:
            raise ValueError("reply_capacity must be positive")
        self._reply_capacity = capacity

    @property
    def reply_capacity(self) -> int:
        return self._reply_capacity

    def send(self, sock: socket.socket, action: str, payload: str = "") -> None:
        """Write the full request for ``action`` to ``sock``.

        On failure the socket is closed and :class:`SendError` is raised.
        """

        request = build_request(action, payload)
        try:
            sock.sendall(request)
        except OSError as exc:
            sock.close()
            raise SendError(f"Failed to send SOAP request {action!r}: {exc}") from exc
        logger.debug(
            "SOAP request sent.",
            extra={"event": "soap.request_sent", "action": action, "bytes": len(request)},
        )

    def receive(self, sock: socket.socket, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> bytes:
        """Read one reply from ``sock`` and close it.

        The whole read is bounded by ``timeout`` seconds.  Bytes are collected
        until the envelope terminator appears, :attr:`reply_capacity` bytes
        have been read, the peer stops sending or the deadline passes.  Cut
        replies are returned as-is.
        """

        deadline = time.monotonic() + max(float(timeout), 0.0)
        try:
            if not wait_for_read_ready(sock, timeout=timeout, deadline=deadline):
                raise ReplyTimeoutError(
                    f"No reply within {timeout * 1000:.0f} ms"
                )
            buffer, reason = self._read_reply(sock, deadline)
        finally:
            sock.close()

        if not buffer and reason == "deadline":
            raise ReplyTimeoutError(f"No reply within {timeout * 1000:.0f} ms")
        if not buffer:
            raise EndpointConnectionError("Connection closed before any reply bytes arrived")
        logger.debug(
            "SOAP reply received.",
            extra={"event": "soap.reply_received", "bytes": len(buffer), "reason": reason},
        )
        return bytes(buffer)

    def transact(
        self,
        sock: socket.socket,
        action: str,
        payload: str = "",
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> bytes:
        """Send ``action`` on ``sock`` and return the raw reply."""

        self.send(sock, action, payload)
        return self.receive(sock, timeout)

    def _read_reply(self, sock: socket.socket, deadline: float) -> tuple[bytearray, str]:
        capacity = self._reply_capacity
        buffer = bytearray()
        while len(buffer) < capacity:
            remaining = remaining_time(deadline)
            if remaining <= 0.0 and buffer:
                return buffer, "deadline"
            try:
                # Zero turns the socket non-blocking for a final read.
                sock.settimeout(remaining)
                chunk = sock.recv(capacity - len(buffer))
            except socket.timeout:
                return buffer, "deadline"
            except OSError:
                return buffer, "error"
            if not chunk:
                return buffer, "closed"
            # The terminator may straddle two reads.
            search_from = max(len(buffer) - len(ENVELOPE_TERMINATOR) + 1, 0)
            buffer.extend(chunk)
            if buffer.find(ENVELOPE_TERMINATOR, search_from) != -1:
                return buffer, "terminator"
        return buffer, "capacity"
