"""Pre-connected socket pool for the FlightAxis SOAP server.

RealFlight refuses to serve a second request on a connection, so every
transaction needs a brand new TCP socket.  Connecting is the slow part of a
transaction; :class:`ConnectionPool` hides it by keeping a small queue of
sockets that are already connected.  A background maintainer thread tops the
queue up to its target depth while consumers pull sockets off the front.

Sockets handed out by :meth:`ConnectionPool.acquire` belong to the caller and
must be closed after one transaction.  They never go back into the queue;
:meth:`ConnectionPool.lease` wraps that rule in a context manager.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections import deque
from contextlib import contextmanager
from types import TracebackType
from typing import Callable, Deque, Iterator, Optional

from flightaxis.errors import EndpointConnectionError, PoolClosedError
from flightaxis.transport.connection import (
    DEFAULT_CONNECT_TIMEOUT,
    Endpoint,
    open_connection,
)

__all__ = ["Connector", "ConnectionPool", "DEFAULT_POOL_SIZE", "DEFAULT_REFILL_INTERVAL"]


logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 3
DEFAULT_REFILL_INTERVAL = 0.05

Connector = Callable[[Endpoint, float], socket.socket]


class ConnectionPool:
    """Bounded FIFO of connected sockets refilled by a background thread."""

    def __init__(
        self,
        endpoint: Endpoint,
        target_size: int = DEFAULT_POOL_SIZE,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        refill_interval: float = DEFAULT_REFILL_INTERVAL,
        connector: Connector = open_connection,
    ) -> None:
        """Create an idle pool; call :meth:`start` to launch the maintainer.

        Parameters
        ----------
        endpoint:
            Remote address every pooled socket connects to.
        target_size:
            Number of ready sockets the maintainer keeps queued.  ``0`` keeps
            the queue empty so every :meth:`acquire` connects synchronously.
        connect_timeout:
            Timeout in seconds applied to connect and to later socket I/O.
        refill_interval:
            Upper bound on how long the maintainer sleeps between depth checks
            when nobody signals it, and the pause after a failed attempt.
        connector:
            Callable opening one socket.  Defaults to
            :func:`~flightaxis.transport.connection.open_connection`.
        """

        size = int(target_size)
        if size < 0:
            raise ValueError("target_size must be >= 0")
        self._endpoint = endpoint
        self._target_size = size
        self._connect_timeout = float(connect_timeout)
        self._refill_interval = max(float(refill_interval), 0.001)
        self._connector = connector
        self._queue: Deque[socket.socket] = deque()
        self._condition = threading.Condition(threading.Lock())
        self._running = False
        self._closed = False
        self._thread: Optional[threading.Thread] = None
        self._reachable: Optional[bool] = None
        self._created = 0
        self._acquired = 0
        self._pooled = 0
        self._synchronous = 0
        self._connect_failures = 0
        self._discarded = 0

    @classmethod
    def configure(
        cls,
        endpoint: Endpoint,
        target_size: int = DEFAULT_POOL_SIZE,
        **options: object,
    ) -> "ConnectionPool":
        """Build a pool for ``endpoint`` and start its maintainer."""

        pool = cls(endpoint, target_size, **options)  # type: ignore[arg-type]
        pool.start()
        return pool

    # ------------------------------------------------------------------
    # Context management helpers
    # ------------------------------------------------------------------
    def __enter__(self) -> "ConnectionPool":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def target_size(self) -> int:
        return self._target_size

    @property
    def running(self) -> bool:
        return self._running

    @property
    def size(self) -> int:
        """Number of sockets currently queued."""

        with self._condition:
            return len(self._queue)

    @property
    def statistics(self) -> dict[str, int]:
        """Return connection accounting counters."""

        with self._condition:
            return {
                "created": self._created,
                "acquired": self._acquired,
                "pooled": self._pooled,
                "synchronous": self._synchronous,
                "connect_failures": self._connect_failures,
                "discarded": self._discarded,
            }

    def start(self) -> None:
        """Launch the maintainer thread (no-op when already running)."""

        with self._condition:
            if self._closed:
                raise PoolClosedError(f"Connection pool for {self._endpoint} is shut down")
            if self._running:
                return
            self._running = True
        self._thread = threading.Thread(
            target=self._maintain,
            name=f"flightaxis-pool-{self._endpoint}",
            daemon=True,
        )
        self._thread.start()
        logger.debug(
            "FlightAxis connection pool started.",
            extra={
                "event": "pool.started",
                "endpoint": str(self._endpoint),
                "target_size": self._target_size,
            },
        )

    def acquire(self) -> socket.socket:
        """Return a connected socket owned exclusively by the caller.

        The front of the queue is returned when available; otherwise a fresh
        connection is opened synchronously.  Raises
        :class:`~flightaxis.errors.EndpointConnectionError` when that attempt
        fails.
        """

        with self._condition:
            if self._closed:
                raise PoolClosedError(f"Connection pool for {self._endpoint} is shut down")
            if self._queue:
                sock = self._queue.popleft()
                self._acquired += 1
                self._pooled += 1
                self._condition.notify_all()
                return sock
        logger.debug(
            "Connection pool empty; connecting synchronously.",
            extra={"event": "pool.synchronous_connect", "endpoint": str(self._endpoint)},
        )
        sock = self._open()
        with self._condition:
            self._acquired += 1
            self._synchronous += 1
        return sock

    @contextmanager
    def lease(self) -> Iterator[socket.socket]:
        """Acquire a socket for one transaction and always close it afterwards."""

        sock = self.acquire()
        try:
            yield sock
        finally:
            sock.close()

    def wait_for_depth(
        self, depth: Optional[int] = None, timeout: Optional[float] = None
    ) -> bool:
        """Block until ``depth`` sockets are queued (default: the target size).

        Returns ``False`` if the timeout expires or the pool stops first.
        """

        wanted = self._target_size if depth is None else min(int(depth), self._target_size)
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while len(self._queue) < wanted:
                if not self._running:
                    return False
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0.0:
                    return False
                self._condition.wait(remaining)
            return True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop the maintainer, then close every socket still queued.

        Sockets already handed out by :meth:`acquire` are left to their owner.
        """

        with self._condition:
            if self._closed:
                return
            self._closed = True
            self._running = False
            self._condition.notify_all()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        with self._condition:
            drained = list(self._queue)
            self._queue.clear()
        for sock in drained:
            sock.close()
        logger.debug(
            "FlightAxis connection pool shut down.",
            extra={
                "event": "pool.shutdown",
                "endpoint": str(self._endpoint),
                "closed_sockets": len(drained),
            },
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------
    def _open(self) -> socket.socket:
        try:
            sock = self._connector(self._endpoint, self._connect_timeout)
        except EndpointConnectionError as exc:
            self._record_failure(exc)
            raise
        self._record_success()
        return sock

    def _maintain(self) -> None:
        while True:
            with self._condition:
                while self._running and len(self._queue) >= self._target_size:
                    self._condition.wait(self._refill_interval)
                if not self._running:
                    return
            try:
                sock = self._open()
            except EndpointConnectionError:
                with self._condition:
                    if self._running:
                        self._condition.wait(self._refill_interval)
                continue
            with self._condition:
                if self._running and len(self._queue) < self._target_size:
                    self._queue.append(sock)
                    self._condition.notify_all()
                    continue
                self._discarded += 1
            sock.close()

    def _record_success(self) -> None:
        with self._condition:
            self._created += 1
            previously = self._reachable
            self._reachable = True
        if previously is False:
            logger.info(
                "FlightAxis endpoint reachable again.",
                extra={"event": "pool.endpoint_recovered", "endpoint": str(self._endpoint)},
            )

    def _record_failure(self, exc: EndpointConnectionError) -> None:
        with self._condition:
            self._connect_failures += 1
            previously = self._reachable
            self._reachable = False
        if previously is not False:
            logger.warning(
                "FlightAxis endpoint unreachable.",
                extra={
                    "event": "pool.endpoint_unreachable",
                    "endpoint": str(self._endpoint),
                    "error": str(exc),
                },
            )
