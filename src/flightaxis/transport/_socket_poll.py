"""Readiness probe used before reading a reply from a pooled socket."""

from __future__ import annotations

import select
import socket
import time
from typing import Optional

__all__ = ["remaining_time", "wait_for_read_ready"]


def remaining_time(deadline: Optional[float]) -> Optional[float]:
    """Return the seconds left until ``deadline`` (never negative)."""

    if deadline is None:
        return None
    return max(deadline - time.monotonic(), 0.0)


def wait_for_read_ready(
    sock: socket.socket,
    *,
    timeout: float,
    deadline: Optional[float] = None,
) -> bool:
    """Return ``True`` if ``sock`` becomes readable before the wait expires.

    Parameters
    ----------
    sock:
        Connected TCP socket awaiting a reply.
    timeout:
        Maximum wait duration in seconds.  Non-positive values poll once
        without blocking.
    deadline:
        Optional monotonic timestamp capping the wait below ``timeout``.
    """

    wait_time = max(float(timeout), 0.0)
    if deadline is not None:
        remaining = deadline - time.monotonic()
        if remaining <= 0.0:
            return False
        wait_time = min(wait_time, remaining)

    try:
        readable, _, _ = select.select([sock], [], [], wait_time)
    except (OSError, ValueError):
        return False
    return bool(readable)
