"""Command line entry point driving a FlightAxis session until interrupted."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from dataclasses import replace
from types import FrameType
from typing import Any, Optional, Sequence

from ..configuration import load_settings
from ..errors import ConfigurationError
from ..logging.config import setup_logging
from ..protocol import ControlInput
from ..session import SessionController
from .errors import CliError, log_cli_error
from .parser import build_parser

__all__ = ["THROTTLE_STEP", "install_signal_handlers", "main", "run_cli", "run_session"]


logger = logging.getLogger(__name__)

THROTTLE_STEP = 0.03
# Time granted to the maintainer to pre-fill the pool before the first update.
_STARTUP_FILL_TIMEOUT = 0.1


def install_signal_handlers(stop_event: threading.Event) -> dict[int, Any]:
    """Set ``stop_event`` on SIGINT/SIGTERM; return the replaced handlers."""

    def _handle(signum: int, _frame: Optional[FrameType]) -> None:
        logger.info(
            "Termination signal received; shutting down.",
            extra={"event": "cli.signal", "signal": signal.Signals(signum).name},
        )
        stop_event.set()

    previous: dict[int, Any] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handle)
    return previous


def _restore_signal_handlers(previous: dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def run_session(
    controller: SessionController,
    stop_event: threading.Event,
    *,
    control: Optional[ControlInput] = None,
    poll_interval: float = 0.0,
    max_updates: Optional[int] = None,
) -> int:
    """Call :meth:`SessionController.update` until ``stop_event`` is set.

    Starts from idle inputs and opens the throttle by :data:`THROTTLE_STEP`
    per iteration until it is fully open.  Returns the number of iterations.
    """

    current = control or ControlInput()
    iterations = 0
    refreshed = 0
    while not stop_event.is_set():
        if controller.update(current):
            refreshed += 1
            if refreshed == 1:
                logger.info(
                    "Connected and received first telemetry reply.",
                    extra={"event": "cli.first_reply", "endpoint": str(controller.pool.endpoint)},
                )
        iterations += 1
        if current.throttle < 1.0:
            current = replace(current, throttle=min(current.throttle + THROTTLE_STEP, 1.0))
        if max_updates is not None and iterations >= max_updates:
            break
        if poll_interval > 0.0:
            stop_event.wait(poll_interval)
    return iterations


def run_cli(args: Optional[Sequence[str]] = None) -> int:
    """Execute the ``flightaxis`` command and return its exit status."""

    parser = build_parser()
    try:
        namespace = parser.parse_args(args)
        try:
            settings = load_settings(overrides={"host": namespace.host, "port": namespace.port})
        except ConfigurationError as exc:
            raise CliError(str(exc), category="config", context={"host": namespace.host}) from exc
        try:
            setup_logging(settings.as_config())
        except (OSError, ValueError) as exc:
            raise CliError(
                f"Invalid logging configuration: {exc}",
                category="config",
                context=settings.logging,
            ) from exc
    except CliError as exc:
        log_cli_error(exc)
        if exc.category == "usage":
            sys.stderr.write(parser.format_usage())
        sys.stderr.write(f"{parser.prog}: error: {exc}\n")
        return exc.status_code

    logger.info(
        "Connecting to FlightAxis.",
        extra={
            "event": "cli.start",
            "endpoint": str(settings.endpoint),
            "pool_size": settings.pool_size,
            "config_path": str(settings.source) if settings.source else None,
        },
    )

    stop_event = threading.Event()
    previous = install_signal_handlers(stop_event)
    controller = SessionController.from_settings(settings)
    iterations = 0
    try:
        controller.pool.wait_for_depth(timeout=_STARTUP_FILL_TIMEOUT)
        iterations = run_session(controller, stop_event, poll_interval=settings.poll_interval)
    finally:
        controller.close()
        _restore_signal_handlers(previous)

    state = controller.state
    logger.info(
        "FlightAxis session finished.",
        extra={
            "event": "cli.summary",
            "iterations": iterations,
            **controller.statistics,
            "airspeed_mps": state.airspeed_mps,
            "altitude_agl_m": state.altitude_agl_m,
            "position_x_m": state.position_x_m,
            "position_y_m": state.position_y_m,
        },
    )
    return 0


def main() -> None:  # pragma: no cover - thin wrapper
    raise SystemExit(run_cli())


if __name__ == "__main__":  # pragma: no cover - CLI invocation guard
    main()
