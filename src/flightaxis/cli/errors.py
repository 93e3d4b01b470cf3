"""Error reporting for the ``flightaxis`` command."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

__all__ = ["CliError", "ErrorPayload", "log_cli_error"]


# Exit status per failure category.
STATUS_CODES: Mapping[str, int] = {
    "runtime": 1,
    "usage": 2,
    "config": 3,
}

_logger = logging.getLogger("flightaxis.cli")


def _plain_context(context: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Keep JSON-friendly scalars, stringify everything else."""

    plain: dict[str, Any] = {}
    for key, value in (context or {}).items():
        if value is None or isinstance(value, (str, int, float, bool)):
            plain[str(key)] = value
        else:
            plain[str(key)] = str(value)
    return plain


@dataclass(frozen=True, slots=True)
class ErrorPayload:
    """What gets logged for a failed invocation."""

    category: str
    status_code: int
    message: str
    context: Mapping[str, Any] = field(default_factory=dict)


class CliError(RuntimeError):
    """A failure that ends the command with a category-specific exit status."""

    def __init__(
        self,
        message: str,
        *,
        category: str = "runtime",
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if category not in STATUS_CODES:
            raise ValueError(f"unknown CLI error category: {category!r}")
        super().__init__(message)
        self.payload = ErrorPayload(
            category=category,
            status_code=STATUS_CODES[category],
            message=message,
            context=_plain_context(context),
        )

    @property
    def category(self) -> str:
        return self.payload.category

    @property
    def status_code(self) -> int:
        return self.payload.status_code


def log_cli_error(error: CliError, *, logger: Optional[logging.Logger] = None) -> None:
    """Log ``error`` with its category, exit status and context as extras."""

    payload = error.payload
    (logger or _logger).error(
        payload.message,
        extra={
            "event": "cli.error",
            "category": payload.category,
            "status_code": payload.status_code,
            "context": dict(payload.context),
        },
        exc_info=error if error.__cause__ is not None else None,
    )
