"""Best-effort extraction of telemetry values from FlightAxis replies.

Replies are treated as untrusted flat text: they may be truncated at the read
buffer capacity, miss fields, or hold values that are not numbers.  For each
field the first literal ``<name>`` tag and the first ``</name>`` after it
delimit the value.  Anything that cannot be resolved becomes ``0.0``; no
error ever leaves this module.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from flightaxis.errors import ParseError
from flightaxis.telemetry.fields import (
    DEFAULT_FIELDS,
    TelemetryField,
    VehicleState,
    validate_fields,
)

__all__ = ["TelemetryExtractor", "find_opening_tags", "parse_scalar"]


logger = logging.getLogger(__name__)

_OPENING_TAG = re.compile(r"<([^<>/\s]+)>")
_DECIMAL_PREFIX = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_scalar(text: str) -> float:
    """Convert the text between two tags to a float.

    ``"true"`` and ``"false"`` map to ``1.0`` and ``0.0``.  Otherwise the
    leading decimal number is used, ignoring anything that trails it.
    Raises :class:`~flightaxis.errors.ParseError` when no number is present.
    """

    if text == "true":
        return 1.0
    if text == "false":
        return 0.0
    match = _DECIMAL_PREFIX.match(text)
    if match is None:
        raise ParseError(f"not a number: {text[:32]!r}")
    value = float(match.group(0))
    if value != value or value in (float("inf"), float("-inf")):
        raise ParseError(f"number out of range: {text[:32]!r}")
    return value


def find_opening_tags(document: str, names: Iterable[str]) -> dict[str, int]:
    """Return the offset just past the first ``<name>`` for each wanted name.

    The document is scanned once; names that never appear are omitted.
    """

    wanted = set(names)
    found: dict[str, int] = {}
    for match in _OPENING_TAG.finditer(document):
        name = match.group(1)
        if name in wanted and name not in found:
            found[name] = match.end()
            if len(found) == len(wanted):
                break
    return found


class TelemetryExtractor:
    """Map tagged reply values onto a :class:`VehicleState`."""

    def __init__(self, fields: Iterable[TelemetryField] = DEFAULT_FIELDS) -> None:
        self._fields = validate_fields(fields)

    @property
    def fields(self) -> tuple[TelemetryField, ...]:
        return self._fields

    def parse(self, reply: bytes | str) -> dict[str, float]:
        """Return a value for every field, ``0.0`` where none can be read."""

        if isinstance(reply, (bytes, bytearray)):
            document = reply.decode("utf-8", errors="replace")
        else:
            document = reply
        openings = find_opening_tags(document, (field.name for field in self._fields))
        values: dict[str, float] = {}
        malformed = 0
        for field in self._fields:
            start = openings.get(field.name)
            if start is None:
                values[field.name] = 0.0
                continue
            end = document.find(f"</{field.name}>", start)
            if end == -1:
                values[field.name] = 0.0
                continue
            try:
                values[field.name] = parse_scalar(document[start:end])
            except ParseError:
                malformed += 1
                values[field.name] = 0.0
        if malformed:
            logger.debug(
                "Telemetry reply held malformed values.",
                extra={"event": "telemetry.malformed_fields", "count": malformed},
            )
        return values

    def extract(self, reply: bytes | str, state: VehicleState) -> VehicleState:
        """Refresh ``state`` in place from ``reply`` and return it."""

        state._apply(self.parse(reply))
        return state
