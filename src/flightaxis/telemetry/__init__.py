"""Telemetry fields, vehicle state and reply extraction."""

from __future__ import annotations

from flightaxis.telemetry.extractor import (
    TelemetryExtractor,
    find_opening_tags,
    parse_scalar,
)
from flightaxis.telemetry.fields import (
    DEFAULT_FIELDS,
    TelemetryField,
    VehicleState,
    validate_fields,
)

__all__ = [
    "DEFAULT_FIELDS",
    "TelemetryExtractor",
    "TelemetryField",
    "VehicleState",
    "find_opening_tags",
    "parse_scalar",
    "validate_fields",
]
