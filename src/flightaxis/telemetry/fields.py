"""Telemetry field table and the vehicle state record it populates."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

__all__ = [
    "DEFAULT_FIELDS",
    "TelemetryField",
    "VehicleState",
    "validate_fields",
]


_TAG_NAME = re.compile(r"^[^<>/\s]+$")
_SLOT_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


@dataclass(frozen=True, slots=True)
class TelemetryField:
    """Map the XML tag ``name`` onto the state attribute ``slot``."""

    name: str
    slot: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not _TAG_NAME.match(self.name):
            raise ValueError(f"invalid telemetry tag name: {self.name!r}")
        if not isinstance(self.slot, str) or not _SLOT_NAME.match(self.slot):
            raise ValueError(f"invalid telemetry slot name: {self.slot!r}")


def _table(*pairs: tuple[str, str]) -> tuple[TelemetryField, ...]:
    return tuple(TelemetryField(name, slot) for name, slot in pairs)


DEFAULT_FIELDS: tuple[TelemetryField, ...] = _table(
    ("m-currentPhysicsTime_SEC", "physics_time_s"),
    ("m-currentPhysicsSpeedMultiplier", "physics_speed_multiplier"),
    ("m-airspeed_MPS", "airspeed_mps"),
    ("m-altitudeASL_MTR", "altitude_asl_m"),
    ("m-altitudeAGL_MTR", "altitude_agl_m"),
    ("m-groundspeed_MPS", "groundspeed_mps"),
    ("m-pitchRate_DEGpSEC", "pitch_rate_dps"),
    ("m-rollRate_DEGpSEC", "roll_rate_dps"),
    ("m-yawRate_DEGpSEC", "yaw_rate_dps"),
    ("m-azimuth_DEG", "azimuth_deg"),
    ("m-inclination_DEG", "inclination_deg"),
    ("m-roll_DEG", "roll_deg"),
    ("m-orientationQuaternion_X", "orientation_x"),
    ("m-orientationQuaternion_Y", "orientation_y"),
    ("m-orientationQuaternion_Z", "orientation_z"),
    ("m-orientationQuaternion_W", "orientation_w"),
    ("m-aircraftPositionX_MTR", "position_x_m"),
    ("m-aircraftPositionY_MTR", "position_y_m"),
    ("m-velocityWorldU_MPS", "velocity_world_u_mps"),
    ("m-velocityWorldV_MPS", "velocity_world_v_mps"),
    ("m-velocityWorldW_MPS", "velocity_world_w_mps"),
    ("m-velocityBodyU_MPS", "velocity_body_u_mps"),
    ("m-velocityBodyV_MPS", "velocity_body_v_mps"),
    ("m-velocityBodyW_MPS", "velocity_body_w_mps"),
    ("m-accelerationWorldAX_MPS2", "acceleration_world_x_mps2"),
    ("m-accelerationWorldAY_MPS2", "acceleration_world_y_mps2"),
    ("m-accelerationWorldAZ_MPS2", "acceleration_world_z_mps2"),
    ("m-accelerationBodyAX_MPS2", "acceleration_body_x_mps2"),
    ("m-accelerationBodyAY_MPS2", "acceleration_body_y_mps2"),
    ("m-accelerationBodyAZ_MPS2", "acceleration_body_z_mps2"),
    ("m-windX_MPS", "wind_x_mps"),
    ("m-windY_MPS", "wind_y_mps"),
    ("m-windZ_MPS", "wind_z_mps"),
    ("m-propRPM", "prop_rpm"),
    ("m-heliMainRotorRPM", "heli_main_rotor_rpm"),
    ("m-batteryVoltage_VOLTS", "battery_voltage_v"),
    ("m-batteryCurrentDraw_AMPS", "battery_current_a"),
    ("m-batteryRemainingCapacity_MAH", "battery_remaining_mah"),
    ("m-fuelRemaining_OZ", "fuel_remaining_oz"),
    ("m-isLocked", "is_locked"),
    ("m-hasLostComponents", "has_lost_components"),
    ("m-anEngineIsRunning", "engine_running"),
    ("m-isTouchingGround", "touching_ground"),
    ("m-flightAxisControllerIsActive", "controller_active"),
    ("m-resetButtonHasBeenPressed", "reset_pressed"),
)


def validate_fields(fields: Iterable[TelemetryField]) -> tuple[TelemetryField, ...]:
    """Return ``fields`` as a tuple, rejecting duplicate names or slots."""

    table = tuple(fields)
    seen_names: set[str] = set()
    seen_slots: set[str] = set()
    for field in table:
        if not isinstance(field, TelemetryField):
            raise ValueError(f"expected TelemetryField, got {field!r}")
        if field.name in seen_names:
            raise ValueError(f"duplicate telemetry field name: {field.name!r}")
        if field.slot in seen_slots:
            raise ValueError(f"duplicate telemetry slot: {field.slot!r}")
        seen_names.add(field.name)
        seen_slots.add(field.slot)
    return table


class VehicleState(Mapping[str, float]):
    """Last known telemetry values keyed by tag name.

    Values start at ``0.0`` and change only through
    :meth:`~flightaxis.telemetry.extractor.TelemetryExtractor.extract`, which
    applies a whole reply at once.  Slots are also exposed as attributes, so
    ``state["m-airspeed_MPS"]`` and ``state.airspeed_mps`` are equivalent.
    """

    __slots__ = ("_fields", "_slots", "_values", "_revision")

    def __init__(self, fields: Iterable[TelemetryField] = DEFAULT_FIELDS) -> None:
        table = validate_fields(fields)
        self._fields = table
        self._slots = {field.slot: field.name for field in table}
        self._values = {field.name: 0.0 for field in table}
        self._revision = 0

    @property
    def fields(self) -> tuple[TelemetryField, ...]:
        return self._fields

    @property
    def revision(self) -> int:
        """Number of replies applied so far."""

        return self._revision

    def __getitem__(self, name: str) -> float:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, slot: str) -> float:
        try:
            name = object.__getattribute__(self, "_slots")[slot]
        except (AttributeError, KeyError):
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {slot!r}"
            ) from None
        return self._values[name]

    def __repr__(self) -> str:
        return f"VehicleState(revision={self._revision}, fields={len(self._values)})"

    def as_dict(self, *, by: str = "name") -> dict[str, float]:
        """Return a snapshot keyed by tag ``name`` or attribute ``slot``."""

        if by == "name":
            return dict(self._values)
        if by == "slot":
            return {field.slot: self._values[field.name] for field in self._fields}
        raise ValueError("by must be 'name' or 'slot'")

    def _apply(self, values: Mapping[str, Any]) -> None:
        updated = dict(self._values)
        for name, value in values.items():
            if name in updated:
                updated[name] = float(value)
        self._values = updated
        self._revision += 1
