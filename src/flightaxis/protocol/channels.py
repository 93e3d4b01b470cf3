"""Control inputs and the twelve-slot channel vector sent with ``ExchangeData``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

__all__ = [
    "CHANNEL_COUNT",
    "CHANNEL_LAYOUT",
    "NEUTRAL_VALUE",
    "SELECTED_CHANNELS_MASK",
    "ChannelVector",
    "ControlInput",
    "format_channel_value",
]


CHANNEL_COUNT = 12
NEUTRAL_VALUE = 0.5
# Every one of the twelve channels is driven by the controller.
SELECTED_CHANNELS_MASK = (1 << CHANNEL_COUNT) - 1

CHANNEL_LAYOUT: tuple[str, ...] = (
    "aileron",
    "elevator",
    "throttle",
    "rudder",
    "flaps",
    "gear",
)


@dataclass(frozen=True, slots=True)
class ControlInput:
    """Normalised control surface positions in ``[0, 1]``.

    The defaults describe an idle aircraft: throttle closed, sticks centred,
    flaps retracted and gear down.
    """

    aileron: float = NEUTRAL_VALUE
    elevator: float = NEUTRAL_VALUE
    throttle: float = 0.0
    rudder: float = NEUTRAL_VALUE
    flaps: float = 0.0
    gear: float = 0.0


def format_channel_value(value: float) -> str:
    """Render ``value`` with six significant digits in its shortest form."""

    return f"{float(value):g}"


class ChannelVector:
    """Validated, read-only sequence of exactly :data:`CHANNEL_COUNT` values."""

    __slots__ = ("_values",)

    def __init__(self, values: Sequence[float] | np.ndarray) -> None:
        array = np.asarray(values, dtype=float)
        if array.shape != (CHANNEL_COUNT,):
            raise ValueError(
                f"channel vector requires exactly {CHANNEL_COUNT} values, got shape {array.shape}"
            )
        if not np.all(np.isfinite(array)):
            raise ValueError("channel values must be finite numbers")
        clipped = np.clip(array, 0.0, 1.0)
        clipped.setflags(write=False)
        self._values = clipped

    @classmethod
    def neutral(cls) -> "ChannelVector":
        return cls(np.full(CHANNEL_COUNT, NEUTRAL_VALUE))

    @classmethod
    def from_input(cls, control: ControlInput) -> "ChannelVector":
        """Map ``control`` onto channels 0-5, leaving 6-11 neutral."""

        values = np.full(CHANNEL_COUNT, NEUTRAL_VALUE)
        for index, axis in enumerate(CHANNEL_LAYOUT):
            values[index] = getattr(control, axis)
        return cls(values)

    @property
    def values(self) -> np.ndarray:
        return self._values

    def __len__(self) -> int:
        return CHANNEL_COUNT

    def __iter__(self) -> Iterator[float]:
        return (float(value) for value in self._values)

    def __getitem__(self, index: int) -> float:
        return float(self._values[index])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChannelVector):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        joined = ", ".join(format_channel_value(value) for value in self)
        return f"ChannelVector([{joined}])"

    def to_payload(self) -> str:
        """Return the ``pControlInputs`` fragment embedded in ``ExchangeData``."""

        items = "".join(f"<item>{format_channel_value(value)}</item>" for value in self)
        return (
            "<pControlInputs>"
            f"<m-selectedChannels>{SELECTED_CHANNELS_MASK}</m-selectedChannels>"
            f"<m-channelValues-0to1>{items}</m-channelValues-0to1>"
            "</pControlInputs>"
        )
