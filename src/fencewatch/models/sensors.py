"""Binary sensor state."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BeforeValidator

_ACTIVE_WORDS = frozenset({"active", "on", "high", "triggered", "open", "true", "1"})
_INACTIVE_WORDS = frozenset({"inactive", "off", "low", "idle", "closed", "false", "0"})


class SensorState(StrEnum):
    """Tri-state reading of a binary physical sensor.

    ``UNKNOWN`` means the value is momentarily unavailable (device offline or
    field never populated); it is never conflated with ``INACTIVE``.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> SensorState:
        return coerce_sensor_state(value)


def coerce_sensor_state(value: Any) -> SensorState:
    """Map a raw device reading to a :class:`SensorState`.

    Booleans and ``1``/``0`` map to ACTIVE/INACTIVE, as do the usual words
    (case-insensitive). Anything else resolves to ``UNKNOWN``.
    """
    if isinstance(value, SensorState):
        return value
    if isinstance(value, bool):
        return SensorState.ACTIVE if value else SensorState.INACTIVE
    if isinstance(value, (int, float)):
        if value == 1:
            return SensorState.ACTIVE
        if value == 0:
            return SensorState.INACTIVE
        return SensorState.UNKNOWN
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _ACTIVE_WORDS:
            return SensorState.ACTIVE
        if word in _INACTIVE_WORDS:
            return SensorState.INACTIVE
    return SensorState.UNKNOWN


SensorField = Annotated[SensorState, BeforeValidator(coerce_sensor_state)]
"""Annotated type that coerces raw device readings to :class:`SensorState`."""
