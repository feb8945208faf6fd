"""Edge transition detection between consecutive system states.

Only rising edges of the binary security sensors are reported; a sensor
returning to ``INACTIVE`` is visible in the current status and is not
logged. The evaluation order is fixed because it determines the order in
which entries reach the log.
"""

from __future__ import annotations

from typing import NamedTuple

from fencewatch._constants import (
    MSG_BOX_TAMPER,
    MSG_CONNECTED,
    MSG_DISCONNECTED,
    MSG_FENCE_ARMED,
    MSG_FENCE_DISARMED,
    MSG_MOTION,
    MSG_POLE_TAMPER,
    MSG_VIBRATION,
)
from fencewatch.models.records import Severity
from fencewatch.models.sensors import SensorState
from fencewatch.models.state import SystemState


class DetectedEvent(NamedTuple):
    message: str
    severity: Severity


# (field, message, severity) for sensors where only the ACTIVE-going edge matters.
_RISING_EDGE_RULES: tuple[tuple[str, str, Severity], ...] = (
    ("pir", MSG_MOTION, Severity.ALERT),
    ("vibration", MSG_VIBRATION, Severity.ALERT),
    ("pole_tamper", MSG_POLE_TAMPER, Severity.ERROR),
    ("box_tamper", MSG_BOX_TAMPER, Severity.ERROR),
)


def _became_active(prev: SensorState, current: SensorState) -> bool:
    return current == SensorState.ACTIVE and prev != SensorState.ACTIVE


def detect_transitions(prev: SystemState, current: SystemState) -> list[DetectedEvent]:
    """Compare two states and return the semantic events between them, in order."""
    events: list[DetectedEvent] = []

    for field_name, message, severity in _RISING_EDGE_RULES:
        if _became_active(getattr(prev, field_name), getattr(current, field_name)):
            events.append(DetectedEvent(message, severity))

    # No baseline yet: the first reported power state is not a change.
    if (
        current.fence_active is not None
        and prev.fence_active is not None
        and current.fence_active != prev.fence_active
    ):
        message = MSG_FENCE_ARMED if current.fence_active else MSG_FENCE_DISARMED
        events.append(DetectedEvent(message, Severity.INFO))

    if current.online and not prev.online:
        events.append(DetectedEvent(MSG_CONNECTED, Severity.INFO))
    if not current.online and prev.online:
        events.append(DetectedEvent(MSG_DISCONNECTED, Severity.ERROR))

    return events
