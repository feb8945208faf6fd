"""Data models for fencewatch."""

from fencewatch.models._base import FenceBaseModel
from fencewatch.models.records import HistoryPoint, LogEntry, Severity
from fencewatch.models.sensors import SensorField, SensorState, coerce_sensor_state
from fencewatch.models.snapshot import PartialSnapshot
from fencewatch.models.state import SystemState
from fencewatch.models.capture import AlarmTag, ArtifactRef, CaptureRequest, SinkKind

__all__ = [
    "AlarmTag",
    "ArtifactRef",
    "CaptureRequest",
    "FenceBaseModel",
    "HistoryPoint",
    "LogEntry",
    "PartialSnapshot",
    "SensorField",
    "SensorState",
    "Severity",
    "SinkKind",
    "SystemState",
    "coerce_sensor_state",
]
