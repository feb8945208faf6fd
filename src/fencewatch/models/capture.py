"""Alarm capture requests and the artifacts they produce."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from pathlib import Path

from fencewatch.models._base import FenceBaseModel


class AlarmTag(StrEnum):
    """Kind of alarm an evidence capture was taken for.

    The value is burned into the image and used in the artifact filename.
    """

    VIBRATION = "Vibration"
    FENCE_GATE = "Fence_Gate"
    CONTROL_BOX = "Control_Box"
    MOTION = "Motion"
    SMOKE = "Smoke"
    HIGH_CURRENT = "High_Current"


class SinkKind(StrEnum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


class CaptureRequest(FenceBaseModel):
    """Request to capture one annotated still for an alarm."""

    tag: AlarmTag
    requested_at_ms: int


class ArtifactRef(FenceBaseModel):
    """Reference to a persisted evidence image."""

    path: Path
    filename: str
    sink: SinkKind
    tag: AlarmTag
    captured_at: datetime
    size_bytes: int
    sha256: str
