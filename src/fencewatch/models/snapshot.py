"""Partial device snapshot model."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from fencewatch.models._base import FenceBaseModel
from fencewatch.models.sensors import SensorField


class PartialSnapshot(FenceBaseModel):
    """One arrival of (possibly partial) device readings.

    Every field is optional. A field left at ``None`` was not present in the
    payload and must not overwrite the previous state; placeholders are
    pruned by the base model before validation.
    """

    # System status
    online: bool | None = None
    uptime: str | None = None

    # Fence control & power (relay + CT sensor)
    fence_active: bool | None = None
    fence_current: float | None = None
    camera_feed_url: str | None = None

    # Security sensors
    pir: SensorField | None = None
    vibration: SensorField | None = None
    pole_tamper: SensorField | None = None
    box_tamper: SensorField | None = None

    # Environment
    smoke: float | None = None
    rain: float | None = None
    soil_moisture: float | None = None
    light_level: float | None = None
    temperature: float | None = None
    humidity: float | None = None
    pressure: float | None = None

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original payload as received."""

    def patch(self) -> dict[str, Any]:
        """Fields actually carried by this snapshot, keyed by field name."""
        patch: dict[str, Any] = {}
        for name in self.model_fields_set:
            if name == "raw":
                continue
            value = getattr(self, name)
            if value is not None:
                patch[name] = value
        return patch

    @property
    def is_empty(self) -> bool:
        """Whether the snapshot carries no usable field."""
        return not self.patch()
