"""Session-wide system state."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from fencewatch._constants import HISTORY_CAPACITY, LOG_CAPACITY
from fencewatch.models._base import FenceBaseModel
from fencewatch.models.sensors import SensorField, SensorState
from fencewatch.state.history import HistoryBuffer
from fencewatch.state.ledger import LogLedger


class SystemState(FenceBaseModel):
    """Current device/environment status plus its derived collections.

    Instances are immutable: the reducer produces a new value for every
    snapshot and only reads the previous one for comparison.
    ``fence_active`` stays ``None`` until the device first reports it.
    """

    online: bool = False
    uptime: str | None = None

    fence_active: bool | None = None
    fence_current: float | None = None
    camera_feed_url: str | None = None

    pir: SensorField = SensorState.UNKNOWN
    vibration: SensorField = SensorState.UNKNOWN
    pole_tamper: SensorField = SensorState.UNKNOWN
    box_tamper: SensorField = SensorState.UNKNOWN

    smoke: float | None = None
    rain: float | None = None
    soil_moisture: float | None = None
    light_level: float | None = None
    temperature: float | None = None
    humidity: float | None = None
    pressure: float | None = None

    updated_at: datetime | None = None
    history: HistoryBuffer = Field(default_factory=HistoryBuffer)
    log: LogLedger = Field(default_factory=LogLedger)

    @classmethod
    def initial(
        cls,
        *,
        history_capacity: int = HISTORY_CAPACITY,
        log_capacity: int = LOG_CAPACITY,
    ) -> SystemState:
        """All-unknown baseline a session starts from."""
        return cls(
            history=HistoryBuffer(capacity=history_capacity),
            log=LogLedger(capacity=log_capacity),
        )
