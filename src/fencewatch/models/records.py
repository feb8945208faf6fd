"""Records owned by the derived collections (history samples, log entries)."""

from __future__ import annotations

from enum import StrEnum

from fencewatch.models._base import FenceBaseModel


class Severity(StrEnum):
    """Severity of an event log entry."""

    INFO = "info"
    ALERT = "alert"
    ERROR = "error"


class HistoryPoint(FenceBaseModel):
    """Coalesced environmental sample at one logical tick.

    ``time`` is the wall clock (``HH:MM:SS``) of the reduction that produced
    the point. Metrics fall back to the previous value, then to ``0``.
    """

    time: str
    temp: float = 0.0
    hum: float = 0.0
    soil: float = 0.0
    rain: float = 0.0
    smoke: float = 0.0


class LogEntry(FenceBaseModel):
    """A single human-readable event in the session log."""

    timestamp: str
    message: str
    severity: Severity
