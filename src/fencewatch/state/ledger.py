"""Bounded, most-recent-first event log with consecutive-duplicate suppression."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from fencewatch._constants import LOG_CAPACITY
from fencewatch.models.records import LogEntry, Severity


class LogLedger(BaseModel):
    """Persistent event log, newest entry first.

    Recording a message identical to the current front entry is a no-op.
    The comparison is on the message text only: severity and timestamp are
    ignored, so a sensor bouncing at sub-second resolution does not spam the
    log. Length is capped at ``capacity`` by dropping the oldest entries.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    capacity: int = Field(default=LOG_CAPACITY, ge=1)
    entries: tuple[LogEntry, ...] = ()

    def record(self, message: str, severity: Severity, *, timestamp: str) -> LogLedger:
        """Return a ledger with the entry prepended, or ``self`` if it repeats the front."""
        if self.entries and self.entries[0].message == message:
            return self
        entry = LogEntry(timestamp=timestamp, message=message, severity=severity)
        entries = (entry, *self.entries)[: self.capacity]
        return self.model_copy(update={"entries": entries})

    @property
    def latest(self) -> LogEntry | None:
        return self.entries[0] if self.entries else None

    def messages(self) -> list[str]:
        return [entry.message for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)
