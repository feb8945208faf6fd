"""Fixed-capacity sliding window of environmental samples."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from fencewatch._constants import HISTORY_CAPACITY
from fencewatch.models.records import HistoryPoint


class HistoryBuffer(BaseModel):
    """Insertion-ordered, persistent FIFO window of :class:`HistoryPoint`.

    ``append`` never mutates the receiver; readers holding an older buffer
    keep seeing the points they had.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    capacity: int = Field(default=HISTORY_CAPACITY, ge=1)
    points: tuple[HistoryPoint, ...] = ()

    def append(self, point: HistoryPoint) -> HistoryBuffer:
        """Return a new buffer with *point* appended, evicting the oldest at capacity."""
        points = (*self.points, point)
        if len(points) > self.capacity:
            points = points[-self.capacity :]
        return self.model_copy(update={"points": points})

    @property
    def latest(self) -> HistoryPoint | None:
        return self.points[-1] if self.points else None

    def __len__(self) -> int:
        return len(self.points)
