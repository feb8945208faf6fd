"""Deterministic snapshot reducer.

This is the only component allowed to produce a new :class:`SystemState`.
It never triggers captures; alarm dispatch runs afterwards against the
returned state.
"""

from __future__ import annotations

from datetime import datetime
from typing import NamedTuple

from fencewatch._constants import CLOCK_FORMAT
from fencewatch.models.records import HistoryPoint
from fencewatch.models.snapshot import PartialSnapshot
from fencewatch.models.state import SystemState
from fencewatch.state.transitions import DetectedEvent, detect_transitions


class Reduction(NamedTuple):
    state: SystemState
    events: tuple[DetectedEvent, ...]


def _local_now() -> datetime:
    return datetime.now().astimezone()


def format_clock(value: datetime) -> str:
    """Wall-clock label used for history points and log entries."""
    return value.strftime(CLOCK_FORMAT)


def _metric(value: float | None) -> float:
    return 0.0 if value is None else float(value)


def _history_point(merged: SystemState, *, label: str) -> HistoryPoint:
    # ``merged`` already holds raw-or-previous for every metric.
    return HistoryPoint(
        time=label,
        temp=_metric(merged.temperature),
        hum=_metric(merged.humidity),
        soil=_metric(merged.soil_moisture),
        rain=_metric(merged.rain),
        smoke=_metric(merged.smoke),
    )


def apply_snapshot(
    prev: SystemState,
    raw: PartialSnapshot,
    *,
    observed_at: datetime | None = None,
) -> Reduction:
    """Fold *raw* into *prev* and report the events it caused.

    Steps, as one transaction:

    1. partial merge: fields present in *raw* win, absent ones are kept;
    2. append a coalesced :class:`HistoryPoint`;
    3. detect transitions (``prev`` vs merged) and record each in the log,
       sequentially, so consecutive-duplicate suppression applies within a
       single reduction too;
    4. return the merged state with the new history, log and ``updated_at``.
    """
    observed = observed_at or _local_now()
    label = format_clock(observed)

    merged = prev.model_copy(update=raw.patch())

    history = prev.history.append(_history_point(merged, label=label))

    events = tuple(detect_transitions(prev, merged))
    log = prev.log
    for event in events:
        log = log.record(event.message, event.severity, timestamp=label)

    state = merged.model_copy(update={"history": history, "log": log, "updated_at": observed})
    return Reduction(state=state, events=events)


def reduce(
    prev: SystemState,
    raw: PartialSnapshot,
    *,
    observed_at: datetime | None = None,
) -> SystemState:
    """Return the next state for *raw* (see :func:`apply_snapshot`)."""
    return apply_snapshot(prev, raw, observed_at=observed_at).state
