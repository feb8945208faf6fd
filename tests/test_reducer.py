from __future__ import annotations

from datetime import datetime, timedelta

from fencewatch.ingestion.normalize import parse_snapshot
from fencewatch.models.records import Severity
from fencewatch.models.sensors import SensorState
from fencewatch.models.snapshot import PartialSnapshot
from fencewatch.models.state import SystemState
from fencewatch.state.reducer import apply_snapshot, format_clock, reduce


def _at(second: int = 0) -> datetime:
    return datetime(2026, 3, 14, 21, 30, 0) + timedelta(seconds=second)


def _reduce_all(*payloads: dict) -> SystemState:
    state = SystemState.initial()
    for second, payload in enumerate(payloads):
        state = reduce(state, parse_snapshot(payload), observed_at=_at(second))
    return state


def test_partial_snapshot_keeps_absent_fields() -> None:
    state = _reduce_all({"temperature": 21.5, "fenceActive": True}, {"humidity": 40})

    assert state.temperature == 21.5
    assert state.humidity == 40.0
    assert state.fence_active is True


def test_history_point_coalesces_to_previous_then_zero() -> None:
    state = _reduce_all({"temperature": 21.5, "smoke": 120}, {"humidity": 40})

    first, second = state.history.points
    assert (first.temp, first.hum, first.smoke, first.soil, first.rain) == (21.5, 0.0, 120.0, 0.0, 0.0)
    assert (second.temp, second.hum, second.smoke, second.soil, second.rain) == (21.5, 40.0, 120.0, 0.0, 0.0)
    assert second.time == "21:30:01"


def test_placeholder_values_do_not_overwrite() -> None:
    state = _reduce_all({"temperature": 18.0}, {"temperature": "--", "humidity": None})

    assert state.temperature == 18.0
    assert state.humidity is None
    assert state.history.points[-1].temp == 18.0


def test_empty_snapshot_only_appends_history_and_updates_timestamp() -> None:
    prev = _reduce_all({"online": True, "pir": "ACTIVE", "temperature": 20.0})
    result = apply_snapshot(prev, PartialSnapshot(), observed_at=_at(10))

    assert result.events == ()
    assert result.state.updated_at == _at(10)
    assert len(result.state.history) == len(prev.history) + 1
    assert result.state.log == prev.log
    excluded = {"updated_at", "history"}
    assert result.state.model_dump(exclude=excluded) == prev.model_dump(exclude=excluded)


def test_pir_trigger_logs_once_while_held() -> None:
    state = _reduce_all({"pir": "ACTIVE"}, {"pir": "ACTIVE"})

    assert state.pir == SensorState.ACTIVE
    assert len(state.log) == 1
    entry = state.log.entries[0]
    assert entry.message == "Motion Sensor Triggered (PIR)"
    assert entry.severity == Severity.ALERT
    assert entry.timestamp == "21:30:00"


def test_retrigger_right_after_release_is_a_consecutive_duplicate() -> None:
    state = _reduce_all({"pir": "ACTIVE"}, {"pir": "INACTIVE"}, {"pir": "ACTIVE"})

    assert state.log.messages() == ["Motion Sensor Triggered (PIR)"]


def test_connection_events_are_logged_newest_first() -> None:
    state = _reduce_all({"online": True}, {"online": False})

    assert state.log.messages() == ["ESP32 Connection Lost", "ESP32 Connection Established"]


def test_history_is_bounded_by_state_capacity() -> None:
    state = SystemState.initial(history_capacity=30)
    for second in range(31):
        state = reduce(state, parse_snapshot({"temperature": second}), observed_at=_at(second))

    assert len(state.history) == 30
    assert state.history.points[0].temp == 1.0
    assert state.history.points[-1].temp == 30.0


def test_reduction_is_deterministic_and_leaves_input_untouched() -> None:
    prev = SystemState.initial()
    raw = parse_snapshot({"vibration": 1, "online": True})

    first = apply_snapshot(prev, raw, observed_at=_at())
    second = apply_snapshot(prev, raw, observed_at=_at())

    assert first == second
    assert prev == SystemState.initial()


def test_clock_label_is_24_hour() -> None:
    assert format_clock(datetime(2026, 1, 1, 13, 5, 9)) == "13:05:09"
