"""Alarm predicates and the cooldown-gated capture dispatcher."""

from __future__ import annotations

import logging
import threading
from enum import StrEnum

from fencewatch._constants import CAPTURE_COOLDOWN_MS, CURRENT_ALARM_THRESHOLD, SMOKE_ALARM_THRESHOLD
from fencewatch.config import FenceWatchConfig
from fencewatch.models.capture import AlarmTag, CaptureRequest
from fencewatch.models.sensors import SensorState
from fencewatch.models.state import SystemState

_logger = logging.getLogger(__name__)


class CooldownScope(StrEnum):
    GLOBAL = "global"
    PER_KIND = "per_kind"


_SENSOR_ALARMS: tuple[tuple[str, AlarmTag], ...] = (
    ("vibration", AlarmTag.VIBRATION),
    ("pole_tamper", AlarmTag.FENCE_GATE),
    ("box_tamper", AlarmTag.CONTROL_BOX),
    ("pir", AlarmTag.MOTION),
)


def evaluate_alarms(
    state: SystemState,
    *,
    smoke_threshold: float = SMOKE_ALARM_THRESHOLD,
    current_threshold: float = CURRENT_ALARM_THRESHOLD,
) -> list[AlarmTag]:
    """Return every alarm currently asserted by *state*.

    Predicates are independent; no short-circuit. This is a level check on
    the current state, not an edge check.
    """
    tags = [tag for field_name, tag in _SENSOR_ALARMS if getattr(state, field_name) == SensorState.ACTIVE]
    if state.smoke is not None and state.smoke > smoke_threshold:
        tags.append(AlarmTag.SMOKE)
    if state.fence_current is not None and state.fence_current > current_threshold:
        tags.append(AlarmTag.HIGH_CURRENT)
    return tags


class AlarmDispatcher:
    """Turn asserted alarms into capture requests, rate limited by a cooldown.

    With the default ``GLOBAL`` scope a single timestamp gates every alarm
    kind: while ``now - last_capture_ms < cooldown_ms`` nothing is
    dispatched and the timestamp is left alone; otherwise every asserted
    alarm fires as one batch and the timestamp is set to ``now`` once.
    ``PER_KIND`` keeps one timestamp per :class:`AlarmTag` instead.

    Evaluation and stamping happen under a lock so concurrent callers can
    never both pass the gate for the same window.
    """

    def __init__(
        self,
        *,
        cooldown_ms: int = CAPTURE_COOLDOWN_MS,
        scope: CooldownScope | str = CooldownScope.GLOBAL,
        smoke_threshold: float = SMOKE_ALARM_THRESHOLD,
        current_threshold: float = CURRENT_ALARM_THRESHOLD,
    ) -> None:
        if cooldown_ms < 0:
            raise ValueError("cooldown_ms must be >= 0")
        self._cooldown_ms = int(cooldown_ms)
        self._scope = CooldownScope(scope)
        self._smoke_threshold = float(smoke_threshold)
        self._current_threshold = float(current_threshold)
        self._lock = threading.Lock()
        self._last_capture_ms: int | None = None
        self._last_by_tag: dict[AlarmTag, int] = {}

    @classmethod
    def from_config(cls, config: FenceWatchConfig) -> AlarmDispatcher:
        return cls(
            cooldown_ms=config.capture_cooldown_ms,
            scope=config.cooldown_scope,
            smoke_threshold=config.smoke_threshold,
            current_threshold=config.current_threshold,
        )

    @property
    def scope(self) -> CooldownScope:
        return self._scope

    @property
    def last_capture_ms(self) -> int | None:
        """Timestamp of the last dispatched batch (``None`` until the first)."""
        return self._last_capture_ms

    def _cooling_down(self, last_ms: int | None, now_ms: int) -> bool:
        return last_ms is not None and now_ms - last_ms < self._cooldown_ms

    def dispatch(self, state: SystemState, now_ms: int) -> list[CaptureRequest]:
        """Return the capture requests allowed for *state* at *now_ms*."""
        tags = evaluate_alarms(
            state,
            smoke_threshold=self._smoke_threshold,
            current_threshold=self._current_threshold,
        )
        if not tags:
            return []

        with self._lock:
            if self._scope == CooldownScope.GLOBAL:
                if self._cooling_down(self._last_capture_ms, now_ms):
                    _logger.debug("Capture suppressed by cooldown tags=%s", [str(tag) for tag in tags])
                    return []
                allowed = tags
            else:
                allowed = [tag for tag in tags if not self._cooling_down(self._last_by_tag.get(tag), now_ms)]
                if not allowed:
                    _logger.debug("Capture suppressed by per-kind cooldown tags=%s", [str(tag) for tag in tags])
                    return []
                for tag in allowed:
                    self._last_by_tag[tag] = now_ms

            self._last_capture_ms = now_ms

        _logger.debug("Dispatching captures tags=%s at=%s", [str(tag) for tag in allowed], now_ms)
        return [CaptureRequest(tag=tag, requested_at_ms=now_ms) for tag in allowed]

    def reset(self) -> None:
        """Forget every cooldown timestamp (next eligible state dispatches)."""
        with self._lock:
            self._last_capture_ms = None
            self._last_by_tag.clear()
