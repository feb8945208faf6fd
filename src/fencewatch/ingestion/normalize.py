"""Normalization helpers.

Centralizes lenient parsing of device payloads into :class:`PartialSnapshot`.
Values that cannot be interpreted are dropped (treated as absent) so a single
bad reading never rejects the whole snapshot.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from pydantic.alias_generators import to_camel

from fencewatch.exceptions import MalformedSnapshotError
from fencewatch.models.sensors import SensorState, coerce_sensor_state
from fencewatch.models.snapshot import PartialSnapshot

_logger = logging.getLogger(__name__)


def is_meaningful(value: Any) -> bool:
    """Return True if the value should be included in a snapshot patch."""
    if value is None:
        return False
    if isinstance(value, str) and value.strip() in {"", "--"}:
        return False
    return not (isinstance(value, float) and math.isnan(value))


def safe_float(value: Any) -> float | None:
    if not is_meaningful(value) or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value in (0, 1):
            return bool(value)
        return None
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on", "online", "armed"}:
            return True
        if normalized in {"0", "false", "no", "n", "off", "offline", "disarmed"}:
            return False
    return None


def safe_str(value: Any) -> str | None:
    if not is_meaningful(value):
        return None
    text = str(value).strip()
    return text if text else None


def safe_sensor(value: Any) -> SensorState | None:
    if not is_meaningful(value):
        return None
    return coerce_sensor_state(value)


_BOOL_FIELDS = ("online", "fence_active")
_FLOAT_FIELDS = (
    "fence_current",
    "smoke",
    "rain",
    "soil_moisture",
    "light_level",
    "temperature",
    "humidity",
    "pressure",
)
_SENSOR_FIELDS = ("pir", "vibration", "pole_tamper", "box_tamper")
_STR_FIELDS = ("uptime", "camera_feed_url")

_COERCERS: dict[str, Callable[[Any], Any]] = {
    **{name: safe_bool for name in _BOOL_FIELDS},
    **{name: safe_float for name in _FLOAT_FIELDS},
    **{name: safe_sensor for name in _SENSOR_FIELDS},
    **{name: safe_str for name in _STR_FIELDS},
}

# Accept both the firmware's camelCase keys and snake_case field names.
_FIELD_BY_KEY: dict[str, str] = {
    **{name: name for name in _COERCERS},
    **{to_camel(name): name for name in _COERCERS},
}


def normalize_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Map known keys to field names and coerce their values.

    Unknown keys and uninterpretable values are dropped.
    """
    normalized: dict[str, Any] = {}
    for key, value in payload.items():
        field_name = _FIELD_BY_KEY.get(str(key))
        if field_name is None:
            continue
        coerced = _COERCERS[field_name](value)
        if coerced is None:
            if is_meaningful(value):
                _logger.debug("Dropping unusable value field=%s value=%r", field_name, value)
            continue
        normalized[field_name] = coerced
    return normalized


def parse_snapshot(payload: Any) -> PartialSnapshot:
    """Parse a decoded device payload into a :class:`PartialSnapshot`.

    Raises :class:`MalformedSnapshotError` when *payload* is not a mapping.
    A mapping without any usable field yields an empty snapshot.
    """
    if isinstance(payload, PartialSnapshot):
        return payload
    if not isinstance(payload, Mapping):
        raise MalformedSnapshotError(f"snapshot payload must be an object, got {type(payload).__name__}")

    snapshot = PartialSnapshot.model_validate({**normalize_payload(payload), "raw": dict(payload)})
    if snapshot.is_empty:
        _logger.debug("Snapshot carried no usable fields keys=%s", sorted(str(key) for key in payload))
    return snapshot


def coerce_snapshot(payload: Any) -> PartialSnapshot:
    """Lenient variant of :func:`parse_snapshot`: malformed input becomes empty."""
    try:
        return parse_snapshot(payload)
    except MalformedSnapshotError as exc:
        _logger.warning("Malformed snapshot treated as empty: %s", exc)
        return PartialSnapshot()
