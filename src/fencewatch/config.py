"""Runtime configuration for fencewatch."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fencewatch._constants import (
    CAPTURE_COOLDOWN_MS,
    CURRENT_ALARM_THRESHOLD,
    HISTORY_CAPACITY,
    LOG_CAPACITY,
    SMOKE_ALARM_THRESHOLD,
)
from fencewatch.exceptions import FenceWatchConfigError

COOLDOWN_SCOPES: frozenset[str] = frozenset({"global", "per_kind"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class FenceWatchConfig:
    """Monitor configuration.

    Parameters
    ----------
    history_capacity : int
        Maximum number of metric samples kept for trend display.
    log_capacity : int
        Maximum number of event log entries kept (newest first).
    capture_cooldown_ms : int
        Minimum time between two capture batches.
    cooldown_scope : str
        ``"global"`` (one cooldown shared by every alarm kind) or
        ``"per_kind"`` (each alarm tag rate-limited on its own).
    smoke_threshold : float
        Smoke readings strictly above this raise a ``Smoke`` alarm.
    current_threshold : float
        Fence current strictly above this raises a ``High_Current`` alarm.
    snapshot_queue_size : int
        Bound of the ingestion queue feeding the reducer.
    capture_dir : str or None
        Directory used as the primary evidence sink. ``None`` means every
        artifact goes through the fallback delivery channel.
    downloads_dir : str
        Folder used by the fallback delivery channel.
    camera_device : int
        OpenCV device index of the evidence camera.
    camera_width, camera_height : int
        Requested capture resolution.
    mqtt_host : str or None
        Broker carrying device snapshots. ``None`` disables the MQTT source.
    mqtt_port : int
        Broker port.
    mqtt_topic : str
        Topic the device publishes its JSON snapshots on.
    mqtt_username, mqtt_password : str or None
        Optional broker credentials.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Enable TLS towards the broker.
    """

    history_capacity: int = HISTORY_CAPACITY
    log_capacity: int = LOG_CAPACITY
    capture_cooldown_ms: int = CAPTURE_COOLDOWN_MS
    cooldown_scope: str = "global"
    smoke_threshold: float = SMOKE_ALARM_THRESHOLD
    current_threshold: float = CURRENT_ALARM_THRESHOLD
    snapshot_queue_size: int = 256
    capture_dir: str | None = None
    downloads_dir: str = "~/Downloads"
    camera_device: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_topic: str = "fencewatch/esp32/state"
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_keepalive: int = 60
    mqtt_tls: bool = False

    def __post_init__(self) -> None:
        if self.history_capacity < 1:
            raise FenceWatchConfigError("history_capacity must be >= 1")
        if self.log_capacity < 1:
            raise FenceWatchConfigError("log_capacity must be >= 1")
        if self.capture_cooldown_ms < 0:
            raise FenceWatchConfigError("capture_cooldown_ms must be >= 0")
        if self.snapshot_queue_size < 1:
            raise FenceWatchConfigError("snapshot_queue_size must be >= 1")
        if self.cooldown_scope not in COOLDOWN_SCOPES:
            allowed = ", ".join(sorted(COOLDOWN_SCOPES))
            raise FenceWatchConfigError(f"invalid cooldown_scope '{self.cooldown_scope}' (allowed: {allowed})")

    @classmethod
    def from_env(cls, **overrides: Any) -> FenceWatchConfig:
        """Create configuration from ``FENCEWATCH_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "FENCEWATCH_COOLDOWN_SCOPE": "cooldown_scope",
            "FENCEWATCH_CAPTURE_DIR": "capture_dir",
            "FENCEWATCH_DOWNLOADS_DIR": "downloads_dir",
            "FENCEWATCH_MQTT_HOST": "mqtt_host",
            "FENCEWATCH_MQTT_TOPIC": "mqtt_topic",
            "FENCEWATCH_MQTT_USERNAME": "mqtt_username",
            "FENCEWATCH_MQTT_PASSWORD": "mqtt_password",
        }
        _ENV_INT_MAP = {
            "FENCEWATCH_HISTORY_CAPACITY": "history_capacity",
            "FENCEWATCH_LOG_CAPACITY": "log_capacity",
            "FENCEWATCH_CAPTURE_COOLDOWN_MS": "capture_cooldown_ms",
            "FENCEWATCH_SNAPSHOT_QUEUE_SIZE": "snapshot_queue_size",
            "FENCEWATCH_CAMERA_DEVICE": "camera_device",
            "FENCEWATCH_CAMERA_WIDTH": "camera_width",
            "FENCEWATCH_CAMERA_HEIGHT": "camera_height",
            "FENCEWATCH_MQTT_PORT": "mqtt_port",
            "FENCEWATCH_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        _ENV_FLOAT_MAP = {
            "FENCEWATCH_SMOKE_THRESHOLD": "smoke_threshold",
            "FENCEWATCH_CURRENT_THRESHOLD": "current_threshold",
        }

        config_kwargs: dict[str, Any] = {}
        try:
            for env_key, field_name in _ENV_STR_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = val.strip() or None
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
        except ValueError as exc:
            raise FenceWatchConfigError(f"invalid numeric environment value: {exc}") from exc

        # Non-optional string fields must not collapse to None.
        for field_name in ("cooldown_scope", "downloads_dir", "mqtt_topic"):
            if field_name in config_kwargs and config_kwargs[field_name] is None:
                config_kwargs.pop(field_name)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("FENCEWATCH_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
