"""fencewatch - Perimeter fence monitor for ESP32 telemetry with alarm-driven evidence capture."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fencewatch")
except PackageNotFoundError:
    __version__ = "0+local"
from fencewatch.config import FenceWatchConfig
from fencewatch.exceptions import (
    CameraError,
    CaptureError,
    FallbackDeliveryError,
    FenceWatchConfigError,
    FenceWatchError,
    MalformedSnapshotError,
    NoFrameSourceError,
    PrimarySinkError,
)
from fencewatch.models import (
    AlarmTag,
    ArtifactRef,
    CaptureRequest,
    HistoryPoint,
    LogEntry,
    PartialSnapshot,
    SensorState,
    Severity,
    SinkKind,
    SystemState,
)
from fencewatch.state.history import HistoryBuffer
from fencewatch.state.ledger import LogLedger
from fencewatch.state.reducer import Reduction, apply_snapshot, reduce
from fencewatch.state.transitions import DetectedEvent, detect_transitions
from fencewatch.alarms import AlarmDispatcher, CooldownScope, evaluate_alarms
from fencewatch.capture import (
    Camera,
    CapturePipeline,
    DirectoryHandle,
    DirectorySink,
    DownloadsDelivery,
    FrameSource,
)
from fencewatch.ingestion.normalize import coerce_snapshot, parse_snapshot
from fencewatch.monitor import FenceMonitor

__all__ = [
    "__version__",
    "AlarmDispatcher",
    "AlarmTag",
    "ArtifactRef",
    "Camera",
    "CameraError",
    "CaptureError",
    "CapturePipeline",
    "CaptureRequest",
    "CooldownScope",
    "DetectedEvent",
    "DirectoryHandle",
    "DirectorySink",
    "DownloadsDelivery",
    "FallbackDeliveryError",
    "FenceMonitor",
    "FenceWatchConfig",
    "FenceWatchConfigError",
    "FenceWatchError",
    "FrameSource",
    "HistoryBuffer",
    "HistoryPoint",
    "LogEntry",
    "LogLedger",
    "MalformedSnapshotError",
    "NoFrameSourceError",
    "PartialSnapshot",
    "PrimarySinkError",
    "Reduction",
    "SensorState",
    "Severity",
    "SinkKind",
    "SystemState",
    "apply_snapshot",
    "coerce_snapshot",
    "detect_transitions",
    "evaluate_alarms",
    "parse_snapshot",
    "reduce",
]
