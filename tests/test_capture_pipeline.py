from __future__ import annotations

from datetime import datetime
from pathlib import Path

import cv2
import numpy as np
import pytest

from fencewatch.capture.pipeline import CapturePipeline
from fencewatch.capture.sinks import DirectoryHandle, DownloadsDelivery
from fencewatch.exceptions import FallbackDeliveryError, NoFrameSourceError
from fencewatch.models.capture import AlarmTag, ArtifactRef, CaptureRequest, SinkKind

_WHEN = datetime(2026, 5, 1, 12, 0, 0)


class _DummyFrameSource:
    def __init__(self, *, active: bool = True) -> None:
        self.active = active
        self.grabs = 0

    @property
    def is_active(self) -> bool:
        return self.active

    def start(self) -> bool:
        self.active = True
        return True

    def stop(self) -> bool:
        self.active = False
        return True

    def grab(self) -> np.ndarray:
        self.grabs += 1
        return np.full((120, 160, 3), 40, dtype=np.uint8)


class _FailingFallback:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def deliver(self, filename: str, payload: bytes, *, tag: AlarmTag, captured_at: datetime) -> ArtifactRef:
        self.calls.append(filename)
        raise FallbackDeliveryError("downloads blocked", tag=tag, filename=filename)


def _request(tag: AlarmTag = AlarmTag.MOTION) -> CaptureRequest:
    return CaptureRequest(tag=tag, requested_at_ms=0)


def _pipeline(downloads: Path, directory: DirectoryHandle | None = None) -> CapturePipeline:
    return CapturePipeline(fallback=DownloadsDelivery(downloads), directory=directory, clock=lambda: _WHEN)


def test_without_directory_only_fallback_is_used(tmp_path: Path) -> None:
    downloads = tmp_path / "downloads"

    artifact = _pipeline(downloads).capture(_request(), _DummyFrameSource())

    assert artifact.sink == SinkKind.FALLBACK
    assert artifact.path == downloads / "Image_Detected_Motion.png"
    assert artifact.captured_at == _WHEN
    decoded = cv2.imread(str(artifact.path), cv2.IMREAD_COLOR)
    assert decoded is not None
    assert decoded.shape == (120, 160, 3)


def test_primary_directory_is_preferred(tmp_path: Path) -> None:
    evidence = tmp_path / "evidence"
    evidence.mkdir()
    downloads = tmp_path / "downloads"

    artifact = _pipeline(downloads, DirectoryHandle(evidence)).capture(_request(AlarmTag.SMOKE), _DummyFrameSource())

    assert artifact.sink == SinkKind.PRIMARY
    assert artifact.path == evidence / "Image_Detected_Smoke.png"
    assert not downloads.exists()


def test_revoked_directory_falls_back(tmp_path: Path) -> None:
    evidence = tmp_path / "evidence"
    evidence.mkdir()
    handle = DirectoryHandle(evidence)
    pipeline = _pipeline(tmp_path / "downloads", handle)
    handle.revoke()

    artifact = pipeline.capture(_request(), _DummyFrameSource())

    assert artifact.sink == SinkKind.FALLBACK
    assert list(evidence.iterdir()) == []


def test_directory_can_be_linked_later(tmp_path: Path) -> None:
    evidence = tmp_path / "evidence"
    evidence.mkdir()
    pipeline = _pipeline(tmp_path / "downloads")

    pipeline.set_directory(DirectoryHandle(evidence))
    assert pipeline.capture(_request(), _DummyFrameSource()).sink == SinkKind.PRIMARY

    pipeline.set_directory(None)
    assert pipeline.capture(_request(), _DummyFrameSource()).sink == SinkKind.FALLBACK


def test_inactive_source_skips_capture(tmp_path: Path) -> None:
    source = _DummyFrameSource(active=False)

    with pytest.raises(NoFrameSourceError) as excinfo:
        _pipeline(tmp_path / "downloads").capture(_request(), source)

    assert excinfo.value.tag == AlarmTag.MOTION
    assert source.grabs == 0
    assert not (tmp_path / "downloads").exists()


def test_fallback_failure_is_terminal() -> None:
    fallback = _FailingFallback()
    pipeline = CapturePipeline(fallback=fallback, clock=lambda: _WHEN)

    with pytest.raises(FallbackDeliveryError):
        pipeline.capture(_request(AlarmTag.VIBRATION), _DummyFrameSource())

    assert fallback.calls == ["Image_Detected_Vibration.png"]
