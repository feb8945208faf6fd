from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import pytest

from fencewatch.capture.frames import FrameSource
from fencewatch.capture.sinks import DirectoryHandle
from fencewatch.config import FenceWatchConfig
from fencewatch.exceptions import CaptureError, FallbackDeliveryError, FenceWatchError, NoFrameSourceError
from fencewatch.models.capture import AlarmTag, ArtifactRef, CaptureRequest, SinkKind
from fencewatch.models.sensors import SensorState
from fencewatch.models.state import SystemState
from fencewatch.monitor import FenceMonitor


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 6, 1, 22, 0, 0).astimezone()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class _DummyFrameSource:
    def __init__(self) -> None:
        self.active = False

    @property
    def is_active(self) -> bool:
        return self.active

    def start(self) -> bool:
        started = not self.active
        self.active = True
        return started

    def stop(self) -> bool:
        stopped = self.active
        self.active = False
        return stopped

    def grab(self) -> np.ndarray:
        return np.zeros((4, 4, 3), dtype=np.uint8)


class _RecordingPipeline:
    def __init__(self, error: CaptureError | None = None) -> None:
        self.requests: list[CaptureRequest] = []
        self.directory: DirectoryHandle | None = None
        self.error = error

    def set_directory(self, handle: DirectoryHandle | None) -> None:
        self.directory = handle

    def capture(self, request: CaptureRequest, frame_source: FrameSource) -> ArtifactRef:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        filename = f"Image_Detected_{request.tag}.png"
        return ArtifactRef(
            path=Path("/evidence") / filename,
            filename=filename,
            sink=SinkKind.PRIMARY,
            tag=request.tag,
            captured_at=datetime(2026, 6, 1, 22, 0, 0),
            size_bytes=0,
            sha256="0" * 64,
        )


def _monitor(
    pipeline: _RecordingPipeline,
    clock: _Clock,
    **kwargs,
) -> tuple[FenceMonitor, _DummyFrameSource]:
    source = _DummyFrameSource()
    monitor = FenceMonitor(
        FenceWatchConfig(),
        frame_source=source,
        pipeline=pipeline,  # type: ignore[arg-type]
        clock=clock,
        **kwargs,
    )
    return monitor, source


@pytest.mark.asyncio
async def test_motion_scenario_captures_once_per_cooldown() -> None:
    pipeline = _RecordingPipeline()
    clock = _Clock()
    captured: list[ArtifactRef] = []
    monitor, _ = _monitor(pipeline, clock, on_capture=captured.append)

    async with monitor:
        monitor.start_camera()
        await monitor.submit({"online": True, "pir": "ACTIVE"})
        await monitor.wait_idle()
        clock.advance(2)
        await monitor.submit({"online": True, "pir": "ACTIVE"})
        await monitor.wait_idle()

        assert [request.tag for request in pipeline.requests] == [AlarmTag.MOTION]
        assert monitor.state.log.messages() == ["ESP32 Connection Established", "Motion Sensor Triggered (PIR)"]

        clock.advance(4)
        await monitor.submit({"pir": "ACTIVE"})
        await monitor.wait_idle()

    assert [request.tag for request in pipeline.requests] == [AlarmTag.MOTION, AlarmTag.MOTION]
    assert [artifact.tag for artifact in captured] == [AlarmTag.MOTION, AlarmTag.MOTION]
    assert pipeline.requests[1].requested_at_ms - pipeline.requests[0].requested_at_ms == 6000


@pytest.mark.asyncio
async def test_no_dispatch_while_camera_is_off() -> None:
    pipeline = _RecordingPipeline()
    clock = _Clock()
    monitor, _ = _monitor(pipeline, clock)

    async with monitor:
        await monitor.submit({"vibration": "ACTIVE"})
        await monitor.wait_idle()

        assert pipeline.requests == []
        assert monitor.dispatcher.last_capture_ms is None
        assert monitor.state.vibration == SensorState.ACTIVE

        monitor.start_camera()
        clock.advance(1)
        await monitor.submit({})
        await monitor.wait_idle()

    assert [request.tag for request in pipeline.requests] == [AlarmTag.VIBRATION]


@pytest.mark.asyncio
async def test_every_snapshot_is_published_in_order() -> None:
    clock = _Clock()
    seen: list[SystemState] = []
    monitor, _ = _monitor(_RecordingPipeline(), clock, on_state=seen.append)

    async with monitor:
        for temperature in (10, 11, 12):
            await monitor.submit({"temperature": temperature})
        await monitor.wait_idle()

    assert [state.temperature for state in seen] == [10.0, 11.0, 12.0]
    assert len(seen[-1].history) == 3


@pytest.mark.asyncio
async def test_failing_state_callback_does_not_stop_the_loop() -> None:
    calls: list[int] = []

    def _explode(state: SystemState) -> None:
        calls.append(len(state.history))
        raise RuntimeError("render failed")

    monitor, _ = _monitor(_RecordingPipeline(), _Clock(), on_state=_explode)

    async with monitor:
        await monitor.submit({"temperature": 1})
        await monitor.submit({"temperature": 2})
        await monitor.wait_idle()

        assert calls == [1, 2]
        assert monitor.state.temperature == 2.0


@pytest.mark.asyncio
async def test_malformed_payload_counts_as_empty_snapshot() -> None:
    monitor, _ = _monitor(_RecordingPipeline(), _Clock())

    async with monitor:
        assert monitor.submit_nowait("garbage")  # type: ignore[arg-type]
        await monitor.wait_idle()

        assert len(monitor.state.history) == 1
        assert len(monitor.state.log) == 0


@pytest.mark.asyncio
async def test_full_queue_drops_snapshot() -> None:
    source = _DummyFrameSource()
    monitor = FenceMonitor(
        FenceWatchConfig(snapshot_queue_size=1),
        frame_source=source,
        pipeline=_RecordingPipeline(),  # type: ignore[arg-type]
        clock=_Clock(),
    )

    async with monitor:
        assert monitor.submit_nowait({"temperature": 1})
        assert not monitor.submit_nowait({"temperature": 2})
        await monitor.wait_idle()

        assert monitor.state.temperature == 1.0


@pytest.mark.asyncio
async def test_capture_failure_is_reported_and_loop_continues() -> None:
    errors: list[tuple[CaptureRequest, CaptureError]] = []
    pipeline = _RecordingPipeline(error=FallbackDeliveryError("downloads blocked", tag=AlarmTag.SMOKE))
    clock = _Clock()
    monitor, _ = _monitor(pipeline, clock, on_capture_error=lambda request, exc: errors.append((request, exc)))

    async with monitor:
        monitor.start_camera()
        await monitor.submit({"smoke": 450})
        await monitor.wait_idle()
        clock.advance(1)
        await monitor.submit({"temperature": 20})
        await monitor.wait_idle()

        assert monitor.state.temperature == 20.0

    assert len(errors) == 1
    assert errors[0][0].tag == AlarmTag.SMOKE
    assert isinstance(errors[0][1], FallbackDeliveryError)


@pytest.mark.asyncio
async def test_skipped_capture_is_not_an_error() -> None:
    errors: list[tuple[CaptureRequest, CaptureError]] = []
    pipeline = _RecordingPipeline(error=NoFrameSourceError("camera is not active"))
    monitor, _ = _monitor(pipeline, _Clock(), on_capture_error=lambda request, exc: errors.append((request, exc)))

    async with monitor:
        monitor.start_camera()
        await monitor.submit({"boxTamper": "ACTIVE"})
        await monitor.wait_idle()

    assert [request.tag for request in pipeline.requests] == [AlarmTag.CONTROL_BOX]
    assert errors == []


@pytest.mark.asyncio
async def test_close_stops_camera() -> None:
    monitor, source = _monitor(_RecordingPipeline(), _Clock())

    async with monitor:
        assert monitor.start_camera()
        assert not monitor.start_camera()
        assert monitor.is_running

    assert not source.is_active
    assert not monitor.is_running


@pytest.mark.asyncio
async def test_submit_requires_started_monitor() -> None:
    monitor, _ = _monitor(_RecordingPipeline(), _Clock())

    with pytest.raises(FenceWatchError):
        await monitor.submit({"pir": "ACTIVE"})


def test_directory_handle_accepts_paths(tmp_path: Path) -> None:
    pipeline = _RecordingPipeline()
    monitor, _ = _monitor(pipeline, _Clock())

    monitor.set_directory_handle(tmp_path)
    assert isinstance(pipeline.directory, DirectoryHandle)
    assert pipeline.directory.path == tmp_path

    monitor.set_directory_handle(None)
    assert pipeline.directory is None


@pytest.mark.asyncio
async def test_held_motion_from_inactive_baseline_logs_and_captures_once() -> None:
    pipeline = _RecordingPipeline()
    clock = _Clock()
    monitor, _ = _monitor(pipeline, clock)

    async with monitor:
        monitor.start_camera()
        await monitor.submit({"pir": "INACTIVE"})
        await monitor.wait_idle()
        clock.advance(1)
        for step in (0, 1, 3):
            clock.advance(step)
            await monitor.submit({"pir": "ACTIVE"})
            await monitor.wait_idle()

        assert monitor.state.log.messages() == ["Motion Sensor Triggered (PIR)"]

    assert [request.tag for request in pipeline.requests] == [AlarmTag.MOTION]
