"""Session runtime: single-consumer reduction loop plus capture dispatch."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from fencewatch.alarms.dispatcher import AlarmDispatcher
from fencewatch.capture.frames import Camera, FrameSource
from fencewatch.capture.pipeline import CapturePipeline
from fencewatch.capture.sinks import DirectoryHandle, DownloadsDelivery
from fencewatch.config import FenceWatchConfig
from fencewatch.exceptions import CaptureError, FenceWatchError, NoFrameSourceError
from fencewatch.ingestion.normalize import coerce_snapshot
from fencewatch.models.capture import ArtifactRef, CaptureRequest
from fencewatch.models.snapshot import PartialSnapshot
from fencewatch.models.state import SystemState
from fencewatch.state.reducer import apply_snapshot

_logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class FenceMonitor:
    """Owns one monitoring session.

    Snapshots go through a bounded FIFO queue read by a single consumer
    task, so the reducer never runs concurrently with itself. After each
    reduction the new state is published, then alarm dispatch is decided in
    the same task; the capture itself (grab, encode, persist) runs in a
    worker thread and may overlap the next reduction. Nothing raised while
    processing a snapshot or a capture stops the loop.

    Usage::

        async with FenceMonitor(config, on_state=render) as monitor:
            monitor.start_camera()
            await monitor.submit({"pir": "ACTIVE"})
    """

    def __init__(
        self,
        config: FenceWatchConfig | None = None,
        *,
        frame_source: FrameSource | None = None,
        pipeline: CapturePipeline | None = None,
        dispatcher: AlarmDispatcher | None = None,
        on_state: Callable[[SystemState], None] | None = None,
        on_capture: Callable[[ArtifactRef], None] | None = None,
        on_capture_error: Callable[[CaptureRequest, CaptureError], None] | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._config = config or FenceWatchConfig()
        self._clock = clock
        self._state = SystemState.initial(
            history_capacity=self._config.history_capacity,
            log_capacity=self._config.log_capacity,
        )
        self._frame_source: FrameSource = frame_source or Camera(
            self._config.camera_device,
            width=self._config.camera_width,
            height=self._config.camera_height,
        )
        if pipeline is None:
            directory = DirectoryHandle(self._config.capture_dir) if self._config.capture_dir else None
            pipeline = CapturePipeline(
                fallback=DownloadsDelivery(self._config.downloads_dir),
                directory=directory,
            )
        self._pipeline = pipeline
        self._dispatcher = dispatcher or AlarmDispatcher.from_config(self._config)
        self._on_state = on_state
        self._on_capture = on_capture
        self._on_capture_error = on_capture_error

        self._queue: asyncio.Queue[PartialSnapshot] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._captures: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FenceMonitor:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Start the consumer task on the running loop."""
        if self._consumer is not None:
            return
        self._queue = asyncio.Queue(maxsize=self._config.snapshot_queue_size)
        self._consumer = asyncio.create_task(self._consume(), name="fencewatch-reducer")

    async def close(self) -> None:
        """Stop consuming and release the camera.

        In-flight captures are not awaited or cancelled.
        """
        consumer = self._consumer
        self._consumer = None
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
        self._queue = None
        self.stop_camera()

    @property
    def is_running(self) -> bool:
        return self._consumer is not None

    # ------------------------------------------------------------------
    # Rendered view / commands
    # ------------------------------------------------------------------

    @property
    def state(self) -> SystemState:
        """The most recently produced state."""
        return self._state

    @property
    def dispatcher(self) -> AlarmDispatcher:
        return self._dispatcher

    @property
    def frame_source(self) -> FrameSource:
        return self._frame_source

    def start_camera(self) -> bool:
        """Start the frame source (no-op when already active)."""
        return self._frame_source.start()

    def stop_camera(self) -> bool:
        """Stop the frame source (no-op when idle)."""
        return self._frame_source.stop()

    def set_directory_handle(self, handle: DirectoryHandle | str | Path | None) -> None:
        """Link (or unlink with ``None``) the primary evidence directory."""
        if handle is not None and not isinstance(handle, DirectoryHandle):
            handle = DirectoryHandle(handle)
        self._pipeline.set_directory(handle)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def _require_queue(self) -> asyncio.Queue[PartialSnapshot]:
        if self._queue is None:
            raise FenceWatchError("Monitor not started. Use 'async with FenceMonitor(...) as monitor:'")
        return self._queue

    async def submit(self, snapshot: PartialSnapshot | Mapping[str, Any]) -> None:
        """Enqueue a snapshot, waiting for room when the queue is full."""
        await self._require_queue().put(coerce_snapshot(snapshot))

    def submit_nowait(self, snapshot: PartialSnapshot | Mapping[str, Any]) -> bool:
        """Enqueue without waiting; a full queue drops the snapshot.

        Safe to use as a transport callback scheduled with
        ``loop.call_soon_threadsafe``.
        """
        try:
            self._require_queue().put_nowait(coerce_snapshot(snapshot))
        except asyncio.QueueFull:
            _logger.warning("Snapshot queue full (%s); dropping snapshot", self._config.snapshot_queue_size)
            return False
        return True

    async def join(self) -> None:
        """Wait until every queued snapshot has been reduced and dispatched."""
        await self._require_queue().join()

    async def wait_idle(self) -> None:
        """Wait for queued snapshots and for the captures they started."""
        await self.join()
        pending = list(self._captures)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _consume(self) -> None:
        queue = self._require_queue()
        while True:
            snapshot = await queue.get()
            try:
                self._process(snapshot)
            except Exception:
                _logger.warning("Snapshot processing failed; state left unchanged", exc_info=True)
            finally:
                queue.task_done()

    def _process(self, snapshot: PartialSnapshot) -> None:
        now = self._clock()
        reduction = apply_snapshot(self._state, snapshot, observed_at=now)
        self._state = reduction.state
        for event in reduction.events:
            _logger.debug("Event %s: %s", event.severity, event.message)

        self._publish(reduction.state)

        if not self._frame_source.is_active:
            return
        for request in self._dispatcher.dispatch(reduction.state, _epoch_ms(now)):
            self._schedule_capture(request)

    def _publish(self, state: SystemState) -> None:
        if self._on_state is None:
            return
        try:
            self._on_state(state)
        except Exception:
            _logger.warning("State callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def _schedule_capture(self, request: CaptureRequest) -> None:
        task = asyncio.create_task(self._run_capture(request), name=f"fencewatch-capture-{request.tag}")
        self._captures.add(task)
        task.add_done_callback(self._captures.discard)

    async def _run_capture(self, request: CaptureRequest) -> None:
        try:
            artifact = await asyncio.to_thread(self._pipeline.capture, request, self._frame_source)
        except NoFrameSourceError as exc:
            _logger.debug("Capture skipped tag=%s: %s", request.tag, exc)
            return
        except CaptureError as exc:
            _logger.error("Capture failed tag=%s: %s", request.tag, exc)
            self._notify_capture_error(request, exc)
            return
        except Exception:
            _logger.error("Unexpected capture failure tag=%s", request.tag, exc_info=True)
            return

        if self._on_capture is not None:
            try:
                self._on_capture(artifact)
            except Exception:
                _logger.warning("Capture callback failed", exc_info=True)

    def _notify_capture_error(self, request: CaptureRequest, exc: CaptureError) -> None:
        if self._on_capture_error is None:
            return
        try:
            self._on_capture_error(request, exc)
        except Exception:
            _logger.warning("Capture error callback failed", exc_info=True)
