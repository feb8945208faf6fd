"""Evidence capture: grab, annotate, encode, persist with fallback."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from fencewatch.capture.frames import FrameSource
from fencewatch.capture.render import annotate_frame, artifact_filename, encode_png
from fencewatch.capture.sinks import DirectoryHandle, DirectorySink, FallbackChannel
from fencewatch.exceptions import NoFrameSourceError
from fencewatch.models.capture import ArtifactRef, CaptureRequest

_logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class CapturePipeline:
    """Turn a :class:`CaptureRequest` into a persisted, annotated PNG.

    Persistence is a two-step chain:

    1. if a :class:`DirectoryHandle` is configured, try the primary
       :class:`DirectorySink`; on success return immediately;
    2. otherwise, or when the primary attempt reports an error, deliver
       through the fallback channel. A fallback failure is raised as
       :class:`FallbackDeliveryError` and is not retried.
    """

    def __init__(
        self,
        *,
        fallback: FallbackChannel,
        directory: DirectoryHandle | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._fallback = fallback
        self._directory = directory
        self._clock = clock

    @property
    def directory(self) -> DirectoryHandle | None:
        return self._directory

    def set_directory(self, handle: DirectoryHandle | None) -> None:
        """Configure (or clear, with ``None``) the primary sink."""
        self._directory = handle
        if handle is None:
            _logger.info("Primary evidence directory cleared; captures will use fallback delivery")
        else:
            _logger.info("Storage linked: snapshots will be saved to '%s'", handle.path)

    def capture(self, request: CaptureRequest, frame_source: FrameSource) -> ArtifactRef:
        """Capture one artifact for *request* from *frame_source*.

        Raises
        ------
        NoFrameSourceError
            The frame source is not producing frames; the capture is skipped.
        FallbackDeliveryError
            Neither sink could persist the artifact.
        CaptureError
            The frame could not be encoded.
        """
        tag = request.tag
        if not frame_source.is_active:
            raise NoFrameSourceError("frame source is not active", tag=tag)

        frame = frame_source.grab()
        captured_at = self._clock()
        payload = encode_png(annotate_frame(frame, tag=tag, captured_at=captured_at), tag=tag)
        filename = artifact_filename(tag)

        # Read once: the handle may be swapped by the shell while we run.
        handle = self._directory
        if handle is not None:
            outcome = DirectorySink(handle).try_write(filename, payload, tag=tag, captured_at=captured_at)
            if outcome.ok and outcome.artifact is not None:
                _logger.info("Saved %s directly to %s", filename, handle.path)
                return outcome.artifact
            _logger.warning("Direct save of %s failed, falling back to delivery: %s", filename, outcome.error)

        artifact = self._fallback.deliver(filename, payload, tag=tag, captured_at=captured_at)
        _logger.info("Snapshot delivered: %s", artifact.path)
        return artifact
