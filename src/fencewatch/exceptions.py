"""Custom exception hierarchy for fencewatch."""

from __future__ import annotations


class FenceWatchError(Exception):
    """Base exception for all fencewatch errors."""


class FenceWatchConfigError(FenceWatchError):
    """Invalid or missing configuration."""


class MalformedSnapshotError(FenceWatchError):
    """A raw snapshot payload could not be interpreted at all.

    Only strict parsing raises this. The monitor treats such a payload as an
    empty snapshot so the ingestion loop keeps running.
    """


class CameraError(FenceWatchError):
    """The camera device could not be opened."""


class PrimarySinkError(FenceWatchError):
    """Direct write into the configured directory failed.

    Never raised out of the capture pipeline; it is carried inside a
    :class:`fencewatch.capture.sinks.SinkOutcome` and triggers fallback.
    """

    def __init__(self, message: str, *, filename: str = "") -> None:
        self.filename = filename
        super().__init__(message)


class CaptureError(FenceWatchError):
    """Evidence capture failed for a single request."""

    def __init__(
        self,
        message: str,
        *,
        tag: str | None = None,
        filename: str = "",
    ) -> None:
        self.tag = tag
        self.filename = filename
        super().__init__(message)


class NoFrameSourceError(CaptureError):
    """The frame source is not producing frames (never started or stopped).

    Recoverable: the capture is skipped and not retried.
    """


class FallbackDeliveryError(CaptureError):
    """The fallback delivery channel could not hand over the artifact.

    Terminal for that capture attempt; the next alarm after the cooldown is
    the next opportunity.
    """
