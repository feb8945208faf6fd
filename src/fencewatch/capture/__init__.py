"""Evidence capture layer.

Frame sources, overlay rendering, the two sinks (direct directory write and
fallback delivery) and the pipeline chaining them.
"""

from fencewatch.capture.frames import Camera, FrameSource
from fencewatch.capture.pipeline import CapturePipeline
from fencewatch.capture.render import annotate_frame, artifact_filename, encode_png
from fencewatch.capture.sinks import (
    DirectoryHandle,
    DirectorySink,
    DownloadsDelivery,
    FallbackChannel,
    SinkOutcome,
)

__all__ = [
    "Camera",
    "CapturePipeline",
    "DirectoryHandle",
    "DirectorySink",
    "DownloadsDelivery",
    "FallbackChannel",
    "FrameSource",
    "SinkOutcome",
    "annotate_frame",
    "artifact_filename",
    "encode_png",
]
