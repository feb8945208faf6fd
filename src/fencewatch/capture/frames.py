"""Frame sources feeding the evidence capture pipeline."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

import cv2
import numpy as np

from fencewatch.exceptions import CameraError, NoFrameSourceError

_logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Structural interface of a live frame producer.

    ``start``/``stop`` must be idempotent. ``grab`` raises
    :class:`NoFrameSourceError` when the source was never started, was
    stopped, or yields no frame.
    """

    @property
    def is_active(self) -> bool: ...

    def start(self) -> bool: ...

    def stop(self) -> bool: ...

    def grab(self) -> np.ndarray: ...


class Camera:
    """OpenCV ``VideoCapture`` wrapper with guarded acquire/release.

    At most one capture device is held per instance; starting an active
    camera or stopping an idle one is a no-op.
    """

    def __init__(self, device: int | str = 0, *, width: int = 1280, height: int = 720) -> None:
        self.device = device
        self.width = width
        self.height = height
        self._lock = threading.Lock()
        self._cap: cv2.VideoCapture | None = None

    @property
    def is_active(self) -> bool:
        cap = self._cap
        return cap is not None and cap.isOpened()

    def start(self) -> bool:
        """Acquire the device. Returns ``False`` when it was already running."""
        with self._lock:
            if self._cap is not None:
                _logger.debug("Camera %s already running", self.device)
                return False

            cap = cv2.VideoCapture(self.device)
            if not cap.isOpened():
                cap.release()
                raise CameraError(f"Cannot open camera device {self.device}")
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self._cap = cap

        _logger.info("Camera %s started", self.device)
        return True

    def stop(self) -> bool:
        """Release the device. Returns ``False`` when it was not running."""
        with self._lock:
            cap = self._cap
            self._cap = None
            if cap is None:
                return False
            cap.release()

        _logger.info("Camera %s stopped", self.device)
        return True

    def grab(self) -> np.ndarray:
        """Return the current frame at its native resolution."""
        with self._lock:
            cap = self._cap
            if cap is None or not cap.isOpened():
                raise NoFrameSourceError("camera is not active")
            ok, frame = cap.read()

        if not ok or frame is None:
            raise NoFrameSourceError(f"camera {self.device} returned no frame")
        return frame

    def __enter__(self) -> Camera:
        self.start()
        return self

    def __exit__(self, *_: object) -> None:
        self.stop()
