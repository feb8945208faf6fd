"""Annotation and encoding of evidence frames."""

from __future__ import annotations

from datetime import datetime

import cv2
import numpy as np

from fencewatch._constants import ARTIFACT_EXTENSION, ARTIFACT_PREFIX, OVERLAY_LINE_HEIGHT, OVERLAY_ORIGIN
from fencewatch.exceptions import CaptureError

_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.8
_FONT_THICKNESS = 2
_ALERT_COLOR = (0, 0, 255)  # BGR red


def format_overlay_time(value: datetime) -> str:
    """Locale representation of *value* (``%c``)."""
    return value.strftime("%c")


def overlay_lines(tag: str, captured_at: datetime) -> list[str]:
    return [f"ALERT: {tag}", f"TIME: {format_overlay_time(captured_at)}"]


def annotate_frame(frame: np.ndarray, *, tag: str, captured_at: datetime) -> np.ndarray:
    """Copy *frame* at native size and burn the alert overlay in, top-left.

    The overlay keeps the artifact traceable independently of filesystem
    metadata. The input frame is left untouched.
    """
    canvas = np.array(frame, copy=True)
    x, y = OVERLAY_ORIGIN
    for index, text in enumerate(overlay_lines(tag, captured_at)):
        cv2.putText(
            canvas,
            text,
            (x, y + index * OVERLAY_LINE_HEIGHT),
            _FONT,
            _FONT_SCALE,
            _ALERT_COLOR,
            _FONT_THICKNESS,
            cv2.LINE_AA,
        )
    return canvas


def encode_png(image: np.ndarray, *, tag: str | None = None) -> bytes:
    """Losslessly encode *image* as PNG."""
    try:
        ok, buffer = cv2.imencode(".png", image)
    except cv2.error as exc:
        raise CaptureError(f"PNG encoding failed: {exc}", tag=tag) from exc
    if not ok:
        raise CaptureError("PNG encoding failed", tag=tag)
    return buffer.tobytes()


def artifact_filename(tag: str) -> str:
    """``Image_Detected_<tag>.png``; collisions are left to the sink."""
    return f"{ARTIFACT_PREFIX}{tag}{ARTIFACT_EXTENSION}"
