"""
Detector Backend Interface

Every face/object detector is wrapped in a DetectorBackend and reports
faces in the canonical FaceDetection shape. Detector-specific box layouts
are converted here, so nothing downstream sees them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Mapping, Optional

from examwatch.engine.results import DetectionResult, FaceDetection, FaceLandmarks, ObjectDetection


class BoxFormat(str, Enum):
    """Bounding box layouts produced by supported detectors."""
    CORNER_SIZE = "corner_size"              # x, y, width, height in pixels
    ORIGIN_SIZE = "origin_size"              # originX, originY, width, height in pixels
    MINMAX_NORMALIZED = "minmax_normalized"  # xmin, ymin, xmax, ymax in [0, 1]


_FORMAT_KEYS = {
    BoxFormat.CORNER_SIZE: ("x", "y", "width", "height"),
    BoxFormat.ORIGIN_SIZE: ("originX", "originY", "width", "height"),
    BoxFormat.MINMAX_NORMALIZED: ("xmin", "ymin", "xmax", "ymax"),
}


def _read(raw: Any, key: str) -> float:
    if isinstance(raw, Mapping):
        if key not in raw:
            raise ValueError(f"Box is missing '{key}'")
        return float(raw[key])
    if not hasattr(raw, key):
        raise ValueError(f"Box is missing '{key}'")
    return float(getattr(raw, key))


def normalize_box(
    raw: Any,
    fmt: BoxFormat,
    frame_size: Optional[tuple[int, int]] = None,
) -> tuple[float, float, float, float]:
    """
    Convert a detector box to (x, y, width, height) in frame pixels.

    Args:
        raw: Mapping or object carrying the format's keys
        fmt: Layout of ``raw``
        frame_size: (width, height) of the frame, required for normalized boxes

    Returns:
        (x, y, width, height)

    Raises:
        ValueError: On missing keys, a missing frame size or an empty box
    """
    a, b, c, d = (_read(raw, key) for key in _FORMAT_KEYS[BoxFormat(fmt)])

    if fmt == BoxFormat.MINMAX_NORMALIZED:
        if frame_size is None:
            raise ValueError("Normalized boxes need the frame size")
        frame_w, frame_h = frame_size
        x, y = a * frame_w, b * frame_h
        width, height = (c - a) * frame_w, (d - b) * frame_h
    else:
        x, y, width, height = a, b, c, d

    if width <= 0 or height <= 0:
        raise ValueError(f"Empty box: {width}x{height}")

    return x, y, width, height


def to_face_detection(
    raw: Any,
    fmt: BoxFormat,
    score: float,
    frame_size: Optional[tuple[int, int]] = None,
    landmarks: Optional[FaceLandmarks] = None,
) -> FaceDetection:
    """Build the canonical FaceDetection from a detector box."""
    x, y, width, height = normalize_box(raw, fmt, frame_size)
    return FaceDetection(
        x=x,
        y=y,
        width=width,
        height=height,
        score=max(0.0, min(1.0, float(score))),
        landmarks=landmarks,
    )


class DetectorBackend(ABC):
    """
    Base class for detection backends.

    Backends are synchronous; the orchestrator runs them in a worker thread.
    Raising from ``detect_faces`` marks the backend as failed.
    """

    name: str = "backend"

    @abstractmethod
    def detect_faces(self, frame: Any, min_confidence: float = 0.5) -> DetectionResult:
        """
        Detect faces.

        Args:
            frame: RGB image as numpy array
            min_confidence: Detections below this score are dropped

        Returns:
            DetectionResult in canonical form
        """
        pass

    def detect_objects(self, frame: Any, min_confidence: float = 0.5) -> list[ObjectDetection]:
        """Detect labelled objects. Face-only backends report none."""
        return []

    def close(self):
        """Release resources."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
