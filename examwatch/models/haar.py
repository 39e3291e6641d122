"""
OpenCV Haar Cascade Backend

Fallback face backend. It has no landmarks, so behavior analysis is
skipped while it is active; presence and multiplicity checks still work.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from examwatch.engine.results import DetectionResult, ObjectDetection
from examwatch.models.base import BoxFormat, DetectorBackend, to_face_detection
from examwatch.models.yolo import YOLOObjectDetector
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)

# Lazy imports
cv2 = None


def _import_cv2():
    """Lazy import OpenCV."""
    global cv2
    if cv2 is None:
        import cv2 as _cv2
        cv2 = _cv2
    return cv2


class HaarCascadeBackend(DetectorBackend):
    """Frontal-face Haar cascade with scores squashed from the cascade level weights."""

    name = "haar"

    def __init__(
        self,
        cascade_path: Optional[str] = None,
        object_detector: Optional[YOLOObjectDetector] = None,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
    ):
        cv2 = _import_cv2()

        path = cascade_path or cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        self.cascade = cv2.CascadeClassifier(path)
        if self.cascade.empty():
            raise FileNotFoundError(f"Could not load Haar cascade: {path}")

        self.object_detector = object_detector
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors

        logger.info(f"✅ Haar cascade loaded: {path}")

    def detect_faces(self, frame: np.ndarray, min_confidence: float = 0.5) -> DetectionResult:
        cv2 = _import_cv2()

        gray = cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY)
        boxes, _, weights = self.cascade.detectMultiScale3(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            outputRejectLevels=True,
        )

        faces = []
        for (x, y, w, h), weight in zip(boxes, np.ravel(weights)):
            score = float(1.0 / (1.0 + np.exp(-weight)))
            if score < min_confidence:
                continue
            try:
                box = {"x": x, "y": y, "width": w, "height": h}
                faces.append(to_face_detection(box, BoxFormat.CORNER_SIZE, score))
            except ValueError as e:
                logger.debug(f"Skipping face box: {e}")

        faces.sort(key=lambda face: face.score, reverse=True)
        return DetectionResult.from_faces(faces)

    def detect_objects(self, frame: np.ndarray, min_confidence: float = 0.5) -> list[ObjectDetection]:
        if self.object_detector is None:
            return []
        return self.object_detector.detect(frame, min_confidence)
