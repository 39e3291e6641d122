"""
YOLO Object Detection

Uses Ultralytics YOLO to report labelled objects for the prohibited-item check.
https://docs.ultralytics.com/models/yolo11/
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import numpy as np

from examwatch.cfg.config import DEFAULT_YOLO_MODEL
from examwatch.engine.results import ObjectDetection
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)

# Lazy imports
YOLO = None


def _import_yolo():
    """Lazy import YOLO."""
    global YOLO
    if YOLO is None:
        from ultralytics import YOLO as _YOLO
        YOLO = _YOLO
    return YOLO


class YOLOObjectDetector:
    """YOLO wrapper returning every labelled detection above a confidence."""

    def __init__(self, model_path: Optional[str] = None):
        """
        Initialize the detector.

        Args:
            model_path: Path to model weights. Falls back to the stock
                model (downloaded by Ultralytics) if the path does not exist.
        """
        yolo_cls = _import_yolo()

        path = model_path or DEFAULT_YOLO_MODEL
        if not Path(path).exists():
            logger.info(f"📥 {path} not found locally, using {DEFAULT_YOLO_MODEL}")
            path = DEFAULT_YOLO_MODEL

        self.model = yolo_cls(path)
        logger.info(f"✅ YOLO loaded: {path}")

    def detect(self, frame: np.ndarray, min_confidence: float = 0.5) -> list[ObjectDetection]:
        """
        Run detection on a frame.

        Args:
            frame: RGB image as numpy array
            min_confidence: Minimum box confidence

        Returns:
            Labelled detections.
        """
        results = self.model(frame, conf=min_confidence, verbose=False)

        detections = []
        if not results:
            return detections

        result = results[0]
        if result.boxes is None:
            return detections

        names: dict[int, Any] = result.names
        for cls, conf in zip(result.boxes.cls, result.boxes.conf):
            detections.append(ObjectDetection(
                label=str(names.get(int(cls), "unknown")),
                score=float(conf),
            ))

        return detections
