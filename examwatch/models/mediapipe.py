"""
MediaPipe Face Backend

Primary backend: MediaPipe face detection for counting and scores, face
mesh for the landmarks the behavioral pipeline needs.
"""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np

from examwatch.cfg.config import DEFAULT_MAX_FACES, DEFAULT_TRACKING_CONFIDENCE
from examwatch.engine.results import DetectionResult, FaceLandmarks, ObjectDetection, Point
from examwatch.models.base import BoxFormat, DetectorBackend, to_face_detection
from examwatch.models.yolo import YOLOObjectDetector
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)

# Lazy imports
mp = None


def _import_mediapipe():
    """Lazy import MediaPipe."""
    global mp
    if mp is None:
        import mediapipe as _mp
        mp = _mp
    return mp


class MediaPipeBackend(DetectorBackend):
    """
    MediaPipe wrapper for face detection and landmarks.

    Face mesh indices are mapped onto the 6/6/1/17 landmark layout:
    eye contours start at a corner and run over the upper lid, the jaw runs
    from image-left to image-right through the chin.
    """

    name = "mediapipe"

    # Key landmark indices
    LEFT_EYE = [33, 160, 158, 133, 153, 144]
    RIGHT_EYE = [362, 385, 387, 263, 373, 380]
    NOSE_TIP = 1
    JAW = [127, 234, 93, 132, 58, 172, 136, 150, 152, 379, 365, 397, 288, 361, 323, 454, 356]

    def __init__(
        self,
        object_detector: Optional[YOLOObjectDetector] = None,
        max_faces: int = DEFAULT_MAX_FACES,
        min_confidence: float = 0.5,
    ):
        """
        Initialize MediaPipe models.

        Args:
            object_detector: Detector used for ``detect_objects``
            max_faces: Faces tracked by the face mesh
            min_confidence: Model-level detection confidence floor
        """
        mp = _import_mediapipe()

        self.face_detection = mp.solutions.face_detection.FaceDetection(
            model_selection=1,  # Full range model
            min_detection_confidence=min_confidence,
        )
        self.face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=max_faces,
            refine_landmarks=False,
            min_detection_confidence=min_confidence,
            min_tracking_confidence=DEFAULT_TRACKING_CONFIDENCE,
        )
        self.object_detector = object_detector

        # Preview and monitoring timers may share this backend
        self._lock = threading.Lock()

        logger.info("✅ MediaPipe initialized")

    def detect_faces(self, frame: np.ndarray, min_confidence: float = 0.5) -> DetectionResult:
        if frame is None or frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError("Expected an RGB frame")

        h, w = frame.shape[:2]

        with self._lock:
            detection_results = self.face_detection.process(frame)
            mesh_results = self.face_mesh.process(frame)

        faces = []
        for detection in detection_results.detections or []:
            score = detection.score[0] if detection.score else 0.0
            if score < min_confidence:
                continue

            bbox = detection.location_data.relative_bounding_box
            box = {
                "xmin": bbox.xmin,
                "ymin": bbox.ymin,
                "xmax": bbox.xmin + bbox.width,
                "ymax": bbox.ymin + bbox.height,
            }
            try:
                faces.append(to_face_detection(box, BoxFormat.MINMAX_NORMALIZED, score, (w, h)))
            except ValueError as e:
                logger.debug(f"Skipping face box: {e}")

        faces.sort(key=lambda face: face.score, reverse=True)

        if faces and mesh_results.multi_face_landmarks:
            faces[0].landmarks = self._landmarks(mesh_results.multi_face_landmarks[0], w, h)

        return DetectionResult.from_faces(faces)

    def _landmarks(self, mesh, w: int, h: int) -> FaceLandmarks:
        """Convert a face mesh to named pixel landmarks."""
        def point(i: int) -> Point:
            lm = mesh.landmark[i]
            return Point(lm.x * w, lm.y * h)

        return FaceLandmarks(
            left_eye=[point(i) for i in self.LEFT_EYE],
            right_eye=[point(i) for i in self.RIGHT_EYE],
            nose_tip=point(self.NOSE_TIP),
            jaw=[point(i) for i in self.JAW],
        )

    def detect_objects(self, frame: np.ndarray, min_confidence: float = 0.5) -> list[ObjectDetection]:
        if self.object_detector is None:
            return []
        return self.object_detector.detect(frame, min_confidence)

    def close(self):
        """Release resources."""
        if self.face_mesh:
            self.face_mesh.close()
        if self.face_detection:
            self.face_detection.close()
