"""
Behavioral Signal Extraction

Turns the landmarks of a single face into a gaze direction and a head pose.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from examwatch.cfg import BehaviorConfig
from examwatch.engine.results import FaceLandmarks, GazeDirection, HeadPose
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)

EYE_POINTS = 6
JAW_POINTS = 17
CHIN_INDEX = 8


class DegenerateLandmarks(ValueError):
    """Landmarks that cannot produce a stable geometry."""


class BehavioralSignalExtractor:
    """
    Pure landmark geometry.

    Gaze compares the eye midpoint with the nose tip, normalized by the
    distance between the eye centers. Head pose uses the same anchors plus
    the chin and the jaw corners.

    Example:
        >>> extractor = BehavioralSignalExtractor()
        >>> gaze, pose = extractor.extract(face.landmarks)
    """

    def __init__(self, cfg: Optional[BehaviorConfig] = None):
        self.cfg = cfg or BehaviorConfig()

    def extract(self, landmarks: Optional[FaceLandmarks]) -> tuple[GazeDirection, HeadPose]:
        """
        Derive gaze and head pose.

        Args:
            landmarks: Named landmarks for exactly one face

        Returns:
            (GazeDirection, HeadPose). Missing or degenerate input yields
            (AWAY, neutral pose).
        """
        try:
            anchors = self._anchors(landmarks)
            gaze = self._classify_gaze(anchors)
            pose = self._head_pose(anchors)
        except (ValueError, AttributeError, IndexError, TypeError) as e:
            logger.debug(f"Degenerate landmarks: {e}")
            return GazeDirection.AWAY, HeadPose()

        return gaze, pose

    def _anchors(self, landmarks: Optional[FaceLandmarks]) -> dict:
        """Eye centers, midpoint, separation and the remaining key points."""
        if landmarks is None:
            raise DegenerateLandmarks("no landmarks")

        left_eye = np.array([[p.x, p.y] for p in landmarks.left_eye], dtype=float)
        right_eye = np.array([[p.x, p.y] for p in landmarks.right_eye], dtype=float)
        jaw = np.array([[p.x, p.y] for p in landmarks.jaw], dtype=float)
        nose = np.array([landmarks.nose_tip.x, landmarks.nose_tip.y], dtype=float)

        if left_eye.shape != (EYE_POINTS, 2) or right_eye.shape != (EYE_POINTS, 2):
            raise DegenerateLandmarks("eye contours need 6 points each")
        if jaw.shape != (JAW_POINTS, 2):
            raise DegenerateLandmarks("jaw outline needs 17 points")

        points = np.vstack([left_eye, right_eye, jaw, nose])
        if not np.all(np.isfinite(points)):
            raise DegenerateLandmarks("non-finite landmark")

        left_center = self._eye_center(left_eye)
        right_center = self._eye_center(right_eye)
        midpoint = (left_center + right_center) / 2
        separation = abs(right_center[0] - left_center[0])

        if separation <= 0:
            raise DegenerateLandmarks("eyes overlap horizontally")

        return {
            "left_center": left_center,
            "right_center": right_center,
            "midpoint": midpoint,
            "separation": separation,
            "nose": nose,
            "chin": jaw[CHIN_INDEX],
            "jaw_left": jaw[0],
            "jaw_right": jaw[-1],
        }

    @staticmethod
    def _eye_center(eye: np.ndarray) -> np.ndarray:
        # x from the corners, y from the eyelids
        return np.array([
            (eye[0, 0] + eye[3, 0]) / 2,
            (eye[1, 1] + eye[5, 1]) / 2,
        ])

    def _classify_gaze(self, anchors: dict) -> GazeDirection:
        midpoint = anchors["midpoint"]
        nose = anchors["nose"]
        separation = anchors["separation"]

        horizontal = (midpoint[0] - nose[0]) / separation
        vertical = (midpoint[1] - nose[1]) / separation

        beyond_horizontal = abs(horizontal) > self.cfg.gaze_horizontal_threshold
        beyond_vertical = abs(vertical) > self.cfg.gaze_vertical_threshold

        # Diagonal gaze resolves to the horizontal component
        if beyond_horizontal:
            return GazeDirection.RIGHT if horizontal > 0 else GazeDirection.LEFT
        if beyond_vertical:
            return GazeDirection.DOWN if vertical > 0 else GazeDirection.UP
        return GazeDirection.CENTER

    def _head_pose(self, anchors: dict) -> HeadPose:
        midpoint = anchors["midpoint"]
        nose = anchors["nose"]
        separation = anchors["separation"]

        yaw = (nose[0] - midpoint[0]) / separation

        face_height = abs(anchors["chin"][1] - midpoint[1])
        if face_height <= 0:
            raise DegenerateLandmarks("chin level with the eyes")

        expected_nose_y = midpoint[1] + face_height * self.cfg.expected_nose_offset
        pitch = (nose[1] - expected_nose_y) / face_height

        eye_roll = self._angle(anchors["left_center"], anchors["right_center"])
        jaw_roll = self._angle(anchors["jaw_left"], anchors["jaw_right"])
        roll = (eye_roll + jaw_roll) / 2

        return HeadPose(
            yaw=float(np.clip(yaw, -1.0, 1.0)),
            pitch=float(np.clip(pitch, -1.0, 1.0)),
            roll=float(roll),
        )

    @staticmethod
    def _angle(start: np.ndarray, end: np.ndarray) -> float:
        """Angle of the segment start->end in degrees."""
        return float(np.degrees(np.arctan2(end[1] - start[1], end[0] - start[0])))
