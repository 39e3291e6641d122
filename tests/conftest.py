"""
Pytest Configuration for Examwatch Tests

Fake detector backends and landmark builders. Nothing here imports
mediapipe, ultralytics or OpenCV.
"""
import threading

import numpy as np
import pytest

from examwatch.cfg import MonitoringSettings, StabilizerConfig
from examwatch.engine.results import (
    DetectionResult,
    FaceDetection,
    FaceLandmarks,
    ObjectDetection,
    Point,
)
from examwatch.models.base import DetectorBackend


# Eye centers 80px apart at y=50, chin 40px below the eye line
LEFT_EYE_CENTER = (20.0, 50.0)
RIGHT_EYE_CENTER = (100.0, 50.0)
CHIN = (60.0, 90.0)
CENTERED_NOSE = (60.0, 57.0)


def _eye(cx, cy):
    return [
        Point(cx - 10, cy),
        Point(cx - 5, cy - 3),
        Point(cx + 5, cy - 3),
        Point(cx + 10, cy),
        Point(cx + 5, cy + 3),
        Point(cx - 5, cy + 3),
    ]


def _jaw():
    points = []
    for i in range(17):
        x = i * 7.5
        y = CHIN[1] - (CHIN[1] - LEFT_EYE_CENTER[1]) * abs(i - 8) / 8
        points.append(Point(x, y))
    return points


def build_landmarks(nose=CENTERED_NOSE, left_eye=LEFT_EYE_CENTER, right_eye=RIGHT_EYE_CENTER):
    return FaceLandmarks(
        left_eye=_eye(*left_eye),
        right_eye=_eye(*right_eye),
        nose_tip=Point(*nose),
        jaw=_jaw(),
    )


def build_face(score=0.9, landmarks=None):
    return FaceDetection(x=10, y=10, width=100, height=120, score=score, landmarks=landmarks)


class FakeBackend(DetectorBackend):
    """
    Scripted detector backend.

    ``faces`` is a DetectionResult, a callable returning one, or None for
    no faces. ``error`` is raised from every face detection call.
    """

    name = "fake"

    def __init__(self, faces=None, error=None, objects=None, object_error=None, gate=None):
        self.faces = faces
        self.error = error
        self.objects = objects or []
        self.object_error = object_error
        self.gate = gate
        self.entered = threading.Event()
        self.face_calls = 0
        self.object_calls = 0

    def detect_faces(self, frame, min_confidence=0.5):
        self.face_calls += 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        if callable(self.faces):
            return self.faces()
        if self.faces is None:
            return DetectionResult.empty()
        return self.faces

    def detect_objects(self, frame, min_confidence=0.5):
        self.object_calls += 1
        if self.object_error is not None:
            raise self.object_error
        return list(self.objects)


@pytest.fixture
def frame():
    """Blank RGB frame"""
    return np.zeros((120, 160, 3), dtype=np.uint8)


@pytest.fixture
def landmarks():
    """Landmarks of a face looking straight at the camera"""
    return build_landmarks()


@pytest.fixture
def settings():
    """Default session settings (50% sensitivities)"""
    return MonitoringSettings()


@pytest.fixture
def fast_stabilizer_cfg():
    """Short debounce windows for timing tests"""
    return StabilizerConfig(status_delay=0.05, warning_settle_delay=0.1)


@pytest.fixture
def single_face_backend():
    """Backend reporting one landmarked, centered face"""
    return FakeBackend(faces=DetectionResult.from_faces([build_face(landmarks=build_landmarks())]))


@pytest.fixture
def phone():
    return ObjectDetection(label="cell phone", score=0.9)
