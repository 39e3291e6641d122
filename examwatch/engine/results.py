"""
Examwatch Engine - Results Classes

Data classes shared by the detector backends, the behavioral pipeline
and the consuming UI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class GazeDirection(str, Enum):
    """Discrete gaze classification relative to the face."""
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    AWAY = "away"


@dataclass(frozen=True)
class Point:
    """A landmark in frame-pixel coordinates."""
    x: float
    y: float


@dataclass
class FaceLandmarks:
    """
    Named landmark groups for a single face.

    Attributes:
        left_eye: 6 points - outer corner, two upper lid, inner corner, two lower lid
        right_eye: 6 points - inner corner, two upper lid, outer corner, two lower lid
        nose_tip: Tip of the nose
        jaw: 17 points from image-left to image-right, index 8 is the chin
    """
    left_eye: list[Point]
    right_eye: list[Point]
    nose_tip: Point
    jaw: list[Point]

    def to_dict(self) -> dict:
        return {
            "left_eye": [(p.x, p.y) for p in self.left_eye],
            "right_eye": [(p.x, p.y) for p in self.right_eye],
            "nose_tip": (self.nose_tip.x, self.nose_tip.y),
            "jaw": [(p.x, p.y) for p in self.jaw],
        }


@dataclass
class FaceDetection:
    """Canonical face box in frame pixels."""
    x: float
    y: float
    width: float
    height: float
    score: float
    landmarks: Optional[FaceLandmarks] = None

    def to_dict(self) -> dict:
        return {
            "box": [self.x, self.y, self.width, self.height],
            "score": self.score,
            "has_landmarks": self.landmarks is not None,
        }


@dataclass
class ObjectDetection:
    """A labelled object returned by a detector backend."""
    label: str
    score: float

    def to_dict(self) -> dict:
        return {"label": self.label, "score": self.score}


@dataclass
class DetectionResult:
    """
    Face detection output of a backend.

    Use ``from_faces`` or ``empty`` so that ``face_count == len(faces)``
    and ``has_face == face_count > 0`` always hold.
    """
    has_face: bool = False
    face_count: int = 0
    faces: list[FaceDetection] = field(default_factory=list)
    primary_confidence: float = 0.0

    @classmethod
    def from_faces(cls, faces: list[FaceDetection]) -> "DetectionResult":
        faces = list(faces)
        return cls(
            has_face=len(faces) > 0,
            face_count=len(faces),
            faces=faces,
            primary_confidence=faces[0].score if faces else 0.0,
        )

    @classmethod
    def empty(cls) -> "DetectionResult":
        return cls()

    def to_dict(self) -> dict:
        return {
            "has_face": self.has_face,
            "face_count": self.face_count,
            "faces": [f.to_dict() for f in self.faces],
            "primary_confidence": self.primary_confidence,
        }


@dataclass
class HeadPose:
    """
    Normalized head rotation.

    Attributes:
        yaw: Left-right rotation in [-1, 1]
        pitch: Up-down rotation in [-1, 1]
        roll: Tilt in degrees (unclamped)
    """
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

    def to_dict(self) -> dict:
        return {"yaw": self.yaw, "pitch": self.pitch, "roll": self.roll}


@dataclass
class AttentionSample:
    """One attention score observation."""
    score: float
    observed_at: float


@dataclass
class LookingAwayEvent:
    """A completed looking-away episode."""
    started_at: float
    duration_seconds: float

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class ComplianceResult:
    """
    Aggregate result of one monitoring tick.

    Attributes:
        face_detected: Whether any face was found
        face_count: Number of faces found
        face_confidence: Primary face confidence in [0, 100]
        objects_detected: Prohibited object categories present
        warnings: Human-readable warnings for this tick
        gaze_direction: Classified gaze
        head_pose: Estimated head pose
        looking_away: Whether an away-episode is in progress
        looking_away_duration: Seconds into the current away-episode
        attention_score: Composite attention score in [0, 100]
    """
    face_detected: bool = False
    face_count: int = 0
    face_confidence: float = 0.0
    objects_detected: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    gaze_direction: GazeDirection = GazeDirection.CENTER
    head_pose: HeadPose = field(default_factory=HeadPose)
    looking_away: bool = False
    looking_away_duration: float = 0.0
    attention_score: float = 100.0
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def neutral(cls) -> "ComplianceResult":
        """Result reported when face detection is switched off."""
        return cls()

    def to_dict(self) -> dict:
        return {
            "face_detected": self.face_detected,
            "face_count": self.face_count,
            "face_confidence": self.face_confidence,
            "objects_detected": list(self.objects_detected),
            "warnings": list(self.warnings),
            "gaze_direction": self.gaze_direction.value,
            "head_pose": self.head_pose.to_dict(),
            "looking_away": self.looking_away,
            "looking_away_duration": self.looking_away_duration,
            "attention_score": self.attention_score,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ViolationRecord:
    """
    A violation delivered to the consuming UI.

    Attributes:
        type: Violation type (see AlertType)
        severity: low, medium, high or critical
        message: The warning text that produced it
    """
    type: str
    severity: str
    message: str
    observed_at: datetime = field(default_factory=datetime.utcnow)
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "observed_at": self.observed_at.isoformat(),
            "details": self.details,
        }


@dataclass
class DetectionStatus:
    """Smoothed detection status shown next to the camera preview."""
    face_count: int = 0
    confidence: float = 0.0
    is_detecting: bool = False


@dataclass
class ProctoringStatus:
    """Snapshot of a monitoring session for the UI."""
    face_detected: bool = False
    face_count: int = 0
    objects_detected: list[str] = field(default_factory=list)
    gaze_direction: GazeDirection = GazeDirection.CENTER
    head_pose: HeadPose = field(default_factory=HeadPose)
    looking_away: bool = False
    looking_away_duration: float = 0.0
    attention_score: float = 100.0
    warnings: list[str] = field(default_factory=list)
    last_check: Optional[datetime] = None
    violations: list[ViolationRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "face_detected": self.face_detected,
            "face_count": self.face_count,
            "objects_detected": list(self.objects_detected),
            "gaze_direction": self.gaze_direction.value,
            "head_pose": self.head_pose.to_dict(),
            "looking_away": self.looking_away,
            "looking_away_duration": self.looking_away_duration,
            "attention_score": self.attention_score,
            "warnings": list(self.warnings),
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "violations": [v.to_dict() for v in self.violations],
        }
