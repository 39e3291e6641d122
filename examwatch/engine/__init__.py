from __future__ import annotations
"""
Examwatch Engine - behavioral signal pipeline.

- BehavioralSignalExtractor: landmarks -> gaze direction + head pose
- AttentionScorer: gaze/pose -> bounded score + rolling history
- LookingAwayTracker: hysteresis over away-episodes with a pruned event log
- SuspiciousBehaviorDetector: pattern flags over events and score trend
"""

from examwatch.engine.results import (
    GazeDirection,
    Point,
    FaceLandmarks,
    FaceDetection,
    ObjectDetection,
    DetectionResult,
    HeadPose,
    AttentionSample,
    LookingAwayEvent,
    ComplianceResult,
    ViolationRecord,
    DetectionStatus,
    ProctoringStatus,
)
from examwatch.engine.signals import BehavioralSignalExtractor
from examwatch.engine.attention import AttentionScorer
from examwatch.engine.tracker import LookingAwayTracker, TrackerState, TrackerUpdate
from examwatch.engine.patterns import SuspiciousBehaviorDetector

__all__ = [
    # Results
    "GazeDirection",
    "Point",
    "FaceLandmarks",
    "FaceDetection",
    "ObjectDetection",
    "DetectionResult",
    "HeadPose",
    "AttentionSample",
    "LookingAwayEvent",
    "ComplianceResult",
    "ViolationRecord",
    "DetectionStatus",
    "ProctoringStatus",
    # Pipeline
    "BehavioralSignalExtractor",
    "AttentionScorer",
    "LookingAwayTracker",
    "TrackerState",
    "TrackerUpdate",
    "SuspiciousBehaviorDetector",
]
