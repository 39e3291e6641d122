"""
Compliance Orchestrator

Runs one monitoring tick: face detection through the active backend,
behavioral analysis for a single landmarked face, presence checks and
prohibited object checks, assembled into a ComplianceResult.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from examwatch.cfg import BehaviorConfig, MonitoringSettings
from examwatch.engine.attention import AttentionScorer
from examwatch.engine.patterns import SuspiciousBehaviorDetector
from examwatch.engine.results import (
    ComplianceResult,
    DetectionResult,
    FaceDetection,
    GazeDirection,
    ObjectDetection,
)
from examwatch.engine.signals import BehavioralSignalExtractor
from examwatch.engine.tracker import LookingAwayTracker
from examwatch.models.base import DetectorBackend
from examwatch.utils.alerts import (
    HEAD_TURNED_WARNING,
    LOW_CONFIDENCE_WARNING,
    MULTIPLE_FACES_WARNING,
    NO_FACE_WARNING,
    OBJECT_WARNINGS,
    SYSTEM_ERROR_WARNING,
)
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)


class BackendState(str, Enum):
    """Which face backend serves detection. Only ever moves primary -> fallback."""
    PRIMARY_ACTIVE = "primary_active"
    FALLBACK_ACTIVE = "fallback_active"


# Keyword sets per prohibited category, checked in this order
PROHIBITED_OBJECTS = {
    "mobile_phone": [
        "cell phone", "mobile", "phone", "smartphone", "mobile phone",
        "cellular telephone", "handset",
    ],
    "unauthorized_device": [
        "laptop", "computer", "tablet", "ipad", "kindle", "ebook reader",
        "electronic device",
    ],
    "unauthorized_material": [
        "book", "notebook", "paper", "document", "notes", "cheat sheet",
        "textbook", "magazine", "newspaper",
    ],
    "prohibited_item": [
        "calculator", "watch", "smartwatch", "headphones", "earbuds",
        "microphone", "camera", "remote control",
    ],
}


def categorize_objects(
    detections: Iterable[ObjectDetection],
    min_confidence: float,
) -> list[str]:
    """
    Map object labels onto prohibited categories.

    A label matches a keyword when either contains the other. Each
    detection lands in its first matching category; categories are
    de-duplicated in first-seen order.
    """
    categories = []

    for detection in detections:
        if detection.score < min_confidence:
            continue

        label = str(detection.label).lower().strip()
        if not label:
            continue

        for category, keywords in PROHIBITED_OBJECTS.items():
            if any(label in keyword or keyword in label for keyword in keywords):
                if category not in categories:
                    categories.append(category)
                break

    return categories


class ComplianceOrchestrator:
    """
    Per-session coordinator of the behavioral pipeline.

    Owns all mutable session state: attention history, the looking-away
    tracker and its event log, and the backend fallback flag. Build a new
    instance for every monitoring session.

    Example:
        >>> orchestrator = ComplianceOrchestrator(MediaPipeBackend(), HaarCascadeBackend())
        >>> result = await orchestrator.tick(frame, MonitoringSettings())
        >>> result.warnings
        []
    """

    def __init__(
        self,
        primary: DetectorBackend,
        fallback: Optional[DetectorBackend] = None,
        cfg: Optional[BehaviorConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize orchestrator.

        Args:
            primary: Preferred detector backend
            fallback: Backend used for the rest of the session once the primary fails
            cfg: Behavior thresholds
            clock: Monotonic time source in seconds
        """
        self.cfg = cfg or BehaviorConfig()
        self.primary = primary
        self.fallback = fallback
        self.clock = clock

        self.backend_state = BackendState.PRIMARY_ACTIVE

        self.extractor = BehavioralSignalExtractor(self.cfg)
        self.scorer = AttentionScorer(self.cfg)
        self.tracker = LookingAwayTracker(self.cfg)
        self.patterns = SuspiciousBehaviorDetector(self.cfg)

        self._in_flight = False

    @property
    def active_backend(self) -> Optional[DetectorBackend]:
        if self.backend_state == BackendState.PRIMARY_ACTIVE:
            return self.primary
        return self.fallback

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def tick(self, frame: Any, settings: MonitoringSettings) -> Optional[ComplianceResult]:
        """
        Run one compliance check.

        Args:
            frame: RGB frame handed to the detector backends
            settings: Session detection settings

        Returns:
            ComplianceResult, or None if the previous tick is still running.
        """
        if self._in_flight:
            logger.debug("Previous tick still in flight, skipping")
            return None

        self._in_flight = True
        try:
            return await self._run(frame, settings)
        finally:
            self._in_flight = False

    async def _run(self, frame: Any, settings: MonitoringSettings) -> ComplianceResult:
        if not settings.enable_face_detection:
            return ComplianceResult.neutral()

        result = ComplianceResult()

        try:
            detection = await self._detect_faces(frame, settings.face_min_confidence)

            result.face_detected = detection.has_face
            result.face_count = detection.face_count
            result.face_confidence = max(0.0, min(100.0, detection.primary_confidence * 100))

            if detection.face_count == 1 and detection.faces[0].landmarks is not None:
                self._analyze_behavior(detection.faces[0], result)

            self._check_presence(detection, settings, result)

            if settings.enable_object_detection:
                objects = await self._detect_objects(frame, settings.object_min_confidence)
                result.objects_detected = objects
                result.warnings.extend(OBJECT_WARNINGS[category] for category in objects)

        except Exception as e:
            logger.error(f"❌ Error in proctoring compliance check: {e}", exc_info=True)
            result.warnings.append(SYSTEM_ERROR_WARNING)

        return result

    async def _detect_faces(self, frame: Any, min_confidence: float) -> DetectionResult:
        """Face detection with one-way fallback. Total failure reads as no face."""
        if self.backend_state == BackendState.PRIMARY_ACTIVE:
            try:
                return await self._call_backend(self.primary, frame, min_confidence)
            except Exception as e:
                logger.warning(f"⚠️ {self.primary.name} face detection failed, switching to fallback: {e}")
                self.backend_state = BackendState.FALLBACK_ACTIVE

        if self.fallback is None:
            logger.error("❌ No fallback face backend available")
            return DetectionResult.empty()

        try:
            return await self._call_backend(self.fallback, frame, min_confidence)
        except Exception as e:
            logger.error(f"❌ All face detection methods failed: {e}")
            return DetectionResult.empty()

    @staticmethod
    async def _call_backend(
        backend: DetectorBackend,
        frame: Any,
        min_confidence: float,
    ) -> DetectionResult:
        result = await asyncio.to_thread(backend.detect_faces, frame, min_confidence)

        if not isinstance(result, DetectionResult):
            raise TypeError(f"{backend.name} returned {type(result).__name__}, expected DetectionResult")

        if result.face_count != len(result.faces) or result.has_face != bool(result.faces):
            logger.debug(f"Repairing inconsistent detection result from {backend.name}")
            return DetectionResult.from_faces(result.faces)

        return result

    def _analyze_behavior(self, face: FaceDetection, result: ComplianceResult):
        """Gaze, pose, attention, tracking and pattern warnings for a single face."""
        try:
            now = self.clock()

            gaze, pose = self.extractor.extract(face.landmarks)
            score = self.scorer.score(gaze, pose, now)
            update = self.tracker.update(gaze, pose, now)

            result.gaze_direction = gaze
            result.head_pose = pose
            result.attention_score = score
            result.looking_away = update.looking_away
            result.looking_away_duration = update.duration

            if update.duration > self.cfg.extended_away_seconds:
                result.warnings.append(f"Extended looking away detected ({update.duration:.1f}s)")
            elif gaze != GazeDirection.CENTER:
                result.warnings.append(f"Gaze not centered ({gaze.value})")

            if score < self.cfg.low_attention_score:
                result.warnings.append(f"Low attention score ({score:.0f})")

            if abs(pose.yaw) > self.cfg.head_turn_yaw:
                result.warnings.append(HEAD_TURNED_WARNING)

            result.warnings.extend(self.patterns.evaluate(self.tracker.events, self.scorer.scores))

        except Exception as e:
            logger.error(f"❌ Error in behavioral analysis: {e}")

    @staticmethod
    def _check_presence(
        detection: DetectionResult,
        settings: MonitoringSettings,
        result: ComplianceResult,
    ):
        if not detection.has_face:
            result.warnings.append(NO_FACE_WARNING)
        elif detection.face_count > 1:
            result.warnings.append(MULTIPLE_FACES_WARNING)
        elif detection.primary_confidence < settings.face_min_confidence:
            result.warnings.append(LOW_CONFIDENCE_WARNING)

    async def _detect_objects(self, frame: Any, min_confidence: float) -> list[str]:
        """Prohibited object categories. Failures report nothing."""
        backend = self.active_backend
        if backend is None:
            return []

        try:
            detections = await asyncio.to_thread(backend.detect_objects, frame, min_confidence)
            return categorize_objects(detections or [], min_confidence)
        except Exception as e:
            logger.warning(f"⚠️ Object detection failed: {e}")
            return []
