"""
Tests for the Compliance Orchestrator

Backend fallback, presence checks, behavior warnings and prohibited objects.
"""

import asyncio
import threading

import pytest

from conftest import FakeBackend, build_face, build_landmarks
from examwatch.cfg import MonitoringSettings
from examwatch.engine.results import DetectionResult, GazeDirection, ObjectDetection, Point
from examwatch.service.orchestrator import BackendState, ComplianceOrchestrator, categorize_objects
from examwatch.utils.alerts import (
    HEAD_TURNED_WARNING,
    LOW_CONFIDENCE_WARNING,
    MULTIPLE_FACES_WARNING,
    NO_FACE_WARNING,
    OBJECT_WARNINGS,
    SYSTEM_ERROR_WARNING,
)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def _single(landmarks=None, score=0.9):
    return DetectionResult.from_faces([build_face(score=score, landmarks=landmarks)])


class TestBackendFallback:
    """Tests for backend failure handling"""

    @pytest.mark.asyncio
    async def test_failing_backend_reads_as_no_face(self, frame, settings):
        """Test a backend that always throws yields no face"""
        orchestrator = ComplianceOrchestrator(FakeBackend(error=RuntimeError("camera gone")))

        result = await orchestrator.tick(frame, settings)

        assert result.face_detected is False
        assert result.face_count == 0
        assert NO_FACE_WARNING in result.warnings
        assert SYSTEM_ERROR_WARNING not in result.warnings

    @pytest.mark.asyncio
    async def test_fallback_used_same_tick(self, frame, settings):
        """Test the fallback answers the tick in which the primary failed"""
        primary = FakeBackend(error=RuntimeError("model crashed"))
        fallback = FakeBackend(faces=_single())
        orchestrator = ComplianceOrchestrator(primary, fallback)

        result = await orchestrator.tick(frame, settings)

        assert result.face_detected is True
        assert result.face_count == 1
        assert orchestrator.backend_state == BackendState.FALLBACK_ACTIVE

    @pytest.mark.asyncio
    async def test_fallback_is_one_way(self, frame, settings):
        """Test the primary is never retried after failing"""
        primary = FakeBackend(error=RuntimeError("model crashed"))
        fallback = FakeBackend(faces=_single())
        orchestrator = ComplianceOrchestrator(primary, fallback)

        await orchestrator.tick(frame, settings)
        primary.error = None
        primary.faces = _single()
        await orchestrator.tick(frame, settings)
        await orchestrator.tick(frame, settings)

        assert primary.face_calls == 1
        assert fallback.face_calls == 3
        assert orchestrator.active_backend is fallback

    @pytest.mark.asyncio
    async def test_both_backends_fail(self, frame, settings):
        """Test total failure still produces a result"""
        orchestrator = ComplianceOrchestrator(
            FakeBackend(error=RuntimeError("primary")),
            FakeBackend(error=RuntimeError("fallback")),
        )

        result = await orchestrator.tick(frame, settings)

        assert result.face_detected is False
        assert result.warnings == [NO_FACE_WARNING]

    @pytest.mark.asyncio
    async def test_empty_primary_result_is_trusted(self, frame, settings):
        """Test an empty result is not a failure"""
        primary = FakeBackend(faces=None)
        fallback = FakeBackend(faces=_single())
        orchestrator = ComplianceOrchestrator(primary, fallback)

        result = await orchestrator.tick(frame, settings)

        assert result.face_detected is False
        assert fallback.face_calls == 0
        assert orchestrator.backend_state == BackendState.PRIMARY_ACTIVE

    @pytest.mark.asyncio
    async def test_wrong_result_type_is_failure(self, frame, settings):
        """Test a backend returning garbage fails over"""
        primary = FakeBackend(faces=lambda: {"faces": []})
        fallback = FakeBackend(faces=_single())
        orchestrator = ComplianceOrchestrator(primary, fallback)

        result = await orchestrator.tick(frame, settings)

        assert result.face_count == 1
        assert orchestrator.backend_state == BackendState.FALLBACK_ACTIVE

    @pytest.mark.asyncio
    async def test_inconsistent_result_repaired(self, frame, settings):
        """Test face_count and has_face follow the faces list"""
        broken = DetectionResult(has_face=False, face_count=0, faces=[build_face()], primary_confidence=0.9)
        orchestrator = ComplianceOrchestrator(FakeBackend(faces=broken))

        result = await orchestrator.tick(frame, settings)

        assert result.face_detected is True
        assert result.face_count == 1


class TestPresenceChecks:
    """Tests for face presence warnings"""

    @pytest.mark.asyncio
    async def test_face_detection_disabled(self, frame):
        """Test disabled face detection returns a neutral result"""
        backend = FakeBackend(faces=None, objects=[ObjectDetection("cell phone", 0.99)])
        orchestrator = ComplianceOrchestrator(backend)

        result = await orchestrator.tick(frame, MonitoringSettings(enable_face_detection=False))

        assert result.warnings == []
        assert result.attention_score == 100.0
        assert result.face_detected is False
        assert backend.face_calls == 0
        assert backend.object_calls == 0

    @pytest.mark.asyncio
    async def test_multiple_faces(self, frame, settings):
        """Test more than one face skips behavior analysis"""
        faces = DetectionResult.from_faces([
            build_face(score=0.95, landmarks=build_landmarks(nose=(80.0, 57.0))),
            build_face(score=0.8),
        ])
        orchestrator = ComplianceOrchestrator(FakeBackend(faces=faces))

        result = await orchestrator.tick(frame, settings)

        assert result.face_count == 2
        assert result.warnings == [MULTIPLE_FACES_WARNING]
        assert result.gaze_direction == GazeDirection.CENTER
        assert orchestrator.scorer.scores == []

    @pytest.mark.asyncio
    async def test_low_confidence(self, frame, settings):
        """Test primary face below the session sensitivity"""
        orchestrator = ComplianceOrchestrator(FakeBackend(faces=_single(score=0.3)))

        result = await orchestrator.tick(frame, settings)

        assert result.face_confidence == pytest.approx(30.0)
        assert result.warnings == [LOW_CONFIDENCE_WARNING]

    @pytest.mark.asyncio
    async def test_face_without_landmarks(self, frame, settings):
        """Test a landmark-free face passes presence checks only"""
        orchestrator = ComplianceOrchestrator(FakeBackend(faces=_single()))

        result = await orchestrator.tick(frame, settings)

        assert result.face_detected is True
        assert result.warnings == []
        assert result.attention_score == 100.0


class TestBehaviorWarnings:
    """Tests for single-face behavior analysis"""

    @pytest.mark.asyncio
    async def test_attentive_face(self, frame, settings, single_face_backend):
        """Test a centered face raises no warnings"""
        orchestrator = ComplianceOrchestrator(single_face_backend)

        result = await orchestrator.tick(frame, settings)

        assert result.warnings == []
        assert result.gaze_direction == GazeDirection.CENTER
        assert result.looking_away is False
        assert result.attention_score == pytest.approx(95.0)

    @pytest.mark.asyncio
    async def test_gaze_not_centered(self, frame, settings):
        """Test off-center gaze warning"""
        backend = FakeBackend(faces=_single(build_landmarks(nose=(80.0, 57.0))))
        orchestrator = ComplianceOrchestrator(backend)

        result = await orchestrator.tick(frame, settings)

        assert result.gaze_direction == GazeDirection.LEFT
        assert result.looking_away is True
        assert "Gaze not centered (left)" in result.warnings

    @pytest.mark.asyncio
    async def test_extended_looking_away(self, frame, settings):
        """Test away for more than three seconds replaces the gaze warning"""
        clock = FakeClock()
        backend = FakeBackend(faces=_single(build_landmarks(nose=(80.0, 57.0))))
        orchestrator = ComplianceOrchestrator(backend, clock=clock)

        await orchestrator.tick(frame, settings)
        clock.now = 4.0
        result = await orchestrator.tick(frame, settings)

        assert result.looking_away_duration == pytest.approx(4.0)
        assert "Extended looking away detected (4.0s)" in result.warnings
        assert not any(w.startswith("Gaze not centered") for w in result.warnings)

    @pytest.mark.asyncio
    async def test_head_turn_and_low_attention(self, frame, settings):
        """Test strong yaw raises head turn and low attention warnings"""
        backend = FakeBackend(faces=_single(build_landmarks(nose=(110.0, 57.0))))
        orchestrator = ComplianceOrchestrator(backend)

        result = await orchestrator.tick(frame, settings)

        assert result.head_pose.yaw == pytest.approx(0.625)
        assert HEAD_TURNED_WARNING in result.warnings
        assert "Low attention score (40)" in result.warnings

    @pytest.mark.asyncio
    async def test_frequent_looking_away_flag(self, frame, settings):
        """Test pattern flags reach the tick's warnings"""
        clock = FakeClock()
        looking_left = _single(build_landmarks(nose=(80.0, 57.0)))
        centered = _single(build_landmarks())
        backend = FakeBackend(faces=centered)
        orchestrator = ComplianceOrchestrator(backend, clock=clock)

        for episode in range(6):
            clock.now = episode * 10.0
            backend.faces = looking_left
            await orchestrator.tick(frame, settings)
            clock.now += 2.0
            backend.faces = centered
            result = await orchestrator.tick(frame, settings)

        assert len(orchestrator.tracker.events) == 6
        assert "Frequent looking away detected" in result.warnings


class TestObjectChecks:
    """Tests for prohibited object detection"""

    @pytest.mark.asyncio
    async def test_prohibited_objects(self, frame, settings):
        """Test categories and warnings for detected objects"""
        backend = FakeBackend(
            faces=_single(),
            objects=[
                ObjectDetection("cell phone", 0.9),
                ObjectDetection("notebook", 0.8),
                ObjectDetection("person", 0.99),
            ],
        )
        orchestrator = ComplianceOrchestrator(backend)

        result = await orchestrator.tick(frame, settings)

        assert result.objects_detected == ["mobile_phone", "unauthorized_material"]
        assert OBJECT_WARNINGS["mobile_phone"] in result.warnings
        assert OBJECT_WARNINGS["unauthorized_material"] in result.warnings

    @pytest.mark.asyncio
    async def test_object_detection_disabled(self, frame):
        """Test objects are not checked when disabled"""
        backend = FakeBackend(faces=_single(), objects=[ObjectDetection("cell phone", 0.9)])
        orchestrator = ComplianceOrchestrator(backend)

        result = await orchestrator.tick(frame, MonitoringSettings(enable_object_detection=False))

        assert result.objects_detected == []
        assert backend.object_calls == 0

    @pytest.mark.asyncio
    async def test_object_failure_is_silent(self, frame, settings):
        """Test object detector errors report nothing"""
        backend = FakeBackend(faces=_single(), object_error=RuntimeError("yolo failed"))
        orchestrator = ComplianceOrchestrator(backend)

        result = await orchestrator.tick(frame, settings)

        assert result.objects_detected == []
        assert result.warnings == []


class TestCategorizeObjects:
    """Tests for label to category mapping"""

    def test_keyword_containment(self):
        """Test either side may contain the other"""
        detections = [
            ObjectDetection("Laptop", 0.9),
            ObjectDetection("remote", 0.9),
            ObjectDetection("phone", 0.9),
        ]
        assert categorize_objects(detections, 0.5) == [
            "unauthorized_device",
            "prohibited_item",
            "mobile_phone",
        ]

    def test_low_score_and_empty_labels_skipped(self):
        """Test detections below confidence or without label"""
        detections = [ObjectDetection("cell phone", 0.4), ObjectDetection("  ", 0.9)]
        assert categorize_objects(detections, 0.5) == []

    def test_deduplicated(self):
        """Test a category appears once"""
        detections = [ObjectDetection("notes", 0.9), ObjectDetection("notebook", 0.9)]
        assert categorize_objects(detections, 0.5) == ["unauthorized_material"]

    def test_first_matching_category_wins(self):
        """Test a label inside an earlier category's keyword stops there"""
        # "book" is contained in the device keyword "ebook reader"
        assert categorize_objects([ObjectDetection("book", 0.9)], 0.5) == ["unauthorized_device"]


class TestConcurrency:
    """Tests for overlapping ticks"""

    @pytest.mark.asyncio
    async def test_overlapping_tick_skipped(self, frame, settings):
        """Test a tick while another is running returns None"""
        gate = threading.Event()
        backend = FakeBackend(faces=_single(), gate=gate)
        orchestrator = ComplianceOrchestrator(backend)

        first = asyncio.create_task(orchestrator.tick(frame, settings))
        while not backend.entered.is_set():
            await asyncio.sleep(0.01)

        assert orchestrator.in_flight is True
        assert await orchestrator.tick(frame, settings) is None

        gate.set()
        result = await first

        assert result is not None
        assert result.face_count == 1
        assert backend.face_calls == 1
        assert orchestrator.in_flight is False


class TestConfidenceBounds:
    """Tests for face confidence range"""

    @pytest.mark.asyncio
    async def test_out_of_range_confidence_clamped(self, frame, settings):
        """Test backend confidences above 1 report at most 100"""
        overconfident = DetectionResult(has_face=True, face_count=1, faces=[build_face()], primary_confidence=1.3)
        orchestrator = ComplianceOrchestrator(FakeBackend(faces=overconfident))

        result = await orchestrator.tick(frame, settings)

        assert result.face_confidence == 100.0
        assert LOW_CONFIDENCE_WARNING not in result.warnings

    @pytest.mark.asyncio
    async def test_face_behaviour_with_malformed_landmarks(self, frame, settings):
        """Test unparseable landmarks fail closed as an away gaze"""
        landmarks = build_landmarks()
        landmarks.nose_tip = Point("n/a", 57.0)
        orchestrator = ComplianceOrchestrator(FakeBackend(faces=_single(landmarks)))

        result = await orchestrator.tick(frame, settings)

        assert result.gaze_direction == GazeDirection.AWAY
        assert result.attention_score == 70.0
        assert "Gaze not centered (away)" in result.warnings
