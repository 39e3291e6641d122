"""
Tests for Configuration, Box Normalization and Alert Helpers
"""

from types import SimpleNamespace

import pytest

from examwatch.cfg import BehaviorConfig, MonitoringSettings, Settings
from examwatch.models.base import BoxFormat, normalize_box, to_face_detection
from examwatch.utils.alerts import (
    AlertSeverity,
    AlertType,
    EXTENDED_INATTENTION_FLAG,
    NO_FACE_WARNING,
    OBJECT_WARNINGS,
    SYSTEM_ERROR_WARNING,
    classify_warning,
    is_critical,
    severity_for_warning,
)
from examwatch.utils.logger import get_logger


class TestMonitoringSettings:
    """Tests for session settings"""

    def test_defaults(self):
        """Test default sensitivities map to 0.5 confidences"""
        settings = MonitoringSettings()

        assert settings.enable_face_detection is True
        assert settings.face_min_confidence == 0.5
        assert settings.object_min_confidence == 0.5

    @pytest.mark.parametrize("value,expected", [(150, 100.0), (-5, 0.0), (72.5, 72.5), (None, 50.0)])
    def test_sensitivity_clamped(self, value, expected):
        """Test out-of-range sensitivities are clamped"""
        settings = MonitoringSettings(face_detection_sensitivity=value, object_detection_sensitivity=value)

        assert settings.face_detection_sensitivity == expected
        assert settings.object_detection_sensitivity == expected

    def test_missing_sensitivity_uses_own_default(self, monkeypatch):
        """Test None falls back to the default of the field it was given for"""
        from examwatch.cfg import config

        monkeypatch.setitem(config._SENSITIVITY_DEFAULTS, "object_detection_sensitivity", 35.0)

        settings = MonitoringSettings(face_detection_sensitivity=None, object_detection_sensitivity=None)

        assert settings.face_detection_sensitivity == 50.0
        assert settings.object_detection_sensitivity == 35.0

    def test_behavior_defaults(self):
        """Test behavior threshold defaults"""
        cfg = BehaviorConfig()

        assert cfg.gaze_horizontal_threshold == 0.15
        assert cfg.gaze_vertical_threshold == 0.10
        assert cfg.attention_history_size == 10
        assert cfg.event_window == 600.0
        assert cfg.frequent_away_count == 5


class TestSettings:
    """Tests for environment-driven settings"""

    def test_env_override(self, monkeypatch):
        """Test EXAMWATCH_ variables override defaults"""
        monkeypatch.setenv("EXAMWATCH_CHECK_INTERVAL", "0.5")
        monkeypatch.setenv("EXAMWATCH_FACE_DETECTION_SENSITIVITY", "80")
        monkeypatch.setenv("EXAMWATCH_EVENT_WINDOW", "300")

        settings = Settings()

        assert settings.check_interval == 0.5
        assert settings.to_monitoring_settings().face_min_confidence == pytest.approx(0.8)
        assert settings.to_behavior_config().event_window == 300.0

    def test_converters_use_defaults(self, monkeypatch):
        """Test unset overrides keep config defaults"""
        monkeypatch.delenv("EXAMWATCH_EVENT_WINDOW", raising=False)
        monkeypatch.delenv("EXAMWATCH_MIN_AWAY_EPISODE", raising=False)

        settings = Settings()

        assert settings.to_behavior_config().min_away_episode == 1.0
        assert settings.to_stabilizer_config().warning_settle_delay == 1.0


class TestBoxNormalization:
    """Tests for detector box conversion"""

    def test_corner_size(self):
        """Test x/y/width/height boxes pass through"""
        box = {"x": 10, "y": 20, "width": 30, "height": 40}
        assert normalize_box(box, BoxFormat.CORNER_SIZE) == (10.0, 20.0, 30.0, 40.0)

    def test_origin_size_object(self):
        """Test attribute-style boxes"""
        box = SimpleNamespace(originX=5, originY=6, width=7, height=8)
        assert normalize_box(box, BoxFormat.ORIGIN_SIZE) == (5.0, 6.0, 7.0, 8.0)

    def test_minmax_normalized(self):
        """Test relative min/max boxes scale to the frame"""
        box = {"xmin": 0.25, "ymin": 0.5, "xmax": 0.75, "ymax": 1.0}
        assert normalize_box(box, BoxFormat.MINMAX_NORMALIZED, frame_size=(200, 100)) == (50.0, 50.0, 100.0, 50.0)

    def test_missing_key(self):
        """Test a box missing a field"""
        with pytest.raises(ValueError):
            normalize_box({"x": 1, "y": 2, "width": 3}, BoxFormat.CORNER_SIZE)

    def test_normalized_needs_frame_size(self):
        """Test relative boxes without a frame size"""
        with pytest.raises(ValueError):
            normalize_box({"xmin": 0, "ymin": 0, "xmax": 1, "ymax": 1}, BoxFormat.MINMAX_NORMALIZED)

    def test_empty_box(self):
        """Test zero-area boxes are rejected"""
        with pytest.raises(ValueError):
            normalize_box({"x": 1, "y": 2, "width": 0, "height": 3}, BoxFormat.CORNER_SIZE)

    def test_face_score_clamped(self):
        """Test face scores are clamped into [0, 1]"""
        face = to_face_detection({"x": 0, "y": 0, "width": 10, "height": 10}, BoxFormat.CORNER_SIZE, 1.7)

        assert face.score == 1.0
        assert face.landmarks is None


class TestAlertHelpers:
    """Tests for warning classification"""

    @pytest.mark.parametrize("warning,alert_type", [
        (NO_FACE_WARNING, AlertType.FACE_NOT_VISIBLE),
        (OBJECT_WARNINGS["unauthorized_device"], AlertType.UNAUTHORIZED_OBJECT_DETECTED),
        (OBJECT_WARNINGS["prohibited_item"], AlertType.UNAUTHORIZED_OBJECT_DETECTED),
        ("Extended looking away detected (4.2s)", AlertType.LOOKING_AWAY),
        ("Gaze not centered (up)", AlertType.LOOKING_AWAY),
        (EXTENDED_INATTENTION_FLAG, AlertType.SUSPICIOUS_BEHAVIOR),
        (SYSTEM_ERROR_WARNING, AlertType.SYSTEM_ERROR),
        ("Something odd", AlertType.SUSPICIOUS_BEHAVIOR),
    ])
    def test_classify(self, warning, alert_type):
        assert classify_warning(warning) == alert_type

    def test_severity(self):
        """Test keyword severities"""
        assert severity_for_warning(NO_FACE_WARNING) == AlertSeverity.HIGH
        assert severity_for_warning(OBJECT_WARNINGS["mobile_phone"]) == AlertSeverity.CRITICAL
        assert severity_for_warning(OBJECT_WARNINGS["unauthorized_material"]) == AlertSeverity.CRITICAL
        assert severity_for_warning("Gaze not centered (left)") == AlertSeverity.MEDIUM

    def test_is_critical(self):
        """Test critical fragments"""
        assert is_critical([OBJECT_WARNINGS["unauthorized_material"]])
        assert not is_critical([OBJECT_WARNINGS["unauthorized_device"], "Low attention score (20)"])
        assert not is_critical([])


class TestLogger:
    """Tests for logger setup"""

    def test_single_handler(self):
        """Test repeated calls do not stack handlers"""
        first = get_logger("examwatch.test")
        second = get_logger("examwatch.test")

        assert first is second
        assert len(second.handlers) == 1
