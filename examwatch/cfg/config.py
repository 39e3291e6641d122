from __future__ import annotations
"""
Examwatch Configuration Classes

Pydantic-based configuration with validation and defaults.
Single source of truth for all configuration values.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ============================================================================
# Constants - Single source of truth for default values
# ============================================================================

# Session settings (sensitivities are 0-100, converted to 0-1 confidences)
DEFAULT_FACE_SENSITIVITY = 50.0
DEFAULT_OBJECT_SENSITIVITY = 50.0
_SENSITIVITY_DEFAULTS = {
    "face_detection_sensitivity": DEFAULT_FACE_SENSITIVITY,
    "object_detection_sensitivity": DEFAULT_OBJECT_SENSITIVITY,
}

# Gaze classification (fractions of eye separation)
DEFAULT_GAZE_HORIZONTAL_THRESHOLD = 0.15
DEFAULT_GAZE_VERTICAL_THRESHOLD = 0.10
DEFAULT_EXPECTED_NOSE_OFFSET = 0.3

# Attention scoring
DEFAULT_ATTENTION_HISTORY = 10
DEFAULT_GAZE_PENALTY = 30.0
DEFAULT_YAW_PENALTY = 40.0
DEFAULT_PITCH_PENALTY = 40.0
DEFAULT_ROLL_PENALTY = 0.5

# Looking-away hysteresis
DEFAULT_YAW_AWAY = 0.25
DEFAULT_PITCH_AWAY = 0.20
DEFAULT_ROLL_AWAY = 15.0  # degrees
DEFAULT_MIN_AWAY_EPISODE = 1.0  # seconds
DEFAULT_EVENT_WINDOW = 600.0  # seconds

# Suspicious behavior patterns
DEFAULT_FREQUENT_AWAY_COUNT = 5
DEFAULT_TOTAL_AWAY_SECONDS = 120.0
DEFAULT_TREND_WINDOW = 5
DEFAULT_TREND_DECLINE = -10.0

# Per-tick warnings
DEFAULT_EXTENDED_AWAY_SECONDS = 3.0
DEFAULT_LOW_ATTENTION = 50.0
DEFAULT_HEAD_TURN_YAW = 0.5

# Stabilizer / session
DEFAULT_STATUS_DELAY = 0.5
DEFAULT_WARNING_SETTLE_DELAY = 1.0
DEFAULT_RECENT_VIOLATIONS = 50
DEFAULT_CHECK_INTERVAL = 2.0

# Backends
DEFAULT_YOLO_MODEL = "yolo11n.pt"
DEFAULT_MAX_FACES = 3
DEFAULT_TRACKING_CONFIDENCE = 0.5


# ============================================================================
# Base Configuration
# ============================================================================

class BaseConfig(BaseModel):
    """Base configuration class for all examwatch configs."""

    model_config = ConfigDict(extra="allow")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.model_dump()})"


# ============================================================================
# Component Configurations
# ============================================================================

class MonitoringSettings(BaseConfig):
    """Per-session detection settings chosen by the exam author."""

    enable_face_detection: bool = Field(default=True, description="Run face presence and behavior analysis")
    face_detection_sensitivity: float = Field(default=DEFAULT_FACE_SENSITIVITY, description="Face sensitivity (0-100)")
    enable_object_detection: bool = Field(default=True, description="Run prohibited object detection")
    object_detection_sensitivity: float = Field(default=DEFAULT_OBJECT_SENSITIVITY, description="Object sensitivity (0-100)")

    @field_validator("face_detection_sensitivity", "object_detection_sensitivity", mode="before")
    @classmethod
    def _clamp_sensitivity(cls, value, info: ValidationInfo):
        """Sensitivities are not validated upstream, so clamp instead of rejecting."""
        if value is None:
            return _SENSITIVITY_DEFAULTS[info.field_name]
        return max(0.0, min(100.0, float(value)))

    @property
    def face_min_confidence(self) -> float:
        return self.face_detection_sensitivity / 100.0

    @property
    def object_min_confidence(self) -> float:
        return self.object_detection_sensitivity / 100.0


class BehaviorConfig(BaseConfig):
    """Thresholds for the behavioral signal pipeline."""

    # Gaze
    gaze_horizontal_threshold: float = Field(default=DEFAULT_GAZE_HORIZONTAL_THRESHOLD, description="Horizontal gaze threshold")
    gaze_vertical_threshold: float = Field(default=DEFAULT_GAZE_VERTICAL_THRESHOLD, description="Vertical gaze threshold")
    expected_nose_offset: float = Field(default=DEFAULT_EXPECTED_NOSE_OFFSET, description="Nose offset below eyes as face-height fraction")

    # Attention
    attention_history_size: int = Field(default=DEFAULT_ATTENTION_HISTORY, description="Attention samples kept")
    gaze_penalty: float = Field(default=DEFAULT_GAZE_PENALTY, description="Penalty for off-center gaze")
    yaw_penalty: float = Field(default=DEFAULT_YAW_PENALTY, description="Penalty per unit |yaw|")
    pitch_penalty: float = Field(default=DEFAULT_PITCH_PENALTY, description="Penalty per unit |pitch|")
    roll_penalty: float = Field(default=DEFAULT_ROLL_PENALTY, description="Penalty per degree |roll|")

    # Looking away
    yaw_away_threshold: float = Field(default=DEFAULT_YAW_AWAY, description="|yaw| above which the head counts as turned")
    pitch_away_threshold: float = Field(default=DEFAULT_PITCH_AWAY, description="|pitch| above which the head counts as tilted")
    roll_away_threshold: float = Field(default=DEFAULT_ROLL_AWAY, description="|roll| in degrees above which the head counts as tilted")
    min_away_episode: float = Field(default=DEFAULT_MIN_AWAY_EPISODE, description="Shortest episode recorded as an event (s)")
    event_window: float = Field(default=DEFAULT_EVENT_WINDOW, description="Trailing window of retained events (s)")

    # Patterns
    frequent_away_count: int = Field(default=DEFAULT_FREQUENT_AWAY_COUNT, description="Events above which looking away is frequent")
    total_away_seconds: float = Field(default=DEFAULT_TOTAL_AWAY_SECONDS, description="Total away time flagged as inattention (s)")
    trend_window: int = Field(default=DEFAULT_TREND_WINDOW, description="Samples used for the attention trend")
    trend_decline: float = Field(default=DEFAULT_TREND_DECLINE, description="Mean delta below which attention is declining")

    # Warnings
    extended_away_seconds: float = Field(default=DEFAULT_EXTENDED_AWAY_SECONDS, description="Away duration flagged as extended (s)")
    low_attention_score: float = Field(default=DEFAULT_LOW_ATTENTION, description="Score below which attention is low")
    head_turn_yaw: float = Field(default=DEFAULT_HEAD_TURN_YAW, description="|yaw| flagged as a significant head turn")


class StabilizerConfig(BaseConfig):
    """Debounce windows for UI-facing signals."""

    status_delay: float = Field(default=DEFAULT_STATUS_DELAY, description="Status smoothing delay (s)")
    warning_settle_delay: float = Field(default=DEFAULT_WARNING_SETTLE_DELAY, description="Warning settle window (s)")
    recent_violations: int = Field(default=DEFAULT_RECENT_VIOLATIONS, description="Violations kept on the session status")


# ============================================================================
# Main Settings (Single Source of Truth with Environment Variable Support)
# ============================================================================

class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Every field can be overridden with an ``EXAMWATCH_``-prefixed
    environment variable or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXAMWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Session defaults
    enable_face_detection: bool = True
    face_detection_sensitivity: float = DEFAULT_FACE_SENSITIVITY
    enable_object_detection: bool = True
    object_detection_sensitivity: float = DEFAULT_OBJECT_SENSITIVITY

    # Scheduling
    check_interval: float = DEFAULT_CHECK_INTERVAL
    status_delay: float = DEFAULT_STATUS_DELAY
    warning_settle_delay: float = DEFAULT_WARNING_SETTLE_DELAY
    recent_violations: int = DEFAULT_RECENT_VIOLATIONS

    # Backends
    yolo_model_path: str = DEFAULT_YOLO_MODEL
    max_faces: int = DEFAULT_MAX_FACES
    camera_source: str = "0"

    # Logging
    log_level: str = "INFO"

    # Optional overrides for behavior thresholds
    event_window: Optional[float] = None
    min_away_episode: Optional[float] = None

    def to_monitoring_settings(self) -> MonitoringSettings:
        """Convert settings to MonitoringSettings."""
        return MonitoringSettings(
            enable_face_detection=self.enable_face_detection,
            face_detection_sensitivity=self.face_detection_sensitivity,
            enable_object_detection=self.enable_object_detection,
            object_detection_sensitivity=self.object_detection_sensitivity,
        )

    def to_behavior_config(self) -> BehaviorConfig:
        """Convert settings to BehaviorConfig."""
        overrides = {}
        if self.event_window is not None:
            overrides["event_window"] = self.event_window
        if self.min_away_episode is not None:
            overrides["min_away_episode"] = self.min_away_episode
        return BehaviorConfig(**overrides)

    def to_stabilizer_config(self) -> StabilizerConfig:
        """Convert settings to StabilizerConfig."""
        return StabilizerConfig(
            status_delay=self.status_delay,
            warning_settle_delay=self.warning_settle_delay,
            recent_violations=self.recent_violations,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
