from __future__ import annotations
"""
Alert Types and Constants

Defines the violation taxonomy, severities and the warning texts the
compliance pipeline emits.
"""

from enum import Enum
from typing import Iterable


class AlertType(str, Enum):
    """Types of proctoring violations."""
    # Presence
    FACE_NOT_VISIBLE = "face_not_visible"
    MULTIPLE_FACES = "multiple_faces"
    LOW_CONFIDENCE = "low_confidence"

    # Prohibited objects
    MOBILE_PHONE_DETECTED = "mobile_phone_detected"
    UNAUTHORIZED_OBJECT_DETECTED = "unauthorized_object_detected"

    # Behavior
    LOOKING_AWAY = "looking_away"
    HEAD_TURNED = "head_turned"
    LOW_ATTENTION = "low_attention"
    SUSPICIOUS_BEHAVIOR = "suspicious_behavior"

    # Pipeline
    SYSTEM_ERROR = "system_error"


class AlertSeverity(str, Enum):
    """Alert severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Warning texts produced by the orchestrator
NO_FACE_WARNING = "No face detected in camera feed"
MULTIPLE_FACES_WARNING = "Multiple faces detected - only one person should be visible"
LOW_CONFIDENCE_WARNING = "Face detection confidence is low - ensure proper lighting and positioning"
HEAD_TURNED_WARNING = "Head turned significantly to the side"
SYSTEM_ERROR_WARNING = "Face detection system error"

FREQUENT_AWAY_FLAG = "Frequent looking away detected"
EXTENDED_INATTENTION_FLAG = "Extended periods of inattention detected"
DECLINING_ATTENTION_FLAG = "Declining attention trend detected"

OBJECT_WARNINGS = {
    "mobile_phone": "Mobile phone detected in camera feed",
    "unauthorized_device": "Unauthorized electronic device detected",
    "unauthorized_material": "Unauthorized materials (books/notes) detected",
    "prohibited_item": "Prohibited item detected in camera feed",
}

# Warning fragments whose disappearance counts as a resolved violation
CRITICAL_WARNINGS = (
    "No face detected",
    "Multiple faces detected",
    "Mobile phone detected",
    "Unauthorized materials",
)

# First matching fragment wins
_TYPE_RULES = (
    ("No face detected", AlertType.FACE_NOT_VISIBLE),
    ("Multiple faces detected", AlertType.MULTIPLE_FACES),
    ("confidence is low", AlertType.LOW_CONFIDENCE),
    ("Mobile phone detected", AlertType.MOBILE_PHONE_DETECTED),
    ("Unauthorized", AlertType.UNAUTHORIZED_OBJECT_DETECTED),
    ("Prohibited item", AlertType.UNAUTHORIZED_OBJECT_DETECTED),
    ("Extended looking away detected", AlertType.LOOKING_AWAY),
    ("Gaze not centered", AlertType.LOOKING_AWAY),
    ("Head turned significantly", AlertType.HEAD_TURNED),
    ("Low attention score", AlertType.LOW_ATTENTION),
    (FREQUENT_AWAY_FLAG, AlertType.SUSPICIOUS_BEHAVIOR),
    (EXTENDED_INATTENTION_FLAG, AlertType.SUSPICIOUS_BEHAVIOR),
    (DECLINING_ATTENTION_FLAG, AlertType.SUSPICIOUS_BEHAVIOR),
    ("system error", AlertType.SYSTEM_ERROR),
)


def classify_warning(warning: str) -> AlertType:
    """
    Map a warning string to its violation type.

    Args:
        warning: Warning text from a ComplianceResult

    Returns:
        AlertType (SUSPICIOUS_BEHAVIOR when nothing matches)
    """
    for fragment, alert_type in _TYPE_RULES:
        if fragment in warning:
            return alert_type
    return AlertType.SUSPICIOUS_BEHAVIOR


def severity_for_warning(warning: str) -> AlertSeverity:
    """
    Determine severity by keyword.

    Phones and unauthorized items are critical, absence and multiplicity
    are high, everything else is medium.
    """
    if "No face detected" in warning or "Multiple faces" in warning:
        return AlertSeverity.HIGH
    if "Mobile phone" in warning or "Unauthorized" in warning:
        return AlertSeverity.CRITICAL
    return AlertSeverity.MEDIUM


def is_critical(warnings: Iterable[str]) -> bool:
    """Whether any warning belongs to a critical category."""
    return any(
        fragment in warning
        for warning in warnings
        for fragment in CRITICAL_WARNINGS
    )
