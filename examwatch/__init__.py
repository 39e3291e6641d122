"""
Examwatch - exam-proctoring compliance core

Turns noisy per-frame face/object detections into stable compliance
signals: gaze and head pose, attention score, looking-away episodes,
suspicious patterns, and debounced violations.

Usage:
    from examwatch import MonitoringSession, MonitoringSettings
    from examwatch.models import MediaPipeBackend, HaarCascadeBackend

    session = MonitoringSession(
        frame_source=camera.read_rgb,
        primary=MediaPipeBackend(),
        fallback=HaarCascadeBackend(),
        settings=MonitoringSettings(face_detection_sensitivity=60),
        on_violation=print,
    )
    async with session:
        await asyncio.sleep(60)

    # Single ticks
    from examwatch import ComplianceOrchestrator
    orchestrator = ComplianceOrchestrator(MediaPipeBackend())
    result = await orchestrator.tick(frame, MonitoringSettings())
"""

__version__ = "0.1.0"

from examwatch.cfg import MonitoringSettings, BehaviorConfig, StabilizerConfig, get_settings
from examwatch.engine.results import ComplianceResult, GazeDirection, HeadPose, ViolationRecord
from examwatch.models.base import DetectorBackend


# Service components (lazy loaded when accessed)
def __getattr__(name: str):
    """Lazy load service components."""
    if name == "ComplianceOrchestrator":
        from examwatch.service.orchestrator import ComplianceOrchestrator
        return ComplianceOrchestrator
    elif name == "ViolationStabilizer":
        from examwatch.service.stabilizer import ViolationStabilizer
        return ViolationStabilizer
    elif name == "MonitoringSession":
        from examwatch.service.session import MonitoringSession
        return MonitoringSession
    raise AttributeError(f"module 'examwatch' has no attribute '{name}'")


# Public API
__all__ = [
    # Configs
    "MonitoringSettings",
    "BehaviorConfig",
    "StabilizerConfig",
    "get_settings",
    # Results
    "ComplianceResult",
    "GazeDirection",
    "HeadPose",
    "ViolationRecord",
    # Backends
    "DetectorBackend",
    # Service (lazy loaded)
    "ComplianceOrchestrator",
    "ViolationStabilizer",
    "MonitoringSession",
    # Version
    "__version__",
]
