"""Detector Backends Module"""

from examwatch.models.base import BoxFormat, DetectorBackend, normalize_box, to_face_detection


def __getattr__(name: str):
    """Lazy load backends that pull in ML libraries."""
    if name == "MediaPipeBackend":
        from examwatch.models.mediapipe import MediaPipeBackend
        return MediaPipeBackend
    elif name == "HaarCascadeBackend":
        from examwatch.models.haar import HaarCascadeBackend
        return HaarCascadeBackend
    elif name == "YOLOObjectDetector":
        from examwatch.models.yolo import YOLOObjectDetector
        return YOLOObjectDetector
    raise AttributeError(f"module 'examwatch.models' has no attribute '{name}'")


__all__ = [
    "BoxFormat",
    "DetectorBackend",
    "normalize_box",
    "to_face_detection",
    "MediaPipeBackend",
    "HaarCascadeBackend",
    "YOLOObjectDetector",
]
