"""
Examwatch command line runner

Usage:
    examwatch                          # Monitor the default camera
    examwatch --source 1 --interval 1  # Second camera, one check per second
    examwatch --no-objects --duration 120

Stops on Ctrl-C or after --duration seconds.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
from typing import Optional

from examwatch.cfg import MonitoringSettings, get_settings
from examwatch.engine.results import ViolationRecord
from examwatch.utils.logger import get_logger, setup_logging

logger = get_logger("examwatch.cli")


class Camera:
    """OpenCV capture returning RGB frames."""

    def __init__(self, source: str):
        import cv2

        self._cv2 = cv2
        self.capture = cv2.VideoCapture(int(source) if source.isdigit() else source)
        if not self.capture.isOpened():
            raise RuntimeError(f"Could not open camera source: {source}")

    def read_rgb(self):
        ok, frame = self.capture.read()
        if not ok:
            return None
        return self._cv2.cvtColor(frame, self._cv2.COLOR_BGR2RGB)

    def release(self):
        self.capture.release()


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Exam proctoring compliance monitor")
    parser.add_argument("--source", default=settings.camera_source, help="Camera index or video path")
    parser.add_argument("--interval", type=float, default=settings.check_interval, help="Seconds between checks")
    parser.add_argument("--face-sensitivity", type=float, default=settings.face_detection_sensitivity, help="Face sensitivity (0-100)")
    parser.add_argument("--object-sensitivity", type=float, default=settings.object_detection_sensitivity, help="Object sensitivity (0-100)")
    parser.add_argument("--no-faces", action="store_true", help="Disable face detection")
    parser.add_argument("--no-objects", action="store_true", help="Disable object detection")
    parser.add_argument("--model", default=settings.yolo_model_path, help="YOLO weights for object detection")
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds")
    parser.add_argument("--log-level", default=settings.log_level, help="DEBUG, INFO, WARNING, ERROR")
    return parser


async def run(args: argparse.Namespace):
    """Wire camera, backends and session, then wait for shutdown."""
    from examwatch.models.haar import HaarCascadeBackend
    from examwatch.models.mediapipe import MediaPipeBackend
    from examwatch.models.yolo import YOLOObjectDetector
    from examwatch.service.session import MonitoringSession

    settings = MonitoringSettings(
        enable_face_detection=not args.no_faces,
        face_detection_sensitivity=args.face_sensitivity,
        enable_object_detection=not args.no_objects,
        object_detection_sensitivity=args.object_sensitivity,
    )

    object_detector = None if args.no_objects else YOLOObjectDetector(args.model)
    primary = MediaPipeBackend(object_detector=object_detector, max_faces=get_settings().max_faces)
    fallback = HaarCascadeBackend(object_detector=object_detector)
    camera = Camera(args.source)

    def on_violation(violation: ViolationRecord):
        print(f"🚨 [{violation.severity}] {violation.message}")

    def on_resolved():
        print("✅ Critical violations resolved")

    session = MonitoringSession(
        frame_source=camera.read_rgb,
        primary=primary,
        fallback=fallback,
        settings=settings,
        on_violation=on_violation,
        on_violation_resolved=on_resolved,
        check_interval=args.interval,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    try:
        async with session:
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=args.duration)
            except asyncio.TimeoutError:
                pass
    finally:
        camera.release()
        primary.close()
        fallback.close()


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    print("🚀 Starting exam proctoring monitor...")
    print(f"📷 Source: {args.source} | every {args.interval}s")
    print()

    try:
        asyncio.run(run(args))
    except RuntimeError as e:
        logger.error(f"❌ {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
