from __future__ import annotations
"""
Monitoring Session

Drives the compliance orchestrator on a fixed interval and forwards the
stabilized signals to the consuming UI.
"""

import asyncio
import inspect
from collections import deque
from copy import deepcopy
from datetime import datetime
from typing import Any, Callable, Optional

from examwatch.cfg import BehaviorConfig, MonitoringSettings, StabilizerConfig, get_settings
from examwatch.engine.results import ComplianceResult, DetectionStatus, ProctoringStatus, ViolationRecord
from examwatch.models.base import DetectorBackend
from examwatch.service.orchestrator import ComplianceOrchestrator
from examwatch.service.stabilizer import ViolationStabilizer
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)


class MonitoringSession:
    """
    One proctoring session.

    Every ``start()`` builds a fresh orchestrator and stabilizer, so no
    history, tracker state or fallback flag survives a restart. ``stop()``
    cancels the interval task and both debounce timers.

    Example:
        >>> session = MonitoringSession(camera.read_rgb, MediaPipeBackend(), HaarCascadeBackend())
        >>> async with session:
        ...     await asyncio.sleep(60)
        >>> session.status.violations
    """

    def __init__(
        self,
        frame_source: Callable[[], Any],
        primary: DetectorBackend,
        fallback: Optional[DetectorBackend] = None,
        settings: Optional[MonitoringSettings] = None,
        on_violation: Optional[Callable[[ViolationRecord], None]] = None,
        on_violation_resolved: Optional[Callable[[], None]] = None,
        on_status_update: Optional[Callable[[ProctoringStatus], None]] = None,
        on_detection_status: Optional[Callable[[DetectionStatus], None]] = None,
        check_interval: Optional[float] = None,
        behavior_cfg: Optional[BehaviorConfig] = None,
        stabilizer_cfg: Optional[StabilizerConfig] = None,
    ):
        """
        Initialize monitoring session.

        Args:
            frame_source: Callable (sync or async) returning the current RGB frame or None
            primary: Preferred detector backend
            fallback: Backend used once the primary fails
            settings: Session detection settings
            on_violation: Called with each ViolationRecord
            on_violation_resolved: Called when critical violations clear
            on_status_update: Called with a ProctoringStatus after every tick
            on_detection_status: Called with the smoothed DetectionStatus
            check_interval: Seconds between ticks
            behavior_cfg: Behavior thresholds
            stabilizer_cfg: Debounce windows
        """
        app_settings = get_settings()

        self.frame_source = frame_source
        self.primary = primary
        self.fallback = fallback
        self.settings = settings or app_settings.to_monitoring_settings()
        self.check_interval = check_interval if check_interval is not None else app_settings.check_interval
        self.behavior_cfg = behavior_cfg or app_settings.to_behavior_config()
        self.stabilizer_cfg = stabilizer_cfg or app_settings.to_stabilizer_config()

        self.on_violation = on_violation
        self.on_violation_resolved = on_violation_resolved
        self.on_status_update = on_status_update
        self.on_detection_status = on_detection_status

        self.orchestrator: Optional[ComplianceOrchestrator] = None
        self.stabilizer: Optional[ViolationStabilizer] = None

        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._status = ProctoringStatus()
        self._violations: deque[ViolationRecord] = deque(maxlen=self.stabilizer_cfg.recent_violations)

    @property
    def status(self) -> ProctoringStatus:
        """Copy of the current session snapshot."""
        snapshot = deepcopy(self._status)
        snapshot.violations = list(self._violations)
        return snapshot

    async def start(self):
        """Start monitoring with fresh session state."""
        if self.running:
            logger.info("Already monitoring")
            return

        self.orchestrator = ComplianceOrchestrator(
            self.primary,
            self.fallback,
            cfg=self.behavior_cfg,
        )
        self.stabilizer = ViolationStabilizer(
            on_violation=self._handle_violation,
            on_violation_resolved=self.on_violation_resolved,
            on_status=self.on_detection_status,
            cfg=self.stabilizer_cfg,
        )
        self._status = ProctoringStatus()
        self._violations.clear()

        self.running = True
        self._task = asyncio.create_task(self._run())
        logger.info("✅ Proctoring monitoring started")

    async def stop(self):
        """Stop monitoring; no callback fires after this returns."""
        self.running = False

        if self.stabilizer is not None:
            self.stabilizer.cancel()

        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        self.orchestrator = None
        self.stabilizer = None
        logger.info("👋 Proctoring monitoring stopped")

    async def __aenter__(self) -> "MonitoringSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def _run(self):
        """
        Fixed-interval monitoring loop.

        Ticks start on a fixed cadence measured from the loop clock, so
        detection time does not stretch the period. Slots missed by an
        overrunning tick are dropped rather than run back to back.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time()

        while self.running:
            try:
                await self.check_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"❌ Error in monitoring check: {e}", exc_info=True)

            deadline += self.check_interval
            now = loop.time()
            if self.check_interval > 0 and deadline < now:
                missed = int((now - deadline) // self.check_interval) + 1
                logger.debug(f"Check overran, skipping {missed} slot(s)")
                deadline += missed * self.check_interval

            await asyncio.sleep(max(0.0, deadline - now))

    async def check_once(self) -> Optional[ComplianceResult]:
        """
        Perform one monitoring check.

        Returns:
            The tick's ComplianceResult, or None if no frame was available
            or the tick was skipped.
        """
        if self.orchestrator is None or self.stabilizer is None:
            return None

        frame = await self._read_frame()
        if frame is None:
            return None

        result = await self.orchestrator.tick(frame, self.settings)
        if result is None or not self.running:
            return result

        self.stabilizer.push(result)
        self._update_status(result)

        if self.on_status_update is not None:
            try:
                self.on_status_update(self.status)
            except Exception as e:
                logger.error(f"❌ Status update callback failed: {e}")

        return result

    async def _read_frame(self) -> Any:
        try:
            frame = self.frame_source()
            if inspect.isawaitable(frame):
                frame = await frame
            return frame
        except Exception as e:
            logger.error(f"❌ Could not read frame: {e}")
            return None

    def _handle_violation(self, violation: ViolationRecord):
        self._violations.append(violation)
        logger.warning(f"ALERT | {violation.type} | {violation.severity} | {violation.message}")

        if self.on_violation is not None:
            self.on_violation(violation)

    def _update_status(self, result: ComplianceResult):
        self._status = ProctoringStatus(
            face_detected=result.face_detected,
            face_count=result.face_count,
            objects_detected=list(result.objects_detected),
            gaze_direction=result.gaze_direction,
            head_pose=result.head_pose,
            looking_away=result.looking_away,
            looking_away_duration=result.looking_away_duration,
            attention_score=result.attention_score,
            warnings=list(result.warnings),
            last_check=datetime.utcnow(),
        )
