"""
Violation Stabilizer

Turns the per-tick ComplianceResult stream into UI-stable signals:
a delayed detection status, a settled warning list that reports resolved
critical violations, and one ViolationRecord per warning per tick.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from examwatch.cfg import StabilizerConfig
from examwatch.engine.results import ComplianceResult, DetectionStatus, ViolationRecord
from examwatch.utils.alerts import classify_warning, is_critical, severity_for_warning
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)


def to_violation(warning: str, result: Optional[ComplianceResult] = None) -> ViolationRecord:
    """Build the ViolationRecord for one warning."""
    return ViolationRecord(
        type=classify_warning(warning).value,
        severity=severity_for_warning(warning).value,
        message=warning,
        details=result.to_dict() if result is not None else {},
    )


class ViolationStabilizer:
    """
    Debounce compliance results for the UI.

    Two independent timers are kept: ``_status_timer`` delays status
    updates (last value wins) and ``_warning_timer`` waits for the warning
    list to settle. Per-warning violations are emitted immediately.

    Must be used from inside a running asyncio event loop.

    Example:
        >>> stabilizer = ViolationStabilizer(on_violation=print, on_violation_resolved=notify)
        >>> stabilizer.push(result)
        >>> stabilizer.cancel()  # on session stop
    """

    def __init__(
        self,
        on_violation: Optional[Callable[[ViolationRecord], None]] = None,
        on_violation_resolved: Optional[Callable[[], None]] = None,
        on_status: Optional[Callable[[DetectionStatus], None]] = None,
        cfg: Optional[StabilizerConfig] = None,
    ):
        self.cfg = cfg or StabilizerConfig()
        self.on_violation = on_violation
        self.on_violation_resolved = on_violation_resolved
        self.on_status = on_status

        self._status = DetectionStatus()
        self._stable_warnings: list[str] = []
        self._pending_warnings: Optional[list[str]] = None

        self._status_timer: Optional[asyncio.TimerHandle] = None
        self._warning_timer: Optional[asyncio.TimerHandle] = None
        self._closed = False

    @property
    def status(self) -> DetectionStatus:
        return DetectionStatus(
            face_count=self._status.face_count,
            confidence=self._status.confidence,
            is_detecting=self._status.is_detecting,
        )

    @property
    def stable_warnings(self) -> list[str]:
        return list(self._stable_warnings)

    def push(self, result: ComplianceResult, is_detecting: bool = True) -> list[ViolationRecord]:
        """
        Consume one tick's result.

        Args:
            result: Latest ComplianceResult
            is_detecting: Whether detection is currently running

        Returns:
            ViolationRecords emitted for this tick
        """
        if self._closed:
            return []

        loop = asyncio.get_running_loop()

        self._schedule_status(loop, DetectionStatus(
            face_count=result.face_count,
            confidence=result.face_confidence,
            is_detecting=is_detecting,
        ))
        self._schedule_warnings(loop, list(result.warnings))

        return self._emit_violations(result)

    def _schedule_status(self, loop: asyncio.AbstractEventLoop, status: DetectionStatus):
        if self._status_timer is not None:
            self._status_timer.cancel()
        self._status_timer = loop.call_later(self.cfg.status_delay, self._apply_status, status)

    def _apply_status(self, status: DetectionStatus):
        self._status_timer = None
        self._status = status
        if self.on_status is not None:
            try:
                self.on_status(self.status)
            except Exception as e:
                logger.error(f"❌ Status callback failed: {e}")

    def _schedule_warnings(self, loop: asyncio.AbstractEventLoop, warnings: list[str]):
        # Identical lists neither restart nor add a settle window
        if self._warning_timer is not None and warnings == self._pending_warnings:
            return
        if self._warning_timer is None and warnings == self._stable_warnings:
            return

        if self._warning_timer is not None:
            self._warning_timer.cancel()

        self._pending_warnings = warnings
        self._warning_timer = loop.call_later(self.cfg.warning_settle_delay, self._settle_warnings)

    def _settle_warnings(self):
        self._warning_timer = None
        warnings = self._pending_warnings or []
        self._pending_warnings = None

        if is_critical(self._stable_warnings) and not is_critical(warnings):
            logger.info("✅ Critical violations resolved")
            if self.on_violation_resolved is not None:
                try:
                    self.on_violation_resolved()
                except Exception as e:
                    logger.error(f"❌ Resolution callback failed: {e}")

        self._stable_warnings = warnings

    def _emit_violations(self, result: ComplianceResult) -> list[ViolationRecord]:
        records = [to_violation(warning, result) for warning in result.warnings]

        if self.on_violation is not None:
            for record in records:
                try:
                    self.on_violation(record)
                except Exception as e:
                    logger.error(f"❌ Violation callback failed: {e}")

        return records

    def cancel(self):
        """Cancel both timers; no callback fires afterwards."""
        self._closed = True
        for timer in (self._status_timer, self._warning_timer):
            if timer is not None:
                timer.cancel()
        self._status_timer = None
        self._warning_timer = None
        self._pending_warnings = None
