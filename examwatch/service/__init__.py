from __future__ import annotations
"""
Examwatch Service Module

Per-session orchestration, debouncing and the monitoring loop.
"""

from examwatch.service.orchestrator import (
    BackendState,
    ComplianceOrchestrator,
    PROHIBITED_OBJECTS,
    categorize_objects,
)
from examwatch.service.stabilizer import ViolationStabilizer, to_violation
from examwatch.service.session import MonitoringSession

__all__ = [
    "BackendState",
    "ComplianceOrchestrator",
    "PROHIBITED_OBJECTS",
    "categorize_objects",
    "ViolationStabilizer",
    "to_violation",
    "MonitoringSession",
]
