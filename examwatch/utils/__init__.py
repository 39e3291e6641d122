from __future__ import annotations
"""
Examwatch Utilities Module

Logging and the violation taxonomy.
"""

from examwatch.utils.logger import get_logger, setup_logging
from examwatch.utils.alerts import (
    AlertType,
    AlertSeverity,
    CRITICAL_WARNINGS,
    classify_warning,
    severity_for_warning,
    is_critical,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "AlertType",
    "AlertSeverity",
    "CRITICAL_WARNINGS",
    "classify_warning",
    "severity_for_warning",
    "is_critical",
]
