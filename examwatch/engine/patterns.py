"""
Suspicious Behavior Patterns

Rules over the looking-away event log and the attention trend.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from examwatch.cfg import BehaviorConfig
from examwatch.engine.results import LookingAwayEvent
from examwatch.utils.alerts import (
    DECLINING_ATTENTION_FLAG,
    EXTENDED_INATTENTION_FLAG,
    FREQUENT_AWAY_FLAG,
)


class SuspiciousBehaviorDetector:
    """Flag frequent or prolonged inattention and a falling attention score."""

    def __init__(self, cfg: Optional[BehaviorConfig] = None):
        self.cfg = cfg or BehaviorConfig()

    def evaluate(
        self,
        events: Sequence[LookingAwayEvent],
        scores: Sequence[float],
    ) -> list[str]:
        """
        Evaluate pattern rules.

        Args:
            events: Looking-away events in the trailing window
            scores: Attention history, oldest first

        Returns:
            List of flag messages (possibly empty)
        """
        flags = []

        if len(events) > self.cfg.frequent_away_count:
            flags.append(FREQUENT_AWAY_FLAG)

        total = sum(event.duration_seconds for event in events)
        if total > self.cfg.total_away_seconds:
            flags.append(EXTENDED_INATTENTION_FLAG)

        if self.attention_trend(scores) < self.cfg.trend_decline:
            flags.append(DECLINING_ATTENTION_FLAG)

        return flags

    def attention_trend(self, scores: Sequence[float]) -> float:
        """Mean successive delta over the last ``trend_window`` scores (0 if too few)."""
        window = self.cfg.trend_window
        if window < 2 or len(scores) < window:
            return 0.0

        recent = np.asarray(list(scores)[-window:], dtype=float)
        return float(np.mean(np.diff(recent)))
