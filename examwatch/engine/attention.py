"""
Attention Scoring

Composite 0-100 attention score with a short rolling history for trend analysis.
"""

from __future__ import annotations

import math
import time
from collections import deque
from typing import Optional

from examwatch.cfg import BehaviorConfig
from examwatch.engine.results import AttentionSample, GazeDirection, HeadPose


class AttentionScorer:
    """
    Score attention from gaze and head pose.

    score = 100 - gaze penalty - |yaw|*40 - |pitch|*40 - |roll|*0.5, clamped to [0, 100].

    Attributes:
        history: Last ``attention_history_size`` samples, oldest first
    """

    def __init__(self, cfg: Optional[BehaviorConfig] = None):
        self.cfg = cfg or BehaviorConfig()
        self.history: deque[AttentionSample] = deque(maxlen=self.cfg.attention_history_size)

    def score(
        self,
        gaze: GazeDirection,
        pose: HeadPose,
        now: Optional[float] = None,
    ) -> float:
        """
        Score one observation and record it.

        Args:
            gaze: Classified gaze direction
            pose: Estimated head pose
            now: Observation time (monotonic seconds)

        Returns:
            Score in [0, 100]
        """
        value = 100.0

        if gaze != GazeDirection.CENTER:
            value -= self.cfg.gaze_penalty

        value -= abs(_finite(pose.yaw)) * self.cfg.yaw_penalty
        value -= abs(_finite(pose.pitch)) * self.cfg.pitch_penalty
        value -= abs(_finite(pose.roll)) * self.cfg.roll_penalty

        value = max(0.0, min(100.0, value))

        observed_at = time.monotonic() if now is None else now
        self.history.append(AttentionSample(score=value, observed_at=observed_at))

        return value

    @property
    def scores(self) -> list[float]:
        return [sample.score for sample in self.history]

    def reset(self):
        self.history.clear()


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0
