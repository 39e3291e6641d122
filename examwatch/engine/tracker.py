"""
Looking-Away Tracking

Hysteresis state machine over per-tick gaze and head pose. Short
excursions leave no trace; completed episodes of at least one second are
kept in an event log covering the trailing ten minutes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from examwatch.cfg import BehaviorConfig
from examwatch.engine.results import GazeDirection, HeadPose, LookingAwayEvent
from examwatch.utils.logger import get_logger

logger = get_logger(__name__)


class TrackerState(str, Enum):
    """State of the looking-away tracker."""
    ATTENTIVE = "attentive"
    AWAY = "away"


@dataclass
class TrackerUpdate:
    """Outcome of one tracker observation."""
    looking_away: bool
    duration: float
    completed_event: Optional[LookingAwayEvent] = None


class LookingAwayTracker:
    """
    Track away-episodes.

    ATTENTIVE -> AWAY on the first away tick, AWAY -> ATTENTIVE on the first
    attentive tick. The gaze classifier's AWAY output does not count as
    looking away on its own; only head pose can trigger an episode then.

    Example:
        >>> tracker = LookingAwayTracker()
        >>> update = tracker.update(GazeDirection.LEFT, HeadPose(), now=12.0)
        >>> update.looking_away
        True
    """

    def __init__(self, cfg: Optional[BehaviorConfig] = None):
        self.cfg = cfg or BehaviorConfig()
        self.state = TrackerState.ATTENTIVE
        self.started_at: Optional[float] = None
        self.events: list[LookingAwayEvent] = []

    def is_away(self, gaze: GazeDirection, pose: HeadPose) -> bool:
        gaze_away = gaze not in (GazeDirection.CENTER, GazeDirection.AWAY)
        head_turned = (
            abs(pose.yaw) > self.cfg.yaw_away_threshold
            or abs(pose.pitch) > self.cfg.pitch_away_threshold
            or abs(pose.roll) > self.cfg.roll_away_threshold
        )
        return gaze_away or head_turned

    def update(self, gaze: GazeDirection, pose: HeadPose, now: float) -> TrackerUpdate:
        """
        Feed one observation.

        Args:
            gaze: Classified gaze direction
            pose: Estimated head pose
            now: Observation time in monotonic seconds

        Returns:
            TrackerUpdate with the current away flag and episode duration
        """
        if self.is_away(gaze, pose):
            if self.state == TrackerState.ATTENTIVE:
                self.state = TrackerState.AWAY
                self.started_at = now
                logger.debug("Started looking away tracking")

            self._prune(now)
            return TrackerUpdate(looking_away=True, duration=now - self.started_at)

        completed = None
        if self.state == TrackerState.AWAY:
            duration = now - self.started_at
            if duration >= self.cfg.min_away_episode:
                completed = LookingAwayEvent(started_at=self.started_at, duration_seconds=duration)
                self.events.append(completed)
                logger.debug(f"Recorded looking away event: {duration:.1f} seconds")

            self.state = TrackerState.ATTENTIVE
            self.started_at = None

        self._prune(now)
        return TrackerUpdate(looking_away=False, duration=0.0, completed_event=completed)

    def _prune(self, now: float):
        cutoff = now - self.cfg.event_window
        self.events = [event for event in self.events if event.started_at > cutoff]

    @property
    def total_away_seconds(self) -> float:
        return sum(event.duration_seconds for event in self.events)
