"""
Clutch Detector & Prediction Windows
====================================

In the fourth quarter each tracked player carries a one-shot latch.  The
first Q4 play that involves the player with their tracked stat at or
above ``threshold_fraction * line`` fires it.  With the default fraction
of 0.0 that is simply the player's first Q4 touch.

A firing opens a prediction window: a wall-clock timebox (15 s by
default) that accepts exactly one hit/miss call on the player's prop.
Windows expire silently.  Records are resolved only when a run reaches
its natural end; a stopped run leaves them unresolved for good.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from parlay_engine.errors import InvalidWindowError
from parlay_engine.outcomes import HIT, MISS, OUTCOMES, line_outcome, prediction_score_delta
from parlay_engine.props import OVER, UNDER, PropLine
from parlay_engine.script import MAX_QUARTER, PlayEvent
from parlay_engine.stats import PlayerStats

_log = logging.getLogger("parlay.clutch")

STATUS_UNRESOLVED = "unresolved"
STATUS_RESOLVED = "resolved"
STATUS_VOID = "void"      # window closed without a prediction


# ═══════════════════════════════════════════════════════════════
# CLUTCH DETECTOR
# ═══════════════════════════════════════════════════════════════

@dataclass
class ClutchTrigger:
    slot: str
    prop: PropLine
    fired: bool = False
    quarter: Optional[int] = None
    game_clock: Optional[str] = None
    stat_value: Optional[int] = None

    def fire(self, play: PlayEvent, value: int):
        self.fired = True
        self.quarter = play.quarter
        self.game_clock = play.game_clock
        self.stat_value = value


class ClutchDetector:

    def __init__(self, props: Dict[str, PropLine], threshold_fraction: float = 0.0):
        self.threshold_fraction = threshold_fraction
        self.triggers: Dict[str, ClutchTrigger] = {
            slot: ClutchTrigger(slot=slot, prop=prop) for slot, prop in props.items()
        }

    def threshold(self, prop: PropLine) -> float:
        return prop.line * self.threshold_fraction

    def check(self, play: PlayEvent, stats: Dict[str, PlayerStats]) -> List[ClutchTrigger]:
        """Evaluate one play; returns the triggers that fired on it."""
        if play.quarter != MAX_QUARTER:
            return []

        fired = []
        for slot, trigger in self.triggers.items():
            if trigger.fired:
                continue
            if trigger.prop.player not in play.involved_players:
                continue
            value = stats[slot].get(trigger.prop.category)
            if value >= self.threshold(trigger.prop):
                trigger.fire(play, value)
                fired.append(trigger)
                _log.info(f"Clutch moment: {trigger.prop.summary} at {value} (Q{play.quarter} {play.game_clock})")
        return fired


# ═══════════════════════════════════════════════════════════════
# PREDICTION WINDOWS
# ═══════════════════════════════════════════════════════════════

@dataclass
class PredictionRecord:
    window_id: str
    slot: str
    prop: PropLine                     # snapshot taken at trigger time
    predicted: Optional[str] = None    # HIT or MISS
    status: str = STATUS_UNRESOLVED
    actual: Optional[str] = None
    score_delta: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "window_id": self.window_id,
            "slot": self.slot,
            "player": self.prop.player,
            "category": self.prop.category,
            "line": self.prop.line,
            "direction": self.prop.direction,
            "predicted": self.predicted,
            "status": self.status,
            "actual": self.actual,
            "score_delta": self.score_delta,
        }


@dataclass
class PredictionWindow:
    window_id: str
    slot: str
    opened_at: float
    expires_at: float
    closed: bool = False
    timer: Optional[object] = field(default=None, repr=False)

    def is_open(self, now: float) -> bool:
        return not self.closed and now < self.expires_at

    def close(self):
        self.closed = True
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


def normalize_prediction(prediction: str, prop: PropLine) -> str:
    """Accept "hit"/"miss", or "over"/"under" read against the prop's
    direction, and return HIT or MISS."""
    value = (prediction or "").strip().lower()
    if value in OUTCOMES:
        return value
    if value in (OVER.lower(), UNDER.lower()):
        return HIT if value == prop.direction.lower() else MISS
    raise ValueError(f"Invalid prediction '{prediction}'. Use 'hit' or 'miss'.")


class PredictionWindowManager:
    """Owns every window and record of one run."""

    def __init__(self, run_id: int, duration: float, now: Callable[[], float]):
        self.run_id = run_id
        self.duration = duration
        self._now = now
        self.windows: Dict[str, PredictionWindow] = {}
        self.records: Dict[str, PredictionRecord] = {}

    def open(self, slot: str, prop: PropLine) -> PredictionWindow:
        window_id = f"r{self.run_id}-{slot}"
        opened = self._now()
        window = PredictionWindow(
            window_id=window_id,
            slot=slot,
            opened_at=opened,
            expires_at=opened + self.duration,
        )
        self.windows[window_id] = window
        self.records[window_id] = PredictionRecord(window_id=window_id, slot=slot, prop=prop)
        return window

    def expire(self, window_id: str):
        window = self.windows.get(window_id)
        if window is not None and not window.closed:
            window.closed = True
            window.timer = None
            _log.debug(f"Prediction window {window_id} expired")

    def close_all(self):
        for window in self.windows.values():
            window.close()

    def submit(self, window_id: str, prediction: str) -> PredictionRecord:
        window = self.windows.get(window_id)
        if window is None:
            raise InvalidWindowError(f"Prediction window '{window_id}' not found")
        if not window.is_open(self._now()):
            raise InvalidWindowError(f"Prediction window '{window_id}' has expired")

        record = self.records[window_id]
        if record.predicted is not None:
            raise InvalidWindowError(f"Prediction window '{window_id}' already has a prediction")

        record.predicted = normalize_prediction(prediction, record.prop)
        window.close()
        return record

    @property
    def unresolved(self) -> List[PredictionRecord]:
        return [r for r in self.records.values() if r.status == STATUS_UNRESOLVED]

    def resolve_all(self, stats: Dict[str, PlayerStats]) -> List[PredictionRecord]:
        """Resolve every record against final totals.  Run end only."""
        resolved = []
        for record in self.unresolved:
            final_value = stats[record.slot].get(record.prop.category)
            record.actual = line_outcome(final_value, record.prop.line, record.prop.direction)
            if record.predicted is None:
                record.status = STATUS_VOID
                record.score_delta = 0
            else:
                record.status = STATUS_RESOLVED
                record.score_delta = prediction_score_delta(record.predicted, record.actual)
            resolved.append(record)
        return resolved
