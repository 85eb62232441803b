"""
Notifications emitted by the simulation clock.

Every event carries the run id it belongs to so that listeners can drop
stragglers from a previous run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from parlay_engine.props import PropLine
from parlay_engine.script import FinalSummary, PlayEvent
from parlay_engine.stats import PlayerStats

RUN_STARTED = "run_started"
PLAY_OBSERVED = "play_observed"
CLUTCH_TRIGGERED = "clutch_triggered"
WINDOW_OPENED = "prediction_window_opened"
PREDICTION_RESOLVED = "prediction_resolved"
RUN_ENDED = "run_ended"
RUN_STOPPED = "run_stopped"


@dataclass
class SimEvent:
    kind: str
    run_id: int
    payload: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {"kind": self.kind, "run_id": self.run_id, **self.payload}


def run_started(run_id: int, props: Dict[str, PropLine], source: str, total_plays: int) -> SimEvent:
    return SimEvent(RUN_STARTED, run_id, {
        "props": {k: p.to_dict() for k, p in props.items()},
        "script_source": source,
        "total_plays": total_plays,
    })


def play_observed(run_id: int, index: int, play: PlayEvent, stats: Dict[str, PlayerStats]) -> SimEvent:
    return SimEvent(PLAY_OBSERVED, run_id, {
        "index": index,
        "play": play.to_dict(),
        "stats": {k: s.to_dict() for k, s in stats.items()},
    })


def clutch_triggered(run_id: int, slot: str, prop: PropLine, value: int,
                     quarter: int, game_clock: str, window_id: str) -> SimEvent:
    return SimEvent(CLUTCH_TRIGGERED, run_id, {
        "slot": slot,
        "player": prop.player,
        "prop": prop.to_dict(),
        "stat_value": value,
        "quarter": quarter,
        "game_clock": game_clock,
        "window_id": window_id,
    })


def window_opened(run_id: int, window_id: str, prop: PropLine, duration: float) -> SimEvent:
    return SimEvent(WINDOW_OPENED, run_id, {
        "window_id": window_id,
        "player": prop.player,
        "prop": prop.to_dict(),
        "expires_in": duration,
    })


def prediction_resolved(run_id: int, record: Dict) -> SimEvent:
    return SimEvent(PREDICTION_RESOLVED, run_id, {"record": record})


def run_ended(run_id: int, final: FinalSummary, outcomes: Dict[str, str],
              stats: Dict[str, PlayerStats], predictions: List[Dict]) -> SimEvent:
    return SimEvent(RUN_ENDED, run_id, {
        "final": final.to_dict(),
        "outcomes": dict(outcomes),
        "stats": {k: s.to_dict() for k, s in stats.items()},
        "predictions": predictions,
    })


def run_stopped(run_id: int, index: int, open_predictions: int, reason: Optional[str] = None) -> SimEvent:
    return SimEvent(RUN_STOPPED, run_id, {
        "index": index,
        "unresolved_predictions": open_predictions,
        "reason": reason or "stopped",
    })
