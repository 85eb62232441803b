"""
Simulation Clock
================

Coordinates one live run: generates the script, ticks through it at a
fixed cadence, feeds each play to the stat parser, watches for clutch
moments, and resolves predictions when the script runs out.

States::

    IDLE --start--> RUNNING --script exhausted--> ENDED
                       |
                       +------------stop-------> STOPPED

Everything a run owns (script, accumulators, latches, windows, records)
lives in a single ``RunSession``.  A new start replaces it wholesale.

Every scheduled tick and every async script result is tagged with the
run id it was created for; anything that arrives for an older run is
dropped.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from parlay_engine import events
from parlay_engine.clutch import ClutchDetector, ClutchTrigger, PredictionRecord, PredictionWindowManager
from parlay_engine.config import SimConfig, seeded_rng
from parlay_engine.errors import AlreadyRunningError, InvalidWindowError
from parlay_engine.narration import ScriptGenerator
from parlay_engine.outcomes import determine_prop_outcome
from parlay_engine.props import PropLine, generate_prop
from parlay_engine.roster import Matchup, Player
from parlay_engine.scheduling import AsyncioScheduler
from parlay_engine.script import GameScript
from parlay_engine.stats import PlayerStats, parse_play_stats

_log = logging.getLogger("parlay.simulation")

IDLE = "idle"
RUNNING = "running"
ENDED = "ended"
STOPPED = "stopped"

SLOT_A = "player_a"
SLOT_B = "player_b"

Listener = Callable[[events.SimEvent], None]


@dataclass
class RunSession:
    run_id: int
    matchup: Matchup
    props: Dict[str, PropLine]
    detector: ClutchDetector
    windows: PredictionWindowManager
    script: Optional[GameScript] = None
    index: int = 0
    stats: Dict[str, PlayerStats] = field(
        default_factory=lambda: {SLOT_A: PlayerStats(), SLOT_B: PlayerStats()}
    )
    outcomes: Dict[str, str] = field(default_factory=dict)

    @property
    def tracked(self) -> Dict[str, Player]:
        return {SLOT_A: self.matchup.player_a, SLOT_B: self.matchup.player_b}

    @property
    def current_play(self):
        if self.script is None or self.index == 0:
            return None
        return self.script.plays[self.index - 1]

    def to_dict(self) -> Dict:
        play = self.current_play
        return {
            "run_id": self.run_id,
            "matchup": self.matchup.to_dict(),
            "props": {k: p.to_dict() for k, p in self.props.items()},
            "script_source": self.script.source if self.script else None,
            "index": self.index,
            "total_plays": len(self.script.plays) if self.script else None,
            "current_play": play.to_dict() if play else None,
            "stats": {k: s.to_dict() for k, s in self.stats.items()},
            "clutch": {k: t.fired for k, t in self.detector.triggers.items()},
            "predictions": [r.to_dict() for r in self.windows.records.values()],
            "outcomes": dict(self.outcomes),
        }


class SimulationClock:
    """Single-run coordinator.  Not thread-safe; drive it from one loop."""

    def __init__(self, generator: Optional[ScriptGenerator] = None,
                 config: Optional[SimConfig] = None,
                 scheduler=None,
                 rng: Optional[random.Random] = None):
        self.config = config or SimConfig()
        self.generator = generator or ScriptGenerator.from_config(self.config)
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng or random.Random()
        self.state = IDLE
        self.run_id = 0
        self.session: Optional[RunSession] = None
        self._pending_tick = None
        self._listeners: List[Listener] = []

    # ── listeners ──

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: events.SimEvent):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _log.exception(f"Listener failed on {event.kind} (run {event.run_id})")

    # ── commands ──

    def _claim_run(self, matchup: Matchup, props: Optional[Dict[str, PropLine]],
                   rng: random.Random) -> RunSession:
        if self.state == RUNNING:
            raise AlreadyRunningError(f"Run {self.run_id} is already running")

        self._cancel_tick()
        if self.session is not None:
            self.session.windows.close_all()

        self.run_id += 1
        if props is None:
            props = {
                SLOT_A: generate_prop(matchup.player_a, rng),
                SLOT_B: generate_prop(matchup.player_b, rng),
            }
        session = RunSession(
            run_id=self.run_id,
            matchup=matchup,
            props=dict(props),
            detector=ClutchDetector(props, self.config.clutch_threshold_fraction),
            windows=PredictionWindowManager(
                self.run_id, self.config.prediction_window_seconds, self.scheduler.now
            ),
        )
        self.session = session
        self.state = RUNNING
        _log.info(f"Run {self.run_id} claimed: {matchup.team_a.abbreviation} vs {matchup.team_b.abbreviation}")
        return session

    async def start(self, matchup: Matchup, props: Optional[Dict[str, PropLine]] = None,
                    seed: Optional[int] = None) -> RunSession:
        """Generate a script off the loop, then begin ticking.

        Raises ``AlreadyRunningError`` if a run is in progress.  Never fails
        because narration failed.
        """
        session = self._claim_run(matchup, props, seeded_rng(seed, "props") or self.rng)
        run_id = session.run_id
        script_rng = seeded_rng(seed, "script")

        try:
            script = await asyncio.wait_for(
                asyncio.to_thread(self.generator.generate, matchup, script_rng),
                timeout=self.config.narration_timeout + 5.0,
            )
        except asyncio.TimeoutError:
            _log.warning(f"Script generation for run {run_id} timed out; using fallback script")
            script = self.generator.generate_fallback(matchup, script_rng)
        except Exception as e:
            _log.exception(f"Script generation for run {run_id} failed; using fallback script: {e}")
            script = self.generator.generate_fallback(matchup, script_rng)
        except BaseException:
            # cancelled while the script was pending; the run never began
            if run_id == self.run_id and session.script is None:
                self.stop(reason="start cancelled")
            raise

        if run_id != self.run_id or self.state != RUNNING:
            _log.info(f"Discarding script for superseded run {run_id}")
            return session

        self._install(session, script)
        return session

    def start_scripted(self, matchup: Matchup, script: GameScript,
                       props: Optional[Dict[str, PropLine]] = None) -> RunSession:
        """Begin a run with an already generated script."""
        session = self._claim_run(matchup, props, self.rng)
        self._install(session, script)
        return session

    def _install(self, session: RunSession, script: GameScript):
        session.script = script
        self._emit(events.run_started(session.run_id, session.props, script.source, len(script.plays)))
        self._schedule_tick(session.run_id)

    def stop(self, reason: Optional[str] = None) -> bool:
        """Halt the current run without resolving predictions.

        Returns False (and does nothing) when no run is in progress.
        """
        if self.state != RUNNING:
            return False

        self.state = STOPPED
        self._cancel_tick()
        session = self.session
        index = 0
        unresolved = 0
        if session is not None:
            session.windows.close_all()
            index = session.index
            unresolved = len(session.windows.unresolved)
        _log.info(f"Run {self.run_id} stopped at play {index}; {unresolved} predictions left unresolved")
        self._emit(events.run_stopped(self.run_id, index, unresolved, reason))
        return True

    def submit_prediction(self, window_id: str, prediction: str) -> PredictionRecord:
        if self.state != RUNNING or self.session is None:
            raise InvalidWindowError(f"Prediction window '{window_id}' not found")
        record = self.session.windows.submit(window_id, prediction)
        _log.info(f"Prediction '{record.predicted}' recorded for {record.prop.summary}")
        return record

    # ── ticking ──

    def _schedule_tick(self, run_id: int):
        self._pending_tick = self.scheduler.call_later(
            self.config.tick_interval, lambda: self._on_tick_timer(run_id)
        )

    def _cancel_tick(self):
        if self._pending_tick is not None:
            self._pending_tick.cancel()
            self._pending_tick = None

    def _on_tick_timer(self, run_id: int):
        if run_id != self.run_id:
            return
        self._pending_tick = None
        if self.tick() and self.state == RUNNING:
            self._schedule_tick(run_id)

    def tick(self) -> bool:
        """Advance the run by one record.  Returns False when nothing happened."""
        session = self.session
        if self.state != RUNNING or session is None or session.script is None:
            return False

        script = session.script
        if session.index >= len(script.plays):
            self._end_run(session)
            return True

        play = script.plays[session.index]
        for slot, player in session.tracked.items():
            if player.name in play.involved_players:
                session.stats[slot] = parse_play_stats(play.description, session.stats[slot])

        self._emit(events.play_observed(session.run_id, session.index, play, session.stats))

        for trigger in session.detector.check(play, session.stats):
            self._open_window(session, trigger)

        session.index += 1
        return True

    def _open_window(self, session: RunSession, trigger: ClutchTrigger):
        window = session.windows.open(trigger.slot, trigger.prop)
        window.timer = self.scheduler.call_later(
            self.config.prediction_window_seconds,
            lambda: session.windows.expire(window.window_id),
        )
        self._emit(events.clutch_triggered(
            session.run_id, trigger.slot, trigger.prop, trigger.stat_value,
            trigger.quarter, trigger.game_clock, window.window_id,
        ))
        self._emit(events.window_opened(
            session.run_id, window.window_id, trigger.prop, self.config.prediction_window_seconds
        ))

    def _end_run(self, session: RunSession):
        self.state = ENDED
        self._cancel_tick()
        session.windows.close_all()

        resolved = session.windows.resolve_all(session.stats)
        for record in resolved:
            self._emit(events.prediction_resolved(session.run_id, record.to_dict()))

        session.outcomes = {
            slot: determine_prop_outcome(prop, session.stats[slot])
            for slot, prop in session.props.items()
        }
        _log.info(f"Run {session.run_id} ended: {session.outcomes}")
        self._emit(events.run_ended(
            session.run_id, session.script.final, session.outcomes, session.stats,
            [r.to_dict() for r in resolved],
        ))

    def status(self) -> Dict:
        return {
            "state": self.state,
            "run_id": self.run_id,
            "session": self.session.to_dict() if self.session else None,
        }
