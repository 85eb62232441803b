#!/usr/bin/env python3
"""
Simulation Clock Tests
======================

Run lifecycle, clutch detection, prediction windows, and resolution,
driven on virtual time through ``ManualScheduler``.
"""

import asyncio
import random
import time
import pytest

from parlay_engine import events
from parlay_engine.clutch import (
    STATUS_RESOLVED, STATUS_UNRESOLVED, STATUS_VOID,
    ClutchDetector, PredictionWindowManager, normalize_prediction,
)
from parlay_engine.config import SimConfig, seeded_rng
from parlay_engine.errors import AlreadyRunningError, InvalidWindowError
from parlay_engine.fallback import FallbackScriptGenerator
from parlay_engine.narration import ScriptGenerator
from parlay_engine.outcomes import HIT, MISS
from parlay_engine.props import OVER, UNDER, PropLine
from parlay_engine.roster import build_matchup, get_team, find_player
from parlay_engine.scheduling import ManualScheduler
from parlay_engine.script import FinalSummary, GameScript, PlayEvent, SOURCE_FALLBACK
from parlay_engine.simulation import (
    ENDED, IDLE, RUNNING, STOPPED, SLOT_A, SLOT_B, SimulationClock,
)
from parlay_engine.stats import PlayerStats


HENRY = "Derrick Henry"
ALLEN = "Josh Allen"


def _play(n, quarter, description, involved, clock="5:00"):
    return PlayEvent(timestamp_seconds=n, quarter=quarter, game_clock=clock,
                     description=description, involved_players=involved)


@pytest.fixture
def matchup():
    return build_matchup(
        get_team("TEN"), get_team("BUF"),
        player_a=find_player(HENRY),
        player_b=find_player(ALLEN),
    )


@pytest.fixture
def props():
    return {
        SLOT_A: PropLine(HENRY, "RB", "TEN", "Rushing Yards", "rushing_yards", 75.5, OVER),
        SLOT_B: PropLine(ALLEN, "QB", "BUF", "Passing Yards", "passing_yards", 250.5, UNDER),
    }


@pytest.fixture
def script():
    plays = [
        _play(1, 1, "Derrick Henry rushes for 30 yards", [HENRY], "12:10"),
        _play(2, 2, "Josh Allen passes for 40 yards", [ALLEN], "9:45"),
        _play(3, 3, "Derrick Henry rushes for 25 yards", [HENRY], "7:02"),
        _play(4, 4, "Unknown Player rushes for 5 yards", [], "6:40"),
        _play(5, 4, "Derrick Henry rushes for 10 yards", [HENRY], "4:31"),
        _play(6, 4, "Derrick Henry rushes for 12 yards touchdown", [HENRY], "2:05"),
    ]
    final = FinalSummary({"TEN": 7, "BUF": 0}, "Titans", "Derrick Henry: 77 yards, 1 TD", "Josh Allen: 40 yards")
    return GameScript(plays=plays, final=final, source=SOURCE_FALLBACK)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock(scheduler):
    config = SimConfig(tick_interval=1.0, prediction_window_seconds=15.0)
    return SimulationClock(generator=ScriptGenerator(), config=config,
                           scheduler=scheduler, rng=random.Random(0))


@pytest.fixture
def received(clock):
    log = []
    clock.subscribe(log.append)
    return log


def _kinds(log):
    return [e.kind for e in log]


# ═══════════════════════════════════════════════════════════════
# CLUTCH DETECTOR
# ═══════════════════════════════════════════════════════════════

class TestClutchDetector:
    def test_fires_once_in_fourth_quarter(self, props):
        detector = ClutchDetector(props)
        stats = {SLOT_A: PlayerStats(rushing_yards=40), SLOT_B: PlayerStats()}

        assert detector.check(_play(1, 3, "Derrick Henry rushes for 5 yards", [HENRY]), stats) == []
        fired = detector.check(_play(2, 4, "Derrick Henry rushes for 5 yards", [HENRY]), stats)
        assert [t.slot for t in fired] == [SLOT_A]
        assert fired[0].stat_value == 40
        assert fired[0].quarter == 4
        assert detector.check(_play(3, 4, "Derrick Henry rushes for 9 yards", [HENRY]), stats) == []

    def test_requires_involvement(self, props):
        detector = ClutchDetector(props)
        stats = {SLOT_A: PlayerStats(rushing_yards=80), SLOT_B: PlayerStats()}
        assert detector.check(_play(1, 4, "Unknown Player rushes for 3 yards", []), stats) == []
        assert not detector.triggers[SLOT_A].fired

    def test_threshold_fraction(self, props):
        detector = ClutchDetector(props, threshold_fraction=0.5)
        play = _play(1, 4, "Derrick Henry rushes for 5 yards", [HENRY])
        assert detector.threshold(props[SLOT_A]) == 37.75
        assert detector.check(play, {SLOT_A: PlayerStats(rushing_yards=30), SLOT_B: PlayerStats()}) == []
        fired = detector.check(play, {SLOT_A: PlayerStats(rushing_yards=40), SLOT_B: PlayerStats()})
        assert len(fired) == 1


# ═══════════════════════════════════════════════════════════════
# PREDICTION WINDOWS
# ═══════════════════════════════════════════════════════════════

class TestPredictionWindows:
    def test_normalize(self, props):
        over_prop = props[SLOT_A]
        assert normalize_prediction("HIT", over_prop) == HIT
        assert normalize_prediction(" miss ", over_prop) == MISS
        assert normalize_prediction("over", over_prop) == HIT
        assert normalize_prediction("under", over_prop) == MISS
        assert normalize_prediction("under", props[SLOT_B]) == HIT
        with pytest.raises(ValueError):
            normalize_prediction("maybe", over_prop)

    def test_window_lifecycle(self, props):
        now = [100.0]
        mgr = PredictionWindowManager(3, 15.0, lambda: now[0])
        window = mgr.open(SLOT_A, props[SLOT_A])
        assert window.window_id == "r3-player_a"
        assert window.expires_at == 115.0

        record = mgr.submit(window.window_id, "hit")
        assert record.predicted == HIT
        with pytest.raises(InvalidWindowError):
            mgr.submit(window.window_id, "miss")

    def test_expired_window(self, props):
        now = [0.0]
        mgr = PredictionWindowManager(1, 15.0, lambda: now[0])
        window = mgr.open(SLOT_B, props[SLOT_B])
        now[0] = 15.0
        with pytest.raises(InvalidWindowError):
            mgr.submit(window.window_id, "hit")

    def test_unknown_window(self):
        mgr = PredictionWindowManager(1, 15.0, lambda: 0.0)
        with pytest.raises(InvalidWindowError):
            mgr.submit("r1-nobody", "hit")

    def test_resolve_all(self, props):
        mgr = PredictionWindowManager(1, 15.0, lambda: 0.0)
        mgr.open(SLOT_A, props[SLOT_A])
        mgr.open(SLOT_B, props[SLOT_B])
        mgr.submit("r1-player_a", "miss")
        resolved = mgr.resolve_all({SLOT_A: PlayerStats(rushing_yards=77), SLOT_B: PlayerStats()})

        by_slot = {r.slot: r for r in resolved}
        assert by_slot[SLOT_A].status == STATUS_RESOLVED
        assert by_slot[SLOT_A].actual == HIT
        assert by_slot[SLOT_A].score_delta == 10
        assert by_slot[SLOT_B].status == STATUS_VOID
        assert by_slot[SLOT_B].score_delta == 0
        assert mgr.unresolved == []


# ═══════════════════════════════════════════════════════════════
# RUN LIFECYCLE
# ═══════════════════════════════════════════════════════════════

class TestRunLifecycle:
    def test_initial_state(self, clock):
        assert clock.state == IDLE
        assert clock.status() == {"state": IDLE, "run_id": 0, "session": None}
        assert not clock.tick()
        assert not clock.stop()

    def test_full_run_correct_prediction(self, clock, scheduler, received, matchup, script, props):
        """Henry Over 75.5 rushing finishes at 77: a "hit" call scores -10."""
        session = clock.start_scripted(matchup, script, props)
        assert clock.state == RUNNING

        scheduler.advance(5.0)   # fifth play is Henry's first Q4 touch
        clutch = [e for e in received if e.kind == events.CLUTCH_TRIGGERED]
        assert len(clutch) == 1
        assert clutch[0].payload["slot"] == SLOT_A
        assert clutch[0].payload["stat_value"] == 65
        window_id = clutch[0].payload["window_id"]
        assert window_id == "r1-player_a"

        record = clock.submit_prediction(window_id, "hit")
        assert record.status == STATUS_UNRESOLVED

        scheduler.run_until_idle()
        assert clock.state == ENDED
        assert session.stats[SLOT_A].rushing_yards == 77
        assert session.stats[SLOT_A].rushing_tds == 1
        assert session.stats[SLOT_B].passing_yards == 40
        assert session.outcomes == {SLOT_A: HIT, SLOT_B: HIT}
        assert record.status == STATUS_RESOLVED
        assert record.actual == HIT
        assert record.score_delta == -10

    def test_wrong_prediction_scores_plus_ten(self, clock, scheduler, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.advance(5.0)
        record = clock.submit_prediction("r1-player_a", "miss")
        scheduler.run_until_idle()
        assert record.actual == HIT
        assert record.score_delta == 10

    def test_event_order(self, clock, scheduler, received, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.run_until_idle()

        kinds = _kinds(received)
        assert kinds[0] == events.RUN_STARTED
        assert kinds[-1] == events.RUN_ENDED
        assert kinds.count(events.PLAY_OBSERVED) == 6
        c = kinds.index(events.CLUTCH_TRIGGERED)
        assert kinds[c + 1] == events.WINDOW_OPENED
        assert kinds.index(events.PREDICTION_RESOLVED) < kinds.index(events.RUN_ENDED)
        assert all(e.run_id == 1 for e in received)

    def test_ticks_follow_interval(self, clock, scheduler, received, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.advance(0.5)
        assert _kinds(received) == [events.RUN_STARTED]
        scheduler.advance(0.5)
        assert _kinds(received)[-1] == events.PLAY_OBSERVED
        assert clock.session.index == 1

    def test_end_comes_one_tick_after_last_play(self, clock, scheduler, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.advance(6.0)
        assert clock.state == RUNNING
        assert clock.session.index == 6
        scheduler.advance(1.0)
        assert clock.state == ENDED
        assert scheduler.pending == 0

    def test_unanswered_window_is_void(self, clock, scheduler, matchup, script, props):
        session = clock.start_scripted(matchup, script, props)
        scheduler.run_until_idle()
        record = session.windows.records["r1-player_a"]
        assert record.status == STATUS_VOID
        assert record.score_delta == 0

    def test_window_expires_on_scheduler(self, scheduler, matchup, script, props):
        config = SimConfig(tick_interval=1.0, prediction_window_seconds=0.5)
        clock = SimulationClock(generator=ScriptGenerator(), config=config, scheduler=scheduler)
        clock.start_scripted(matchup, script, props)
        scheduler.advance(5.0)
        scheduler.advance(0.6)
        assert clock.session.windows.windows["r1-player_a"].closed
        with pytest.raises(InvalidWindowError):
            clock.submit_prediction("r1-player_a", "hit")

    def test_stop_leaves_predictions_unresolved(self, clock, scheduler, received, matchup, script, props):
        session = clock.start_scripted(matchup, script, props)
        scheduler.advance(5.0)
        record = clock.submit_prediction("r1-player_a", "over")
        assert record.predicted == HIT

        assert clock.stop(reason="user")
        assert clock.state == STOPPED
        stopped = received[-1]
        assert stopped.kind == events.RUN_STOPPED
        assert stopped.payload["unresolved_predictions"] == 1
        assert stopped.payload["reason"] == "user"

        scheduler.run_until_idle()
        assert session.index == 5
        assert record.status == STATUS_UNRESOLVED
        assert record.score_delta is None
        assert session.outcomes == {}
        assert events.PREDICTION_RESOLVED not in _kinds(received)

    def test_stop_closes_windows(self, clock, scheduler, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.advance(5.0)
        clock.stop()
        with pytest.raises(InvalidWindowError):
            clock.submit_prediction("r1-player_a", "hit")


# ═══════════════════════════════════════════════════════════════
# COMMAND GUARDS
# ═══════════════════════════════════════════════════════════════

class TestCommandGuards:
    def test_already_running(self, clock, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        with pytest.raises(AlreadyRunningError):
            clock.start_scripted(matchup, script, props)
        assert clock.run_id == 1

    def test_restart_after_end(self, clock, scheduler, received, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.run_until_idle()
        second = clock.start_scripted(matchup, script, props)
        assert second.run_id == 2
        assert second.index == 0
        assert second.stats[SLOT_A] == PlayerStats()
        assert not second.detector.triggers[SLOT_A].fired

    def test_restart_after_stop(self, clock, scheduler, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.advance(2.0)
        clock.stop()
        second = clock.start_scripted(matchup, script, props)
        scheduler.run_until_idle()
        assert clock.state == ENDED
        assert second.outcomes[SLOT_A] == HIT

    def test_stale_tick_is_ignored(self, clock, scheduler, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.advance(1.0)
        clock.stop()
        second = clock.start_scripted(matchup, script, props)
        clock._on_tick_timer(1)
        assert second.index == 0

    def test_prediction_without_run(self, clock):
        with pytest.raises(InvalidWindowError):
            clock.submit_prediction("r1-player_a", "hit")

    def test_invalid_prediction_keeps_window_open(self, clock, scheduler, matchup, script, props):
        clock.start_scripted(matchup, script, props)
        scheduler.advance(5.0)
        with pytest.raises(ValueError):
            clock.submit_prediction("r1-player_a", "maybe")
        assert clock.submit_prediction("r1-player_a", "hit").predicted == HIT

    def test_listener_failure_does_not_stop_run(self, clock, scheduler, matchup, script, props):
        def broken(event):
            raise RuntimeError("listener bug")
        clock.subscribe(broken)
        clock.start_scripted(matchup, script, props)
        scheduler.run_until_idle()
        assert clock.state == ENDED

    def test_generated_props(self, clock, matchup, script):
        session = clock.start_scripted(matchup, script)
        assert session.props[SLOT_A].player == HENRY
        assert session.props[SLOT_B].player == ALLEN


# ═══════════════════════════════════════════════════════════════
# ASYNC START
# ═══════════════════════════════════════════════════════════════

class TestAsyncStart:
    def test_start_generates_script(self, clock, scheduler, matchup):
        session = asyncio.run(clock.start(matchup, seed=11))
        assert session.script is not None
        assert session.script.source == SOURCE_FALLBACK
        scheduler.run_until_idle()
        assert clock.state == ENDED
        assert set(session.outcomes) == {SLOT_A, SLOT_B}

    def test_same_seed_same_run(self, matchup):
        def observed(seed):
            scheduler = ManualScheduler()
            clock = SimulationClock(generator=ScriptGenerator(), config=SimConfig(tick_interval=1.0),
                                    scheduler=scheduler)
            log = []
            clock.subscribe(log.append)
            asyncio.run(clock.start(matchup, seed=seed))
            scheduler.run_until_idle()
            return [e.to_dict() for e in log]

        assert observed(11) == observed(11)

    def test_start_on_real_loop(self, matchup):
        async def play_out():
            clock = SimulationClock(generator=ScriptGenerator(),
                                    config=SimConfig(tick_interval=0.001))
            session = await clock.start(matchup, seed=3)
            for _ in range(5000):
                if clock.state != RUNNING:
                    break
                await asyncio.sleep(0.001)
            return clock, session

        clock, session = asyncio.run(play_out())
        assert clock.state == ENDED
        assert session.index == len(session.script.plays)

    def test_cancelled_start_releases_the_clock(self, matchup, script, props):
        scheduler = ManualScheduler()
        calls = []

        class SlowGenerator(ScriptGenerator):
            def generate(self, matchup, rng=None):
                calls.append(rng)
                if len(calls) == 1:
                    time.sleep(0.3)
                return script

        clock = SimulationClock(generator=SlowGenerator(), config=SimConfig(tick_interval=1.0),
                                scheduler=scheduler)
        log = []
        clock.subscribe(log.append)

        async def cancel_then_restart():
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(clock.start(matchup, props=props), 0.05)
            assert clock.state == STOPPED
            assert log[-1].kind == events.RUN_STOPPED
            return await clock.start(matchup, props=props)

        second = asyncio.run(cancel_then_restart())
        assert second.run_id == 2
        assert clock.state == RUNNING
        assert second.script is script
        scheduler.run_until_idle()
        assert clock.state == ENDED

    def test_generator_crash_uses_fallback(self, scheduler, matchup):
        class BrokenGenerator(ScriptGenerator):
            def generate(self, matchup, rng=None):
                raise RuntimeError("generator bug")

        clock = SimulationClock(generator=BrokenGenerator(), config=SimConfig(tick_interval=1.0),
                                scheduler=scheduler)
        session = asyncio.run(clock.start(matchup, seed=2))
        assert clock.state == RUNNING
        assert session.script.source == SOURCE_FALLBACK

    def test_seeded_streams_are_independent(self, matchup):
        scheduler = ManualScheduler()
        clock = SimulationClock(generator=ScriptGenerator(), config=SimConfig(tick_interval=1.0),
                                scheduler=scheduler)
        session = asyncio.run(clock.start(matchup, seed=11))
        replayed = FallbackScriptGenerator().generate(matchup, seeded_rng(11, "script"))
        assert session.script.to_records() == replayed.to_records()
        correlated = FallbackScriptGenerator().generate(matchup, random.Random(11))
        assert session.script.to_records() != correlated.to_records()

    def test_superseded_script_is_discarded(self, matchup, script, props):
        scheduler = ManualScheduler()

        class StoppingGenerator(ScriptGenerator):
            """Simulates a Stop arriving while the script is being generated."""
            def generate(self, matchup, rng=None):
                clock.stop()
                return script

        clock = SimulationClock(generator=StoppingGenerator(), config=SimConfig(tick_interval=1.0),
                                scheduler=scheduler)
        session = asyncio.run(clock.start(matchup, props=props))
        assert clock.state == STOPPED
        assert session.script is None
        assert scheduler.pending == 0
