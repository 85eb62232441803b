#!/usr/bin/env python3
"""
Simulate a Parlay Party live game and print the results

Usage:
    python simulate_game.py <team_a> <team_b> [--seed N] [--json FILE] [--live]

Example:
    python simulate_game.py KC BUF --seed 7 --json examples/kc_buf.json
"""

import sys
import json
import os
import argparse
import asyncio
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from parlay_engine import (
    SimulationClock, ScriptGenerator, ManualScheduler, load_config, seeded_rng,
    get_team, teams_with_players, build_matchup, RUNNING,
)
from parlay_engine import events


def _print_event(event):
    """Console listener: one line per interesting event."""
    if event.kind == events.RUN_STARTED:
        print(f"Script source: {event.payload['script_source']} ({event.payload['total_plays']} plays)")
        for slot, prop in event.payload["props"].items():
            print(f"  {slot}: {prop['player']} {prop['over_under']} {prop['line']} {prop['prop']}")
        print()
    elif event.kind == events.PLAY_OBSERVED:
        play = event.payload["play"]
        print(f"Q{play['quarter']} {play['game_clock']:>5}  "
              f"[{play['team_A_score']}-{play['team_B_score']}]  {play['description']}")
    elif event.kind == events.CLUTCH_TRIGGERED:
        print(f"  >> CLUTCH: {event.payload['player']} at {event.payload['stat_value']} "
              f"(window {event.payload['window_id']})")
    elif event.kind == events.RUN_STOPPED:
        print(f"\nRun stopped at play {event.payload['index']}")


def _print_summary(session):
    final = session.script.final
    print()
    print("=" * 60)
    print("GAME COMPLETE")
    print("=" * 60)
    print()
    print("FINAL SCORE:")
    for abbr, pts in final.final_score.items():
        print(f"  {abbr}: {pts}")
    print(f"Winner: {final.winning_team or 'Tie'}")
    print()
    print("PROP RESULTS:")
    for slot, prop in session.props.items():
        value = session.stats[slot].get(prop.category)
        outcome = session.outcomes.get(slot, "-")
        print(f"  {prop.summary}: {value} -> {outcome.upper()}")
    for record in session.windows.records.values():
        print(f"  clutch {record.window_id}: {record.status}, delta {record.score_delta}")


def run_offline(clock: SimulationClock, matchup, seed):
    """Tick the whole script on virtual time."""
    rng = seeded_rng(seed, "script")
    script = clock.generator.generate(matchup, rng)
    session = clock.start_scripted(matchup, script)
    clock.scheduler.run_until_idle(max_seconds=24 * 3600)
    return session


async def run_live(clock: SimulationClock, matchup, seed):
    """Tick at the configured wall-clock cadence."""
    session = await clock.start(matchup, seed=seed)
    try:
        while clock.state == RUNNING:
            await asyncio.sleep(clock.config.tick_interval)
    except asyncio.CancelledError:
        clock.stop(reason="interrupted")
        raise
    return session


def simulate_game(team_a: str, team_b: str, seed=None, json_out=None, live=False):
    config = load_config()
    a = get_team(team_a)
    b = get_team(team_b)
    if a is None or b is None:
        raise ValueError(f"Unknown team: {team_a if a is None else team_b}")
    if a == b:
        raise ValueError("Teams must be different")

    print("=" * 60)
    print("PARLAY PARTY LIVE GAME SIMULATION")
    print("=" * 60)
    print()

    matchup = build_matchup(a, b, seeded_rng(seed, "matchup"))
    print(f"{a.full_name} vs {b.full_name}")
    print(f"Tracking {matchup.player_a.name} ({matchup.player_a.position}) "
          f"and {matchup.player_b.name} ({matchup.player_b.position})")
    print()

    generator = ScriptGenerator.from_config(config)
    if live:
        clock = SimulationClock(generator=generator, config=config,
                                rng=seeded_rng(seed, "props"))
        clock.subscribe(_print_event)
        session = asyncio.run(run_live(clock, matchup, seed))
    else:
        clock = SimulationClock(generator=generator, config=config, scheduler=ManualScheduler(),
                                rng=seeded_rng(seed, "props"))
        clock.subscribe(_print_event)
        session = run_offline(clock, matchup, seed)

    if session.outcomes:
        _print_summary(session)

    if json_out:
        os.makedirs(os.path.dirname(json_out) or ".", exist_ok=True)
        with open(json_out, 'w') as f:
            json.dump({
                "matchup": matchup.to_dict(),
                "props": {k: p.to_dict() for k, p in session.props.items()},
                "script": session.script.to_records(),
                "stats": {k: s.to_dict() for k, s in session.stats.items()},
                "outcomes": session.outcomes,
            }, f, indent=2)
        print(f"\nScript saved to: {json_out}")

    return session


def main(argv=None):
    parser = argparse.ArgumentParser(description="Simulate a Parlay Party live game")
    parser.add_argument("team_a", help="Team abbreviation, e.g. KC")
    parser.add_argument("team_b", help="Team abbreviation, e.g. BUF")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible game")
    parser.add_argument("--json", dest="json_out", default=None, help="Write the script and results here")
    parser.add_argument("--live", action="store_true", help="Tick in real time instead of instantly")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        simulate_game(args.team_a, args.team_b, args.seed, args.json_out, args.live)
    except ValueError as e:
        print(f"Error: {e}")
        print("\nTeams with featured players:")
        print("  " + ", ".join(t.abbreviation for t in teams_with_players()))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
