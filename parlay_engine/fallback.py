"""
Deterministic Fallback Generator
================================

Produces a full, statistically plausible play sequence when the
narration service is unavailable or returns junk.  All randomness comes
from the injected ``random.Random`` so a seeded generator replays the
same game exactly.

Game flow:
  - Clock starts at 15:00 in Q1.  Each play burns 5-15 seconds and clamps
    at 0:00.
  - A quarter ends after its play allotment or when its clock hits 0:00,
    whichever comes first.  Nothing is ever generated past Q4; a 0:00
    clock in Q4 ends the game.
  - 8% of plays put points on the board for a random side (70% TD, 30% FG).
  - Plays go to tracked player A, tracked player B, or a filler runner.
    Yardage is bimodal per position: a common modest range plus a rarer
    breakaway range.
  - Minimum-stat guarantee: past play 20, a tracked player still without
    a touchdown gets force-fed the ball and scores 30% of the time.  This
    is best-effort; a short budget can still leave a player at zero.

The closing stat lines in the final summary are rolled independently of
the plays.  They are flavour text and can disagree with parsed totals.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from parlay_engine.config import FallbackConfig
from parlay_engine.roster import Matchup, Player
from parlay_engine.script import MAX_QUARTER, SOURCE_FALLBACK, FinalSummary, GameScript, PlayEvent

FILLER_PLAYER = "Unknown Player"


@dataclass(frozen=True)
class YardageProfile:
    action: str                   # description verb phrase
    common_share: float           # probability of the common range
    common: Tuple[int, int]       # inclusive
    breakaway: Tuple[int, int]    # inclusive


YARDAGE_PROFILES: Dict[str, YardageProfile] = {
    "QB": YardageProfile("passes for", 0.70, (8, 15), (15, 34)),
    "RB": YardageProfile("rushes for", 0.80, (2, 8), (10, 24)),
    "WR": YardageProfile("catches pass for", 0.70, (5, 15), (15, 34)),
    "TE": YardageProfile("catches pass for", 0.70, (5, 15), (15, 34)),
}
FILLER_YARDS = (2, 9)


# ═══════════════════════════════════════════════════════════════
# GAME CLOCK
# ═══════════════════════════════════════════════════════════════

def parse_clock(clock: str) -> int:
    """Parse "12:05" into 725 seconds."""
    minutes, seconds = clock.split(":")
    return int(minutes) * 60 + int(seconds)


def format_clock(total_seconds: int) -> str:
    """Format 725 as "12:05"; zero or below is "0:00"."""
    total_seconds = max(0, total_seconds)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def run_clock(clock: str, elapsed: int) -> str:
    """Take ``elapsed`` seconds off a clock string, borrowing minutes as
    needed and clamping at 0:00."""
    return format_clock(parse_clock(clock) - elapsed)


# ═══════════════════════════════════════════════════════════════
# GENERATOR
# ═══════════════════════════════════════════════════════════════

class FallbackScriptGenerator:

    def __init__(self, config: Optional[FallbackConfig] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or FallbackConfig()
        self.rng = rng or random.Random()

    def _yards(self, rng: random.Random, profile: YardageProfile) -> int:
        if rng.random() < profile.common_share:
            return rng.randint(*profile.common)
        return rng.randint(*profile.breakaway)

    def _tracked_play(self, rng: random.Random, player: Player, needs_td: bool) -> Tuple[str, bool]:
        profile = YARDAGE_PROFILES.get(player.position, YARDAGE_PROFILES["WR"])
        description = f"{player.name} {profile.action} {self._yards(rng, profile)} yards"

        # touchdowns only come from the minimum-stat guarantee
        touchdown = needs_td and rng.random() < self.config.forced_td_chance
        if touchdown:
            description += " touchdown"
        return description, touchdown

    def generate(self, matchup: Matchup, rng: Optional[random.Random] = None) -> GameScript:
        cfg = self.config
        rng = rng or self.rng
        team_a, team_b = matchup.team_a, matchup.team_b
        player_a, player_b = matchup.player_a, matchup.player_b

        plays: List[PlayEvent] = []
        a_score = b_score = 0
        a_tds = b_tds = 0
        quarter = 1
        clock = format_clock(cfg.quarter_seconds)
        plays_in_quarter = 0

        for i in range(cfg.play_budget):
            quarter_done = plays_in_quarter >= cfg.plays_per_quarter or clock == "0:00"
            if i > 0 and quarter_done and quarter < MAX_QUARTER:
                quarter += 1
                clock = format_clock(cfg.quarter_seconds)
                plays_in_quarter = 0
            elif quarter >= MAX_QUARTER and clock == "0:00":
                break
            else:
                clock = run_clock(clock, rng.randint(cfg.clock_step_min, cfg.clock_step_max))
            plays_in_quarter += 1

            if rng.random() < cfg.scoring_chance:
                points = 7 if rng.random() < cfg.touchdown_share else 3
                if rng.random() < 0.5:
                    a_score += points
                else:
                    b_score += points

            needs_a_td = a_tds == 0 and i > cfg.td_guarantee_after
            needs_b_td = b_tds == 0 and i > cfg.td_guarantee_after

            if rng.random() < cfg.player_a_weight or needs_a_td:
                description, td = self._tracked_play(rng, player_a, needs_a_td)
                involved = [player_a.name]
                a_tds += td
            elif rng.random() < cfg.player_b_weight or needs_b_td:
                description, td = self._tracked_play(rng, player_b, needs_b_td)
                involved = [player_b.name]
                b_tds += td
            else:
                yards = rng.randint(*FILLER_YARDS)
                description = f"{FILLER_PLAYER} rushes for {yards} yards"
                involved = []

            plays.append(PlayEvent(
                timestamp_seconds=i + 1,
                quarter=quarter,
                game_clock=clock,
                description=description,
                involved_players=involved,
                team_a_score=a_score,
                team_b_score=b_score,
                down=rng.randint(1, 4) if rng.random() < 0.8 else None,
                distance=rng.randint(1, 20) if rng.random() < 0.8 else None,
                yard_line=rng.randint(0, 99),
                possessing_team=team_a.name if rng.random() < 0.5 else team_b.name,
            ))

        if a_score > b_score:
            winner = team_a.name
        elif b_score > a_score:
            winner = team_b.name
        else:
            winner = None

        final = FinalSummary(
            final_score={team_a.abbreviation: a_score, team_b.abbreviation: b_score},
            winning_team=winner,
            player_a_final_stats=self._closing_line(rng, player_a),
            player_b_final_stats=self._closing_line(rng, player_b),
        )
        return GameScript(plays=plays, final=final, source=SOURCE_FALLBACK)

    def _closing_line(self, rng: random.Random, player: Player) -> str:
        return f"{player.name}: {rng.randint(50, 249)} yards, {rng.randint(0, 2)} TDs"
