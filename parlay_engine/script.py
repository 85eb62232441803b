"""
Game Script model
=================

A game script is an ordered list of play records terminated by exactly one
``GAME_FINAL`` summary record.  The wire shape (used by the narration
service and the JSON export) is::

    [
      {"timestamp_seconds": 1, "quarter": 1, "game_clock": "14:51",
       "down": 1, "distance": 10, "yard_line": 25, "possessing_team": "Chiefs",
       "description": "Patrick Mahomes passes for 12 yards",
       "involved_players": ["Patrick Mahomes"],
       "team_A_score": 0, "team_B_score": 0},
      ...
      {"event_type": "GAME_FINAL", "final_score": {"KC": 24, "BUF": 17},
       "winning_team": "Chiefs",
       "player_A_final_stats": "...", "player_B_final_stats": "..."}
    ]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

GAME_FINAL = "GAME_FINAL"
MAX_QUARTER = 4

SOURCE_NARRATION = "narration"
SOURCE_FALLBACK = "fallback"


class ScriptValidationError(ValueError):
    """A script (usually a narration response) failed shape validation."""


@dataclass
class PlayEvent:
    timestamp_seconds: int
    quarter: int
    game_clock: str
    description: str
    involved_players: List[str] = field(default_factory=list)
    team_a_score: int = 0
    team_b_score: int = 0
    down: Optional[int] = None
    distance: Optional[int] = None
    yard_line: Optional[int] = None
    possessing_team: str = ""

    def to_dict(self) -> Dict:
        return {
            "timestamp_seconds": self.timestamp_seconds,
            "quarter": self.quarter,
            "game_clock": self.game_clock,
            "down": self.down,
            "distance": self.distance,
            "yard_line": self.yard_line,
            "possessing_team": self.possessing_team,
            "description": self.description,
            "involved_players": list(self.involved_players),
            "team_A_score": self.team_a_score,
            "team_B_score": self.team_b_score,
        }


@dataclass
class FinalSummary:
    final_score: Dict[str, int]
    winning_team: Optional[str]      # None on a tie
    player_a_final_stats: str
    player_b_final_stats: str

    def to_dict(self) -> Dict:
        return {
            "event_type": GAME_FINAL,
            "final_score": dict(self.final_score),
            "winning_team": self.winning_team,
            "player_A_final_stats": self.player_a_final_stats,
            "player_B_final_stats": self.player_b_final_stats,
        }


@dataclass
class GameScript:
    plays: List[PlayEvent]
    final: FinalSummary
    source: str = SOURCE_FALLBACK

    def __len__(self) -> int:
        return len(self.plays) + 1

    def to_records(self) -> List[Dict]:
        return [p.to_dict() for p in self.plays] + [self.final.to_dict()]


# ═══════════════════════════════════════════════════════════════
# PARSING / VALIDATION
# ═══════════════════════════════════════════════════════════════

def _require_int(record: Dict, key: str, idx: int) -> int:
    val = record.get(key)
    if isinstance(val, bool) or not isinstance(val, int):
        raise ScriptValidationError(f"Record {idx}: '{key}' must be an integer, got {val!r}")
    return val


def _optional_int(record: Dict, key: str, idx: int) -> Optional[int]:
    if record.get(key) is None:
        return None
    return _require_int(record, key, idx)


def _parse_play(record: Dict, idx: int) -> PlayEvent:
    description = record.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ScriptValidationError(f"Record {idx}: missing play description")
    clock = record.get("game_clock")
    if not isinstance(clock, str):
        raise ScriptValidationError(f"Record {idx}: 'game_clock' must be a string")
    involved = record.get("involved_players") or []
    if not isinstance(involved, list) or not all(isinstance(p, str) for p in involved):
        raise ScriptValidationError(f"Record {idx}: 'involved_players' must be a list of names")

    return PlayEvent(
        timestamp_seconds=_optional_int(record, "timestamp_seconds", idx) or idx + 1,
        quarter=_require_int(record, "quarter", idx),
        game_clock=clock,
        description=description,
        involved_players=list(involved),
        team_a_score=_require_int(record, "team_A_score", idx),
        team_b_score=_require_int(record, "team_B_score", idx),
        down=_optional_int(record, "down", idx),
        distance=_optional_int(record, "distance", idx),
        yard_line=_optional_int(record, "yard_line", idx),
        possessing_team=str(record.get("possessing_team") or ""),
    )


def _parse_final(record: Dict, idx: int) -> FinalSummary:
    score = record.get("final_score")
    if not isinstance(score, dict) or not score:
        raise ScriptValidationError(f"Record {idx}: 'final_score' must be a non-empty object")
    for team, pts in score.items():
        if isinstance(pts, bool) or not isinstance(pts, int):
            raise ScriptValidationError(f"Record {idx}: score for {team!r} must be an integer")
    winner = record.get("winning_team")
    if winner is not None and not isinstance(winner, str):
        raise ScriptValidationError(f"Record {idx}: 'winning_team' must be a string")
    return FinalSummary(
        final_score={str(k): v for k, v in score.items()},
        winning_team=winner,
        player_a_final_stats=str(record.get("player_A_final_stats", "")),
        player_b_final_stats=str(record.get("player_B_final_stats", "")),
    )


def script_from_records(records, source: str = SOURCE_NARRATION) -> GameScript:
    """Validate wire records and build a ``GameScript``.

    Requires: a non-empty list of objects, at least one play, exactly one
    GAME_FINAL record in last position, quarters in 1..4 and never going
    backwards.
    """
    if not isinstance(records, list):
        raise ScriptValidationError("Script must be a JSON array")
    if len(records) < 2:
        raise ScriptValidationError("Script needs at least one play and a final summary")
    for idx, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise ScriptValidationError(f"Record {idx} is not an object")

    finals = [i for i, rec in enumerate(records) if rec.get("event_type") == GAME_FINAL]
    if finals != [len(records) - 1]:
        raise ScriptValidationError("Script must end with exactly one GAME_FINAL record")

    plays: List[PlayEvent] = []
    last_quarter = 1
    for idx, rec in enumerate(records[:-1]):
        play = _parse_play(rec, idx)
        if not 1 <= play.quarter <= MAX_QUARTER:
            raise ScriptValidationError(f"Record {idx}: quarter {play.quarter} out of range")
        if play.quarter < last_quarter:
            raise ScriptValidationError(f"Record {idx}: quarter went backwards")
        last_quarter = play.quarter
        plays.append(play)

    final = _parse_final(records[-1], len(records) - 1)
    return GameScript(plays=plays, final=final, source=source)
