"""
Narrative Stat Parser
=====================

Turns one free-text play description ("Derrick Henry rushes for 12 yards
touchdown") into a statistical delta for one player.

Play vocabulary overlaps ("catches pass" contains "pass"), so the
category is decided by an ordered rule table: the first family whose
keywords appear in the description wins.  Receiving must stay ahead of
passing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

_log = logging.getLogger("parlay.stats")

STAT_CATEGORIES = (
    "passing_yards",
    "passing_tds",
    "rushing_yards",
    "rushing_tds",
    "receiving_yards",
    "receiving_tds",
    "receptions",
)


@dataclass(frozen=True)
class PlayerStats:
    """Running per-category totals for one tracked player."""
    passing_yards: int = 0
    passing_tds: int = 0
    rushing_yards: int = 0
    rushing_tds: int = 0
    receiving_yards: int = 0
    receiving_tds: int = 0
    receptions: int = 0

    def get(self, category: str) -> int:
        if category not in STAT_CATEGORIES:
            raise KeyError(f"Unknown stat category '{category}'")
        return getattr(self, category)

    @property
    def total_yards(self) -> int:
        return self.passing_yards + self.rushing_yards + self.receiving_yards

    @property
    def total_tds(self) -> int:
        return self.passing_tds + self.rushing_tds + self.receiving_tds

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


# (family, keywords) evaluated top to bottom; first hit wins.
CATEGORY_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("receiving", ("catch", "reception", "receives")),
    ("passing", ("pass", "completion")),
    ("rushing", ("rush", "run")),
]

_YARDS_RE = re.compile(r"(\d+)\s*-?\s*yards?\b")
_TD_RE = re.compile(r"touchdown|\btd\b|scores")


def extract_yards(description: str) -> int:
    """First integer sitting next to a "yard"/"yards" token, else 0."""
    m = _YARDS_RE.search(description.lower())
    return int(m.group(1)) if m else 0


def is_touchdown(description: str) -> bool:
    return _TD_RE.search(description.lower()) is not None


def classify_play(description: str) -> Optional[str]:
    """Return "receiving", "passing", "rushing", or None."""
    text = description.lower()
    for family, keywords in CATEGORY_RULES:
        if any(k in text for k in keywords):
            return family
    return None


def parse_play_stats(description: str, stats: PlayerStats) -> PlayerStats:
    """Apply one play description to ``stats`` and return the new totals.

    The input is never mutated.  A description with no category keyword
    returns ``stats`` itself.
    """
    family = classify_play(description)
    if family is None:
        _log.debug(f"No play type found for: {description!r}")
        return stats

    yards = extract_yards(description)
    td = 1 if is_touchdown(description) else 0

    if family == "receiving":
        updated = replace(
            stats,
            receiving_yards=stats.receiving_yards + yards,
            receiving_tds=stats.receiving_tds + td,
            receptions=stats.receptions + 1,
        )
    elif family == "passing":
        updated = replace(
            stats,
            passing_yards=stats.passing_yards + yards,
            passing_tds=stats.passing_tds + td,
        )
    else:
        updated = replace(
            stats,
            rushing_yards=stats.rushing_yards + yards,
            rushing_tds=stats.rushing_tds + td,
        )

    _log.debug(f"Parsed {family} play: {yards} yds, td={bool(td)} <- {description!r}")
    return updated


def parse_script_stats(plays: Iterable, player_a: str, player_b: str) -> Tuple[PlayerStats, PlayerStats]:
    """Fold every play of a script into totals for both tracked players.

    ``plays`` yields objects with ``description`` and ``involved_players``
    (``PlayEvent``).  Summary records should not be passed in.
    """
    a = PlayerStats()
    b = PlayerStats()
    for play in plays:
        involved = play.involved_players or []
        if player_a in involved:
            a = parse_play_stats(play.description, a)
        if player_b in involved:
            b = parse_play_stats(play.description, b)
    return a, b
