"""
Prop Generator
==============

Builds a tracked player's prop line from the position templates in the
roster catalog: one template category and line, plus a coin-flip
Over/Under direction.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Optional

from parlay_engine.roster import PROP_TEMPLATES, Player

OVER = "Over"
UNDER = "Under"
DIRECTIONS = (OVER, UNDER)


@dataclass(frozen=True)
class PropLine:
    """A statistic category paired with a line and a direction.

    Frozen: a run keeps the same snapshot from Start to resolution.
    """
    player: str
    position: str
    team: str
    label: str       # e.g. "Rushing Yards"
    category: str    # PlayerStats field, e.g. "rushing_yards"
    line: float
    direction: str   # OVER or UNDER

    def __post_init__(self):
        if self.direction not in DIRECTIONS:
            raise ValueError(f"Invalid direction '{self.direction}'. Valid: {DIRECTIONS}")

    @property
    def summary(self) -> str:
        return f"{self.player} {self.direction} {self.line} {self.label}"

    def to_dict(self) -> Dict:
        return {
            "player": self.player,
            "position": self.position,
            "team": self.team,
            "prop": self.label,
            "type": self.category,
            "line": self.line,
            "over_under": self.direction,
        }


def generate_prop(player: Player, rng: Optional[random.Random] = None) -> PropLine:
    """Pick a random template for the player's position and a direction."""
    rng = rng or random.Random()
    templates = PROP_TEMPLATES.get(player.position)
    if not templates:
        raise ValueError(f"No prop templates found for position: {player.position}")

    template = rng.choice(templates)
    direction = OVER if rng.random() < 0.5 else UNDER
    return PropLine(
        player=player.name,
        position=player.position,
        team=player.team,
        label=template.label,
        category=template.category,
        line=template.line,
        direction=direction,
    )
