"""
Roster Catalog
==============

Static NFL teams, featured players, and the per-position prop templates
used to build each run's tracked-player lines.  No logic beyond lookups
and matchup selection.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Team:
    name: str
    abbreviation: str
    city: str

    @property
    def full_name(self) -> str:
        return f"{self.city} {self.name}"

    def to_dict(self) -> Dict:
        return {"name": self.name, "abbreviation": self.abbreviation, "city": self.city}


@dataclass(frozen=True)
class Player:
    name: str
    position: str   # QB, RB, WR, TE
    team: str       # team abbreviation

    def to_dict(self) -> Dict:
        return {"name": self.name, "position": self.position, "team": self.team}


@dataclass(frozen=True)
class PropTemplate:
    label: str       # display name, e.g. "Rushing Yards"
    line: float
    category: str    # PlayerStats field name


@dataclass(frozen=True)
class Matchup:
    """Two teams and the tracked player from each side."""
    team_a: Team
    team_b: Team
    player_a: Player
    player_b: Player

    def to_dict(self) -> Dict:
        return {
            "team_a": self.team_a.to_dict(),
            "team_b": self.team_b.to_dict(),
            "player_a": self.player_a.to_dict(),
            "player_b": self.player_b.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════
# TEAMS
# ═══════════════════════════════════════════════════════════════

NFL_TEAMS: List[Team] = [
    Team("Chiefs", "KC", "Kansas City"),
    Team("Bills", "BUF", "Buffalo"),
    Team("49ers", "SF", "San Francisco"),
    Team("Cowboys", "DAL", "Dallas"),
    Team("Eagles", "PHI", "Philadelphia"),
    Team("Giants", "NYG", "New York"),
    Team("Dolphins", "MIA", "Miami"),
    Team("Patriots", "NE", "New England"),
    Team("Ravens", "BAL", "Baltimore"),
    Team("Bengals", "CIN", "Cincinnati"),
    Team("Steelers", "PIT", "Pittsburgh"),
    Team("Browns", "CLE", "Cleveland"),
    Team("Colts", "IND", "Indianapolis"),
    Team("Titans", "TEN", "Tennessee"),
    Team("Jaguars", "JAX", "Jacksonville"),
    Team("Texans", "HOU", "Houston"),
    Team("Broncos", "DEN", "Denver"),
    Team("Chargers", "LAC", "Los Angeles"),
    Team("Raiders", "LV", "Las Vegas"),
    Team("Jets", "NYJ", "New York"),
    Team("Packers", "GB", "Green Bay"),
    Team("Vikings", "MIN", "Minnesota"),
    Team("Lions", "DET", "Detroit"),
    Team("Bears", "CHI", "Chicago"),
    Team("Falcons", "ATL", "Atlanta"),
    Team("Saints", "NO", "New Orleans"),
    Team("Panthers", "CAR", "Carolina"),
    Team("Buccaneers", "TB", "Tampa Bay"),
    Team("Cardinals", "ARI", "Arizona"),
    Team("Rams", "LAR", "Los Angeles"),
    Team("Seahawks", "SEA", "Seattle"),
    Team("Commanders", "WAS", "Washington"),
]

TEAMS_BY_ABBR: Dict[str, Team] = {t.abbreviation: t for t in NFL_TEAMS}


# ═══════════════════════════════════════════════════════════════
# FEATURED PLAYERS
# ═══════════════════════════════════════════════════════════════

NFL_PLAYERS: List[Player] = [
    # Quarterbacks
    Player("Patrick Mahomes", "QB", "KC"),
    Player("Josh Allen", "QB", "BUF"),
    Player("Lamar Jackson", "QB", "BAL"),
    Player("Joe Burrow", "QB", "CIN"),
    Player("Dak Prescott", "QB", "DAL"),
    Player("Jalen Hurts", "QB", "PHI"),
    Player("Tua Tagovailoa", "QB", "MIA"),
    Player("Justin Herbert", "QB", "LAC"),
    Player("Trevor Lawrence", "QB", "JAX"),
    Player("Aaron Rodgers", "QB", "NYJ"),
    # Running backs
    Player("Christian McCaffrey", "RB", "SF"),
    Player("Derrick Henry", "RB", "TEN"),
    Player("Nick Chubb", "RB", "CLE"),
    Player("Saquon Barkley", "RB", "NYG"),
    Player("Austin Ekeler", "RB", "LAC"),
    Player("Josh Jacobs", "RB", "LV"),
    Player("Tony Pollard", "RB", "DAL"),
    Player("Rhamondre Stevenson", "RB", "NE"),
    Player("Travis Etienne", "RB", "JAX"),
    Player("Breece Hall", "RB", "NYJ"),
    # Wide receivers
    Player("Tyreek Hill", "WR", "MIA"),
    Player("Davante Adams", "WR", "LV"),
    Player("Stefon Diggs", "WR", "BUF"),
    Player("Cooper Kupp", "WR", "LAR"),
    Player("Ja'Marr Chase", "WR", "CIN"),
    Player("A.J. Brown", "WR", "PHI"),
    Player("CeeDee Lamb", "WR", "DAL"),
    Player("DK Metcalf", "WR", "SEA"),
    Player("Mike Evans", "WR", "TB"),
    Player("DeAndre Hopkins", "WR", "ARI"),
    # Tight ends
    Player("Travis Kelce", "TE", "KC"),
    Player("Mark Andrews", "TE", "BAL"),
    Player("George Kittle", "TE", "SF"),
    Player("Darren Waller", "TE", "NYG"),
    Player("Kyle Pitts", "TE", "ATL"),
    Player("T.J. Hockenson", "TE", "MIN"),
    Player("Evan Engram", "TE", "JAX"),
    Player("Dallas Goedert", "TE", "PHI"),
    Player("Pat Freiermuth", "TE", "PIT"),
    Player("Dalton Schultz", "TE", "HOU"),
]


# ═══════════════════════════════════════════════════════════════
# PROP TEMPLATES  (only categories the stat parser can track)
# ═══════════════════════════════════════════════════════════════

PROP_TEMPLATES: Dict[str, List[PropTemplate]] = {
    "QB": [
        PropTemplate("Passing Yards", 250.5, "passing_yards"),
        PropTemplate("Passing Yards", 275.5, "passing_yards"),
        PropTemplate("Passing Yards", 300.5, "passing_yards"),
        PropTemplate("Passing Touchdowns", 1.5, "passing_tds"),
        PropTemplate("Passing Touchdowns", 2.5, "passing_tds"),
    ],
    "RB": [
        PropTemplate("Rushing Yards", 60.5, "rushing_yards"),
        PropTemplate("Rushing Yards", 75.5, "rushing_yards"),
        PropTemplate("Rushing Yards", 90.5, "rushing_yards"),
        PropTemplate("Rushing Touchdowns", 0.5, "rushing_tds"),
        PropTemplate("Rushing Touchdowns", 1.5, "rushing_tds"),
    ],
    "WR": [
        PropTemplate("Receiving Yards", 50.5, "receiving_yards"),
        PropTemplate("Receiving Yards", 65.5, "receiving_yards"),
        PropTemplate("Receiving Yards", 80.5, "receiving_yards"),
        PropTemplate("Receiving Touchdowns", 0.5, "receiving_tds"),
        PropTemplate("Receiving Touchdowns", 1.5, "receiving_tds"),
    ],
    "TE": [
        PropTemplate("Receiving Yards", 35.5, "receiving_yards"),
        PropTemplate("Receiving Yards", 45.5, "receiving_yards"),
        PropTemplate("Receiving Touchdowns", 0.5, "receiving_tds"),
        PropTemplate("Receiving Touchdowns", 1.5, "receiving_tds"),
    ],
}


def get_team(abbreviation: str) -> Optional[Team]:
    return TEAMS_BY_ABBR.get(abbreviation.upper())


def get_players_for_team(abbreviation: str) -> List[Player]:
    abbr = abbreviation.upper()
    return [p for p in NFL_PLAYERS if p.team == abbr]


def find_player(name: str, team: Optional[str] = None) -> Optional[Player]:
    for p in NFL_PLAYERS:
        if p.name == name and (team is None or p.team == team.upper()):
            return p
    return None


def teams_with_players() -> List[Team]:
    """Teams that have at least one featured player (and can host a run)."""
    featured = {p.team for p in NFL_PLAYERS}
    return [t for t in NFL_TEAMS if t.abbreviation in featured]


def build_matchup(
    team_a: Team,
    team_b: Team,
    rng: Optional[random.Random] = None,
    player_a: Optional[Player] = None,
    player_b: Optional[Player] = None,
) -> Matchup:
    """Pick one featured player from each team unless supplied.

    Raises ``ValueError`` when either team has no featured players.
    """
    rng = rng or random.Random()
    if player_a is None:
        pool_a = get_players_for_team(team_a.abbreviation)
        if not pool_a:
            raise ValueError(f"No players found for team {team_a.abbreviation}")
        player_a = rng.choice(pool_a)
    if player_b is None:
        pool_b = get_players_for_team(team_b.abbreviation)
        if not pool_b:
            raise ValueError(f"No players found for team {team_b.abbreviation}")
        player_b = rng.choice(pool_b)
    return Matchup(team_a=team_a, team_b=team_b, player_a=player_a, player_b=player_b)


def random_matchup(rng: Optional[random.Random] = None) -> Matchup:
    """Two distinct random teams that both have featured players."""
    rng = rng or random.Random()
    team_a, team_b = rng.sample(teams_with_players(), 2)
    return build_matchup(team_a, team_b, rng)
