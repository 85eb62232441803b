"""
Parlay Party Live Game Engine
"""

from .roster import (
    Team,
    Player,
    Matchup,
    PropTemplate,
    NFL_TEAMS,
    NFL_PLAYERS,
    PROP_TEMPLATES,
    get_team,
    get_players_for_team,
    find_player,
    teams_with_players,
    build_matchup,
    random_matchup,
)
from .props import PropLine, generate_prop, OVER, UNDER
from .stats import PlayerStats, parse_play_stats, parse_script_stats, classify_play, CATEGORY_RULES
from .script import PlayEvent, FinalSummary, GameScript, ScriptValidationError, script_from_records
from .fallback import FallbackScriptGenerator, format_clock, parse_clock, run_clock
from .narration import ScriptGenerator, NarrationClient, NarrationRequest, NarrationError
from .clutch import ClutchDetector, PredictionWindowManager, PredictionRecord
from .outcomes import HIT, MISS, determine_prop_outcome, line_outcome, prediction_score_delta
from .config import SimConfig, FallbackConfig, load_config, seeded_rng
from .errors import SimulationError, AlreadyRunningError, InvalidWindowError
from .scheduling import AsyncioScheduler, ManualScheduler
from .simulation import SimulationClock, RunSession, IDLE, RUNNING, ENDED, STOPPED, SLOT_A, SLOT_B

__all__ = [
    "Team",
    "Player",
    "Matchup",
    "PropTemplate",
    "NFL_TEAMS",
    "NFL_PLAYERS",
    "PROP_TEMPLATES",
    "get_team",
    "get_players_for_team",
    "find_player",
    "teams_with_players",
    "build_matchup",
    "random_matchup",
    "PropLine",
    "generate_prop",
    "OVER",
    "UNDER",
    "PlayerStats",
    "parse_play_stats",
    "parse_script_stats",
    "classify_play",
    "CATEGORY_RULES",
    "PlayEvent",
    "FinalSummary",
    "GameScript",
    "ScriptValidationError",
    "script_from_records",
    "FallbackScriptGenerator",
    "format_clock",
    "parse_clock",
    "run_clock",
    "ScriptGenerator",
    "NarrationClient",
    "NarrationRequest",
    "NarrationError",
    "ClutchDetector",
    "PredictionWindowManager",
    "PredictionRecord",
    "HIT",
    "MISS",
    "determine_prop_outcome",
    "line_outcome",
    "prediction_score_delta",
    "SimConfig",
    "FallbackConfig",
    "load_config",
    "seeded_rng",
    "SimulationError",
    "AlreadyRunningError",
    "InvalidWindowError",
    "AsyncioScheduler",
    "ManualScheduler",
    "SimulationClock",
    "RunSession",
    "IDLE",
    "RUNNING",
    "ENDED",
    "STOPPED",
    "SLOT_A",
    "SLOT_B",
]
