"""
Script Generator
================

Asks an external narration model (OpenAI-compatible chat completions) for
a play-by-play script and falls back to the offline generator on any
failure: network error, timeout, bad HTTP status, unparseable content, or
a script that fails shape validation.  ``ScriptGenerator.generate`` never
raises; callers always get a playable script.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from parlay_engine.config import SimConfig
from parlay_engine.fallback import FallbackScriptGenerator
from parlay_engine.roster import Matchup
from parlay_engine.script import SOURCE_NARRATION, GameScript, ScriptValidationError, script_from_records

_log = logging.getLogger("parlay.narration")


class NarrationError(Exception):
    """The narration service could not produce a usable response."""


@dataclass
class NarrationRequest:
    """Everything the narration service is told about the game."""
    matchup: Matchup
    min_plays: int = 40
    max_plays: int = 55
    max_quarter: int = 4
    min_touchdowns: int = 1
    min_yards: Dict[str, int] = field(default_factory=lambda: {"QB": 200, "RB": 50, "WR": 40, "TE": 40})

    def to_dict(self) -> Dict:
        return {
            "teams": [self.matchup.team_a.to_dict(), self.matchup.team_b.to_dict()],
            "tracked_players": [self.matchup.player_a.to_dict(), self.matchup.player_b.to_dict()],
            "constraints": {
                "min_plays": self.min_plays,
                "max_plays": self.max_plays,
                "max_quarter": self.max_quarter,
                "min_touchdowns_per_player": self.min_touchdowns,
                "min_yards_by_position": dict(self.min_yards),
                "output": "json_array_of_play_records_then_one_GAME_FINAL_record",
            },
        }


def build_prompt(req: NarrationRequest) -> str:
    m = req.matchup
    a, b = m.player_a, m.player_b
    min_yards = ", ".join(f"{pos}s: {yds}+ yards" for pos, yds in req.min_yards.items())
    return f"""You are a sports simulation engine. Generate a condensed, realistic play-by-play JSON script for a fictional NFL game between the {m.team_a.name} and the {m.team_b.name}. The outcome and all player performances must be random.

Key players to feature:
Player A: {a.name}, {a.position} for the {m.team_a.name}
Player B: {b.name}, {b.position} for the {m.team_b.name}

Hard constraints:
- Between {req.min_plays} and {req.max_plays} plays, followed by exactly one GAME_FINAL summary object.
- The game ends in Quarter {req.max_quarter}. Never create plays beyond Q{req.max_quarter}; quarters never go backwards.
- Each featured player has at least {req.min_touchdowns} touchdown and realistic yardage ({min_yards}).
- Quarterbacks: 8-15 yards per completion, occasional 20-40. Running backs: 2-8 yards per carry, occasional 10-20. Receivers: 5-15 yards per catch, occasional 20-30.
- No penalties, fumbles, or interceptions.

Play descriptions must be specific enough for stat tracking:
- QB passing: "Name passes for X yards"
- Rushing: "Name rushes for X yards"
- Receiving: "Name catches pass for X yards"
- Touchdowns append "touchdown", e.g. "Name rushes for 4 yards touchdown"
- Always include the player name and exact yardage.

Play object:
{{"timestamp_seconds": <int>, "quarter": <int>, "game_clock": "<M:SS>", "down": <int or null>, "distance": <int or null>, "yard_line": <int>, "possessing_team": "<string>", "description": "<string>", "involved_players": ["<string>"], "team_A_score": <int>, "team_B_score": <int>}}

Final summary object (last element):
{{"event_type": "GAME_FINAL", "final_score": {{"{m.team_a.abbreviation}": <int>, "{m.team_b.abbreviation}": <int>}}, "winning_team": "<string>", "player_A_final_stats": "<string>", "player_B_final_stats": "<string>"}}

Output ONLY a valid JSON array. No markdown, no commentary. Start with [ and end with ]."""


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = content.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1:] if first_newline != -1 else text[3:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class NarrationClient:
    """Thin ``requests`` wrapper around a chat-completions endpoint."""

    def __init__(self, api_url: str, api_key: str, model: str = "gpt-3.5-turbo",
                 timeout: float = 20.0, temperature: float = 0.8, max_tokens: int = 4000,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: SimConfig) -> "NarrationClient":
        return cls(
            api_url=config.narration_url,
            api_key=config.narration_api_key or "",
            model=config.narration_model,
            timeout=config.narration_timeout,
            temperature=config.narration_temperature,
            max_tokens=config.narration_max_tokens,
        )

    def request_records(self, req: NarrationRequest) -> List[Dict]:
        """POST the prompt and return the decoded JSON array.

        Raises ``NarrationError`` for transport, status, or decoding
        failures.  Shape is not checked here.
        """
        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": build_prompt(req)}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        _log.debug(f"Narration request: {json.dumps(req.to_dict())}")
        try:
            resp = self.session.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NarrationError(f"Narration request failed: {e}") from e

        if resp.status_code >= 400:
            raise NarrationError(f"Narration API error: {resp.status_code} - {resp.text[:200]}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise NarrationError(f"Unexpected narration response body: {e}") from e
        if not content:
            raise NarrationError("No content received from narration service")

        try:
            return json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            raise NarrationError(f"Narration content is not valid JSON: {e}") from e


class ScriptGenerator:
    """Narration first, offline fallback on any failure."""

    def __init__(self, client: Optional[NarrationClient] = None,
                 fallback: Optional[FallbackScriptGenerator] = None):
        self.client = client
        self.fallback = fallback or FallbackScriptGenerator()

    @classmethod
    def from_config(cls, config: SimConfig, rng: Optional[random.Random] = None) -> "ScriptGenerator":
        client = NarrationClient.from_config(config) if config.narration_enabled else None
        return cls(client=client, fallback=FallbackScriptGenerator(config.fallback, rng))

    def generate(self, matchup: Matchup, rng: Optional[random.Random] = None) -> GameScript:
        if self.client is None:
            _log.info("Narration not configured; using fallback script")
            return self.generate_fallback(matchup, rng)

        try:
            records = self.client.request_records(NarrationRequest(matchup))
            script = script_from_records(records, source=SOURCE_NARRATION)
        except (NarrationError, ScriptValidationError) as e:
            _log.warning(f"Narration unavailable, using fallback script: {e}")
            return self.generate_fallback(matchup, rng)
        except Exception as e:
            _log.exception(f"Unexpected narration failure, using fallback script: {e}")
            return self.generate_fallback(matchup, rng)

        _log.info(f"Narration script accepted: {len(script.plays)} plays")
        return script

    def generate_fallback(self, matchup: Matchup, rng: Optional[random.Random] = None) -> GameScript:
        return self.fallback.generate(matchup, rng)
