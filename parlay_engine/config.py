"""
Engine configuration.

Defaults match the live product; every knob can be overridden from the
environment (``PARLAY_*``) so deployments don't need code changes.
"""

from __future__ import annotations

import os
import random
from dataclasses import dataclass, field
from typing import Mapping, Optional

DEFAULT_NARRATION_URL = "https://api.openai.com/v1/chat/completions"


@dataclass(frozen=True)
class FallbackConfig:
    """Tuning for the offline play generator."""
    play_budget: int = 48
    plays_per_quarter: int = 12
    quarter_seconds: int = 15 * 60
    clock_step_min: int = 5
    clock_step_max: int = 15
    scoring_chance: float = 0.08
    touchdown_share: float = 0.70      # of scoring plays; rest are field goals
    player_a_weight: float = 0.40
    player_b_weight: float = 0.70      # of plays not given to player A
    td_guarantee_after: int = 20       # play index after which a TD is forced
    forced_td_chance: float = 0.30


@dataclass(frozen=True)
class SimConfig:
    tick_interval: float = 0.8
    prediction_window_seconds: float = 15.0
    clutch_threshold_fraction: float = 0.0
    narration_url: str = DEFAULT_NARRATION_URL
    narration_api_key: Optional[str] = None
    narration_model: str = "gpt-3.5-turbo"
    narration_timeout: float = 20.0
    narration_temperature: float = 0.8
    narration_max_tokens: int = 4000
    fallback: FallbackConfig = field(default_factory=FallbackConfig)

    @property
    def narration_enabled(self) -> bool:
        return bool(self.narration_api_key)


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None


def load_config(env: Optional[Mapping[str, str]] = None) -> SimConfig:
    """Build a ``SimConfig`` from ``PARLAY_*`` environment variables."""
    env = os.environ if env is None else env
    return SimConfig(
        tick_interval=_float(env, "PARLAY_TICK_INTERVAL", 0.8),
        prediction_window_seconds=_float(env, "PARLAY_WINDOW_SECONDS", 15.0),
        clutch_threshold_fraction=_float(env, "PARLAY_CLUTCH_FRACTION", 0.0),
        narration_url=env.get("PARLAY_NARRATION_URL", DEFAULT_NARRATION_URL),
        narration_api_key=env.get("PARLAY_NARRATION_API_KEY") or None,
        narration_model=env.get("PARLAY_NARRATION_MODEL", "gpt-3.5-turbo"),
        narration_timeout=_float(env, "PARLAY_NARRATION_TIMEOUT", 20.0),
    )


def seeded_rng(seed: Optional[int], stream: str) -> Optional[random.Random]:
    """Independent named stream for a seeded run (matchup, props, script).

    ``None`` when unseeded so callers fall back to their own generator.
    """
    if seed is None:
        return None
    return random.Random(f"{seed}:{stream}")
