"""
Parlay Party Live Game API
FastAPI wrapper around the parlay_engine simulation clock
"""

import sys
import os
import uuid
import time
from typing import Dict, List, Optional
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
from parlay_engine import (
    SimulationClock, ScriptGenerator, load_config, seeded_rng, RUNNING,
    NFL_TEAMS, get_team, get_players_for_team, find_player, build_matchup,
    AlreadyRunningError, InvalidWindowError,
)
from parlay_engine.roster import Team, Player


app = FastAPI(title="Parlay Party Live Game API", version="1.0.0")

CONFIG = load_config()

sessions: Dict[str, dict] = {}


@app.get("/api/health")
def health_check():
    return {"status": "ok", "teams": len(NFL_TEAMS), "sessions": len(sessions)}


class SimulateRequest(BaseModel):
    team_a: str
    team_b: str
    player_a: Optional[str] = None
    player_b: Optional[str] = None
    seed: Optional[int] = None


class StartRequest(BaseModel):
    team_a: str
    team_b: str
    player_a: Optional[str] = None
    player_b: Optional[str] = None
    seed: Optional[int] = None


class PredictionRequest(BaseModel):
    window_id: str
    prediction: str   # "hit" / "miss" (or "over" / "under")


def _get_session(session_id: str) -> dict:
    if session_id not in sessions:
        raise HTTPException(status_code=404, detail="Session not found")
    return sessions[session_id]


def _require_team(abbr: str) -> Team:
    team = get_team(abbr)
    if team is None:
        raise HTTPException(status_code=404, detail=f"Team '{abbr}' not found")
    return team


def _resolve_player(name: Optional[str], team: Team) -> Optional[Player]:
    if name is None:
        return None
    player = find_player(name, team.abbreviation)
    if player is None:
        raise HTTPException(status_code=400, detail=f"'{name}' is not a featured player for {team.abbreviation}")
    return player


def _build_matchup(team_a: str, team_b: str, player_a: Optional[str], player_b: Optional[str],
                   seed: Optional[int]):
    a = _require_team(team_a)
    b = _require_team(team_b)
    if a == b:
        raise HTTPException(status_code=400, detail="Teams must be different")
    rng = seeded_rng(seed, "matchup")
    try:
        return build_matchup(a, b, rng, _resolve_player(player_a, a), _resolve_player(player_b, b))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _new_clock(event_log: List[dict]) -> SimulationClock:
    clock = SimulationClock(config=CONFIG)
    clock.subscribe(lambda ev: event_log.append(ev.to_dict()))
    return clock


@app.get("/teams")
def list_teams():
    return {
        "teams": [
            {**t.to_dict(), "players": len(get_players_for_team(t.abbreviation))}
            for t in NFL_TEAMS
        ]
    }


@app.get("/teams/{abbr}/players")
def list_team_players(abbr: str):
    team = _require_team(abbr)
    return {"team": team.to_dict(), "players": [p.to_dict() for p in get_players_for_team(team.abbreviation)]}


@app.post("/simulate")
def simulate(req: SimulateRequest):
    matchup = _build_matchup(req.team_a, req.team_b, req.player_a, req.player_b, req.seed)
    generator = ScriptGenerator.from_config(CONFIG)
    rng = seeded_rng(req.seed, "script")
    script = generator.generate(matchup, rng)
    return {
        "matchup": matchup.to_dict(),
        "source": script.source,
        "script": script.to_records(),
    }


@app.post("/sessions")
def create_session():
    session_id = str(uuid.uuid4())
    now = time.time()
    event_log: List[dict] = []
    sessions[session_id] = {
        "clock": _new_clock(event_log),
        "events": event_log,
        "created_at": now,
    }
    return {"session_id": session_id, "created_at": now}


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    session = _get_session(session_id)
    session["clock"].stop(reason="session deleted")
    del sessions[session_id]
    return {"deleted": True}


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    session = _get_session(session_id)
    return {
        "session_id": session_id,
        "created_at": session["created_at"],
        "event_count": len(session["events"]),
        **session["clock"].status(),
    }


@app.post("/sessions/{session_id}/start")
async def start_run(session_id: str, req: StartRequest):
    session = _get_session(session_id)
    clock: SimulationClock = session["clock"]
    matchup = _build_matchup(req.team_a, req.team_b, req.player_a, req.player_b, req.seed)
    if clock.state == RUNNING:
        raise HTTPException(status_code=409, detail=f"Run {clock.run_id} is already running")
    # the event log only ever holds the current run
    session["events"].clear()
    try:
        run = await clock.start(matchup, seed=req.seed)
    except AlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {
        "run_id": run.run_id,
        "state": clock.state,
        "matchup": matchup.to_dict(),
        "props": {slot: p.to_dict() for slot, p in run.props.items()},
        "script_source": run.script.source if run.script else None,
        "total_plays": len(run.script.plays) if run.script else None,
    }


@app.post("/sessions/{session_id}/stop")
async def stop_run(session_id: str):
    session = _get_session(session_id)
    clock: SimulationClock = session["clock"]
    stopped = clock.stop()
    return {"stopped": stopped, "state": clock.state, "run_id": clock.run_id}


@app.post("/sessions/{session_id}/predictions")
async def submit_prediction(session_id: str, req: PredictionRequest):
    session = _get_session(session_id)
    clock: SimulationClock = session["clock"]
    try:
        record = clock.submit_prediction(req.window_id, req.prediction)
    except InvalidWindowError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"prediction": record.to_dict()}


@app.get("/sessions/{session_id}/events")
async def list_events(session_id: str, since: int = Query(0, ge=0, description="Index of the first event to return")):
    session = _get_session(session_id)
    log = session["events"]
    return {"run_id": session["clock"].run_id, "events": log[since:], "next": len(log)}
