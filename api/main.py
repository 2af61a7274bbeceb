"""
CycleSense Scoring API
FastAPI wrapper around the CycleSense game
"""

import sys
import os
from typing import List, Optional, Union
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exception_handlers import http_exception_handler
from pydantic import BaseModel

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
from cyclesense import Game, CycleSenseError
from cyclesense.config import PHASES
from cyclesense.errors import UnknownPhaseError
from cyclesense import db
from cyclesense.export import standings_csv, round_history_csv


app = FastAPI(title="CycleSense Scoring API", version="1.0.0")

game = Game()


@app.exception_handler(CycleSenseError)
async def cyclesense_error_handler(request: Request, exc: CycleSenseError):
    return await http_exception_handler(
        request, HTTPException(status_code=exc.http_status, detail=exc.to_dict()),
    )


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "teams": len(game.teams()),
        "color_cards": len(game.catalog.color_cards()),
        "black_cards": len(game.catalog.black_cards()),
    }


# ═══════════════════════════════════════════════════════════════
# REQUEST MODELS
# ═══════════════════════════════════════════════════════════════

class AllocationIn(BaseModel):
    equity: int = 0
    debt: int = 0
    gold: int = 0
    cash: int = 0


class TeamIn(BaseModel):
    name: str
    initial_allocation: Optional[AllocationIn] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    initial_allocation: Optional[AllocationIn] = None


class NewGameRequest(BaseModel):
    mode: str = "virtual"
    teams: Optional[List[Union[str, TeamIn]]] = None


class ResetGameRequest(BaseModel):
    keep_teams: bool = True
    clear_catalog: bool = False


class SaveRequest(BaseModel):
    save_key: str = db.DEFAULT_SAVE_KEY
    label: str = ""


class LoadRequest(BaseModel):
    save_key: str = db.DEFAULT_SAVE_KEY


class CardImportRequest(BaseModel):
    text: str


class DrawCardRequest(BaseModel):
    phase: Optional[str] = None
    card_id: Optional[str] = None


class StartRoundRequest(BaseModel):
    card_id: Optional[str] = None


class SubmissionIn(BaseModel):
    team_id: str
    allocation: AllocationIn
    pitch_score: int = 0
    emotion_score: int = 0


class SubmitAllocationsRequest(BaseModel):
    allocations: List[SubmissionIn]


class BlackCardRequest(BaseModel):
    black_card_id: str


def _team_spec(spec: Union[str, TeamIn]) -> Union[str, dict]:
    if isinstance(spec, str):
        return spec
    return {
        "name": spec.name,
        "initial_allocation": spec.initial_allocation.model_dump() if spec.initial_allocation else None,
    }


def _require_phase(phase: str) -> str:
    if phase not in PHASES:
        raise UnknownPhaseError(phase)
    return phase


# ═══════════════════════════════════════════════════════════════
# GAME
# ═══════════════════════════════════════════════════════════════

@app.get("/api/game")
def get_game_state():
    return game.state()


@app.post("/api/game/new")
def new_game(req: NewGameRequest):
    teams = None if req.teams is None else [_team_spec(t) for t in req.teams]
    try:
        session = game.new_game(req.mode, teams=teams)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.to_dict()


@app.post("/api/game/reset")
def reset_game(req: ResetGameRequest):
    game.reset_game(keep_teams=req.keep_teams, clear_catalog=req.clear_catalog)
    return game.state()


@app.post("/api/game/save")
def save_game(req: SaveRequest):
    db.save_game(game, save_key=req.save_key, label=req.label)
    return {"saved": True, "save_key": req.save_key}


@app.post("/api/game/load")
def load_game(req: LoadRequest):
    global game
    loaded = db.load_game(save_key=req.save_key)
    if loaded is None:
        raise HTTPException(status_code=404, detail=f"No saved game '{req.save_key}'")
    game = loaded
    return game.state()


@app.get("/api/saves")
def list_saves():
    db.init_db()
    return db.list_saves(db.SAVE_TYPE_GAME)


@app.delete("/api/saves/{save_key}")
def delete_save(save_key: str):
    if not db.delete_game(save_key):
        raise HTTPException(status_code=404, detail=f"No saved game '{save_key}'")
    return {"deleted": True}


# ═══════════════════════════════════════════════════════════════
# TEAMS
# ═══════════════════════════════════════════════════════════════

@app.get("/api/teams")
def list_teams():
    return [t.to_dict() for t in game.teams()]


@app.get("/api/teams/{team_id}")
def get_team(team_id: str):
    return game.get_team(team_id).to_dict()


@app.post("/api/teams")
def create_team(req: TeamIn):
    allocation = req.initial_allocation.model_dump() if req.initial_allocation else None
    try:
        team = game.add_team(req.name, allocation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return team.to_dict()


@app.patch("/api/teams/{team_id}")
def update_team(team_id: str, req: TeamUpdate):
    allocation = req.initial_allocation.model_dump() if req.initial_allocation else None
    try:
        team = game.update_team(team_id, name=req.name, initial_allocation=allocation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return team.to_dict()


@app.delete("/api/teams/{team_id}")
def delete_team(team_id: str):
    game.remove_team(team_id)
    return {"deleted": True}


@app.post("/api/teams/{team_id}/reset-nav")
def reset_team_nav(team_id: str):
    return game.reset_team_nav(team_id).to_dict()


@app.get("/api/teams/{team_id}/allocations")
def team_allocations(team_id: str):
    return [a.to_dict() for a in game.team_history(team_id)]


# ═══════════════════════════════════════════════════════════════
# CARDS
# ═══════════════════════════════════════════════════════════════

@app.get("/api/cards/color")
def list_color_cards(phase: Optional[str] = None):
    if phase is not None:
        _require_phase(phase)
    return [c.to_dict() for c in game.catalog.color_cards(phase)]


@app.get("/api/cards/color/phase/{phase}")
def color_cards_by_phase(phase: str):
    return [c.to_dict() for c in game.catalog.color_cards(_require_phase(phase))]


@app.get("/api/cards/color/{card_id}")
def get_color_card(card_id: str):
    return game.catalog.get_color_card(card_id).to_dict()


@app.post("/api/cards/color/import")
def import_color_cards(req: CardImportRequest):
    cards = game.import_color_cards(req.text)
    return {"imported": len(cards), "cards": [c.to_dict() for c in cards]}


@app.delete("/api/cards/color")
def clear_color_cards():
    game.catalog.clear_color_cards()
    return {"cleared": True}


@app.get("/api/cards/black")
def list_black_cards():
    return [c.to_dict() for c in game.catalog.black_cards()]


@app.get("/api/cards/black/{card_id}")
def get_black_card(card_id: str):
    return game.catalog.get_black_card(card_id).to_dict()


@app.post("/api/cards/black/import")
def import_black_cards(req: CardImportRequest):
    cards = game.import_black_cards(req.text)
    return {"imported": len(cards), "cards": [c.to_dict() for c in cards]}


@app.delete("/api/cards/black")
def clear_black_cards():
    game.catalog.clear_black_cards()
    return {"cleared": True}


# ═══════════════════════════════════════════════════════════════
# ROUNDS
# ═══════════════════════════════════════════════════════════════

@app.get("/api/rounds")
def list_rounds():
    return [r.to_dict() for r in game.rounds.rounds()]


@app.get("/api/rounds/current")
def current_round():
    rnd = game.current_round()
    if rnd is None:
        raise HTTPException(status_code=404, detail="No round has been played")
    return game.round_summary(rnd.id)


@app.post("/api/rounds/draw-card")
def draw_card(req: DrawCardRequest):
    return game.draw_event(phase=req.phase, card_id=req.card_id).to_dict()


@app.post("/api/rounds/draw-shock")
def draw_shock():
    return game.draw_shock().to_dict()


@app.post("/api/rounds/start")
def start_round(req: StartRoundRequest):
    rnd = game.start_round(card_id=req.card_id)
    return game.round_summary(rnd.id)


@app.get("/api/rounds/{round_id}")
def get_round(round_id: str):
    return game.round_summary(round_id)


@app.post("/api/rounds/{round_id}/allocations")
def submit_allocations(round_id: str, req: SubmitAllocationsRequest):
    submissions = [
        {
            "team_id": s.team_id,
            "allocation": s.allocation.model_dump(),
            "pitch_score": s.pitch_score,
            "emotion_score": s.emotion_score,
        }
        for s in req.allocations
    ]
    game.submit_allocations(round_id, submissions)
    return game.round_summary(round_id)


@app.post("/api/rounds/{round_id}/black-card")
def apply_black_card(round_id: str, req: BlackCardRequest):
    game.apply_shock(round_id, req.black_card_id)
    return game.round_summary(round_id)


@app.post("/api/rounds/{round_id}/finalize")
def finalize_round(round_id: str):
    return game.finalize_round(round_id).to_dict()


@app.post("/api/rounds/{round_id}/rollback")
def rollback_round(round_id: str):
    game.rollback_round(round_id)
    return game.state()


# ═══════════════════════════════════════════════════════════════
# RESULTS
# ═══════════════════════════════════════════════════════════════

@app.get("/api/leaderboard")
def leaderboard():
    return game.leaderboard()


@app.get("/api/export/standings.csv")
def export_standings():
    return Response(content=standings_csv(game), media_type="text/csv")


@app.get("/api/export/rounds.csv")
def export_rounds():
    return Response(content=round_history_csv(game), media_type="text/csv")
