from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    rules_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from ...config import Settings
from ...engine.game import Game
from ...engine.move import IllegalMoveError, parse_move
from ...persistence.records import (
    PersistenceError,
    dump_state,
    game_from_records,
    parse_state,
    records_from_game,
)
from .session import InMemorySessionStore


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    mandatory_capture: Optional[bool] = Field(
        default=None, description="Force captures when available (server default if omitted)"
    )


class CreateGameResponse(BaseModel):
    game_id: str
    position: str


class SetPositionRequest(BaseModel):
    position: str = Field(..., description="Position string, e.g. '8/8/.../8 d'")


class InputRequest(BaseModel):
    # Not bounds-checked; the engine ignores off-board squares.
    row: int
    col: int


class MoveRequest(BaseModel):
    move: str = Field(..., description="Move notation, e.g. c3-d4 or c3xe5")


class ImportRequest(BaseModel):
    text: str = Field(..., description="Saved game: active player line, then 'owner row col king' lines")
    mandatory_capture: Optional[bool] = None


class ExportResponse(BaseModel):
    game_id: str
    text: str


class PieceView(BaseModel):
    owner: str
    row: int
    col: int
    king: bool
    selected: bool
    capturing: bool


class GameState(BaseModel):
    game_id: str
    position: str
    active_player: str
    phase: str
    selected: Optional[List[int]]
    pieces: List[PieceView]
    legal_moves: List[str]
    mandatory_capture: bool
    game_over: bool
    winner: Optional[str]
    last_move: Optional[str]
    move_history: List[str]


class InputResponse(BaseModel):
    outcome: str
    state: GameState


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="Checkers Rules API", version="0.1.0")

    logging.basicConfig(level=settings.log_level)

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(IllegalMoveError, rules_exception_handler)
    app.add_exception_handler(PersistenceError, rules_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore(mandatory_capture=settings.mandatory_capture)

    def _strict(flag: Optional[bool]) -> bool:
        return settings.mandatory_capture if flag is None else flag

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        flag = req.mandatory_capture if req is not None else None
        game = Game.new(mandatory_capture=_strict(flag))
        game_id = store.create(game)
        logger.info("created game %s", game_id)
        return CreateGameResponse(game_id=game_id, position=game.to_position())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, bool]:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return {"deleted": True}

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        current = _require_game(store, game_id)
        try:
            game = Game.from_position(req.position, mandatory_capture=current.mandatory_capture)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"invalid position: {e}")
        store.set(game_id, game)
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/input", response_model=InputResponse)
    async def send_input(game_id: str, req: InputRequest) -> InputResponse:
        game = _require_game(store, game_id)
        outcome = game.handle_input(req.row, req.col)
        return InputResponse(outcome=outcome.value, state=_state(game_id, game))

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require_game(store, game_id)
        try:
            from_sq, to_sq = parse_move(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        # IllegalMoveError is rendered as 400 by the registered handler
        game.apply_move(from_sq, to_sq)
        return _state(game_id, game)

    @app.get("/api/games/{game_id}/export", response_model=ExportResponse)
    async def export_game(game_id: str) -> ExportResponse:
        game = _require_game(store, game_id)
        return ExportResponse(game_id=game_id, text=dump_state(game.active, records_from_game(game)))

    @app.post("/api/games/import", response_model=CreateGameResponse)
    async def import_game(req: ImportRequest) -> CreateGameResponse:
        active, records = parse_state(req.text)
        game = game_from_records(active, records, mandatory_capture=_strict(req.mandatory_capture))
        game_id = store.create(game)
        logger.info("imported game %s (%d pieces)", game_id, len(records))
        return CreateGameResponse(game_id=game_id, position=game.to_position())

    return app


def _state(game_id: str, game: Game) -> GameState:
    snap = game.snapshot()
    last = game.last_move()
    return GameState(
        game_id=game_id,
        position=game.to_position(),
        active_player=snap["active"],
        phase=snap["phase"],
        selected=snap["selected"],
        pieces=[PieceView(**p) for p in snap["pieces"]],
        legal_moves=[m.to_notation() for m in game.legal_moves()],
        mandatory_capture=game.mandatory_capture,
        game_over=game.game_over(),
        winner=game.winner(),
        last_move=last.to_notation() if last else None,
        move_history=game.move_history_notation(),
    )


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game
