"""FastAPI backend for Xiangqi games."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from time import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from xiangqi.board import Piece, Side, coords_to_square, square_to_coords
from xiangqi.config import CONFIG
from xiangqi.engine import Difficulty, Engine
from xiangqi.exceptions import XiangqiError
from xiangqi.game import GameState, new_game as create_game
from xiangqi.providers import DecisionCoordinator, RandomProvider, SearchProvider
from xiangqi.rules import RuleEngine

logger = logging.getLogger(__name__)

# Thread pool for CPU-intensive AI operations
executor = ThreadPoolExecutor(max_workers=CONFIG.server.worker_threads)

MAX_UNDO = 50
MAX_IDLE_TIME = 3600


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    yield
    executor.shutdown(wait=True)


app = FastAPI(title="Xiangqi AI Engine", lifespan=lifespan)


@app.exception_handler(XiangqiError)
async def xiangqi_error_handler(request: Request, exc: XiangqiError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


class GameSession:
    """One game plus the engine that plays it.

    The search runs on a snapshot in a worker thread with its own rule
    engine, so it never shares a cache with request handlers.
    """

    def __init__(self, state: GameState, difficulty: Difficulty):
        self.state = state
        self.difficulty = difficulty
        self.rules = RuleEngine()
        self.engine = Engine()
        self.coordinator = DecisionCoordinator(
            [
                SearchProvider(self.engine, difficulty),
                RandomProvider(self.engine.rules),
            ],
            self.engine.rules,
        )
        self.lock = asyncio.Lock()
        self.last_access = time()
        self.is_processing = False
        self.undo_stack: List[GameState] = []

    def push_undo(self) -> None:
        self.undo_stack.append(self.state.copy())
        if len(self.undo_stack) > MAX_UNDO:
            self.undo_stack.pop(0)


games: Dict[str, GameSession] = {}
games_lock = asyncio.Lock()


async def get_session(game_id: str) -> GameSession:
    """Get game session or 404."""
    async with games_lock:
        if game_id not in games:
            raise HTTPException(status_code=404, detail="Game not found")
        session = games[game_id]
        session.last_access = time()
        return session


async def cleanup_old_games():
    """Drop games that haven't been accessed for a long time."""
    current_time = time()
    async with games_lock:
        to_remove = [
            game_id
            for game_id, session in games.items()
            if current_time - session.last_access > MAX_IDLE_TIME
        ]
        for game_id in to_remove:
            del games[game_id]
    if to_remove:
        logger.info("Removed %d idle games", len(to_remove))


class MoveRequest(BaseModel):
    """Request model for making a move."""

    game_id: str
    from_square: str  # e.g., "h2"
    to_square: str  # e.g., "e2"


class NewGameRequest(BaseModel):
    """Request model for creating a new game."""

    game_id: str
    difficulty: str = CONFIG.server.default_difficulty
    custom_setup: Optional[Dict[str, str]] = None  # e.g., {"e0": "rK", "e9": "bK"}
    fen: Optional[str] = None


class BoardResponse(BaseModel):
    """Response model for board state."""

    board: List[List[Optional[str]]]
    side_to_move: str
    status: str
    game_over: bool
    winner: Optional[str]
    reason: Optional[str] = None
    in_check: bool
    legal_moves: List[Dict[str, str]]
    move_history: List[Dict[str, Any]]
    can_undo: bool = False
    fen: str


def piece_to_string(piece: Optional[Piece]) -> Optional[str]:
    """Convert piece to its setup code, e.g. ``rK``."""
    if piece is None:
        return None
    side_char = "r" if piece.side == Side.RED else "b"
    return f"{side_char}{piece.to_char().upper()}"


def parse_difficulty(value: str) -> Difficulty:
    try:
        return Difficulty(value.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown difficulty: {value}")


def move_to_dict(move) -> Dict[str, str]:
    return {
        "from": coords_to_square(move.from_file, move.from_rank),
        "to": coords_to_square(move.to_file, move.to_rank),
    }


@app.post("/api/new-game")
async def new_game(request: NewGameRequest):
    """Create a new game."""
    difficulty = parse_difficulty(request.difficulty)
    state = create_game(custom_setup=request.custom_setup, fen=request.fen)
    state.board.validate()

    async with games_lock:
        games[request.game_id] = GameSession(state, difficulty)

    asyncio.create_task(cleanup_old_games())
    logger.info("Created game %s (%s)", request.game_id, difficulty.value)

    return {
        "status": "ok",
        "game_id": request.game_id,
        "difficulty": difficulty.value,
        "fen": state.to_fen(),
    }


@app.get("/api/board/{game_id}")
async def get_board(game_id: str):
    """Get current board state."""
    session = await get_session(game_id)

    async with session.lock:
        state = session.state
        board = state.board
        rules = session.rules

        board_array = [
            [piece_to_string(board.get_piece(file, rank)) for file in range(board.FILES)]
            for rank in range(board.RANKS)
        ]
        legal_moves = [] if state.is_over else [move_to_dict(m) for m in rules.get_all_legal_moves(state)]

        return BoardResponse(
            board=board_array,
            side_to_move=state.side_to_move.value,
            status=state.status.value,
            game_over=state.is_over,
            winner=state.winner.value if state.winner else None,
            reason=state.reason or None,
            in_check=rules.is_in_check(board, state.side_to_move),
            legal_moves=legal_moves,
            move_history=[record.to_dict() for record in state.history],
            can_undo=len(session.undo_stack) > 0,
            fen=state.to_fen(),
        )


def _result_payload(result) -> Dict[str, Any]:
    return {
        "captured": result.captured_piece.value if result.captured_piece else None,
        "game_status": result.status.value,
        "winner": result.winner.value if result.winner else None,
        "gives_check": result.gives_check,
        "perpetual_check": result.perpetual_check.value if result.perpetual_check else None,
    }


@app.post("/api/move")
async def make_move(request: MoveRequest):
    """Make a move."""
    session = await get_session(request.game_id)

    from_pos = square_to_coords(request.from_square)
    to_pos = square_to_coords(request.to_square)

    async with session.lock:
        if session.is_processing:
            raise HTTPException(status_code=409, detail="AI is already processing a move. Please wait.")
        snapshot = session.state.copy()
        result = session.rules.make_move(session.state, from_pos, to_pos)
        if not result.success:
            raise HTTPException(status_code=400, detail=result.message or "Illegal move")
        session.undo_stack.append(snapshot)
        if len(session.undo_stack) > MAX_UNDO:
            session.undo_stack.pop(0)

    return {
        "status": "ok",
        "move": request.from_square + request.to_square,
        **_result_payload(result),
    }


def _run_ai_search(coordinator: DecisionCoordinator, state: GameState):
    """CPU-bound decision in a worker thread."""
    return coordinator.decide(state)


@app.post("/api/undo/{game_id}")
async def undo_move(game_id: str):
    """Undo the last move."""
    session = await get_session(game_id)

    async with session.lock:
        if session.is_processing:
            raise HTTPException(status_code=409, detail="AI is already processing a move. Please wait.")
        if not session.undo_stack:
            raise HTTPException(status_code=400, detail="No moves to undo")
        session.state = session.undo_stack.pop()
        session.rules.cache.clear()

    return {"status": "ok", "message": "Move undone successfully"}


@app.post("/api/ai-move/{game_id}")
async def ai_move(game_id: str):
    """Let the AI play for the side to move."""
    session = await get_session(game_id)

    async with session.lock:
        if session.is_processing:
            raise HTTPException(status_code=409, detail="AI is already processing a move. Please wait.")
        if session.state.is_over:
            raise HTTPException(status_code=400, detail="Game is already over")
        session.is_processing = True
        snapshot = session.state.copy()

    try:
        loop = asyncio.get_running_loop()
        best_move = await loop.run_in_executor(
            executor, _run_ai_search, session.coordinator, snapshot
        )

        if best_move is None:
            raise HTTPException(status_code=400, detail="No legal moves available")

        async with session.lock:
            session.push_undo()
            result = session.rules.make_move(session.state, best_move.origin, best_move.destination)
            if not result.success:
                session.undo_stack.pop()
                raise HTTPException(status_code=500, detail="AI generated illegal move")

        return {
            "status": "ok",
            "move": move_to_dict(best_move),
            "provider": session.coordinator.last_provider,
            **session.engine.stats(),
            **_result_payload(result),
        }
    finally:
        async with session.lock:
            session.is_processing = False
