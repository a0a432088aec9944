"""Game state and move results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .board import Board, Move, PieceType, Side


class GameStatus(Enum):
    """Game lifecycle. Everything except PLAYING is terminal."""

    PLAYING = "playing"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    GENERAL_CAPTURED = "general_captured"
    FLYING_GENERAL = "flying_general"

    @property
    def is_terminal(self) -> bool:
        return self is not GameStatus.PLAYING


@dataclass
class MoveRecord:
    """One applied move in the game history."""

    move: Move
    piece_id: str
    piece_type: PieceType
    side: Side
    captured_id: Optional[str] = None
    captured_type: Optional[PieceType] = None
    gave_check: bool = False

    @property
    def notation(self) -> str:
        return self.move.to_iccs()

    def to_dict(self) -> Dict:
        return {
            "move": self.notation,
            "piece": self.piece_id,
            "piece_type": self.piece_type.value,
            "side": self.side.value,
            "captured": self.captured_id,
            "captured_type": self.captured_type.value if self.captured_type else None,
            "gave_check": self.gave_check,
        }


@dataclass
class MoveResult:
    """Outcome of ``RuleEngine.make_move``."""

    success: bool
    captured_piece: Optional[PieceType] = None
    status: GameStatus = GameStatus.PLAYING
    winner: Optional[Side] = None
    gives_check: bool = False
    perpetual_check: Optional[Side] = None
    message: str = ""


@dataclass
class GameState:
    """Board, side to move, history and terminal status of one game."""

    board: Board
    side_to_move: Side = Side.RED
    history: List[MoveRecord] = field(default_factory=list)
    status: GameStatus = GameStatus.PLAYING
    winner: Optional[Side] = None
    reason: str = ""

    @property
    def is_over(self) -> bool:
        return self.status.is_terminal

    def to_fen(self) -> str:
        return self.board.to_fen(self.side_to_move)

    def finish(self, status: GameStatus, winner: Optional[Side], reason: str) -> None:
        self.status = status
        self.winner = winner
        self.reason = reason

    def copy(self) -> "GameState":
        """Deep enough copy for search: fresh board, shallow history list."""
        return GameState(
            board=self.board.copy(),
            side_to_move=self.side_to_move,
            history=list(self.history),
            status=self.status,
            winner=self.winner,
            reason=self.reason,
        )


def new_game(
    custom_setup: Optional[Dict[str, str]] = None,
    fen: Optional[str] = None,
    side_to_move: Side = Side.RED,
) -> GameState:
    """Create a game from the standard layout, a setup mapping or FEN."""
    if fen is not None:
        board, side_to_move = Board.from_fen(fen)
    elif custom_setup is not None:
        board = Board(custom_setup=custom_setup)
    else:
        board = Board()
    return GameState(board=board, side_to_move=side_to_move)
