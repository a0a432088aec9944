"""Static evaluation: material, piece-square tables, safety and mobility."""

from typing import Dict, Optional

import numpy as np

from .board import RIVER_RANK, Board, Move, Piece, PieceType, Side, is_own_side, is_valid_coordinate
from .config import CONFIG, EvalConfig
from .moves import ORTHOGONAL, MoveMode, generate_moves

# Piece-square tables from red's point of view: rank 0 is black's back rank,
# rank 9 is red's. Black reads them through np.flipud.
_GENERAL_TABLE = np.array([
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, -10, -15, -10, 0, 0, 0],
    [0, 0, 0, -5, -5, -5, 0, 0, 0],
    [0, 0, 0, 5, 15, 5, 0, 0, 0],
], dtype=np.int32)

_ADVISOR_TABLE = np.array([
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 10, 0, 0, 0, 0],
    [0, 0, 0, 5, 0, 5, 0, 0, 0],
], dtype=np.int32)

_ELEPHANT_TABLE = np.array([
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, -2, 0, 0, 0, -2, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [-2, 0, 0, 0, 10, 0, 0, 0, -2],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 5, 0, 0, 0, 5, 0, 0],
], dtype=np.int32)

_HORSE_TABLE = np.array([
    [4, 8, 16, 12, 4, 12, 16, 8, 4],
    [4, 10, 28, 16, 8, 16, 28, 10, 4],
    [12, 14, 16, 20, 18, 20, 16, 14, 12],
    [8, 24, 18, 24, 20, 24, 18, 24, 8],
    [6, 16, 14, 18, 16, 18, 14, 16, 6],
    [4, 12, 16, 14, 12, 14, 16, 12, 4],
    [2, 6, 8, 6, 10, 6, 8, 6, 2],
    [4, 2, 8, 8, 4, 8, 8, 2, 4],
    [0, 2, 4, 4, -2, 4, 4, 2, 0],
    [0, -4, 0, 0, 0, 0, 0, -4, 0],
], dtype=np.int32)

_CHARIOT_TABLE = np.array([
    [14, 14, 12, 18, 16, 18, 12, 14, 14],
    [16, 20, 18, 24, 26, 24, 18, 20, 16],
    [12, 12, 12, 18, 18, 18, 12, 12, 12],
    [12, 18, 16, 22, 22, 22, 16, 18, 12],
    [12, 14, 12, 18, 18, 18, 12, 14, 12],
    [12, 16, 14, 20, 20, 20, 14, 16, 12],
    [6, 10, 8, 14, 14, 14, 8, 10, 6],
    [4, 8, 6, 14, 12, 14, 6, 8, 4],
    [8, 4, 8, 16, 8, 16, 8, 4, 8],
    [-2, 10, 6, 14, 12, 14, 6, 10, -2],
], dtype=np.int32)

_CANNON_TABLE = np.array([
    [6, 4, 0, -10, -12, -10, 0, 4, 6],
    [2, 2, 0, -4, -14, -4, 0, 2, 2],
    [2, 2, 0, -10, -8, -10, 0, 2, 2],
    [0, 0, -2, 4, 10, 4, -2, 0, 0],
    [0, 0, 0, 2, 8, 2, 0, 0, 0],
    [-2, 0, 4, 2, 6, 2, 4, 0, -2],
    [0, 0, 0, 2, 4, 2, 0, 0, 0],
    [4, 0, 8, 6, 10, 6, 8, 0, 4],
    [0, 2, 4, 6, 6, 6, 4, 2, 0],
    [0, 0, 2, 6, 6, 6, 2, 0, 0],
], dtype=np.int32)

_SOLDIER_TABLE = np.array([
    [0, 3, 6, 9, 12, 9, 6, 3, 0],
    [18, 36, 56, 80, 120, 80, 56, 36, 18],
    [14, 26, 42, 60, 80, 60, 42, 26, 14],
    [10, 20, 30, 34, 40, 34, 30, 20, 10],
    [6, 12, 18, 18, 20, 18, 18, 12, 6],
    [2, 0, 8, 0, 8, 0, 8, 0, 2],
    [0, 0, -2, 0, 4, 0, -2, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0],
], dtype=np.int32)

_RED_TABLES = {
    PieceType.GENERAL: _GENERAL_TABLE,
    PieceType.ADVISOR: _ADVISOR_TABLE,
    PieceType.ELEPHANT: _ELEPHANT_TABLE,
    PieceType.HORSE: _HORSE_TABLE,
    PieceType.CHARIOT: _CHARIOT_TABLE,
    PieceType.CANNON: _CANNON_TABLE,
    PieceType.SOLDIER: _SOLDIER_TABLE,
}

POSITION_TABLES: Dict[Side, Dict[PieceType, np.ndarray]] = {
    Side.RED: _RED_TABLES,
    Side.BLACK: {piece_type: np.flipud(table) for piece_type, table in _RED_TABLES.items()},
}


def position_value(piece_type: PieceType, side: Side, file: int, rank: int) -> int:
    """Piece-square bonus for ``piece_type`` of ``side`` at (file, rank)."""
    return int(POSITION_TABLES[side][piece_type][rank, file])


class Evaluator:
    """Scores a board from one side's perspective.

    Only used at search leaves and when the clock runs out, never to decide
    legality.
    """

    def __init__(self, rules, config: Optional[EvalConfig] = None):
        self.rules = rules
        self.config = config or CONFIG.eval

    def piece_value(self, piece_type: PieceType) -> int:
        return self.config.piece_values.get(piece_type.value, 0)

    def evaluate(self, board: Board, side: Side) -> int:
        score = 0
        for piece in board.pieces():
            value = (
                self.piece_value(piece.piece_type)
                + position_value(piece.piece_type, piece.side, piece.file, piece.rank)
                + self._soldier_bonus(piece)
                + self._mobility(piece, board)
            )
            score += value if piece.side is side else -value

        score += self._king_safety(board, side) - self._king_safety(board, side.opponent())

        if self.rules.is_in_check(board, side.opponent()):
            score += self.config.check_bonus
        if self.rules.is_in_check(board, side):
            score -= self.config.check_bonus
        return score

    def position_delta(self, piece: Piece, move: Move) -> int:
        """Table gain for ``piece`` travelling along ``move``."""
        table = POSITION_TABLES[piece.side][piece.piece_type]
        return int(table[move.to_rank, move.to_file] - table[move.from_rank, move.from_file])

    def _soldier_bonus(self, piece: Piece) -> int:
        if piece.piece_type is not PieceType.SOLDIER or is_own_side(piece.rank, piece.side):
            return 0
        if piece.side is Side.RED:
            past_river = (RIVER_RANK - 1) - piece.rank
        else:
            past_river = piece.rank - RIVER_RANK
        return self.config.soldier_crossed_bonus + self.config.soldier_advance_bonus * past_river

    def _mobility(self, piece: Piece, board: Board) -> int:
        # Generated directly, bypassing the move cache: leaf boards rarely repeat
        factor = self.config.mobility_factors.get(piece.piece_type.value, 1)
        count = len(generate_moves(piece, board, MoveMode.THREAT))
        return min(self.config.mobility_max, count * factor)

    def _king_safety(self, board: Board, side: Side) -> int:
        general = board.find_general(side)
        if general is None:
            return 0
        guards = 0
        for df, dr in ORTHOGONAL:
            file, rank = general[0] + df, general[1] + dr
            if is_valid_coordinate(file, rank):
                neighbour = board.grid[rank][file]
                if neighbour is not None and neighbour.side is side:
                    guards += 1
        return guards * self.config.king_safety_bonus
