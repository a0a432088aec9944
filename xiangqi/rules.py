"""Legality, check and terminal-state detection.

``RuleEngine.make_move`` is the only entry point that mutates a game. The
search engine shares the same simulate/undo primitives through
``is_move_legal`` and ``legal_moves``.
"""

import logging
import random
from typing import List, Optional, Sequence, Tuple

from .board import (
    Board,
    Move,
    Piece,
    PieceType,
    Side,
    coords_to_square,
    validate_coordinate,
    validate_grid_shape,
)
from .cache import PositionCache
from .config import CONFIG
from .exceptions import PieceNotFoundError
from .game import GameState, GameStatus, MoveRecord, MoveResult
from .moves import MoveMode, generate_moves, is_square_attacked

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]


class RuleEngine:
    """Xiangqi rules over a shared position cache."""

    def __init__(self, cache_size: Optional[int] = None):
        if cache_size is None:
            cache_size = CONFIG.cache.move_cache_size
        self.cache = PositionCache(cache_size)

    # ------------------------------------------------------------------
    # Move queries
    # ------------------------------------------------------------------

    def get_possible_moves(self, piece: Piece, board: Board) -> List[Coord]:
        """Destinations for ``piece``, with the facing-generals filter."""
        return self._cached_moves(piece, board, MoveMode.FULL)

    def get_threat_moves(self, piece: Piece, board: Board) -> List[Coord]:
        """Squares ``piece`` attacks, ignoring the facing-generals filter."""
        return self._cached_moves(piece, board, MoveMode.THREAT)

    def _cached_moves(self, piece: Optional[Piece], board: Board, mode: MoveMode) -> List[Coord]:
        if piece is None:
            raise PieceNotFoundError("No piece given")
        validate_coordinate(piece.file, piece.rank, "piece position")
        if not board.contains(piece):
            raise PieceNotFoundError(
                f"Piece {piece.id} is not on the board at {coords_to_square(piece.file, piece.rank)}"
            )
        key = self.cache.moves_key(piece, board, mode)
        cached = self.cache.moves.get(key)
        if cached is not None:
            return list(cached)
        moves = generate_moves(piece, board, mode)
        self.cache.moves.put(key, tuple(moves))
        return moves

    # ------------------------------------------------------------------
    # Check and facing generals
    # ------------------------------------------------------------------

    def is_in_check(self, board: Board, side: Side) -> bool:
        """True if an enemy piece attacks ``side``'s general."""
        general = self.cache.index.general(board, side)
        if general is None:
            return False
        return is_square_attacked(board, general[0], general[1], side)

    def would_face_generals(self, board: Board) -> bool:
        """Both generals on one file with nothing strictly between them."""
        return _open_file_between(
            board,
            self.cache.index.general(board, Side.RED),
            self.cache.index.general(board, Side.BLACK),
        )

    # ------------------------------------------------------------------
    # Legality
    # ------------------------------------------------------------------

    def is_move_legal(self, move: Move, state: GameState) -> bool:
        """Check ``move`` for the piece standing on its origin.

        The board is simulated and restored; it is left exactly as found.
        """
        return self._is_legal_on(state.board, move)

    def _is_legal_on(self, board: Board, move: Move) -> bool:
        piece = board.get_piece(move.from_file, move.from_rank)
        if piece is None:
            return False
        if move.destination not in self.get_possible_moves(piece, board):
            return False
        return self._keeps_general_safe(board, move, piece, self.cache.index.general(board, piece.side))

    def _keeps_general_safe(
        self, board: Board, move: Move, piece: Piece, general: Optional[Coord]
    ) -> bool:
        """Simulate a generated move and test the mover's general.

        ``general`` is the square before the move; the index is not consulted
        while simulating, so callers can check many candidates per rebuild.
        """
        moving_general = piece.piece_type is PieceType.GENERAL
        with board.simulate(move):
            square = move.destination if moving_general else general
            if square is not None and is_square_attacked(board, square[0], square[1], piece.side):
                return False
            # A general may not step onto an open file facing the other
            if moving_general and _open_file_between(
                board, move.destination, board.find_general(piece.side.opponent())
            ):
                return False
        return True

    def legal_moves(self, board: Board, side: Side) -> List[Move]:
        """Every legal move for ``side`` on ``board``."""
        general = self.cache.index.general(board, side)
        moves = []
        for piece in list(self.cache.index.pieces(board, side)):
            for destination in self.get_possible_moves(piece, board):
                move = Move.between(piece.position, destination)
                if self._keeps_general_safe(board, move, piece, general):
                    moves.append(move)
        return moves

    def has_legal_move(self, board: Board, side: Side) -> bool:
        general = self.cache.index.general(board, side)
        for piece in list(self.cache.index.pieces(board, side)):
            for destination in self.get_possible_moves(piece, board):
                if self._keeps_general_safe(board, Move.between(piece.position, destination), piece, general):
                    return True
        return False

    def get_all_legal_moves(self, state: GameState, side: Optional[Side] = None) -> List[Move]:
        """Legal moves for ``side`` (default: side to move)."""
        return self.legal_moves(state.board, side or state.side_to_move)

    def get_random_legal_move(
        self,
        state: GameState,
        side: Optional[Side] = None,
        rng: Optional[random.Random] = None,
    ) -> Optional[Move]:
        """Uniform random legal move, preferring captures when any exist."""
        moves = self.get_all_legal_moves(state, side)
        if not moves:
            return None
        captures = [m for m in moves if state.board.grid[m.to_rank][m.to_file] is not None]
        return (rng or random).choice(captures or moves)

    # ------------------------------------------------------------------
    # Terminal states
    # ------------------------------------------------------------------

    def is_checkmate(self, board: Board, side: Side) -> bool:
        return self.is_in_check(board, side) and not self.has_legal_move(board, side)

    def is_stalemate(self, board: Board, side: Side) -> bool:
        return not self.is_in_check(board, side) and not self.has_legal_move(board, side)

    @staticmethod
    def is_perpetual_check(history: Sequence[MoveRecord], max_repeats: int = 3) -> Optional[Side]:
        """Flag a side shuttling between two checking moves.

        A side is flagged when its last ``2 * max_repeats`` moves repeat one
        two-move cycle and every one of them gave check. Advisory only.
        """
        window = 2 * max_repeats
        if not history:
            return None
        last_mover = history[-1].side
        for side in (last_mover, last_mover.opponent()):
            own = [record for record in history if record.side is side][-window:]
            if len(own) < window:
                continue
            if not all(record.gave_check for record in own):
                continue
            if all(own[i].move == own[i % 2].move for i in range(window)):
                return side
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def make_move(self, state: GameState, from_pos: Coord, to_pos: Coord) -> MoveResult:
        """Validate and apply one move, then resolve the game status."""
        validate_coordinate(from_pos[0], from_pos[1], "origin")
        validate_coordinate(to_pos[0], to_pos[1], "target")
        board = state.board
        validate_grid_shape(board.grid)

        if state.is_over:
            return MoveResult(False, status=state.status, winner=state.winner, message="Game is already over")

        piece = board.get_piece(*from_pos)
        if piece is None:
            return MoveResult(False, message=f"No piece at {coords_to_square(*from_pos)}")
        if piece.side is not state.side_to_move:
            return MoveResult(False, message=f"It is {state.side_to_move.value}'s turn")

        move = Move.between(from_pos, to_pos)
        if tuple(to_pos) not in self.get_possible_moves(piece, board):
            return MoveResult(False, message=f"Illegal move for {piece.piece_type.value}: {move}")
        if not self._is_legal_on(board, move):
            return MoveResult(False, message=f"Move {move} leaves the general in check")

        mover = piece.side
        opponent = mover.opponent()
        record = board.apply_move(move)
        self.cache.clear()

        captured = record.captured
        gives_check = self.is_in_check(board, opponent)
        state.history.append(
            MoveRecord(
                move=move,
                piece_id=piece.id,
                piece_type=piece.piece_type,
                side=mover,
                captured_id=captured.id if captured else None,
                captured_type=captured.piece_type if captured else None,
                gave_check=gives_check,
            )
        )
        state.side_to_move = opponent

        if captured is not None and captured.piece_type is PieceType.GENERAL:
            state.finish(GameStatus.GENERAL_CAPTURED, mover, f"{mover.value} captured the general")
        elif self.would_face_generals(board):
            state.finish(GameStatus.FLYING_GENERAL, opponent, f"{mover.value} exposed the generals to each other")
        elif self.is_checkmate(board, opponent):
            state.finish(GameStatus.CHECKMATE, mover, f"{opponent.value} is checkmated")
        elif self.is_stalemate(board, opponent):
            state.finish(GameStatus.STALEMATE, mover, f"{opponent.value} has no legal move")

        if state.is_over:
            logger.info("Game over after %s: %s", move, state.reason)

        perpetual = self.is_perpetual_check(state.history)
        if perpetual is not None:
            logger.warning("Perpetual check pattern by %s", perpetual.value)

        return MoveResult(
            success=True,
            captured_piece=captured.piece_type if captured else None,
            status=state.status,
            winner=state.winner,
            gives_check=gives_check,
            perpetual_check=perpetual,
        )


def _open_file_between(board: Board, first: Optional[Coord], second: Optional[Coord]) -> bool:
    if first is None or second is None or first[0] != second[0]:
        return False
    file = first[0]
    low, high = sorted((first[1], second[1]))
    return all(board.grid[rank][file] is None for rank in range(low + 1, high))
