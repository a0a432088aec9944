"""Xiangqi AI engine: time-boxed alpha-beta minimax with move ordering."""

import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .board import Board, Move, PieceType, Side
from .config import CONFIG, SearchConfig
from .evaluation import Evaluator
from .game import GameState
from .rules import RuleEngine

logger = logging.getLogger(__name__)

MATE = 1_000_000
# Scores beyond this are mate scores
MATE_BOUND = MATE - 1000


class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    def limits(self, config: Optional[SearchConfig] = None) -> Tuple[int, float]:
        """(max depth, time budget in seconds) for this tier."""
        config = config or CONFIG.search
        depth = getattr(config, f"{self.value}_depth")
        budget = getattr(config, f"{self.value}_time")
        if config.depth_override:
            depth = config.depth_override
        return depth, budget


class Engine:
    """Search engine for one caller at a time."""

    def __init__(
        self,
        rules: Optional[RuleEngine] = None,
        evaluator: Optional[Evaluator] = None,
        config: Optional[SearchConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize engine.

        Args:
            rules: Rule engine (and its position cache) to search with
            evaluator: Leaf evaluator; built on ``rules`` when omitted
            config: Search limits and ordering weights
            clock: Monotonic time source, in seconds
        """
        self.rules = rules or RuleEngine()
        self.evaluator = evaluator or Evaluator(self.rules)
        self.config = config or CONFIG.search
        self._clock = clock

        self.nodes_searched = 0
        self.depth_reached = 0
        self.timed_out = False
        self.last_score: Optional[int] = None

        self.killers: Dict[int, List[Move]] = {}
        self.history: Dict[Tuple[int, int, int, int], int] = {}
        self._deadline = 0.0
        self._root_side = Side.RED

    def stats(self) -> Dict:
        return {
            "nodes_searched": self.nodes_searched,
            "depth_reached": self.depth_reached,
            "timed_out": self.timed_out,
            "last_score": self.last_score,
        }

    def search(
        self,
        state: GameState,
        difficulty: Optional[Difficulty] = None,
        time_budget: Optional[float] = None,
    ) -> Optional[Move]:
        """Find a move for the side to move. ``state`` is left untouched."""
        difficulty = difficulty or Difficulty.MEDIUM
        max_depth, budget = difficulty.limits(self.config)
        if time_budget is not None:
            budget = time_budget

        self.nodes_searched = 0
        self.depth_reached = 0
        self.timed_out = False
        self.last_score = None
        self.killers.clear()
        self.history.clear()

        if state.is_over:
            return None

        board = state.board.copy()
        side = state.side_to_move
        self._root_side = side

        root_moves = self.rules.legal_moves(board, side)
        if not root_moves:
            return None

        for move in root_moves:
            target = board.grid[move.to_rank][move.to_file]
            if target is not None and target.piece_type is PieceType.GENERAL:
                self.last_score = MATE
                return move

        self._deadline = self._clock() + budget
        best_move: Optional[Move] = None
        for depth in range(1, max(1, max_depth) + 1):
            move, score = self._search_root(board, side, root_moves, depth, best_move)
            if move is not None:
                best_move = move
                self.last_score = score
            if self.timed_out:
                logger.debug("Depth %d interrupted after %d nodes", depth, self.nodes_searched)
                break
            self.depth_reached = depth
            logger.debug("Depth %d: best %s score %s", depth, best_move, score)
            if score is not None and abs(score) >= MATE_BOUND:
                break

        if best_move is None:
            best_move = self.rules.get_random_legal_move(state, side)

        logger.info(
            "Search %s: move=%s score=%s depth=%d nodes=%d timed_out=%s",
            difficulty.value,
            best_move,
            self.last_score,
            self.depth_reached,
            self.nodes_searched,
            self.timed_out,
        )
        return best_move

    def _search_root(
        self,
        board: Board,
        side: Side,
        moves: List[Move],
        depth: int,
        previous_best: Optional[Move],
    ) -> Tuple[Optional[Move], Optional[int]]:
        """One iteration at the root. Only fully searched children count."""
        ordered = self._order_moves(board, moves, 0)
        if previous_best is not None and previous_best in ordered:
            ordered.remove(previous_best)
            ordered.insert(0, previous_best)

        best_move = None
        best_value = None
        alpha = -MATE - 1
        beta = MATE + 1
        for move in ordered:
            if self._time_up():
                break
            value = self._child_value(board, move, depth, 0, alpha, beta, True)
            if self.timed_out:
                break
            if best_value is None or value > best_value:
                best_value = value
                best_move = move
            alpha = max(alpha, value)
        return best_move, best_value

    def _child_value(
        self,
        board: Board,
        move: Move,
        depth: int,
        ply: int,
        alpha: int,
        beta: int,
        maximizing: bool,
    ) -> int:
        """Score ``move`` for the side whose turn it is at ``ply``."""
        mover = board.grid[move.from_rank][move.from_file].side
        win = MATE - (ply + 1)
        with board.simulate(move) as record:
            if record.captured is not None and record.captured.piece_type is PieceType.GENERAL:
                return win if maximizing else -win
            if self.rules.would_face_generals(board):
                return -win if maximizing else win
            return self._minimax(board, mover.opponent(), depth - 1, ply + 1, alpha, beta, not maximizing)

    def _minimax(
        self,
        board: Board,
        side: Side,
        depth: int,
        ply: int,
        alpha: int,
        beta: int,
        maximizing: bool,
    ) -> int:
        """Minimax algorithm with alpha-beta pruning."""
        self.nodes_searched += 1

        if depth <= 0 or self._time_up():
            return self.evaluator.evaluate(board, self._root_side)

        moves = self.rules.legal_moves(board, side)
        if not moves:
            if self.rules.is_in_check(board, side):
                return -MATE + ply if maximizing else MATE - ply
            return 0

        moves = self._order_moves(board, moves, ply)

        if maximizing:
            max_eval = -MATE - 1
            for move in moves:
                if self._time_up():
                    break
                eval_score = self._child_value(board, move, depth, ply, alpha, beta, True)
                max_eval = max(max_eval, eval_score)
                alpha = max(alpha, eval_score)
                if beta <= alpha:
                    self._record_cutoff(board, move, depth, ply)
                    break
            return max_eval if max_eval > -MATE - 1 else self.evaluator.evaluate(board, self._root_side)
        else:
            min_eval = MATE + 1
            for move in moves:
                if self._time_up():
                    break
                eval_score = self._child_value(board, move, depth, ply, alpha, beta, False)
                min_eval = min(min_eval, eval_score)
                beta = min(beta, eval_score)
                if beta <= alpha:
                    self._record_cutoff(board, move, depth, ply)
                    break
            return min_eval if min_eval < MATE + 1 else self.evaluator.evaluate(board, self._root_side)

    def _time_up(self) -> bool:
        if not self.timed_out and self._clock() >= self._deadline:
            self.timed_out = True
        return self.timed_out

    # ------------------------------------------------------------------
    # Move ordering
    # ------------------------------------------------------------------

    def _order_moves(self, board: Board, moves: List[Move], ply: int) -> List[Move]:
        """Captures (MVV-LVA), then killers, history and positional gain."""
        killers = self.killers.get(ply, [])
        scored = []
        for move in moves:
            piece = board.grid[move.from_rank][move.from_file]
            target = board.grid[move.to_rank][move.to_file]
            score = 0
            if target is not None:
                score += (
                    self.config.capture_bonus
                    + self.evaluator.piece_value(target.piece_type)
                    - self.evaluator.piece_value(piece.piece_type)
                )
            if move in killers:
                score += self.config.killer_bonus
            score += self.history.get(self._history_key(move), 0)
            score += self.evaluator.position_delta(piece, move) * self.config.position_factor
            scored.append((score, move))
        scored.sort(key=lambda x: -x[0])
        return [m for _, m in scored]

    @staticmethod
    def _history_key(move: Move) -> Tuple[int, int, int, int]:
        return (move.from_file, move.from_rank, move.to_file, move.to_rank)

    def _record_cutoff(self, board: Board, move: Move, depth: int, ply: int) -> None:
        # Captures are already ordered first
        if board.grid[move.to_rank][move.to_file] is not None:
            return
        killers = self.killers.setdefault(ply, [])
        if move not in killers:
            killers.insert(0, move)
            del killers[self.config.max_killers:]
        key = self._history_key(move)
        self.history[key] = min(self.config.history_max, self.history.get(key, 0) + depth * depth)
