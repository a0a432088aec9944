"""Unit tests for Engine class."""

import itertools
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from xiangqi import (
    Board, Move, Side, GameState, GameStatus, RuleEngine, Engine, Difficulty, MATE, new_game,
)
from xiangqi.config import SearchConfig


def game(setup, side=Side.RED):
    return GameState(board=Board(custom_setup=setup), side_to_move=side)


class TestDifficulty:
    """Test difficulty tiers."""

    def test_default_limits(self):
        config = SearchConfig()

        assert Difficulty.EASY.limits(config) == (2, 1.5)
        assert Difficulty.MEDIUM.limits(config) == (3, 4.0)
        assert Difficulty.HARD.limits(config) == (4, 12.0)

    def test_depth_override(self):
        config = SearchConfig(depth_override=1)

        assert Difficulty.HARD.limits(config) == (1, 12.0)


class TestEngineInitialization:
    """Test engine initialization."""

    def test_default_initialization(self):
        engine = Engine()

        assert engine.nodes_searched == 0
        assert engine.depth_reached == 0
        assert engine.timed_out is False
        assert engine.last_score is None

    def test_shares_rule_engine(self):
        rules = RuleEngine()
        engine = Engine(rules=rules)

        assert engine.rules is rules
        assert engine.evaluator.rules is rules


class TestEngineSearch:
    """Test engine search functionality."""

    def test_search_returns_legal_move(self):
        state = new_game()
        engine = Engine()

        move = engine.search(state, Difficulty.EASY, time_budget=5.0)

        assert move in RuleEngine().get_all_legal_moves(state)
        assert engine.nodes_searched > 0

    def test_search_is_pure(self):
        state = new_game()
        layout = state.board.layout()
        fingerprint = state.board.fingerprint

        Engine().search(state, Difficulty.EASY, time_budget=2.0)

        assert state.board.layout() == layout
        assert state.board.fingerprint == fingerprint
        assert state.side_to_move == Side.RED
        assert state.history == []

    def test_captures_general(self):
        state = game({"e9": "bK", "d0": "rK", "e4": "rR", "a9": "bR"})
        engine = Engine()

        move = engine.search(state, Difficulty.HARD)

        assert move == Move(4, 5, 4, 0)

    def test_finds_mate_in_one(self):
        state = game({"d9": "bK", "e0": "rK", "a4": "rR"})
        engine = Engine()

        move = engine.search(state, Difficulty.EASY, time_budget=60.0)
        result = RuleEngine().make_move(state, move.origin, move.destination)

        assert result.status == GameStatus.CHECKMATE
        assert engine.last_score >= MATE - 10

    def test_no_legal_moves_returns_none(self):
        state = game({"d9": "bK", "e0": "rK", "d4": "rR"}, Side.BLACK)

        assert Engine().search(state, Difficulty.EASY) is None

    def test_game_over_returns_none(self):
        state = new_game()
        state.finish(GameStatus.CHECKMATE, Side.BLACK, "test")

        assert Engine().search(state) is None


class TestTimeControl:
    """Test the cooperative deadline."""

    def test_immediate_timeout_falls_back(self):
        """With the clock already past the deadline a random legal move is returned."""
        ticks = itertools.count(0, 100)
        engine = Engine(clock=lambda: next(ticks))
        state = new_game()

        move = engine.search(state, Difficulty.HARD, time_budget=1.0)

        assert engine.timed_out
        assert move in RuleEngine().get_all_legal_moves(state)

    def test_keeps_best_move_when_interrupted(self):
        ticks = itertools.count(0, 0.0005)
        engine = Engine(clock=lambda: next(ticks))
        state = new_game()

        move = engine.search(state, Difficulty.HARD, time_budget=1.0)

        assert move in RuleEngine().get_all_legal_moves(state)


class TestMoveOrdering:
    """Test ordering heuristics."""

    def test_captures_first(self):
        state = new_game()
        engine = Engine()
        moves = engine.rules.get_all_legal_moves(state)

        ordered = engine._order_moves(state.board, moves, 0)

        # Cannon takes horse beats every quiet move
        assert ordered[0] in (Move(1, 7, 1, 0), Move(7, 7, 7, 0))
        assert set(ordered) == set(moves)

    def test_killer_and_history_bounded(self):
        state = new_game()
        engine = Engine()

        engine.search(state, Difficulty.EASY, time_budget=3.0)

        assert all(len(k) <= engine.config.max_killers for k in engine.killers.values())
        assert all(v <= engine.config.history_max for v in engine.history.values())

    def test_record_cutoff_updates_history(self):
        board = Board()
        engine = Engine()
        move = Move(7, 7, 4, 7)

        for _ in range(20):
            engine._record_cutoff(board, move, 3, 1)

        assert engine.killers[1] == [move]
        assert engine.history[(7, 7, 4, 7)] == engine.config.history_max

    def test_stats(self):
        engine = Engine()
        engine.search(new_game(), Difficulty.EASY, time_budget=1.0)

        stats = engine.stats()
        assert set(stats) == {"nodes_searched", "depth_reached", "timed_out", "last_score"}


class TestSearchDepth:
    """Test each tier finishes its configured depth from the opening."""

    @pytest.mark.parametrize("difficulty", list(Difficulty))
    def test_reaches_tier_depth(self, difficulty):
        config = SearchConfig()
        engine = Engine(config=config)
        state = new_game()

        move = engine.search(state, difficulty)

        assert not engine.timed_out
        assert engine.depth_reached == difficulty.limits(config)[0]
        assert move in RuleEngine().get_all_legal_moves(state)
