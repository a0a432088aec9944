"""Unit tests for decision providers and the coordinator."""

import random
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from xiangqi import (
    Board, Move, Side, GameState, RuleEngine, Engine, Difficulty, new_game,
    DecisionProvider, SearchProvider, RandomProvider, DecisionCoordinator,
)


class FixedProvider(DecisionProvider):
    def __init__(self, name, priority, move=None, available=True, error=None):
        self.name = name
        self.priority = priority
        self.move = move
        self.available = available
        self.error = error
        self.calls = 0

    def is_available(self):
        return self.available

    def decide(self, state):
        self.calls += 1
        if self.error:
            raise self.error
        return self.move


LEGAL = Move(7, 7, 4, 7)
OTHER_LEGAL = Move(1, 7, 4, 7)
ILLEGAL = Move(0, 9, 1, 8)


class TestDecisionCoordinator:
    """Test provider chaining."""

    def test_priority_order(self):
        rules = RuleEngine()
        first = FixedProvider("first", 1, LEGAL)
        second = FixedProvider("second", 2, OTHER_LEGAL)
        coordinator = DecisionCoordinator([second, first], rules)

        assert coordinator.decide(new_game()) == LEGAL
        assert coordinator.last_provider == "first"
        assert second.calls == 0

    def test_unavailable_skipped(self):
        rules = RuleEngine()
        offline = FixedProvider("offline", 1, LEGAL, available=False)
        backup = FixedProvider("backup", 2, OTHER_LEGAL)
        coordinator = DecisionCoordinator([offline, backup], rules)

        assert coordinator.decide(new_game()) == OTHER_LEGAL
        assert offline.calls == 0

    def test_exception_is_no_recommendation(self):
        rules = RuleEngine()
        broken = FixedProvider("broken", 1, error=RuntimeError("network down"))
        backup = FixedProvider("backup", 2, OTHER_LEGAL)
        coordinator = DecisionCoordinator([broken, backup], rules)

        assert coordinator.decide(new_game()) == OTHER_LEGAL

    def test_illegal_suggestion_rejected(self):
        rules = RuleEngine()
        liar = FixedProvider("liar", 1, ILLEGAL)
        backup = FixedProvider("backup", 2, LEGAL)
        coordinator = DecisionCoordinator([liar, backup], rules)

        assert coordinator.decide(new_game()) == LEGAL

    def test_falls_back_to_random(self):
        rules = RuleEngine()
        state = new_game()
        coordinator = DecisionCoordinator([FixedProvider("silent", 1)], rules)

        move = coordinator.decide(state)

        assert move in rules.get_all_legal_moves(state)
        assert coordinator.last_provider == "fallback"

    def test_no_legal_moves(self):
        rules = RuleEngine()
        state = GameState(board=Board(custom_setup={"d9": "bK", "e0": "rK", "d4": "rR"}), side_to_move=Side.BLACK)
        provider = FixedProvider("any", 1, LEGAL)

        assert DecisionCoordinator([provider], rules).decide(state) is None
        assert provider.calls == 0


class TestProviders:
    """Test the built-in providers."""

    def test_random_provider(self):
        rules = RuleEngine()
        state = new_game()

        move = RandomProvider(rules, random.Random(3)).decide(state)

        assert move in rules.get_all_legal_moves(state)

    def test_search_provider(self):
        engine = Engine()
        provider = SearchProvider(engine, Difficulty.EASY, time_budget=1.0)
        state = GameState(board=Board(custom_setup={"e9": "bK", "d0": "rK", "e4": "rR"}))

        assert provider.decide(state) == Move(4, 5, 4, 0)

    def test_search_before_random(self):
        rules = RuleEngine()
        search = SearchProvider(Engine(rules=rules), Difficulty.EASY, time_budget=1.0)
        fallback = RandomProvider(rules)
        coordinator = DecisionCoordinator([fallback, search], rules)

        assert coordinator.providers[0] is search
