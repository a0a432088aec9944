"""Move decision providers and the coordinator that chains them.

Providers are tried in priority order (lower first). A provider that is
unavailable is skipped; one that raises or suggests an illegal move counts
as having no recommendation.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .board import Move
from .engine import Difficulty, Engine
from .game import GameState
from .rules import RuleEngine

logger = logging.getLogger(__name__)


class DecisionProvider(ABC):
    """Something that can recommend a move for a game state."""

    name: str = "provider"
    priority: int = 100

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def decide(self, state: GameState) -> Optional[Move]:
        ...


class SearchProvider(DecisionProvider):
    name = "search"
    priority = 10

    def __init__(self, engine: Engine, difficulty: Difficulty = Difficulty.MEDIUM, time_budget: Optional[float] = None):
        self.engine = engine
        self.difficulty = difficulty
        self.time_budget = time_budget

    def decide(self, state: GameState) -> Optional[Move]:
        return self.engine.search(state, self.difficulty, self.time_budget)


class RandomProvider(DecisionProvider):
    name = "random"
    priority = 1000

    def __init__(self, rules: RuleEngine, rng: Optional[random.Random] = None):
        self.rules = rules
        self.rng = rng

    def decide(self, state: GameState) -> Optional[Move]:
        return self.rules.get_random_legal_move(state, rng=self.rng)


class DecisionCoordinator:
    """Ask providers in priority order until one gives a legal move."""

    def __init__(self, providers: Iterable[DecisionProvider], rules: RuleEngine):
        self.providers: List[DecisionProvider] = sorted(providers, key=lambda p: p.priority)
        self.rules = rules
        self.last_provider: Optional[str] = None

    def decide(self, state: GameState) -> Optional[Move]:
        self.last_provider = None
        legal = self.rules.get_all_legal_moves(state)
        if not legal or state.is_over:
            return None

        for provider in self.providers:
            if not provider.is_available():
                logger.debug("Provider %s unavailable, skipping", provider.name)
                continue
            try:
                move = provider.decide(state)
            except Exception:
                logger.warning("Provider %s failed", provider.name, exc_info=True)
                continue
            if move is None:
                logger.warning("Provider %s had no recommendation", provider.name)
                continue
            if move not in legal:
                logger.warning("Provider %s suggested illegal move %s", provider.name, move)
                continue
            self.last_provider = provider.name
            return move

        logger.warning("All providers declined; falling back to a random legal move")
        self.last_provider = "fallback"
        return self.rules.get_random_legal_move(state)
