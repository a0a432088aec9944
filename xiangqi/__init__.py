"""Chinese chess (Xiangqi) rule engine and search AI."""

from .board import (
    Board, Move, Side, PieceType, Piece, UndoRecord,
    initialize_board, is_valid_coordinate, is_in_palace, is_own_side,
    square_to_coords, coords_to_square,
)
from .exceptions import XiangqiError, InvalidCoordinateError, InvalidBoardError, PieceNotFoundError
from .zobrist import ZobristHash, get_zobrist
from .moves import MoveMode, generate_moves
from .cache import LRUCache, BoardIndex, PositionCache
from .game import GameState, GameStatus, MoveRecord, MoveResult, new_game
from .rules import RuleEngine
from .evaluation import Evaluator
from .engine import Engine, Difficulty, MATE
from .providers import DecisionProvider, SearchProvider, RandomProvider, DecisionCoordinator
from .config import CONFIG, Config, configure_logging

__all__ = [
    # Board and game
    'Board', 'Move', 'Side', 'PieceType', 'Piece', 'UndoRecord',
    'initialize_board', 'is_valid_coordinate', 'is_in_palace', 'is_own_side',
    'square_to_coords', 'coords_to_square',
    'GameState', 'GameStatus', 'MoveRecord', 'MoveResult', 'new_game',
    # Errors
    'XiangqiError', 'InvalidCoordinateError', 'InvalidBoardError', 'PieceNotFoundError',
    # Rules and move generation
    'MoveMode', 'generate_moves', 'RuleEngine',
    'LRUCache', 'BoardIndex', 'PositionCache',
    # Zobrist hashing
    'ZobristHash', 'get_zobrist',
    # Search
    'Evaluator', 'Engine', 'Difficulty', 'MATE',
    'DecisionProvider', 'SearchProvider', 'RandomProvider', 'DecisionCoordinator',
    # Configuration
    'CONFIG', 'Config', 'configure_logging',
]
