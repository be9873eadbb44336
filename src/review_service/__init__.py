"""
Chess game review service.

Scores every position of a game across a pool of UCI engines, then labels
each move (Book, Brilliant, Great, Best ... Blunder) and computes accuracy.
"""

from .classifier import (
    Classification,
    MoveClassifier,
    MoveReview,
    centipawn_loss,
    classify_move,
    compute_accuracy,
)
from .config import AnalysisConfig, EngineConfig, PoolConfig, ServerConfig
from .engine import EngineEvaluation, ScoringOracle, UciEngine, WorkerState
from .evaluator import ParallelEvaluator
from .game_record import GameHeaders, GameRecord, Ply, parse_game
from .opening_book import OpeningBook, normalize_fen
from .pool import EnginePool
from .review import GameAnalysisReport, GameReviewer

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Config
    "AnalysisConfig",
    "EngineConfig",
    "PoolConfig",
    "ServerConfig",
    # Engine
    "UciEngine",
    "EngineEvaluation",
    "ScoringOracle",
    "WorkerState",
    # Pool
    "EnginePool",
    # Analysis
    "ParallelEvaluator",
    "MoveClassifier",
    "MoveReview",
    "Classification",
    "centipawn_loss",
    "classify_move",
    "compute_accuracy",
    "OpeningBook",
    "normalize_fen",
    "GameHeaders",
    "GameRecord",
    "Ply",
    "parse_game",
    "GameAnalysisReport",
    "GameReviewer",
]
