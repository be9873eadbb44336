"""
Game review facade.

Wires the game record, parallel evaluator, opening book and classifier into
the three operations the service exposes: full game analysis, single
position evaluation, and best move lookup.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from .classifier import MoveClassifier, MoveReview, compute_accuracy
from .config import AnalysisConfig
from .engine import EngineEvaluation
from .evaluator import ParallelEvaluator
from .game_record import GameHeaders, GameRecord, parse_game
from .opening_book import OpeningBook

logger = logging.getLogger(__name__)


@dataclass
class GameAnalysisReport:
    """Accuracy and per-move reviews for one game."""

    accuracy: float
    moves: list[MoveReview] = field(default_factory=list)
    headers: GameHeaders = field(default_factory=GameHeaders)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for move in data["moves"]:
            move["classification"] = move["classification"].value
        return data


class GameReviewer:
    """
    Produces game reports and single-position answers.

    Usage:
        pool = EnginePool()
        pool.start()
        reviewer = GameReviewer(ParallelEvaluator(pool), OpeningBook.from_directory(path))

        report = reviewer.analyze_game(pgn_text)
    """

    def __init__(
        self,
        evaluator: ParallelEvaluator,
        book: OpeningBook | None = None,
        config: AnalysisConfig | None = None,
    ) -> None:
        self._evaluator = evaluator
        self._book = book if book is not None else OpeningBook()
        self._config = config or AnalysisConfig()

    def analyze_game(self, pgn_text: str) -> GameAnalysisReport:
        """Analyze the first game in a PGN text.

        Raises:
            InvalidPgnError: If the text cannot be read as a game.
        """
        return self.analyze_record(parse_game(pgn_text))

    def analyze_record(self, record: GameRecord) -> GameAnalysisReport:
        depth = self._config.game_depth
        logger.info(f"Analyzing {len(record.plies)} plies at depth {depth}")

        scores = self._evaluator.evaluate_all(record.positions, depth)

        classifier = MoveClassifier(
            is_book_position=self._book.is_book_position,
            best_move_lookup=lambda fen: self._evaluator.best_move(fen, depth).best_move,
        )
        reviews = classifier.review_game(record.plies, scores)
        accuracy = compute_accuracy(reviews)

        logger.info(f"Analysis complete: accuracy {accuracy:.1f}")
        return GameAnalysisReport(accuracy=accuracy, moves=reviews, headers=record.headers)

    def evaluate_position(self, fen: str, depth: int | None = None) -> int:
        """White-positive score for one position."""
        return self._evaluator.evaluate_position(fen, depth or self._config.interactive_depth)

    def best_move(self, fen: str, depth: int | None = None) -> EngineEvaluation:
        """White-positive score plus the engine's best move for one position."""
        return self._evaluator.best_move(fen, depth or self._config.interactive_depth)
