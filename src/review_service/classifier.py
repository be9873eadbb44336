"""
Move classification from consecutive engine scores.

The classifier is a sequential fold over a game: punishment detection looks
at the previous move's loss and book status can only be left once, so moves
are reviewed strictly in order after all positions have been scored.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import chess

from review_common import ReviewError

from .game_record import Ply
from .material import is_sacrifice

logger = logging.getLogger(__name__)

__all__ = [
    "Classification",
    "MoveClassifier",
    "MoveReview",
    "centipawn_loss",
    "classify_move",
    "compute_accuracy",
]

PUNISHABLE_LOSS = 120  # previous move at least a Mistake
NEAR_BEST_LOSS = 15

BookLookup = Callable[[str], bool]
BestMoveLookup = Callable[[str], "str | None"]


class Classification(str, enum.Enum):
    BOOK = "Book"
    BRILLIANT = "Brilliant"
    GREAT = "Great"
    BEST = "Best"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    INACCURACY = "Inaccuracy"
    MISTAKE = "Mistake"
    MISS = "Miss"
    BLUNDER = "Blunder"


# Labels that get a best-move suggestion attached
NEEDS_BEST_MOVE = frozenset(
    {
        Classification.EXCELLENT,
        Classification.GOOD,
        Classification.INACCURACY,
        Classification.MISTAKE,
        Classification.MISS,
        Classification.BLUNDER,
    }
)


@dataclass(frozen=True)
class MoveReview:
    """Review of a single move."""

    move: str  # SAN
    centipawn_loss: int
    evaluation: int  # White-positive score after the move
    classification: Classification
    fen: str  # Position after the move
    best_move: str | None = None  # UCI, only for sub-optimal moves
    clock_time: str | None = None


def centipawn_loss(score_before: int, score_after: int, white_moved: bool) -> int:
    """Loss from the mover's point of view, given White-positive scores."""
    if white_moved:
        return max(0, score_before - score_after)
    return max(0, score_after - score_before)


def classify_move(cp_loss: int, sacrifice: bool, punishment: bool) -> Classification:
    """Map a move's loss and tactical flags to its label. First match wins."""
    if sacrifice:
        if cp_loss <= 15:
            return Classification.BRILLIANT
        if cp_loss <= 30:
            return Classification.GREAT

    if punishment and cp_loss <= NEAR_BEST_LOSS:
        return Classification.GREAT

    if cp_loss == 0:
        return Classification.BEST
    if cp_loss <= 15:
        return Classification.EXCELLENT
    if cp_loss <= 30:
        return Classification.GOOD
    if cp_loss <= 60:
        return Classification.INACCURACY
    if cp_loss <= 120:
        return Classification.MISTAKE
    if cp_loss <= 250:
        return Classification.MISS
    return Classification.BLUNDER


def compute_accuracy(reviews: Sequence[MoveReview]) -> float:
    """``100 - average loss / 10``, floored at 0. A game without moves scores 0."""
    if not reviews:
        return 0.0
    average = sum(r.centipawn_loss for r in reviews) / len(reviews)
    return max(0.0, 100 - average / 10)


class MoveClassifier:
    """
    Turns a scored game into per-move reviews.

    Args:
        is_book_position: Opening theory membership test on a FEN.
        best_move_lookup: Called with the pre-move FEN for sub-optimal moves.
            May raise; failures leave the suggestion empty.
    """

    def __init__(
        self,
        is_book_position: BookLookup,
        best_move_lookup: BestMoveLookup | None = None,
    ) -> None:
        self._is_book_position = is_book_position
        self._best_move_lookup = best_move_lookup

    def review_game(self, plies: Sequence[Ply], scores: Sequence[int]) -> list[MoveReview]:
        """Review every move of a game.

        Args:
            plies: Moves in game order.
            scores: White-positive scores, one per position (``len(plies) + 1``).

        Raises:
            ValueError: If the score count does not match the positions.
        """
        if len(scores) != len(plies) + 1:
            raise ValueError(f"Expected {len(plies) + 1} scores for {len(plies)} moves, got {len(scores)}")

        reviews: list[MoveReview] = []
        still_in_book = True
        prev_loss: int | None = None

        for i, ply in enumerate(plies):
            score_before, score_after = scores[i], scores[i + 1]
            cp_loss = centipawn_loss(score_before, score_after, ply.white)

            mover = chess.WHITE if ply.white else chess.BLACK
            sacrifice = is_sacrifice(chess.Board(ply.fen_before), chess.Board(ply.fen_after), mover)
            punishment = (
                prev_loss is not None and prev_loss >= PUNISHABLE_LOSS and cp_loss <= NEAR_BEST_LOSS
            )
            prev_loss = cp_loss

            if still_in_book and self._is_book_position(ply.fen_after):
                classification = Classification.BOOK
                recorded_loss = 0
            else:
                still_in_book = False
                classification = classify_move(cp_loss, sacrifice, punishment)
                recorded_loss = cp_loss

            best_move = None
            if classification in NEEDS_BEST_MOVE:
                best_move = self._lookup_best_move(ply.fen_before)

            reviews.append(
                MoveReview(
                    move=ply.san,
                    centipawn_loss=recorded_loss,
                    evaluation=score_after,
                    classification=classification,
                    fen=ply.fen_after,
                    best_move=best_move,
                    clock_time=ply.clock,
                )
            )

        return reviews

    def _lookup_best_move(self, fen: str) -> str | None:
        if self._best_move_lookup is None:
            return None
        try:
            return self._best_move_lookup(fen)
        except ReviewError as e:
            logger.warning(f"Best move lookup failed for {fen}: {e}")
            return None
