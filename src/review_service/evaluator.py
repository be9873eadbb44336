"""
Concurrent scoring of every position in a game.

One task per position is submitted to a thread pool; each task borrows an
engine from the EnginePool for the duration of a single search. Results are
collected in submission order, so the output lines up with the input no
matter which task finishes first or which engine served it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent import futures
from types import TracebackType

from review_common import ReviewError

from .engine import EngineEvaluation
from .pool import EnginePool

logger = logging.getLogger(__name__)


def white_to_move(fen: str) -> bool:
    parts = fen.split()
    return len(parts) < 2 or parts[1] == "w"


def to_white_perspective(fen: str, score: int) -> int:
    """Re-sign a side-to-move score so positive always favours White."""
    return score if white_to_move(fen) else -score


class ParallelEvaluator:
    """
    Scores batches of positions across an engine pool.

    At most ``pool.size`` searches run at once: extra tasks wait inside
    ``pool.acquire()``.

    Usage:
        with ParallelEvaluator(pool) as evaluator:
            scores = evaluator.evaluate_all(record.positions, depth=14)
    """

    def __init__(self, pool: EnginePool, max_workers: int | None = None) -> None:
        """
        Args:
            pool: Started engine pool.
            max_workers: Task threads. Defaults to the pool size.
        """
        self._pool = pool
        self._executor = futures.ThreadPoolExecutor(
            max_workers=max_workers or pool.size,
            thread_name_prefix="evaluator",
        )

    def evaluate_all(self, fens: Sequence[str], depth: int) -> list[int]:
        """Score every position, White-positive, in input order.

        A position that cannot be scored for any reason scores 0; the rest of
        the batch is unaffected.
        """
        tasks = [self._executor.submit(self._score_or_zero, fen, depth) for fen in fens]
        return [task.result() for task in tasks]

    def evaluate_position(self, fen: str, depth: int) -> int:
        """Score a single position, White-positive. Engine errors propagate."""
        with self._pool.engine() as engine:
            score = engine.evaluate(fen, depth)
        return to_white_perspective(fen, score)

    def best_move(self, fen: str, depth: int) -> EngineEvaluation:
        """Score a single position and fetch the engine's move for it."""
        with self._pool.engine() as engine:
            result = engine.evaluate_with_best_move(fen, depth)
        return EngineEvaluation(
            score=to_white_perspective(fen, result.score),
            best_move=result.best_move,
        )

    def _score_or_zero(self, fen: str, depth: int) -> int:
        try:
            return self.evaluate_position(fen, depth)
        except ReviewError as e:
            logger.warning(f"Evaluation failed for {fen}, scoring 0: {e}")
            return 0
        except Exception as e:
            logger.exception(f"Unexpected error evaluating {fen}, scoring 0: {e}")
            return 0

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> ParallelEvaluator:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
