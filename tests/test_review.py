"""
Tests for the game review facade.

Full-game analysis runs through a real pool and evaluator backed by
FakeEngine workers, so scoring order and normalization are exercised.
"""

from unittest.mock import MagicMock

import chess
import pytest

from conftest import FOOLS_MATE_FEN, FOOLS_MATE_PGN, STARTING_FEN, FakeEngine
from review_common import InvalidPgnError
from review_service.classifier import Classification
from review_service.config import AnalysisConfig, PoolConfig
from review_service.engine import EngineEvaluation
from review_service.evaluator import ParallelEvaluator
from review_service.opening_book import OpeningBook
from review_service.pool import EnginePool
from review_service.review import GameReviewer


def fools_mate_fens() -> list[str]:
    board = chess.Board()
    fens = [board.fen()]
    for san in ["f3", "e5", "g4", "Qh4#"]:
        board.push_san(san)
        fens.append(board.fen())
    return fens


@pytest.fixture
def pool(fake_engine: FakeEngine):
    pool = EnginePool(PoolConfig(size=2))
    pool.start()
    yield pool
    pool.shutdown()


@pytest.fixture
def reviewer(pool: EnginePool):
    book = OpeningBook()
    book.add_line("1. f3")
    evaluator = ParallelEvaluator(pool)
    yield GameReviewer(evaluator, book)
    evaluator.close()


class TestAnalyzeGame:
    """End-to-end analysis over scripted engines."""

    def test_fools_mate(self, reviewer: GameReviewer, fake_engine: FakeEngine) -> None:
        fens = fools_mate_fens()
        after_g4 = fens[3]
        # Side-to-move scores: Black mates in one after g4, White is mated at the end
        fake_engine.scores = {after_g4: 9999, FOOLS_MATE_FEN: -10000}
        fake_engine.best_moves = {fens[2]: "d2d4"}

        report = reviewer.analyze_game(FOOLS_MATE_PGN)

        assert [m.move for m in report.moves] == ["f3", "e5", "g4", "Qh4#"]
        assert [m.classification for m in report.moves] == [
            Classification.BOOK,
            Classification.BEST,
            Classification.BLUNDER,
            Classification.GREAT,
        ]
        assert [m.centipawn_loss for m in report.moves] == [0, 0, 9999, 0]
        assert report.moves[2].best_move == "d2d4"
        assert report.moves[-1].evaluation == -10000
        assert report.moves[-1].fen == FOOLS_MATE_FEN
        assert report.accuracy == 0.0

    def test_clocks_and_headers_carried(self, reviewer: GameReviewer) -> None:
        report = reviewer.analyze_game(FOOLS_MATE_PGN)

        assert [m.clock_time for m in report.moves] == ["04:58", "04:57", "04:50", "04:41.5"]
        assert report.headers.white_player == "Alice"
        assert report.headers.time_control == "300"

    def test_every_position_scored(self, reviewer: GameReviewer, fake_engine: FakeEngine) -> None:
        reviewer.analyze_game(FOOLS_MATE_PGN)
        assert set(fools_mate_fens()) <= set(fake_engine.calls)

    def test_engine_failure_does_not_abort(self, reviewer: GameReviewer, fake_engine: FakeEngine) -> None:
        fake_engine.fail_on = set(fools_mate_fens())

        report = reviewer.analyze_game(FOOLS_MATE_PGN)

        assert len(report.moves) == 4
        assert all(m.best_move is None for m in report.moves)
        assert report.accuracy == 100.0

    def test_invalid_pgn(self, reviewer: GameReviewer) -> None:
        with pytest.raises(InvalidPgnError):
            reviewer.analyze_game("1. e4 e5 2. Ke3 *")

    def test_game_without_moves(self, reviewer: GameReviewer) -> None:
        report = reviewer.analyze_game('[Event "Empty"]\n\n*\n')

        assert report.moves == []
        assert report.accuracy == 0.0

    def test_to_dict(self, reviewer: GameReviewer) -> None:
        data = reviewer.analyze_game(FOOLS_MATE_PGN).to_dict()

        assert set(data) == {"accuracy", "moves", "headers"}
        assert data["moves"][0]["classification"] == "Book"
        assert data["moves"][0]["move"] == "f3"
        assert data["headers"]["black_player"] == "Bob"


class TestSinglePositionQueries:
    """Depth handling for interactive queries."""

    @pytest.fixture
    def evaluator(self) -> MagicMock:
        return MagicMock(spec=ParallelEvaluator)

    def test_evaluate_uses_interactive_depth(self, evaluator: MagicMock) -> None:
        evaluator.evaluate_position.return_value = 30
        reviewer = GameReviewer(evaluator, config=AnalysisConfig(interactive_depth=8))

        assert reviewer.evaluate_position(STARTING_FEN) == 30
        evaluator.evaluate_position.assert_called_once_with(STARTING_FEN, 8)

    def test_evaluate_explicit_depth(self, evaluator: MagicMock) -> None:
        evaluator.evaluate_position.return_value = 0
        reviewer = GameReviewer(evaluator)

        reviewer.evaluate_position(STARTING_FEN, 20)
        evaluator.evaluate_position.assert_called_once_with(STARTING_FEN, 20)

    def test_best_move(self, evaluator: MagicMock) -> None:
        evaluator.best_move.return_value = EngineEvaluation(score=25, best_move="e2e4")
        reviewer = GameReviewer(evaluator, config=AnalysisConfig(interactive_depth=10))

        assert reviewer.best_move(STARTING_FEN) == EngineEvaluation(score=25, best_move="e2e4")
        evaluator.best_move.assert_called_once_with(STARTING_FEN, 10)
