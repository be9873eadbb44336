"""Pytest configuration for game review tests."""

import os
import shutil
import sys
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add the src directory to the Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


# Sample FEN positions for testing
STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
MATE_IN_1_FEN = "6k1/5ppp/8/8/8/8/8/4R2K w - - 0 1"  # Re1-e8#
FOOLS_MATE_FEN = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"

FOOLS_MATE_PGN = """[Event "Casual game"]
[White "Alice"]
[Black "Bob"]
[WhiteElo "1200"]
[BlackElo "1350"]
[TimeControl "300"]

1. f3 {[%clk 0:04:58]} e5 {[%clk 0:04:57]} 2. g4 {[%clk 0:04:50]} Qh4# {[%clk 0:04:41.5]} 0-1
"""


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires a real engine binary)"
    )


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests (requires a real engine binary)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless --integration flag is passed."""
    if config.getoption("--integration", default=False):
        return
    skip_integration = pytest.mark.skip(reason="need --integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class FakeEngine:
    """In-memory stand-in for UciEngine with scripted side-to-move scores."""

    def __init__(self, scores: dict[str, int] | None = None, best_moves: dict[str, str] | None = None):
        from review_service.engine import WorkerState

        self.scores = scores or {}
        self.best_moves = best_moves or {}
        self.fail_on: set[str] = set()
        self.delay = 0.0  # seconds per search
        self.calls: list[str] = []
        self.alive = True
        self.version = "Fake Engine"
        self.state = WorkerState.CLOSED
        self._lock = threading.Lock()

    def start(self) -> None:
        from review_service.engine import WorkerState

        self.alive = True
        self.state = WorkerState.READY

    def stop(self) -> None:
        from review_service.engine import WorkerState

        self.alive = False
        self.state = WorkerState.CLOSED

    def is_alive(self) -> bool:
        return self.alive

    def evaluate(self, fen: str, depth: int) -> int:
        return self.evaluate_with_best_move(fen, depth).score

    def evaluate_with_best_move(self, fen: str, depth: int):
        from review_common import EngineTransportError
        from review_service.engine import EngineEvaluation

        with self._lock:
            self.calls.append(fen)
        if self.delay:
            time.sleep(self.delay)
        if fen in self.fail_on:
            raise EngineTransportError("Engine closed its output stream")
        return EngineEvaluation(score=self.scores.get(fen, 0), best_move=self.best_moves.get(fen))


@pytest.fixture
def starting_fen() -> str:
    return STARTING_FEN


@pytest.fixture
def mate_in_1_fen() -> str:
    return MATE_IN_1_FEN


@pytest.fixture
def engine_available() -> bool:
    """Check if an engine binary is available."""
    engine_path = os.environ.get("REVIEW_ENGINE_PATH", "stockfish")
    return shutil.which(engine_path) is not None


@pytest.fixture
def engine_config():
    """Create a test engine configuration."""
    from review_service.config import EngineConfig

    return EngineConfig(engine_path=Path("stockfish"), threads=1, hash_mb=16)


@pytest.fixture
def pool_config():
    """Create a test pool configuration."""
    from review_service.config import PoolConfig

    return PoolConfig(size=2, acquire_timeout=5.0)


@pytest.fixture
def fake_engine(monkeypatch) -> FakeEngine:
    """Make every pool worker the same FakeEngine instance."""
    engine = FakeEngine()
    monkeypatch.setattr("review_service.pool.UciEngine", lambda config: engine)
    return engine


@pytest.fixture
def fake_engines(monkeypatch) -> list[FakeEngine]:
    """Give every pool worker its own FakeEngine; collects them in creation order."""
    created: list[FakeEngine] = []

    def factory(config):
        engine = FakeEngine()
        created.append(engine)
        return engine

    monkeypatch.setattr("review_service.pool.UciEngine", factory)
    return created


@pytest.fixture
def mock_simple_engine(monkeypatch):
    """Create a mocked python-chess SimpleEngine."""
    import chess.engine

    mock_engine = MagicMock()
    mock_engine.id = {"name": "Stockfish 17 Mock"}
    mock_engine.protocol.transport.get_returncode.return_value = None

    # Mock popen_uci to return our mock engine
    monkeypatch.setattr(
        chess.engine.SimpleEngine,
        "popen_uci",
        lambda *args, **kwargs: mock_engine,
    )

    return mock_engine


def script_search(mock_engine: MagicMock, info: dict) -> MagicMock:
    """Make the next ``analysis()`` on a mocked SimpleEngine finish with ``info``."""
    analysis = MagicMock()
    analysis.info = info
    mock_engine.analysis.return_value.__enter__.return_value = analysis
    return analysis


SCRIPTED_ENGINE = Path(__file__).parent / "scripted_uci_engine.py"


@pytest.fixture
def scripted_engine_path(tmp_path: Path) -> Path:
    """Executable that runs the scripted UCI engine with this interpreter."""
    launcher = tmp_path / "scripted-engine"
    launcher.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{SCRIPTED_ENGINE}" "$@"\n')
    launcher.chmod(0o755)
    return launcher
