"""
UCI scoring engine wrapper using python-chess.

Each UciEngine owns one engine process. Scores are reported from the
side-to-move perspective with mates folded into the centipawn scale;
callers re-sign them.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
from concurrent import futures
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import chess
import chess.engine

from review_common import (
    EngineError,
    EngineProtocolError,
    EngineStartupError,
    EngineTimeoutError,
    EngineTransportError,
    InvalidFenError,
)

from .config import EngineConfig

logger = logging.getLogger(__name__)

__all__ = [
    "MATE_SCORE",
    "EngineEvaluation",
    "ScoringOracle",
    "UciEngine",
    "WorkerState",
    "score_to_cp",
]

# Mate in k scores MATE_SCORE - k; being mated in k scores -(MATE_SCORE - k)
MATE_SCORE = 10000

_TIMEOUT_ERRORS = (TimeoutError, asyncio.TimeoutError, futures.TimeoutError)


class WorkerState(enum.Enum):
    """Lifecycle of an engine worker."""

    STARTING = "starting"
    READY = "ready"
    BUSY = "busy"
    CLOSED = "closed"


@dataclass(frozen=True)
class EngineEvaluation:
    """Score plus the engine's preferred move (UCI), if it has one."""

    score: int
    best_move: str | None = None


class ScoringOracle(Protocol):
    """Narrow interface the pool and evaluator rely on."""

    state: WorkerState

    def evaluate(self, fen: str, depth: int) -> int: ...

    def evaluate_with_best_move(self, fen: str, depth: int) -> EngineEvaluation: ...

    def is_alive(self) -> bool: ...

    def stop(self) -> None: ...


def score_to_cp(score: chess.engine.Score) -> int:
    """Centipawns for a relative score. ``Mate(0)`` (already mated) is ``-MATE_SCORE``."""
    return score.score(mate_score=MATE_SCORE)


class UciEngine:
    """
    Wrapper around python-chess SimpleEngine for one UCI engine process.

    This class is NOT thread-safe. Only one request may be in flight per
    instance; EnginePool hands each instance to one caller at a time.

    Usage:
        engine = UciEngine(config)
        engine.start()
        try:
            score = engine.evaluate("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1", 14)
        finally:
            engine.stop()
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()
        self._engine: chess.engine.SimpleEngine | None = None
        self._version: str | None = None
        self.state = WorkerState.CLOSED

    @property
    def path(self) -> Path:
        """Get the engine binary path."""
        return self._config.engine_path

    @property
    def version(self) -> str:
        """Get the engine version string."""
        if self._version is None:
            return "not started"
        return self._version

    def is_alive(self) -> bool:
        """Check if the engine process is running."""
        if self._engine is None:
            return False
        try:
            transport = self._engine.protocol.transport
            if transport is None:
                return False
            return transport.get_returncode() is None
        except Exception:
            return False

    def start(self) -> None:
        """Launch the engine and complete the UCI handshake.

        Raises:
            EngineStartupError: If the binary is missing, cannot be launched,
                or never acknowledges the handshake.
        """
        if self._engine is not None:
            logger.warning("Engine already started, stopping first")
            self.stop()

        self.state = WorkerState.STARTING

        try:
            logger.info(f"Starting engine from {self._config.engine_path}")
            self._engine = chess.engine.SimpleEngine.popen_uci(
                str(self._config.engine_path),
                timeout=self._config.startup_timeout,
            )

            self._version = self._engine.id.get("name", "unknown")

            if self._config.threads > 1:
                self._engine.configure({"Threads": self._config.threads})
            self._engine.configure({"Hash": self._config.hash_mb})

        except chess.engine.EngineTerminatedError as e:
            self.stop()
            raise EngineStartupError(f"Engine terminated during startup: {e}") from e
        except FileNotFoundError as e:
            self.stop()
            raise EngineStartupError(f"Engine binary not found at {self._config.engine_path}") from e
        except Exception as e:
            self.stop()
            raise EngineStartupError(f"Failed to start engine: {e}") from e

        self.state = WorkerState.READY
        logger.info(f"Engine started: {self._version}")

    def stop(self) -> None:
        """Quit the engine process. Never raises."""
        if self._engine is not None:
            try:
                self._engine.quit()
                logger.info("Engine stopped")
            except Exception as e:
                logger.warning(f"Error stopping engine: {e}")
                try:
                    self._engine.close()
                except Exception as close_error:
                    logger.warning(f"Error closing engine: {close_error}")
            finally:
                self._engine = None
                self._version = None
        self.state = WorkerState.CLOSED

    def evaluate(self, fen: str, depth: int) -> int:
        """Score a position from the side-to-move perspective.

        Args:
            fen: Position in FEN notation.
            depth: Search depth in plies.

        Returns:
            Centipawn score; mates are encoded as ``±(10000 - k)``.

        Raises:
            InvalidFenError: If the FEN is invalid.
            EngineProtocolError: If the engine's reply could not be used.
            EngineTransportError: If the process died mid-request.
            EngineTimeoutError: If ``request_timeout`` expired first.
        """
        return self._search(fen, depth).score

    def evaluate_with_best_move(self, fen: str, depth: int) -> EngineEvaluation:
        """Score a position and return the move the engine would play."""
        return self._search(fen, depth)

    def _search(self, fen: str, depth: int) -> EngineEvaluation:
        if self._engine is None:
            raise EngineError("Engine not started")

        try:
            board = chess.Board(fen)
        except ValueError as e:
            raise InvalidFenError(f"Invalid FEN: {fen}") from e

        limit = chess.engine.Limit(depth=depth)
        expired = threading.Event()

        try:
            with self._engine.analysis(board, limit) as analysis:
                timer = self._start_deadline(analysis, expired)
                try:
                    analysis.wait()
                finally:
                    if timer is not None:
                        timer.cancel()
                info = analysis.info
        except chess.engine.EngineTerminatedError as e:
            raise EngineTransportError(f"Engine terminated during evaluation: {e}") from e
        except chess.engine.EngineError as e:
            raise EngineProtocolError(f"Evaluation failed: {e}") from e
        except _TIMEOUT_ERRORS as e:
            raise EngineTimeoutError(f"Evaluation timed out: {e}") from e

        # The search was stopped and its bestmove consumed, so the engine is
        # ready for the next request.
        if expired.is_set():
            raise EngineTimeoutError(
                f"No result from engine within {self._config.request_timeout}s at depth {depth}"
            )

        score = info.get("score")
        pv = info.get("pv") or []
        return EngineEvaluation(
            score=score_to_cp(score.pov(board.turn)) if score is not None else 0,
            best_move=pv[0].uci() if pv else None,
        )

    def _start_deadline(
        self, analysis: chess.engine.SimpleAnalysisResult, expired: threading.Event
    ) -> threading.Timer | None:
        """Send ``stop`` to the engine once ``request_timeout`` elapses."""
        timeout = self._config.request_timeout
        if timeout is None:
            return None

        def expire() -> None:
            expired.set()
            logger.warning(f"Search exceeded {timeout}s, stopping engine search")
            analysis.stop()

        timer = threading.Timer(timeout, expire)
        timer.daemon = True
        timer.start()
        return timer
