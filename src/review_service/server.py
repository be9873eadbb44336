"""
Game review gRPC server.

Messages are JSON objects; the service is registered with a generic handler
so no generated stubs are needed.

    /chessreview.ReviewService/AnalyzeGame  {"pgn": "..."}
    /chessreview.ReviewService/Evaluate     {"fen": "...", "depth": 10}
    /chessreview.ReviewService/BestMove     {"fen": "...", "depth": 10}
    /chessreview.ReviewService/HealthCheck  {}
"""

from __future__ import annotations

import json
import logging
from concurrent import futures
from typing import Any

import grpc

from review_common import GracefulServer, InvalidFenError, InvalidPgnError, grpc_error_handler

from .config import AnalysisConfig, EngineConfig, PoolConfig, ServerConfig
from .evaluator import ParallelEvaluator
from .opening_book import OpeningBook
from .pool import EnginePool
from .review import GameReviewer

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVICE_NAME = "chessreview.ReviewService"

Message = dict[str, Any]


def _deserialize(data: bytes) -> Message:
    if not data:
        return {}
    message = json.loads(data.decode("utf-8"))
    if not isinstance(message, dict):
        raise ValueError("Request must be a JSON object")
    return message


def _serialize(message: Message) -> bytes:
    return json.dumps(message).encode("utf-8")


class ReviewServiceImpl:
    """gRPC service implementation for game review."""

    def __init__(self, reviewer: GameReviewer, pool: EnginePool) -> None:
        self._reviewer = reviewer
        self._pool = pool

    @grpc_error_handler(default_response=dict)
    def AnalyzeGame(self, request: Message, context: grpc.ServicerContext) -> Message:
        pgn = request.get("pgn")
        if not isinstance(pgn, str) or not pgn.strip():
            raise InvalidPgnError("Request has no PGN text")

        report = self._reviewer.analyze_game(pgn)
        return report.to_dict()

    @grpc_error_handler(default_response=dict)
    def Evaluate(self, request: Message, context: grpc.ServicerContext) -> Message:
        fen = _require_fen(request)
        logger.debug(f"Evaluate request: fen={fen}")
        return {"evaluation": self._reviewer.evaluate_position(fen, _depth(request))}

    @grpc_error_handler(default_response=dict)
    def BestMove(self, request: Message, context: grpc.ServicerContext) -> Message:
        fen = _require_fen(request)
        result = self._reviewer.best_move(fen, _depth(request))
        return {"evaluation": result.score, "best_move": result.best_move or ""}

    def HealthCheck(self, request: Message, context: grpc.ServicerContext) -> Message:
        health = self._pool.health_check()
        return {
            "healthy": health["healthy"] > 0,
            "version": health["version"],
            "total": health["total"],
            "available": health["available"],
        }


def _require_fen(request: Message) -> str:
    fen = request.get("fen")
    if not isinstance(fen, str) or not fen.strip():
        raise InvalidFenError("Request has no FEN")
    return fen.strip()


def _depth(request: Message) -> int | None:
    depth = request.get("depth")
    if isinstance(depth, int) and not isinstance(depth, bool) and depth > 0:
        return depth
    return None


def add_review_service_to_server(servicer: ReviewServiceImpl, server: grpc.Server) -> None:
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=_deserialize,
            response_serializer=_serialize,
        )
        for name in ("AnalyzeGame", "Evaluate", "BestMove", "HealthCheck")
    }
    server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),))


def create_server(
    server_config: ServerConfig | None = None,
    pool_config: PoolConfig | None = None,
    engine_config: EngineConfig | None = None,
    analysis_config: AnalysisConfig | None = None,
) -> tuple[grpc.Server, EnginePool, ParallelEvaluator]:
    """Create the gRPC server, its engine pool and the evaluator over it.

    Returns:
        Tuple of (server, pool, evaluator). Caller should start pool, then
        server, and hand both pool and evaluator to ``release_resources``
        on shutdown.
    """
    server_config = server_config or ServerConfig()
    analysis_config = analysis_config or AnalysisConfig()

    pool = EnginePool(pool_config, engine_config)
    book = OpeningBook.from_directory(analysis_config.openings_dir)
    evaluator = ParallelEvaluator(pool)
    reviewer = GameReviewer(evaluator, book, analysis_config)

    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=server_config.max_workers),
        maximum_concurrent_rpcs=server_config.max_concurrent_rpcs,
    )
    add_review_service_to_server(ReviewServiceImpl(reviewer, pool), server)
    server.add_insecure_port(f"[::]:{server_config.port}")

    return server, pool, evaluator


def release_resources(pool: EnginePool, evaluator: ParallelEvaluator) -> None:
    """Stop the engines, then the evaluator's task threads."""
    pool.shutdown()
    evaluator.close()


def serve(
    server_config: ServerConfig | None = None,
    pool_config: PoolConfig | None = None,
    engine_config: EngineConfig | None = None,
    analysis_config: AnalysisConfig | None = None,
) -> None:
    """Start the review server and block until a shutdown signal."""
    server_config = server_config or ServerConfig()

    server, pool, evaluator = create_server(server_config, pool_config, engine_config, analysis_config)

    pool.start()

    graceful = GracefulServer(server, on_shutdown=lambda: release_resources(pool, evaluator))
    graceful.start()

    logger.info(f"Review gRPC server started on port {server_config.port}")

    graceful.wait()


if __name__ == "__main__":
    serve()
