"""Shared utilities for the chess game review service."""

from .exceptions import (
    EngineError,
    EngineProtocolError,
    EngineStartupError,
    EngineTimeoutError,
    EngineTransportError,
    InvalidFenError,
    InvalidPgnError,
    PoolError,
    PoolExhaustedError,
    PoolShutdownError,
    ReviewError,
)
from .grpc_errors import grpc_error_handler, map_exception_to_grpc_status
from .server import GracefulServer

__all__ = [
    # Exceptions
    "ReviewError",
    "EngineError",
    "EngineStartupError",
    "EngineProtocolError",
    "EngineTransportError",
    "EngineTimeoutError",
    "PoolError",
    "PoolExhaustedError",
    "PoolShutdownError",
    "InvalidFenError",
    "InvalidPgnError",
    # gRPC utilities
    "grpc_error_handler",
    "map_exception_to_grpc_status",
    # Server utilities
    "GracefulServer",
]
