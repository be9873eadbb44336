"""
gRPC error handling utilities.

Maps review exceptions to gRPC status codes so service methods can raise
freely and let a single decorator abort the call.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar

import grpc

from .exceptions import (
    EngineError,
    EngineStartupError,
    EngineTimeoutError,
    InvalidFenError,
    InvalidPgnError,
    PoolExhaustedError,
    PoolShutdownError,
    ReviewError,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# Order matters: subclasses before their bases
EXCEPTION_STATUS_MAP: list[tuple[type[Exception], grpc.StatusCode, str]] = [
    (InvalidFenError, grpc.StatusCode.INVALID_ARGUMENT, "Invalid FEN"),
    (InvalidPgnError, grpc.StatusCode.INVALID_ARGUMENT, "Invalid PGN"),
    (PoolExhaustedError, grpc.StatusCode.RESOURCE_EXHAUSTED, "Pool exhausted"),
    (PoolShutdownError, grpc.StatusCode.UNAVAILABLE, "Pool shutdown"),
    (EngineStartupError, grpc.StatusCode.UNAVAILABLE, "Engine unavailable"),
    (EngineTimeoutError, grpc.StatusCode.DEADLINE_EXCEEDED, "Engine timeout"),
    (EngineError, grpc.StatusCode.INTERNAL, "Engine error"),
    (ReviewError, grpc.StatusCode.INTERNAL, "Review error"),
]


def map_exception_to_grpc_status(
    exc: Exception,
) -> tuple[grpc.StatusCode, str]:
    """Map an exception to its gRPC status code and log prefix.

    Args:
        exc: The exception to map.

    Returns:
        Tuple of (status_code, log_prefix).
    """
    for exc_type, status, prefix in EXCEPTION_STATUS_MAP:
        if isinstance(exc, exc_type):
            return status, prefix
    return grpc.StatusCode.INTERNAL, "Internal error"


def grpc_error_handler(
    default_response: Callable[[], Any] | None = None,
) -> Callable[[F], F]:
    """Decorator that turns exceptions raised by a service method into aborts.

    Args:
        default_response: Optional factory for the value returned after
                         ``context.abort`` (only reached with mocked contexts).

    Example:
        @grpc_error_handler(default_response=dict)
        def Evaluate(self, request, context):
            ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(
            self: Any,
            request: Any,
            context: grpc.ServicerContext,
            *args: Any,
            **kwargs: Any,
        ) -> Any:
            try:
                return func(self, request, context, *args, **kwargs)
            except Exception as e:
                status, prefix = map_exception_to_grpc_status(e)

                if status == grpc.StatusCode.INTERNAL:
                    logger.exception(f"{prefix}: {e}")
                else:
                    logger.warning(f"{prefix}: {e}")

                context.abort(status, str(e))

                if default_response is not None:
                    return default_response()
                return None

        return wrapper  # type: ignore[return-value]

    return decorator
