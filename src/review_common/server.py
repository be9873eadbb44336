"""
Server lifecycle utilities for the gRPC surface.

GracefulServer owns signal handling so the engine pool is shut down exactly
once, before the server stops accepting in-flight calls.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    import grpc

logger = logging.getLogger(__name__)


class GracefulServer:
    """Run a gRPC server until SIGTERM/SIGINT, then tear down in order.

    Usage:
        server, pool, evaluator = create_server()
        pool.start()

        graceful = GracefulServer(server, on_shutdown=lambda: release_resources(pool, evaluator))
        graceful.start()
        graceful.wait()  # Blocks until a shutdown signal
    """

    def __init__(
        self,
        server: grpc.Server,
        grace_period: float = 5.0,
        on_shutdown: Callable[[], None] | None = None,
    ) -> None:
        """
        Args:
            server: The gRPC server instance.
            grace_period: Seconds to wait for in-flight calls when stopping.
            on_shutdown: Callback run before the server is stopped.
        """
        self._server = server
        self._grace_period = grace_period
        self._on_shutdown = on_shutdown
        self._shutdown_event = threading.Event()
        self._previous_handlers: dict[int, Any] = {}

    @property
    def is_stopping(self) -> bool:
        return self._shutdown_event.is_set()

    def _shutdown_handler(self, signum: int, frame: object) -> None:
        logger.info(f"Received {signal.Signals(signum).name}, initiating graceful shutdown")
        self._shutdown_event.set()

    def start(self) -> None:
        """Register signal handlers and start the server."""
        for signum in (signal.SIGTERM, signal.SIGINT):
            self._previous_handlers[signum] = signal.signal(signum, self._shutdown_handler)

        self._server.start()

    def wait(self) -> None:
        """Block until a shutdown is requested, then shut down."""
        try:
            self._shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")

        self._do_shutdown()

    def _do_shutdown(self) -> None:
        logger.info("Shutting down...")

        if self._on_shutdown is not None:
            try:
                self._on_shutdown()
            except Exception as e:
                logger.exception(f"Error in shutdown callback: {e}")

        self._server.stop(grace=self._grace_period)

        for signum, handler in self._previous_handlers.items():
            if handler is not None:
                signal.signal(signum, handler)
        self._previous_handlers.clear()

        logger.info("Shutdown complete")

    def stop(self) -> None:
        """Request shutdown without a signal (used by tests)."""
        self._shutdown_event.set()
