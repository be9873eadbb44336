"""
Thread-safe pool of UCI engine workers.

Bounds the number of concurrent engine requests to the pool size and
owns every worker's lifecycle from startup to shutdown.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TypedDict

from review_common import EngineStartupError, PoolExhaustedError, PoolShutdownError

from .config import EngineConfig, PoolConfig
from .engine import UciEngine, WorkerState


class HealthStatus(TypedDict):
    """Health check result type."""

    total: int
    available: int
    healthy: int
    version: str


logger = logging.getLogger(__name__)

__all__ = ["EnginePool", "HealthStatus"]


class EnginePool:
    """
    Fixed-size pool of engine workers.

    Every worker is started eagerly by ``start()``. ``acquire()`` blocks until
    a worker is free, so the number of in-flight engine requests never exceeds
    the pool size however many callers are waiting.

    A worker that crashes mid-request is handed back like any other and keeps
    failing fast afterwards, shrinking the usable capacity. Set
    ``PoolConfig.restart_dead_workers`` to restart or replace it on release.

    Usage:
        pool = EnginePool(pool_config, engine_config)
        pool.start()

        with pool.engine() as eng:
            score = eng.evaluate(fen, depth=14)

        pool.shutdown()
    """

    def __init__(
        self,
        pool_config: PoolConfig | None = None,
        engine_config: EngineConfig | None = None,
    ) -> None:
        """Initialize the engine pool.

        Args:
            pool_config: Pool configuration (size, acquire timeout, restart policy).
            engine_config: Engine configuration for each worker.
        """
        self._pool_config = pool_config or PoolConfig()
        self._engine_config = engine_config or EngineConfig()

        self._engines: list[UciEngine] = []
        self._available: queue.Queue[UciEngine] = queue.Queue()
        self._lock = threading.Lock()
        self._shutdown = False
        self._started = False

    @property
    def size(self) -> int:
        """Get the configured pool size."""
        return max(1, self._pool_config.size)

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def start(self) -> None:
        """Start every worker in the pool.

        Raises:
            EngineStartupError: If any worker fails to start. Workers already
                started are stopped first.
            PoolShutdownError: If the pool has been shut down.
        """
        if self._started:
            logger.warning("Pool already started")
            return

        if self._shutdown:
            raise PoolShutdownError("Pool has been shut down")

        logger.info(f"Starting engine pool with {self.size} engines")

        for i in range(self.size):
            try:
                engine = self._create_engine()
            except Exception as e:
                logger.error(f"Failed to start engine {i + 1}: {e}")
                self._cleanup_engines()
                raise EngineStartupError(f"Failed to initialize pool: {e}") from e
            self._engines.append(engine)
            self._available.put(engine)
            logger.debug(f"Engine {i + 1}/{self.size} started")

        self._started = True
        logger.info(f"Engine pool started: {len(self._engines)} engines, version: {self._engines[0].version}")

    def shutdown(self) -> None:
        """Stop every worker. Safe to call more than once."""
        if self._shutdown:
            return

        logger.info("Shutting down engine pool")
        self._shutdown = True
        self._cleanup_engines()
        self._started = False
        logger.info("Engine pool shutdown complete")

    def _cleanup_engines(self) -> None:
        with self._lock:
            for engine in self._engines:
                engine.stop()
            self._engines.clear()

            while not self._available.empty():
                try:
                    self._available.get_nowait()
                except queue.Empty:
                    break

    def _create_engine(self) -> UciEngine:
        engine = UciEngine(self._engine_config)
        engine.start()
        return engine

    def acquire(self, timeout: float | None = None) -> UciEngine:
        """Take a worker out of the pool, waiting for one if necessary.

        Args:
            timeout: Maximum time to wait. Falls back to the pool's
                ``acquire_timeout``; None blocks until a worker is free.

        Raises:
            PoolShutdownError: If the pool is not started or shutting down.
            PoolExhaustedError: If no worker became free within the timeout.
        """
        if self._shutdown:
            raise PoolShutdownError("Pool is shutting down")

        if not self._started:
            raise PoolShutdownError("Pool not started")

        timeout = timeout if timeout is not None else self._pool_config.acquire_timeout

        try:
            engine = self._available.get(timeout=timeout)
        except queue.Empty as e:
            raise PoolExhaustedError(f"No engine available within {timeout}s timeout") from e

        engine.state = WorkerState.BUSY
        return engine

    def release(self, engine: UciEngine) -> None:
        """Return a worker to the pool. Call exactly once per ``acquire()``."""
        if self._shutdown:
            engine.stop()
            return

        if not engine.is_alive():
            if self._pool_config.restart_dead_workers:
                try:
                    engine = self._restart_engine(engine)
                except Exception as e:
                    logger.error(f"Failed to replace dead engine: {e}, dropping from pool")
                    with self._lock:
                        if engine in self._engines:
                            self._engines.remove(engine)
                    return
            else:
                logger.warning("Returning dead engine to pool; capacity is reduced until restart")

        engine.state = WorkerState.READY
        self._available.put(engine)

    @contextmanager
    def engine(self, timeout: float | None = None) -> Iterator[UciEngine]:
        """Acquire a worker for the duration of a ``with`` block.

        Example:
            with pool.engine() as eng:
                score = eng.evaluate(fen, depth=10)
        """
        eng = self.acquire(timeout)
        try:
            yield eng
        finally:
            self.release(eng)

    def _restart_engine(self, engine: UciEngine) -> UciEngine:
        """Restart a dead worker, replacing it if restarts keep failing."""
        engine.stop()

        for attempt in range(self._pool_config.max_retries):
            try:
                engine.start()
                logger.info(f"Engine restarted successfully (attempt {attempt + 1})")
                return engine
            except EngineStartupError as e:
                logger.warning(f"Engine restart attempt {attempt + 1} failed: {e}")

        logger.warning("Creating new engine after restart failures")
        new_engine = self._create_engine()

        with self._lock:
            if engine in self._engines:
                self._engines[self._engines.index(engine)] = new_engine

        return new_engine

    def health_check(self) -> HealthStatus:
        """Report pool capacity and how many workers are still alive."""
        with self._lock:
            total = len(self._engines)
            healthy = sum(1 for e in self._engines if e.is_alive())
            available = self._available.qsize()
            version = self._engines[0].version if self._engines else "unknown"

        return {
            "total": total,
            "available": available,
            "healthy": healthy,
            "version": version,
        }
