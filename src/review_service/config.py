"""
Configuration for the game review service.

All configuration can be set via environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def default_pool_size() -> int:
    """One engine per core, leaving a core free for the service itself."""
    return max(1, (os.cpu_count() or 1) - 1)


@dataclass
class EngineConfig:
    """Configuration for a single scoring engine process."""

    engine_path: Path = field(
        default_factory=lambda: Path(os.environ.get("REVIEW_ENGINE_PATH", "stockfish"))
    )
    threads: int = field(default_factory=lambda: int(os.environ.get("REVIEW_ENGINE_THREADS", "1")))
    hash_mb: int = field(default_factory=lambda: int(os.environ.get("REVIEW_ENGINE_HASH", "16")))
    startup_timeout: float = 10.0  # seconds to wait for uciok/readyok
    request_timeout: float | None = None  # None = wait for bestmove indefinitely


@dataclass
class PoolConfig:
    """Configuration for the engine worker pool."""

    size: int = field(
        default_factory=lambda: int(os.environ.get("REVIEW_POOL_SIZE", str(default_pool_size())))
    )
    acquire_timeout: float | None = None  # None = block until a worker is free
    restart_dead_workers: bool = False  # replace policy for crashed workers
    max_retries: int = 3  # restart attempts before replacing a worker


@dataclass
class AnalysisConfig:
    """Search depths and reference data for game analysis."""

    game_depth: int = 14
    interactive_depth: int = 10
    openings_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("REVIEW_OPENINGS_DIR", "openings"))
    )


@dataclass
class ServerConfig:
    """Configuration for the gRPC server."""

    port: int = field(default_factory=lambda: int(os.environ.get("GRPC_PORT", "50051")))
    max_workers: int = 10
    max_concurrent_rpcs: int = 100
