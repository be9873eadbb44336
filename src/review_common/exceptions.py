"""
Exception hierarchy for the game review service.

Engine failures are split by how the caller should react: startup failures
are fatal, protocol and transport failures degrade a single evaluation.
"""

from __future__ import annotations


class ReviewError(Exception):
    """Base exception for all game review errors."""


# =============================================================================
# Engine Exceptions
# =============================================================================


class EngineError(ReviewError):
    """Base exception for scoring engine errors."""


class EngineStartupError(EngineError):
    """Engine binary missing, failed to launch, or never acknowledged the handshake."""


class EngineProtocolError(EngineError):
    """Engine output for a single request could not be parsed."""


class EngineTransportError(EngineError):
    """Engine process died or one of its streams was closed."""


class EngineTimeoutError(EngineError):
    """Engine did not answer within the configured request timeout."""


# =============================================================================
# Pool Exceptions
# =============================================================================


class PoolError(ReviewError):
    """Base exception for worker pool errors."""


class PoolExhaustedError(PoolError):
    """No worker became available within the acquire timeout."""


class PoolShutdownError(PoolError):
    """Pool is not started or has been shut down."""


# =============================================================================
# Input Exceptions
# =============================================================================


class InvalidFenError(ReviewError):
    """Invalid FEN position provided."""


class InvalidPgnError(ReviewError):
    """Game text could not be read as PGN."""
