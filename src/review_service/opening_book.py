"""
Opening theory membership.

Positions are keyed by board, side to move, castling rights and en passant
target only, so transpositions reached with different move counters match.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable
from pathlib import Path

import chess
import chess.pgn

logger = logging.getLogger(__name__)

__all__ = ["OpeningBook", "normalize_fen"]


def normalize_fen(fen: str) -> str:
    """Drop the half-move clock and full-move number from a FEN."""
    parts = fen.split()
    if len(parts) >= 4:
        return " ".join(parts[:4])
    return fen


class OpeningBook:
    """
    Set of known theoretical positions.

    Usage:
        book = OpeningBook.from_directory(Path("openings"))
        if board.fen() in book:
            ...
    """

    def __init__(self, positions: Iterable[str] = ()) -> None:
        self._positions: set[str] = {normalize_fen(fen) for fen in positions}

    def __contains__(self, fen: object) -> bool:
        return isinstance(fen, str) and normalize_fen(fen) in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def is_book_position(self, fen: str) -> bool:
        return fen in self

    def add(self, fen: str) -> None:
        self._positions.add(normalize_fen(fen))

    def add_line(self, moves: str) -> None:
        """Add the start position and every position reached by a move sequence.

        Args:
            moves: Move text such as ``"1. e4 c5 2. Nf3"``.

        Raises:
            ValueError: If the move text cannot be replayed from the start position.
        """
        game = chess.pgn.read_game(io.StringIO(f"{moves.strip()} *\n"))
        if game is None:
            raise ValueError(f"No moves in {moves!r}")
        if game.errors:
            raise ValueError(f"Illegal move text {moves!r}: {game.errors[0]}")

        board = game.board()
        self.add(board.fen())
        for move in game.mainline_moves():
            board.push(move)
            self.add(board.fen())

    @classmethod
    def from_directory(cls, directory: Path) -> OpeningBook:
        """Load every ``*.tsv`` file in a directory.

        Files follow the Lichess chess-openings layout: a header row, then
        ``eco<TAB>name<TAB>pgn`` rows. A missing directory yields an empty
        book so analysis can still run without theory.
        """
        book = cls()
        if not directory.is_dir():
            logger.error(f"Opening book directory not found: {directory}")
            return book

        files = sorted(directory.glob("*.tsv"))
        logger.info(f"Found {len(files)} TSV opening databases in {directory}")

        for path in files:
            book.load_tsv(path)

        logger.info(f"Loaded {len(book)} unique theoretical positions into the book")
        return book

    def load_tsv(self, path: Path) -> int:
        """Load one TSV file and return the number of lines added."""
        added = 0
        with path.open(encoding="utf-8") as f:
            next(f, None)  # header
            for line_no, row in enumerate(f, start=2):
                parts = row.rstrip("\n").split("\t")
                if len(parts) < 3:
                    continue
                try:
                    self.add_line(parts[2])
                except ValueError as e:
                    logger.warning(f"{path.name}:{line_no}: skipping opening line: {e}")
                    continue
                added += 1
        logger.debug(f"Loaded {added} opening lines from {path.name}")
        return added
