"""
Game record extraction from PGN text.

Turns a PGN into the ordered positions and plies the evaluator and
classifier work on, along with header metadata and clock annotations.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field

import chess
import chess.pgn

from review_common import InvalidPgnError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ply:
    """One half-move and the positions on either side of it."""

    san: str
    uci: str
    white: bool  # True if White played this move
    fen_before: str
    fen_after: str
    clock: str | None = None


@dataclass(frozen=True)
class GameHeaders:
    """Player and time control metadata shown alongside the review."""

    white_player: str = "White"
    black_player: str = "Black"
    white_elo: str = "?"
    black_elo: str = "?"
    time_control: str = "10:00"


@dataclass
class GameRecord:
    headers: GameHeaders = field(default_factory=GameHeaders)
    plies: list[Ply] = field(default_factory=list)

    @property
    def positions(self) -> list[str]:
        """FEN before every move plus the final position (``len(plies) + 1``)."""
        if not self.plies:
            return [chess.STARTING_FEN]
        return [ply.fen_before for ply in self.plies] + [self.plies[-1].fen_after]


def format_clock(seconds: float) -> str:
    """Format remaining clock time the way ``[%clk]`` is usually shown.

    Under an hour the hour field is dropped: 297 -> ``"04:57"``,
    3723 -> ``"1:02:03"``, 9.8 -> ``"00:09.8"``.
    """
    tenths = round(seconds * 10)
    whole, tenth = divmod(tenths, 10)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)

    sec_text = f"{secs:02d}" if tenth == 0 else f"{secs:02d}.{tenth}"

    if hours:
        return f"{hours}:{minutes:02d}:{sec_text}"
    return f"{minutes:02d}:{sec_text}"


def parse_game(pgn_text: str) -> GameRecord:
    """Read the first game of a PGN text.

    Raises:
        InvalidPgnError: If the text holds no game or contains illegal moves.
    """
    game = chess.pgn.read_game(io.StringIO(pgn_text))
    if game is None:
        raise InvalidPgnError("No game found in PGN text")
    if game.errors:
        raise InvalidPgnError(f"Could not parse PGN: {game.errors[0]}")

    headers = _read_headers(game.headers)

    board = game.board()
    plies: list[Ply] = []
    for node in game.mainline():
        move = node.move
        fen_before = board.fen()
        white = board.turn == chess.WHITE
        san = board.san(move)
        board.push(move)

        clock = node.clock()
        plies.append(
            Ply(
                san=san,
                uci=move.uci(),
                white=white,
                fen_before=fen_before,
                fen_after=board.fen(),
                clock=format_clock(clock) if clock is not None else None,
            )
        )

    logger.debug(f"Parsed game {headers.white_player} vs {headers.black_player}: {len(plies)} plies")
    return GameRecord(headers=headers, plies=plies)


def _read_headers(headers: chess.pgn.Headers) -> GameHeaders:
    def value(name: str, default: str) -> str:
        text = headers.get(name, "").strip()
        return default if not text or text == "?" else text

    return GameHeaders(
        white_player=value("White", "White"),
        black_player=value("Black", "Black"),
        white_elo=value("WhiteElo", "?"),
        black_elo=value("BlackElo", "?"),
        time_control=value("TimeControl", "10:00"),
    )
