"""
Material counting for sacrifice detection.

Values are in pawns: P=1, N=B=3, R=5, Q=9, K=0.
"""

from __future__ import annotations

import chess

PIECE_VALUES: dict[chess.PieceType, int] = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}

# Net material the mover must give up for a move to count as a sacrifice
SACRIFICE_THRESHOLD = -2


def piece_value(piece: chess.Piece | None) -> int:
    if piece is None:
        return 0
    return PIECE_VALUES[piece.piece_type]


def material_balance(board: chess.Board, color: chess.Color) -> int:
    """Material of ``color`` minus material of the opponent."""
    balance = 0
    for piece in board.piece_map().values():
        value = piece_value(piece)
        balance += value if piece.color == color else -value
    return balance


def max_material_loss(board: chess.Board, mover: chess.Color) -> int:
    """Most material the opponent can win with one immediate capture.

    Looks at the opponent's pseudo-legal captures of ``mover``'s pieces.
    An undefended target is lost outright; a defended one only costs the
    amount by which it outweighs the capturing piece.

    Args:
        board: Position after the mover's move (opponent to move).
        mover: Color of the side that just moved.
    """
    max_loss = 0
    for move in board.generate_pseudo_legal_captures():
        captured = board.piece_at(move.to_square)
        if captured is None or captured.color != mover:
            continue

        captured_value = piece_value(captured)
        capturing_value = piece_value(board.piece_at(move.from_square))

        if board.is_attacked_by(mover, move.to_square):
            loss = max(0, captured_value - capturing_value)
        else:
            loss = captured_value
        max_loss = max(max_loss, loss)

    return max_loss


def is_sacrifice(board_before: chess.Board, board_after: chess.Board, mover: chess.Color) -> bool:
    """Whether the mover ends up at least two points down after the best recapture.

    Hanging a single pawn does not qualify.
    """
    b1 = material_balance(board_before, mover)
    b2 = material_balance(board_after, mover)
    b3 = b2 - max_material_loss(board_after, mover)
    return (b3 - b1) <= SACRIFICE_THRESHOLD
