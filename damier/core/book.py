"""Opening book for international draughts (10x10).

Replies are keyed by the last move played in Manoury notation (``"31-27"``),
or ``"initial"`` before any move. Positions with no entry of their own fall
back to the side's ``"initial"`` replies, which the caller checks for
legality. Each key holds weighted candidates; a reply is drawn
proportionally to its ``frequency``. The book only answers during
the first ``max_book_depth`` plies and only on a 10x10 board.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from damier.core.models import Color, Position, to_manoury

logger = logging.getLogger("damier.book")

BOOK_BOARD_SIZE = 10


@dataclass(frozen=True)
class BookMove:
    from_pos: Position
    to_pos: Position
    frequency: int
    name: Optional[str] = None


@dataclass(frozen=True)
class OpeningLine:
    name: str
    description: str
    moves: tuple


def _bm(from_rc, to_rc, frequency, name=None) -> BookMove:
    return BookMove(Position(*from_rc), Position(*to_rc), frequency, name)


OPENING_MOVES_WHITE: Dict[str, List[BookMove]] = {
    "initial": [
        _bm((6, 1), (5, 2), 35, "31-27"),
        _bm((6, 3), (5, 4), 30, "32-28"),
        _bm((6, 5), (5, 6), 20, "33-29"),
        _bm((6, 7), (5, 8), 10, "34-30"),
        _bm((7, 0), (6, 1), 5, "36-31"),
    ],
}

OPENING_MOVES_BLACK: Dict[str, List[BookMove]] = {
    "31-27": [
        _bm((3, 2), (4, 1), 40, "17-21"),
        _bm((3, 2), (4, 3), 30, "17-22"),
        _bm((3, 4), (4, 3), 20, "18-22"),
        _bm((3, 4), (4, 5), 10, "18-23"),
    ],
    "32-28": [
        _bm((3, 4), (4, 3), 35, "18-22"),
        _bm((3, 4), (4, 5), 30, "18-23"),
        _bm((3, 6), (4, 5), 20, "19-23"),
        _bm((3, 2), (4, 3), 15, "17-22"),
    ],
    "33-29": [
        _bm((3, 6), (4, 5), 35, "19-23"),
        _bm((3, 6), (4, 7), 30, "19-24"),
        _bm((3, 4), (4, 5), 20, "18-23"),
        _bm((3, 8), (4, 7), 15, "20-24"),
    ],
    # black to move first in a set-up position
    "initial": [
        _bm((3, 2), (4, 1), 30, "17-21"),
        _bm((3, 2), (4, 3), 25, "17-22"),
        _bm((3, 4), (4, 3), 25, "18-22"),
        _bm((3, 4), (4, 5), 20, "18-23"),
    ],
}

FAMOUS_OPENINGS: List[OpeningLine] = [
    OpeningLine("Roozenburg", "Aggressive central control opening", (
        ((6, 1), (5, 2)), ((3, 2), (4, 1)), ((6, 3), (5, 4)),
    )),
    OpeningLine("Keller", "Solid defensive setup", (
        ((6, 3), (5, 4)), ((3, 4), (4, 3)), ((6, 5), (5, 6)),
    )),
    OpeningLine("Classical", "Traditional balanced approach", (
        ((6, 5), (5, 6)), ((3, 6), (4, 5)), ((6, 3), (5, 4)),
    )),
]


def _history_key(from_pos: Position, to_pos: Position) -> str:
    return f"{from_pos.row},{from_pos.col}-{to_pos.row},{to_pos.col}"


class OpeningBook:
    """Per-game opening book. Call ``reset`` at the start of every game."""

    def __init__(self, max_book_depth: int = 8, board_size: int = BOOK_BOARD_SIZE,
                 rng: Optional[random.Random] = None):
        self.max_book_depth = max_book_depth
        self.board_size = board_size
        self.rng = rng or random.Random()
        self.move_history: List[str] = []

    def reset(self):
        self.move_history = []

    def record_move(self, from_pos: Position, to_pos: Position):
        self.move_history.append(_history_key(Position(*from_pos), Position(*to_pos)))

    def position_key(self) -> str:
        if not self.move_history:
            return "initial"
        frm, to = self.move_history[-1].split("-")
        fr, fc = (int(x) for x in frm.split(","))
        tr, tc = (int(x) for x in to.split(","))
        return f"{to_manoury(Position(fr, fc))}-{to_manoury(Position(tr, tc))}"

    def get_book_move(self, color: Color, ply: int) -> Optional[BookMove]:
        """Weighted-random reply for ``color`` at 0-based ``ply``, or None."""
        if self.board_size != BOOK_BOARD_SIZE or ply >= self.max_book_depth:
            return None
        book = OPENING_MOVES_WHITE if color is Color.WHITE else OPENING_MOVES_BLACK
        candidates = book.get(self.position_key()) or book.get("initial")
        if not candidates:
            return None
        move = self._weighted_choice(candidates)
        logger.info("Book move for %s at ply %d: %s", color.value, ply, move.name)
        return move

    def _weighted_choice(self, moves: List[BookMove]) -> BookMove:
        total = sum(m.frequency for m in moves)
        pick = self.rng.random() * total
        for move in moves:
            pick -= move.frequency
            if pick <= 0:
                return move
        return moves[0]

    def get_opening_name(self) -> Optional[str]:
        """Name of the first known line the recorded history is a prefix of (or extends)."""
        if len(self.move_history) < 2:
            return None
        for opening in FAMOUS_OPENINGS:
            expected = [_history_key(Position(*f), Position(*t)) for f, t in opening.moves]
            length = min(len(expected), len(self.move_history))
            if self.move_history[:length] == expected[:length]:
                return opening.name
        return None
