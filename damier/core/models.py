"""Value types for draughts positions: colors, pieces, moves and game states.

Everything here is immutable. A ``GameState`` is never changed in place;
rules code builds a new one from an old state plus a ``Move``.

Coordinates are (row, col) with row 0 at the top of the board. White starts
at the bottom and moves towards row 0, black starts at the top.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row step of a forward pawn move."""
        return -1 if self is Color.WHITE else 1


class PieceType(str, Enum):
    PAWN = "pawn"
    KING = "king"


class Position(NamedTuple):
    row: int
    col: int

    def offset(self, drow: int, dcol: int, distance: int = 1) -> "Position":
        return Position(self.row + drow * distance, self.col + dcol * distance)

    def is_dark(self) -> bool:
        return (self.row + self.col) % 2 == 1

    def on_board(self, board_size: int) -> bool:
        return 0 <= self.row < board_size and 0 <= self.col < board_size


@dataclass(frozen=True)
class Piece:
    id: str
    color: Color
    type: PieceType
    position: Position

    @property
    def is_king(self) -> bool:
        return self.type is PieceType.KING

    def moved_to(self, position: Position) -> "Piece":
        return Piece(self.id, self.color, self.type, position)

    def promoted(self) -> "Piece":
        return Piece(self.id, self.color, PieceType.KING, self.position)


@dataclass(frozen=True)
class Move:
    """A complete turn. ``piece`` is the mover as it stood before the move.

    ``path`` lists the intermediate landing squares of a multi-capture,
    excluding ``to_pos``; it is empty for simple moves and single captures.
    """
    piece: Piece
    from_pos: Position
    to_pos: Position
    captured_pieces: Tuple[Piece, ...] = ()
    is_promotion: bool = False
    path: Tuple[Position, ...] = ()

    @property
    def is_capture(self) -> bool:
        return len(self.captured_pieces) > 0

    @property
    def capture_count(self) -> int:
        return len(self.captured_pieces)

    @property
    def key(self) -> str:
        """Stable identifier used by the transposition table and book matching."""
        base = f"{self.from_pos.row},{self.from_pos.col}-{self.to_pos.row},{self.to_pos.col}"
        if self.captured_pieces:
            base += "x" + ",".join(p.id for p in self.captured_pieces)
        return base


@dataclass(frozen=True)
class CaptureSequence:
    """Chain of single jumps; ``move`` is the aggregate, externally visible move."""
    steps: Tuple[Move, ...]
    move: Move

    @property
    def total_captures(self) -> int:
        return len(self.move.captured_pieces)


@dataclass(frozen=True)
class GameResult:
    winner: Color
    reason: str  # "no-pieces" | "no-moves"


@dataclass(frozen=True)
class GameState:
    pieces: Tuple[Piece, ...]
    current_player: Color = Color.WHITE
    status: str = "playing"
    move_history: Tuple[Move, ...] = ()
    must_capture: bool = False
    # per-state memo for rules code (capture sequences per color); not part of equality.
    # Entries depend only on ``pieces``, so the dict may be shared solely between
    # states with identical pieces (a status change); every move builds a fresh one.
    _cache: Dict = field(default_factory=dict, compare=False, repr=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "_by_position", {p.position: p for p in self.pieces})
        object.__setattr__(self, "_by_id", {p.id: p for p in self.pieces})

    def piece_at(self, position: Position) -> Optional[Piece]:
        return self._by_position.get(position)

    def piece_by_id(self, piece_id: str) -> Optional[Piece]:
        return self._by_id.get(piece_id)

    def occupancy(self) -> Dict[Position, Piece]:
        """Fresh square -> piece mapping the caller may modify."""
        return dict(self._by_position)

    def pieces_of(self, color: Color) -> Tuple[Piece, ...]:
        return tuple(p for p in self.pieces if p.color is color)

    def count_pieces(self) -> Dict[str, Dict[str, int]]:
        result = {c.value: {"pawns": 0, "kings": 0} for c in Color}
        for p in self.pieces:
            result[p.color.value]["kings" if p.is_king else "pawns"] += 1
        return result


# ---------------------------------------------------------------------------
# Manoury notation
# ---------------------------------------------------------------------------

def to_manoury(pos: Position, board_size: int = 10) -> int:
    """Square number (1..N*N/2) of a dark square, counted row by row from the top."""
    if not pos.is_dark():
        raise ValueError(f"Manoury notation only applies to dark squares, got {tuple(pos)}")
    if not pos.on_board(board_size):
        raise ValueError(f"Square {tuple(pos)} is off a {board_size}x{board_size} board")
    return pos.row * (board_size // 2) + pos.col // 2 + 1


def from_manoury(number: int, board_size: int = 10) -> Position:
    half = board_size // 2
    if not 1 <= number <= half * board_size:
        raise ValueError(f"Square number {number} out of range for a {board_size}x{board_size} board")
    index = number - 1
    row = index // half
    col = (index % half) * 2 + (1 if row % 2 == 0 else 0)
    return Position(row, col)


def move_to_notation(move: Move, board_size: int = 10) -> str:
    """``31-27`` for simple moves, ``31x22`` for captures.

    Multi-jump captures list every landing square (``27x18x9``) so chains
    sharing both endpoints stay distinguishable.
    """
    if not move.is_capture:
        return f"{to_manoury(move.from_pos, board_size)}-{to_manoury(move.to_pos, board_size)}"
    squares = (move.from_pos,) + move.path + (move.to_pos,)
    return "x".join(str(to_manoury(sq, board_size)) for sq in squares)


def parse_notation(text: str, board_size: int = 10) -> Optional[Tuple[Position, ...]]:
    """Parse ``31-27``, ``31x22`` or a full capture path ``27x18x9``.

    Returns the visited squares (first = origin, last = destination) or None
    when the text is not well-formed.
    """
    text = text.strip().lower()
    sep = "x" if "x" in text else "-"
    parts = text.split(sep)
    if len(parts) < 2 or not all(p.isdigit() for p in parts):
        return None
    try:
        return tuple(from_manoury(int(p), board_size) for p in parts)
    except ValueError:
        return None
