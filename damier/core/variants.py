"""Rule variants and their starting layouts."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List

from damier.core.models import Color, Piece, PieceType, Position


@dataclass(frozen=True)
class Variant:
    id: str
    name: str
    board_size: int
    pieces_per_player: int
    flying_kings: bool          # kings slide any distance
    backward_capture: bool      # pawns may capture backwards
    mandatory_max_capture: bool # the longest capture chain must be played
    capture_stop_on_promotion: bool  # a chain ends on the promotion square

    @property
    def initial_rows(self) -> int:
        return math.ceil(self.pieces_per_player / (self.board_size // 2))

    def promotion_row(self, color: Color) -> int:
        return 0 if color is Color.WHITE else self.board_size - 1

    def home_row(self, color: Color) -> int:
        return self.board_size - 1 if color is Color.WHITE else 0


INTERNATIONAL = Variant(
    id="international",
    name="International draughts",
    board_size=10,
    pieces_per_player=20,
    flying_kings=True,
    backward_capture=True,
    mandatory_max_capture=True,
    capture_stop_on_promotion=False,
)

ENGLISH = Variant(
    id="english",
    name="English draughts",
    board_size=8,
    pieces_per_player=12,
    flying_kings=False,
    backward_capture=False,
    mandatory_max_capture=False,
    capture_stop_on_promotion=True,
)

BRAZILIAN = Variant(
    id="brazilian",
    name="Brazilian draughts",
    board_size=8,
    pieces_per_player=12,
    flying_kings=True,
    backward_capture=True,
    mandatory_max_capture=True,
    capture_stop_on_promotion=False,
)

VARIANTS: Dict[str, Variant] = {v.id: v for v in (INTERNATIONAL, ENGLISH, BRAZILIAN)}


def get_variant(variant_id: str) -> Variant:
    """Look up a variant by id; unknown ids fall back to international rules."""
    return VARIANTS.get(variant_id, INTERNATIONAL)


def initial_pieces(variant: Variant) -> List[Piece]:
    """Black fills the top rows, white the bottom rows, dark squares only."""
    n = variant.board_size
    rows = variant.initial_rows
    pieces: List[Piece] = []
    piece_id = 0
    for color, row_range in ((Color.BLACK, range(rows)), (Color.WHITE, range(n - rows, n))):
        for row in row_range:
            for col in range(n):
                pos = Position(row, col)
                if pos.is_dark():
                    pieces.append(Piece(f"{color.value}-{piece_id}", color, PieceType.PAWN, pos))
                    piece_id += 1
    return pieces
