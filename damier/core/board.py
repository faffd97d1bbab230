"""Board wrapper over the immutable game state providing move history tracking."""

from dataclasses import replace
from typing import List, Optional

from damier.core.models import (
    Color, GameResult, GameState, Move, Position, move_to_notation, parse_notation,
)
from damier.core.rules import MoveValidator
from damier.core.variants import INTERNATIONAL, Variant

SYMBOLS = {
    (Color.WHITE, False): "w", (Color.WHITE, True): "W",
    (Color.BLACK, False): "b", (Color.BLACK, True): "B",
}


class DraughtsBoard:
    def __init__(self, variant: Variant = INTERNATIONAL, state: Optional[GameState] = None):
        """Initialize from a given state or the variant's starting position."""
        self.validator = MoveValidator(variant)
        self.variant = variant
        self.state = state if state is not None else self.validator.initial_state()
        self.move_history: List[str] = []
        self._undo_stack: List[GameState] = []

    @property
    def board_size(self) -> int:
        return self.variant.board_size

    def reset(self):
        """Reset to the initial position."""
        self.state = self.validator.initial_state()
        self.move_history.clear()
        self._undo_stack.clear()

    def set_state(self, state: GameState):
        """Replace the current position; history is cleared."""
        self.state = state
        self.move_history.clear()
        self._undo_stack.clear()

    def find_move(self, notation: str) -> Optional[Move]:
        squares = parse_notation(notation, self.board_size)
        if squares is None:
            return None
        return self.validator.match_move(self.state, squares)

    def make_move(self, notation: str) -> bool:
        """Play a move given as ``31-27`` / ``31x22`` / ``27x18x9``. Returns True if legal."""
        if self.is_game_over():
            return False
        move = self.find_move(notation)
        if move is None:
            return False
        self.push(move)
        return True

    def push(self, move: Move):
        """Play an already validated move."""
        self._undo_stack.append(self.state)
        new_state = self.validator.apply_move(self.state, move)
        if self.validator.game_result(new_state) is not None:
            new_state = replace(new_state, status="finished")
        self.state = new_state
        self.move_history.append(move_to_notation(move, self.board_size))

    def undo_move(self):
        """Pop the last move."""
        if self._undo_stack:
            self.state = self._undo_stack.pop()
            self.move_history.pop()

    @property
    def turn(self) -> Color:
        return self.state.current_player

    def legal_moves(self) -> List[Move]:
        return self.validator.get_all_moves(self.state, self.state.current_player)

    def get_legal_moves(self) -> List[str]:
        """Return legal moves as notation strings."""
        return [move_to_notation(m, self.board_size) for m in self.legal_moves()]

    def is_game_over(self) -> bool:
        """Check if the side to move has lost."""
        return self.validator.game_result(self.state) is not None

    def result(self) -> Optional[GameResult]:
        return self.validator.game_result(self.state)

    def count_pieces(self):
        return self.state.count_pieces()

    def render(self) -> str:
        rows = []
        for row in range(self.board_size):
            cells = []
            for col in range(self.board_size):
                piece = self.state.piece_at(Position(row, col))
                if piece is not None:
                    cells.append(SYMBOLS[(piece.color, piece.is_king)])
                else:
                    cells.append("." if (row + col) % 2 else " ")
            rows.append(" ".join(cells))
        return "\n".join(rows)

    def print_board(self):
        """Print ASCII representation."""
        print(self.render())
