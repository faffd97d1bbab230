"""Static position evaluator: material, centrality, advancement, back rank, mobility."""

from damier.config import CONFIG, EvalConfig
from damier.core.models import Color, GameState
from damier.core.rules import MoveValidator


class Evaluator:
    def __init__(self, validator: MoveValidator, cfg: EvalConfig = None):
        self.validator = validator
        self.cfg = cfg or CONFIG.eval
        self.board_size = validator.board_size

    def evaluate(self, state: GameState, color: Color) -> int:
        """Return static eval, positive favors ``color``.

        The score is built once from white's side and negated for black, so
        ``evaluate(s, WHITE) == -evaluate(s, BLACK)`` holds exactly.
        """
        white_score = self._positional(state) + self._mobility(state)
        return white_score if color is Color.WHITE else -white_score

    def _positional(self, state: GameState) -> int:
        n = self.board_size
        pawn_value = self.cfg.piece_values.get("PAWN", 100)
        king_value = self.cfg.piece_values.get("KING", 300)
        score = 0
        for piece in state.pieces:
            row, col = piece.position
            value = king_value if piece.is_king else pawn_value

            # Centrality: manhattan distance to the board middle, in half squares.
            distance = abs(2 * col - (n - 1)) + abs(2 * row - (n - 1))
            value += (2 * n - distance) * self.cfg.center_bonus // (2 * n)

            if not piece.is_king:
                # Rows travelled from the home side toward promotion.
                advancement = n - 1 - row if piece.color is Color.WHITE else row
                value += advancement * self.cfg.advancement_bonus
                if row == self.validator.variant.home_row(piece.color):
                    value += self.cfg.back_row_bonus

            score += value if piece.color is Color.WHITE else -value
        return score

    def _mobility(self, state: GameState) -> int:
        white_moves = len(self.validator.get_all_moves(state, Color.WHITE))
        black_moves = len(self.validator.get_all_moves(state, Color.BLACK))
        return (white_moves - black_moves) * self.cfg.mobility_weight
