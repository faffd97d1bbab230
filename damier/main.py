import logging
from typing import Optional

from damier.analyzer import GameAnalysis, GameAnalyzer
from damier.config import CONFIG, Config
from damier.core.board import DraughtsBoard
from damier.core.book import OpeningBook
from damier.core.evaluator import Evaluator
from damier.core.models import move_to_notation
from damier.core.search import SearchEngine
from damier.core.transposition import TranspositionTable
from damier.core.variants import get_variant

logger = logging.getLogger("damier.engine")


class Engine:
    """One game: a board plus the search, book and TT that belong to it."""

    def __init__(self, variant: Optional[str] = None, difficulty: Optional[str] = None,
                 config: Config = None, seed: Optional[int] = None):
        self.config = config or CONFIG
        self.variant = get_variant(variant or self.config.variant)
        self.difficulty = difficulty or self.config.search.difficulty

        self.board = DraughtsBoard(self.variant)
        validator = self.board.validator
        self.evaluator = Evaluator(validator, self.config.eval)
        self.tt = TranspositionTable(self.config.search.tt_max_entries, self.variant.board_size, seed)
        self.book = OpeningBook(self.config.book.max_book_depth, self.variant.board_size)
        self.search = SearchEngine(
            validator.get_all_moves,
            validator.apply_move,
            self.evaluator.evaluate,
            tt=self.tt,
            book=self.book,
            config=self.config.search,
            mcts_config=self.config.mcts,
            board_size=self.variant.board_size,
        )
        if seed is not None:
            self.book.rng.seed(seed)
            self.search.rng.seed(seed)
        self.analyzer = GameAnalyzer(
            self.evaluator.evaluate, validator.get_all_moves, validator.apply_move, self.config.analyzer)
        self._initial_state = self.board.state

    def get_best_move(self, difficulty: Optional[str] = None) -> Optional[str]:
        """Engine move for the side to move, in notation; None when the game is over."""
        if self.board.is_game_over():
            return None
        move = self.search.find_best_move(self.board.state, self.board.turn, difficulty or self.difficulty)
        if move is None:
            return None
        return move_to_notation(move, self.board.board_size)

    def make_move(self, notation: str) -> bool:
        move = self.board.find_move(notation)
        if move is None or self.board.is_game_over():
            logger.debug("Rejected move %s", notation)
            return False
        self.board.push(move)
        self.book.record_move(move.from_pos, move.to_pos)
        return True

    def play_engine_move(self, difficulty: Optional[str] = None) -> Optional[str]:
        """Search and play a move; returns its notation."""
        if self.board.is_game_over():
            return None
        move = self.search.find_best_move(self.board.state, self.board.turn, difficulty or self.difficulty)
        if move is None:
            return None
        self.board.push(move)
        self.book.record_move(move.from_pos, move.to_pos)
        return self.board.move_history[-1]

    def analyze(self) -> GameAnalysis:
        return self.analyzer.analyze_game(
            self._initial_state, self.board.state.move_history, self.book.get_opening_name())

    def reset(self):
        self.board.reset()
        self.tt.clear()
        self.book.reset()
        self._initial_state = self.board.state

    def tt_stats(self):
        return self.tt.stats()

    def print_board(self):
        self.board.print_board()
