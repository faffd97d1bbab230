import logging
import random
import threading
import time
from enum import Enum
from typing import Callable, List, Optional, Tuple

from damier.config import MCTSConfig, SearchConfig
from damier.core.book import OpeningBook
from damier.core.mcts import MCTS, ApplyMove, Evaluate, GetAllMoves
from damier.core.models import Color, GameState, Move
from damier.core.transposition import TranspositionTable, TT_EXACT, TT_LOWERBOUND, TT_UPPERBOUND
from damier.utils import log_search_info

logger = logging.getLogger("damier.search")

INF = 1_000_000_000
WIN_SCORE = 100_000

# nodes between two stop/deadline checks
CHECK_INTERVAL = 512


class Difficulty(str, Enum):
    EASY = "easy"      # random, captures first
    MEDIUM = "medium"  # plain minimax
    HARD = "hard"      # alpha-beta + transposition table
    EXPERT = "expert"  # MCTS


class SearchEngine:
    """Variant-agnostic move selection over injected rule functions.

    ``get_all_moves(state, color)``, ``apply_move(state, move)`` and
    ``evaluate(state, color)`` are the only window onto the rules, so the
    same engine serves every board variant and can run on stub functions.
    The transposition table and opening book are per-game instances owned
    by the caller.
    """

    def __init__(self, get_all_moves: GetAllMoves, apply_move: ApplyMove, evaluate: Evaluate,
                 tt: Optional[TranspositionTable] = None, book: Optional[OpeningBook] = None,
                 config: Optional[SearchConfig] = None, mcts_config: Optional[MCTSConfig] = None,
                 board_size: int = 10, rng: Optional[random.Random] = None):
        self.get_all_moves = get_all_moves
        self.apply_move = apply_move
        self.evaluate = evaluate
        self.tt = tt
        self.book = book
        self.config = config or SearchConfig()
        self.board_size = board_size
        self.rng = rng or random.Random()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._deadline: Optional[float] = None
        self._aborted = False
        self.nodes = 0
        self.last_score: Optional[int] = None

        self.mcts = MCTS(get_all_moves, apply_move, evaluate, mcts_config, self.rng, self._stop_event)

    # ------------------------------------------------------------------
    # entry points
    # ------------------------------------------------------------------

    def find_best_move(self, state: GameState, color: Color, difficulty=None) -> Optional[Move]:
        """Pick a move for ``color``; None when ``color`` has no legal move."""
        self._stop_event.clear()
        return self._find_best_move(state, color, difficulty)

    def _find_best_move(self, state: GameState, color: Color, difficulty=None,
                        on_depth: Optional[Callable] = None) -> Optional[Move]:
        level = Difficulty(difficulty or self.config.difficulty)
        moves = self.get_all_moves(state, color)
        self.last_score = None
        if not moves:
            return None

        if level is not Difficulty.EASY:
            book_move = self.get_book_move(state, color, moves)
            if book_move is not None:
                return book_move

        if level is Difficulty.EASY:
            return self.random_move(moves)
        if level is Difficulty.MEDIUM:
            move, _ = self.minimax_search(state, color, self.config.minimax_depth)
            return move
        if level is Difficulty.HARD:
            move, _ = self.alpha_beta_search(state, color, self.config.alpha_beta_depth, on_depth)
            return move
        return self.mcts.find_best_move(state, color)

    def start_search(self, state: GameState, color: Color, difficulty=None,
                     callback: Optional[Callable] = None):
        """Search on a background thread.

        ``callback(best_move, depth, score)`` fires after each completed
        alpha-beta depth and once more at the end with depth -1.
        """
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()

        def worker():
            move = self._find_best_move(state, color, difficulty, on_depth=callback)
            if callback:
                callback(move, -1, self.last_score)

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()

    def stop(self):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=0.2)

    def get_book_move(self, state: GameState, color: Color, moves: List[Move]) -> Optional[Move]:
        """Book reply mapped onto a currently legal move, if any."""
        if self.book is None or not self.config.use_opening_book:
            return None
        entry = self.book.get_book_move(color, len(state.move_history))
        if entry is None:
            return None
        for move in moves:
            if move.from_pos == entry.from_pos and move.to_pos == entry.to_pos:
                return move
        return None

    # ------------------------------------------------------------------
    # strategies
    # ------------------------------------------------------------------

    def random_move(self, moves: List[Move]) -> Move:
        captures = [m for m in moves if m.is_capture]
        return self.rng.choice(captures or moves)

    def minimax_search(self, state: GameState, color: Color, depth: int) -> Tuple[Optional[Move], int]:
        self._begin()
        moves = self.get_all_moves(state, color)
        if not moves:
            return None, -WIN_SCORE

        best_move, best_score = None, -INF
        for move in moves:
            score = self._minimax(self.apply_move(state, move), max(1, depth) - 1, False, color)
            if self._aborted and best_move is not None:
                break
            if score > best_score:
                best_score = score
                best_move = move

        self.last_score = best_score
        return best_move, best_score

    def alpha_beta_search(self, state: GameState, color: Color, depth: int,
                          on_depth: Optional[Callable] = None) -> Tuple[Optional[Move], int]:
        self._begin()
        moves = self.get_all_moves(state, color)
        if not moves:
            return None, -WIN_SCORE

        depth = max(1, depth)
        depths = range(1, depth + 1) if self.config.iterative_deepening else [depth]
        start_time = time.monotonic()
        best_move, best_score = None, None

        for d in depths:
            move, score = self._alpha_beta_root(state, color, d, moves)
            if self._aborted:
                break
            best_move, best_score = move, score

            elapsed = time.monotonic() - start_time
            log_search_info(d, score, self.nodes, elapsed, self._get_pv_line(state, color, d),
                            self.board_size, WIN_SCORE)
            if on_depth:
                on_depth(best_move, d, best_score)

        if best_move is None:
            # interrupted before depth 1 finished
            best_move = self._order_moves(moves, self._tt_move_key(state))[0]
            best_score = self.evaluate(self.apply_move(state, best_move), color)
        self.last_score = best_score
        return best_move, best_score

    # ------------------------------------------------------------------
    # recursion
    # ------------------------------------------------------------------

    def _minimax(self, state: GameState, depth: int, maximizing: bool, ai_color: Color) -> int:
        self.nodes += 1
        if self._should_stop():
            return 0
        if depth <= 0:
            return self.evaluate(state, ai_color)

        to_move = ai_color if maximizing else ai_color.opponent
        moves = self.get_all_moves(state, to_move)
        if not moves:
            return -WIN_SCORE if maximizing else WIN_SCORE

        if maximizing:
            best = -INF
            for move in moves:
                best = max(best, self._minimax(self.apply_move(state, move), depth - 1, False, ai_color))
            return best
        best = INF
        for move in moves:
            best = min(best, self._minimax(self.apply_move(state, move), depth - 1, True, ai_color))
        return best

    def _alpha_beta_root(self, state: GameState, color: Color, depth: int,
                         moves: List[Move]) -> Tuple[Optional[Move], int]:
        alpha, beta = -INF, INF
        best_move, best_score = None, -INF
        for move in self._order_moves(moves, self._tt_move_key(state)):
            score = -self._negamax(self.apply_move(state, move), depth - 1, -beta, -alpha, color.opponent)
            if self._aborted:
                return best_move, best_score
            if score > best_score:
                best_score = score
                best_move = move
            alpha = max(alpha, score)

        if self.tt is not None:
            self.tt.store(state, depth, best_score, TT_EXACT, best_move.key)
        return best_move, best_score

    def _negamax(self, state: GameState, depth: int, alpha: int, beta: int, color: Color) -> int:
        """Score from the side to move (``color``)."""
        self.nodes += 1
        if self._should_stop():
            return 0
        if depth <= 0:
            return self.evaluate(state, color)

        alpha_orig = alpha

        # TT Lookup
        if self.tt is not None:
            score, usable = self.tt.probe(state, depth, alpha, beta)
            if usable:
                return score

        moves = self.get_all_moves(state, color)
        if not moves:
            return -WIN_SCORE

        best_score = -INF
        best_move_found = None
        for move in self._order_moves(moves, self._tt_move_key(state)):
            score = -self._negamax(self.apply_move(state, move), depth - 1, -beta, -alpha, color.opponent)
            if self._aborted:
                return 0

            if score > best_score:
                best_score = score
                best_move_found = move
            if score > alpha:
                alpha = score
            if alpha >= beta:
                if self.tt is not None:
                    self.tt.store(state, depth, best_score, TT_LOWERBOUND, move.key)
                return best_score

        flag = TT_UPPERBOUND if best_score <= alpha_orig else TT_EXACT
        if self.tt is not None:
            self.tt.store(state, depth, best_score, flag, best_move_found.key)
        return best_score

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _order_moves(self, moves: List[Move], tt_move_key: Optional[str]) -> List[Move]:
        # TT move, then longer captures, then promotions; stable otherwise
        return sorted(
            moves,
            key=lambda m: (m.key == tt_move_key, m.capture_count, m.is_promotion),
            reverse=True,
        )

    def _tt_move_key(self, state: GameState) -> Optional[str]:
        return self.tt.get_best_move_key(state) if self.tt is not None else None

    def _get_pv_line(self, state: GameState, color: Color, depth: int) -> List[Move]:
        pv_moves = []
        if self.tt is None:
            return pv_moves
        seen = set()
        for _ in range(depth):
            key = self.tt.get_best_move_key(state)
            if key is None:
                break
            move = next((m for m in self.get_all_moves(state, color) if m.key == key), None)
            if move is None:
                break
            pv_moves.append(move)
            state = self.apply_move(state, move)
            color = color.opponent
            # cycle detection
            h = self.tt.key(state)
            if h in seen:
                break
            seen.add(h)
        return pv_moves

    def _begin(self):
        self.nodes = 0
        self._aborted = False
        self._deadline = None
        if self.config.time_limit_ms is not None:
            self._deadline = time.monotonic() + self.config.time_limit_ms / 1000.0

    def _should_stop(self) -> bool:
        if self._aborted:
            return True
        if self.nodes % CHECK_INTERVAL == 0:
            if self._stop_event.is_set() or (self._deadline is not None and time.monotonic() >= self._deadline):
                self._aborted = True
        return self._aborted
