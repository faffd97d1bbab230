"""Zobrist hashing and a bounded, thread-safe transposition table.

This module provides two main classes:

- Zobrist: builds independent random 64-bit keys for every
  (square, color, piece type) combination plus a "black to move" key, and
  hashes a GameState from scratch as the XOR of the keys of its occupied
  combinations.

- TranspositionTable: a dict keyed by zobrist keys with a size cap. Each
  entry stores the search depth, score, bound flag, the key of the best move
  and a logical timestamp. When the cap is reached the oldest 10% of
  entries (by insert/update time) are dropped.

Usage (example):

    from damier.core.transposition import TranspositionTable, TT_EXACT

    tt = TranspositionTable(board_size=10)
    tt.store(state, depth=3, score=120, flag=TT_EXACT, best_move_key=move.key)
    entry = tt.get(state, depth=2)
    if entry is not None:
        print(entry.depth, entry.score, entry.flag, entry.best_move_key)

"""
from __future__ import annotations

import itertools
import random
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from damier.core.models import Color, GameState, PieceType

TT_EXACT = "exact"
TT_LOWERBOUND = "lowerbound"  # score caused a beta cutoff
TT_UPPERBOUND = "upperbound"  # score never exceeded alpha

EVICTION_FRACTION = 0.1


def make_zobrist_table(board_size: int, rng: random.Random) -> Dict[str, object]:
    """Create a fresh zobrist table.

    Structure returned:
      {
        "piece": { (row, col, color, type): int, ... },
        "side": int,
      }
    """
    piece_table = {}
    for row in range(board_size):
        for col in range(board_size):
            for color in Color:
                for ptype in PieceType:
                    piece_table[(row, col, color, ptype)] = rng.getrandbits(64)
    return {"piece": piece_table, "side": rng.getrandbits(64)}


@dataclass
class TTEntry:
    key: int
    depth: int
    score: int
    flag: str
    best_move_key: Optional[str]
    timestamp: int

    def __iter__(self):
        return iter((self.key, self.depth, self.score, self.flag, self.best_move_key, self.timestamp))


class Zobrist:
    """Zobrist hash utilities.

    Keys are generated once per instance; pass ``seed`` for reproducible keys.
    Piece identity is ignored: only (position, color, type) occupancy and the
    side to move contribute.
    """

    def __init__(self, board_size: int = 10, seed: Optional[int] = None):
        self.board_size = board_size
        self.table = make_zobrist_table(board_size, random.Random(seed))

    def hash(self, state: GameState) -> int:
        t = self.table["piece"]
        h = 0
        for piece in state.pieces:
            k = t.get((piece.position.row, piece.position.col, piece.color, piece.type))
            if k is not None:
                h ^= k
        # side: xor when black to move (convention)
        if state.current_player is Color.BLACK:
            h ^= self.table["side"]
        return h


class TranspositionTable:
    """Bounded transposition table keyed by zobrist hash.

    Methods:
      - get(state, depth) -> Optional[TTEntry]   (hit only if stored depth >= depth)
      - probe(state, depth, alpha, beta) -> (score, usable)
      - store(state, depth, score, flag, best_move_key)
      - get_best_move_key(state) -> Optional[str]
      - stats() -> {size, hits, misses, hit_rate}
      - clear()
    """

    def __init__(self, max_size: int = 1_000_000, board_size: int = 10, seed: Optional[int] = None):
        self.max_size = max(1, max_size)
        self.z = Zobrist(board_size, seed)
        self._table: Dict[int, TTEntry] = {}
        self._lock = threading.Lock()
        self._clock = itertools.count()
        self.hits = 0
        self.misses = 0

    def __len__(self):
        return len(self._table)

    def key(self, state: GameState) -> int:
        return self.z.hash(state)

    def get(self, state: GameState, depth: int) -> Optional[TTEntry]:
        k = self.key(state)
        with self._lock:
            entry = self._table.get(k)
            if entry is not None and entry.depth >= depth:
                self.hits += 1
                return entry
            self.misses += 1
        return None

    def probe(self, state: GameState, depth: int, alpha: int, beta: int) -> Tuple[int, bool]:
        """Return (score, usable). A stored score is usable when its bound
        settles the node for the current (alpha, beta) window."""
        entry = self.get(state, depth)
        if entry is None:
            return 0, False
        if entry.flag == TT_EXACT:
            return entry.score, True
        if entry.flag == TT_LOWERBOUND and entry.score >= beta:
            return entry.score, True
        if entry.flag == TT_UPPERBOUND and entry.score <= alpha:
            return entry.score, True
        return 0, False

    def get_best_move_key(self, state: GameState) -> Optional[str]:
        k = self.key(state)
        with self._lock:
            entry = self._table.get(k)
        return entry.best_move_key if entry else None

    def store(self, state: GameState, depth: int, score: int, flag: str,
              best_move_key: Optional[str] = None):
        k = self.key(state)
        with self._lock:
            if k not in self._table and len(self._table) >= self.max_size:
                self._evict_oldest()
            self._table[k] = TTEntry(k, depth, score, flag, best_move_key, next(self._clock))

    def _evict_oldest(self):
        # approximate LRU: drop the oldest tenth by insert/update time
        count = max(1, int(self.max_size * EVICTION_FRACTION))
        oldest = sorted(self._table.values(), key=lambda e: e.timestamp)[:count]
        for entry in oldest:
            del self._table[entry.key]

    def stats(self) -> Dict[str, float]:
        with self._lock:
            total = self.hits + self.misses
            return {
                "size": len(self._table),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hits / total if total > 0 else 0.0,
            }

    def clear(self):
        with self._lock:
            self._table.clear()
            self.hits = 0
            self.misses = 0
