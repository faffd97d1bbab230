"""Monte Carlo Tree Search with capture-biased random playouts.

Value convention: each node stores wins from the perspective of the player
who moved *into* it (``player_just_moved``). A parent therefore picks the
child with the highest UCB1 value, and the root's final choice is the child
with the most visits.

The search is driven by the same injected functions as ``SearchEngine``
(``get_all_moves``, ``apply_move``, ``evaluate``), so it knows nothing about
board geometry or variant rules.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from damier.config import MCTSConfig
from damier.core.models import Color, GameState, Move

logger = logging.getLogger("damier.mcts")

GetAllMoves = Callable[[GameState, Color], List[Move]]
ApplyMove = Callable[[GameState, Move], GameState]
Evaluate = Callable[[GameState, Color], int]


@dataclass
class MCTSNode:
    """A node in the MCTS search tree."""
    state: GameState
    player_just_moved: Color
    parent: Optional[MCTSNode] = None
    move: Optional[Move] = None  # Move that led to this node
    children: List[MCTSNode] = field(default_factory=list)
    visits: int = 0
    wins: float = 0.0
    untried_moves: List[Move] = field(default_factory=list)

    @property
    def is_fully_expanded(self) -> bool:
        return len(self.untried_moves) == 0

    @property
    def is_terminal(self) -> bool:
        """Side to move has no legal move."""
        return not self.untried_moves and not self.children

    def ucb1(self, exploration: float) -> float:
        """Upper confidence bound for trees."""
        if self.visits == 0:
            return float("inf")
        exploit = self.wins / self.visits
        explore = exploration * math.sqrt(math.log(self.parent.visits) / self.visits)
        return exploit + explore


class MCTS:
    def __init__(self, get_all_moves: GetAllMoves, apply_move: ApplyMove, evaluate: Evaluate,
                 config: Optional[MCTSConfig] = None, rng: Optional[random.Random] = None,
                 stop_event: Optional[threading.Event] = None):
        self.get_all_moves = get_all_moves
        self.apply_move = apply_move
        self.evaluate = evaluate
        self.config = config or MCTSConfig()
        self.rng = rng or random.Random()
        self._stop_event = stop_event or threading.Event()
        self.last_iterations = 0
        self.last_root: Optional[MCTSNode] = None

    def find_best_move(self, state: GameState, color: Color) -> Optional[Move]:
        """Run MCTS for ``color`` and return the most visited root move."""
        self.last_iterations = 0
        self.last_root = None
        root_moves = self.get_all_moves(state, color)
        if not root_moves:
            return None
        if len(root_moves) == 1:
            return root_moves[0]

        root = MCTSNode(state=state, player_just_moved=color.opponent, untried_moves=list(root_moves))
        self.last_root = root

        deadline = None
        if self.config.time_limit_ms is not None:
            deadline = time.monotonic() + self.config.time_limit_ms / 1000.0

        iterations = 0
        while iterations < self.config.max_iterations:
            if deadline is not None and time.monotonic() >= deadline:
                break
            if self._stop_event.is_set():
                break
            node = self._select(root)
            if node.untried_moves:
                node = self._expand(node)
            winner = self._simulate(node)
            self._backpropagate(node, winner)
            iterations += 1

        self.last_iterations = iterations
        if not root.children:
            return root_moves[0]
        # max() keeps the first child among equals
        best = max(root.children, key=lambda c: c.visits)
        logger.debug("MCTS: %d iterations, root visits %d, confidence %.2f",
                     iterations, root.visits, best.visits / max(1, root.visits))
        return best.move

    def get_search_stats(self) -> Dict[str, object]:
        root = self.last_root
        if root is None or not root.children:
            return {"iterations": self.last_iterations, "total_visits": 0,
                    "best_move": None, "confidence": 0.0}
        best = max(root.children, key=lambda c: c.visits)
        return {
            "iterations": self.last_iterations,
            "total_visits": root.visits,
            "best_move": best.move,
            "confidence": best.visits / root.visits if root.visits else 0.0,
        }

    def _select(self, node: MCTSNode) -> MCTSNode:
        """Descend through fully expanded nodes using UCB1."""
        while node.is_fully_expanded and node.children:
            node = max(node.children, key=lambda c: c.ucb1(self.config.exploration))
        return node

    def _expand(self, node: MCTSNode) -> MCTSNode:
        """Expand one untried move."""
        move = node.untried_moves.pop(self.rng.randrange(len(node.untried_moves)))
        new_state = self.apply_move(node.state, move)
        mover = node.player_just_moved.opponent
        child = MCTSNode(state=new_state, player_just_moved=mover, parent=node, move=move,
                         untried_moves=self.get_all_moves(new_state, mover.opponent))
        node.children.append(child)
        return child

    def _simulate(self, node: MCTSNode) -> Optional[Color]:
        """Random playout preferring captures. Returns the winner, None for a draw."""
        state = node.state
        to_move = node.player_just_moved.opponent
        for _ in range(self.config.max_simulation_depth):
            moves = self.get_all_moves(state, to_move)
            if not moves:
                return to_move.opponent
            captures = [m for m in moves if m.is_capture]
            pool = captures or moves
            state = self.apply_move(state, pool[self.rng.randrange(len(pool))])
            to_move = to_move.opponent

        score = self.evaluate(state, node.player_just_moved)
        if score > 0:
            return node.player_just_moved
        if score < 0:
            return node.player_just_moved.opponent
        return None

    def _backpropagate(self, node: Optional[MCTSNode], winner: Optional[Color]):
        """Credit each node from the side of the player who moved into it."""
        while node is not None:
            node.visits += 1
            if winner is None:
                node.wins += 0.5
            elif winner is node.player_just_moved:
                node.wins += 1.0
            node = node.parent
