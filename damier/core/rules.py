"""Legal move generation, capture chains and the state transition function.

The validator reads a ``GameState`` and builds new candidate values; it never
mutates its input. Capture sequences for a color are memoised on the state,
so ``must_capture``, ``get_valid_moves`` and ``get_all_moves`` on the same
state share one capture search.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from damier.core.models import (
    CaptureSequence, Color, GameResult, GameState, Move, Piece, Position,
)
from damier.core.variants import INTERNATIONAL, Variant, initial_pieces

DIAGONALS = ((-1, -1), (-1, 1), (1, -1), (1, 1))

Board = Dict[Position, Piece]


class MoveValidator:
    def __init__(self, variant: Variant = INTERNATIONAL):
        self.variant = variant
        self.board_size = variant.board_size

    # ------------------------------------------------------------------
    # state construction
    # ------------------------------------------------------------------

    def new_state(self, pieces: Sequence[Piece], current_player: Color = Color.WHITE,
                  move_history: Tuple[Move, ...] = ()) -> GameState:
        """Build a state with ``must_capture`` filled in for the side to move."""
        draft = GameState(tuple(pieces), current_player, "playing", tuple(move_history))
        must = self.must_capture(current_player, draft)
        return GameState(draft.pieces, current_player, "playing", draft.move_history, must, draft._cache)

    def initial_state(self) -> GameState:
        return self.new_state(initial_pieces(self.variant))

    # ------------------------------------------------------------------
    # public queries
    # ------------------------------------------------------------------

    def get_valid_moves(self, piece: Piece, state: GameState) -> List[Move]:
        """Legal moves of one piece, honouring mandatory (maximum) capture."""
        current = state.piece_by_id(piece.id)
        if current is None:
            return []
        sequences = self.get_all_captures_for_player(current.color, state)
        if sequences:
            own = [s for s in sequences if s.move.piece.id == current.id]
            if self.variant.mandatory_max_capture:
                best = self._max_captures(current.color, state)
                own = [s for s in own if s.total_captures == best]
            return [s.move for s in own]
        return self._simple_moves(current, state)

    def get_all_captures_for_player(self, color: Color, state: GameState) -> List[CaptureSequence]:
        key = ("captures", color)
        cached = state._cache.get(key)
        if cached is None:
            cached = []
            for piece in state.pieces_of(color):
                cached.extend(self._capture_sequences(piece, state))
            state._cache[key] = cached
        return list(cached)

    def must_capture(self, color: Color, state: GameState) -> bool:
        return len(self.get_all_captures_for_player(color, state)) > 0

    def get_all_moves(self, state: GameState, color: Color) -> List[Move]:
        sequences = self.get_all_captures_for_player(color, state)
        if sequences:
            if self.variant.mandatory_max_capture:
                best = self._max_captures(color, state)
                sequences = [s for s in sequences if s.total_captures == best]
            return [s.move for s in sequences]
        moves: List[Move] = []
        for piece in state.pieces_of(color):
            moves.extend(self._simple_moves(piece, state))
        return moves

    def apply_move(self, state: GameState, move: Move) -> GameState:
        """Remove captured pieces, relocate (and maybe crown) the mover, flip the turn."""
        mover = state.piece_by_id(move.piece.id) or move.piece
        mover = mover.moved_to(move.to_pos)
        if move.is_promotion:
            mover = mover.promoted()
        gone = {p.id for p in move.captured_pieces}
        gone.add(move.piece.id)
        pieces = tuple(p for p in state.pieces if p.id not in gone) + (mover,)
        next_player = state.current_player.opponent
        draft = GameState(pieces, next_player, state.status, state.move_history + (move,))
        must = self.must_capture(next_player, draft)
        return GameState(pieces, next_player, state.status, draft.move_history, must, draft._cache)

    def game_result(self, state: GameState) -> Optional[GameResult]:
        """Winner if the side to move has no pieces or no legal move, else None."""
        color = state.current_player
        if not state.pieces_of(color):
            return GameResult(color.opponent, "no-pieces")
        if not self.get_all_moves(state, color):
            return GameResult(color.opponent, "no-moves")
        return None

    def is_terminal(self, state: GameState) -> bool:
        return self.game_result(state) is not None

    def match_move(self, state: GameState, squares: Sequence[Position]) -> Optional[Move]:
        """Find the legal move visiting ``squares`` (origin, [path...], destination)."""
        if len(squares) < 2:
            return None
        origin, target = squares[0], squares[-1]
        via = tuple(squares[1:-1])
        for move in self.get_all_moves(state, state.current_player):
            if move.from_pos != origin or move.to_pos != target:
                continue
            if via and move.path != via:
                continue
            return move
        return None

    # ------------------------------------------------------------------
    # simple moves
    # ------------------------------------------------------------------

    def _simple_moves(self, piece: Piece, state: GameState) -> List[Move]:
        moves: List[Move] = []
        pos = piece.position
        if not piece.is_king:
            for dcol in (-1, 1):
                target = pos.offset(piece.color.forward, dcol)
                if target.on_board(self.board_size) and state.piece_at(target) is None:
                    moves.append(Move(piece, pos, target, (), self._will_promote(piece, target)))
            return moves

        for drow, dcol in DIAGONALS:
            distance = 1
            while True:
                target = pos.offset(drow, dcol, distance)
                if not target.on_board(self.board_size) or state.piece_at(target) is not None:
                    break
                moves.append(Move(piece, pos, target))
                if not self.variant.flying_kings:
                    break
                distance += 1
        return moves

    # ------------------------------------------------------------------
    # capture chains
    # ------------------------------------------------------------------

    def _capture_sequences(self, piece: Piece, state: GameState) -> List[CaptureSequence]:
        return self._extend_chain(piece, piece, state.occupancy(), frozenset(), ())

    def _extend_chain(self, origin: Piece, mover: Piece, board: Board,
                      captured_ids: FrozenSet[str], steps: Tuple[Move, ...]) -> List[CaptureSequence]:
        """Depth-first search over jumps from ``mover``'s current square.

        ``board`` already has earlier victims removed and the mover relocated.
        Every chain that cannot be extended becomes a candidate sequence.
        """
        sequences: List[CaptureSequence] = []
        for direction in self._capture_directions(mover):
            for victim, landing in self._captures_in_direction(mover, direction, board, captured_ids):
                promotes = self._will_promote(mover, landing)
                chain = steps + (Move(mover, mover.position, landing, (victim,), promotes),)
                if promotes and self.variant.capture_stop_on_promotion:
                    sequences.append(self._to_sequence(origin, chain))
                    continue

                next_mover = mover.moved_to(landing)
                if promotes:
                    next_mover = next_mover.promoted()
                next_board = dict(board)
                del next_board[victim.position]
                del next_board[mover.position]
                next_board[landing] = next_mover

                continuations = self._extend_chain(
                    origin, next_mover, next_board, captured_ids | {victim.id}, chain)
                if continuations:
                    sequences.extend(continuations)
                else:
                    sequences.append(self._to_sequence(origin, chain))
        return sequences

    def _captures_in_direction(self, mover: Piece, direction: Tuple[int, int], board: Board,
                               captured_ids: FrozenSet[str]) -> List[Tuple[Piece, Position]]:
        drow, dcol = direction
        pos = mover.position
        results: List[Tuple[Piece, Position]] = []

        if mover.is_king and self.variant.flying_kings:
            enemy: Optional[Piece] = None
            distance = 1
            while True:
                square = pos.offset(drow, dcol, distance)
                if not square.on_board(self.board_size):
                    break
                occupant = board.get(square)
                if occupant is not None:
                    # a second piece on the ray ends it: no double hop
                    if enemy is not None:
                        break
                    if occupant.color is mover.color or occupant.id in captured_ids:
                        break
                    enemy = occupant
                elif enemy is not None:
                    results.append((enemy, square))
                distance += 1
            return results

        adjacent = pos.offset(drow, dcol)
        landing = pos.offset(drow, dcol, 2)
        if not landing.on_board(self.board_size):
            return results
        enemy = board.get(adjacent)
        if (enemy is not None and enemy.color is not mover.color
                and enemy.id not in captured_ids and board.get(landing) is None):
            results.append((enemy, landing))
        return results

    def _capture_directions(self, piece: Piece):
        if piece.is_king or self.variant.backward_capture:
            return DIAGONALS
        forward = piece.color.forward
        return ((forward, -1), (forward, 1))

    def _to_sequence(self, origin: Piece, chain: Tuple[Move, ...]) -> CaptureSequence:
        captured = tuple(step.captured_pieces[0] for step in chain)
        promoted = any(step.is_promotion for step in chain)
        path = tuple(step.to_pos for step in chain[:-1])
        move = Move(origin, origin.position, chain[-1].to_pos, captured, promoted, path)
        return CaptureSequence(chain, move)

    def _max_captures(self, color: Color, state: GameState) -> int:
        key = ("max_captures", color)
        best = state._cache.get(key)
        if best is None:
            sequences = self.get_all_captures_for_player(color, state)
            best = max((s.total_captures for s in sequences), default=0)
            state._cache[key] = best
        return best

    def _will_promote(self, piece: Piece, target: Position) -> bool:
        if piece.is_king:
            return False
        return target.row == self.variant.promotion_row(piece.color)
