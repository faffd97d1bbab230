# damier/analyzer.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from damier.config import CONFIG, AnalyzerConfig
from damier.core.models import Color, GameState, Move

GOOD_OR_BETTER = ("brilliant", "great", "good", "book", "forced")


class MoveClassification(str, Enum):
    BRILLIANT = "brilliant"
    GREAT = "great"
    GOOD = "good"
    BOOK = "book"
    INACCURACY = "inaccuracy"
    MISTAKE = "mistake"
    BLUNDER = "blunder"
    FORCED = "forced"


@dataclass
class MoveAnalysis:
    ply: int
    move_number: int
    move: Move
    player: Color
    evaluation: int            # after the move, white's POV
    previous_evaluation: int   # before the move, white's POV
    evaluation_change: int     # mover's POV
    accuracy: int              # played change minus best change, mover's POV
    classification: MoveClassification
    suggestion: Optional[Move] = None
    comment: Optional[str] = None


@dataclass
class CriticalMoment:
    ply: int
    move_number: int
    description: str
    evaluation_swing: int
    type: str  # "blunder" | "brilliant" | "turning_point"


@dataclass
class GameSummary:
    total_moves: int
    white_accuracy: int
    black_accuracy: int
    white_mistakes: int
    black_mistakes: int
    white_blunders: int
    black_blunders: int
    average_evaluation_white: float
    average_evaluation_black: float


@dataclass
class GameAnalysis:
    moves: List[MoveAnalysis]
    summary: GameSummary
    critical_moments: List[CriticalMoment] = field(default_factory=list)
    opening_name: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)


class GameAnalyzer:
    """Replays a finished game through injected rule functions and grades every ply.

    The "best" move at each ply is a one-ply greedy choice under the evaluator,
    so the analysis is cheap and deterministic.
    """

    def __init__(self, evaluate: Callable[[GameState, Color], int],
                 get_all_moves: Callable[[GameState, Color], List[Move]],
                 apply_move: Callable[[GameState, Move], GameState],
                 cfg: AnalyzerConfig = None):
        self.evaluate = evaluate
        self.get_all_moves = get_all_moves
        self.apply_move = apply_move
        self.cfg = cfg or CONFIG.analyzer

    def _from_player_pov(self, value: int, player: Color) -> int:
        """White-POV value seen from ``player``."""
        return value if player is Color.WHITE else -value

    def analyze_game(self, initial_state: GameState, moves: Sequence[Move],
                     opening_name: Optional[str] = None) -> GameAnalysis:
        analyses: List[MoveAnalysis] = []
        critical: List[CriticalMoment] = []

        state = initial_state
        player = initial_state.current_player
        previous_eval = 0

        for ply, move in enumerate(moves):
            move_number = ply // 2 + 1
            legal = self.get_all_moves(state, player)

            eval_before = self.evaluate(state, Color.WHITE)
            new_state = self.apply_move(state, move)
            eval_after = self.evaluate(new_state, Color.WHITE)

            best_move = self.find_best_move(state, player, legal)
            best_eval = (self.evaluate(self.apply_move(state, best_move), Color.WHITE)
                         if best_move is not None else eval_after)

            eval_change = self._from_player_pov(eval_after - eval_before, player)
            best_change = self._from_player_pov(best_eval - eval_before, player)
            accuracy = eval_change - best_change

            label = self.classify(accuracy, len(legal), ply < self.cfg.opening_plies)
            info = MoveAnalysis(
                ply=ply,
                move_number=move_number,
                move=move,
                player=player,
                evaluation=eval_after,
                previous_evaluation=eval_before,
                evaluation_change=eval_change,
                accuracy=accuracy,
                classification=label,
            )
            if best_move is not None and not _same_squares(move, best_move) and accuracy < self.cfg.TH_INACCURACY:
                info.suggestion = best_move
                info.comment = self._comment(label, accuracy)
            analyses.append(info)

            swing = abs(eval_after - previous_eval)
            if swing > self.cfg.critical_swing:
                critical.append(CriticalMoment(
                    ply=ply,
                    move_number=move_number,
                    description=self._describe(label, player),
                    evaluation_swing=swing,
                    type=_moment_type(label),
                ))

            state = new_state
            previous_eval = eval_after
            player = player.opponent

        summary = self.summarize(analyses)
        return GameAnalysis(
            moves=analyses,
            summary=summary,
            critical_moments=critical,
            opening_name=opening_name,
            suggestions=self.suggest(analyses, summary),
        )

    def find_best_move(self, state: GameState, color: Color,
                       moves: Optional[List[Move]] = None) -> Optional[Move]:
        """One-ply greedy best move under the evaluator."""
        moves = self.get_all_moves(state, color) if moves is None else moves
        best_move, best_score = None, None
        for move in moves:
            score = self.evaluate(self.apply_move(state, move), color)
            if best_score is None or score > best_score:
                best_move, best_score = move, score
        return best_move

    def classify(self, accuracy: int, legal_moves: int, in_opening: bool) -> MoveClassification:
        if legal_moves == 1:
            return MoveClassification.FORCED
        if in_opening and accuracy >= self.cfg.TH_INACCURACY:
            return MoveClassification.BOOK
        if accuracy >= self.cfg.TH_BRILLIANT:
            return MoveClassification.BRILLIANT
        if accuracy >= self.cfg.TH_GREAT:
            return MoveClassification.GREAT
        if accuracy >= self.cfg.TH_GOOD:
            return MoveClassification.GOOD
        if accuracy >= self.cfg.TH_INACCURACY:
            return MoveClassification.INACCURACY
        if accuracy >= self.cfg.TH_MISTAKE:
            return MoveClassification.MISTAKE
        return MoveClassification.BLUNDER

    def summarize(self, analyses: List[MoveAnalysis]) -> GameSummary:
        white = [a for a in analyses if a.player is Color.WHITE]
        black = [a for a in analyses if a.player is Color.BLACK]
        return GameSummary(
            total_moves=len(analyses),
            white_accuracy=_accuracy(white),
            black_accuracy=_accuracy(black),
            white_mistakes=_count(white, MoveClassification.MISTAKE),
            black_mistakes=_count(black, MoveClassification.MISTAKE),
            white_blunders=_count(white, MoveClassification.BLUNDER),
            black_blunders=_count(black, MoveClassification.BLUNDER),
            average_evaluation_white=_average_eval(white),
            average_evaluation_black=_average_eval(black),
        )

    def suggest(self, analyses: List[MoveAnalysis], summary: GameSummary) -> List[str]:
        suggestions = []
        if summary.white_blunders > 0 or summary.black_blunders > 0:
            suggestions.append("Avoid blunders: check your opponent's threats before every move.")
        if summary.white_accuracy < 70 or summary.black_accuracy < 70:
            suggestions.append("Take more time to compare all available options.")

        errors = (MoveClassification.INACCURACY, MoveClassification.MISTAKE, MoveClassification.BLUNDER)
        opening = analyses[:self.cfg.opening_plies]
        if sum(1 for a in opening if a.classification in errors) > 2:
            suggestions.append("Study the classical openings to improve your early game.")

        missed = sum(1 for a in analyses
                     if a.suggestion is not None and a.suggestion.capture_count > a.move.capture_count)
        if missed > 2:
            suggestions.append("Work on tactics: several capture opportunities were missed.")

        endgame = analyses[-self.cfg.endgame_plies:] if analyses else []
        if sum(1 for a in endgame if a.classification in errors[1:]) > 2:
            suggestions.append("Focus on endgame technique.")

        if not suggestions:
            suggestions.append("Excellent game! Keep practising to maintain your level.")
        return suggestions

    def _comment(self, label: MoveClassification, accuracy: int) -> str:
        if label is MoveClassification.BLUNDER:
            return f"Blunder! About {abs(round(accuracy / 100))} pieces lost."
        if label is MoveClassification.MISTAKE:
            return "Mistake. A better move was available."
        if label is MoveClassification.INACCURACY:
            return "Slight inaccuracy."
        return ""

    def _describe(self, label: MoveClassification, player: Color) -> str:
        name = player.value.capitalize()
        if label is MoveClassification.BLUNDER:
            return f"{name} commits a serious blunder."
        if label is MoveClassification.BRILLIANT:
            return f"Brilliant move by {name}!"
        if label is MoveClassification.MISTAKE:
            return f"Mistake by {name}."
        return "Significant change in the evaluation."


def _same_squares(a: Move, b: Move) -> bool:
    return a.from_pos == b.from_pos and a.to_pos == b.to_pos


def _moment_type(label: MoveClassification) -> str:
    if label is MoveClassification.BLUNDER:
        return "blunder"
    if label is MoveClassification.BRILLIANT:
        return "brilliant"
    return "turning_point"


def _accuracy(analyses: List[MoveAnalysis]) -> int:
    if not analyses:
        return 100
    good = sum(1 for a in analyses if a.classification.value in GOOD_OR_BETTER)
    return round(good / len(analyses) * 100)


def _count(analyses: List[MoveAnalysis], label: MoveClassification) -> int:
    return sum(1 for a in analyses if a.classification is label)


def _average_eval(analyses: List[MoveAnalysis]) -> float:
    if not analyses:
        return 0.0
    return sum(a.evaluation for a in analyses) / len(analyses)
