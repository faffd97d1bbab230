import argparse

from damier.config import CONFIG
from damier.core.models import Color
from damier.core.search import Difficulty
from damier.core.variants import VARIANTS
from damier.main import Engine
from damier.utils import setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Play draughts against the engine.")
    parser.add_argument("--variant", choices=sorted(VARIANTS), default=CONFIG.variant)
    parser.add_argument("--difficulty", choices=[d.value for d in Difficulty], default=CONFIG.search.difficulty)
    parser.add_argument("--human", choices=["white", "black", "none"], default="white",
                        help="side played from the keyboard; 'none' lets the engine play both sides")
    parser.add_argument("--max-moves", type=int, default=300)
    parser.add_argument("--analyze", action="store_true", help="print a game report at the end")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default=CONFIG.log_level)
    return parser.parse_args(argv)


def print_report(engine: Engine):
    analysis = engine.analyze()
    s = analysis.summary
    if analysis.opening_name:
        print(f"Opening: {analysis.opening_name}")
    print(f"Accuracy  white {s.white_accuracy}%  black {s.black_accuracy}%")
    print(f"Mistakes  white {s.white_mistakes}  black {s.black_mistakes}")
    print(f"Blunders  white {s.white_blunders}  black {s.black_blunders}")
    for moment in analysis.critical_moments:
        print(f"  move {moment.move_number}: {moment.description} (swing {moment.evaluation_swing})")
    for line in analysis.suggestions:
        print(f"- {line}")


def main(argv=None, input_fn=input):
    args = parse_args(argv)
    setup_logging(args.log_level)

    engine = Engine(variant=args.variant, difficulty=args.difficulty, seed=args.seed)
    human = None if args.human == "none" else Color(args.human)
    plies = 0

    while not engine.board.is_game_over() and plies < args.max_moves:
        engine.print_board()
        print("----------------------------")

        if engine.board.turn is human:
            user_move = input_fn("Enter your move (e.g. 32-28, 28x19, or 'quit'): ").strip()
            if user_move in ("quit", "q"):
                break
            if user_move == "moves":
                print(" ".join(engine.board.get_legal_moves()))
                continue
            if not engine.make_move(user_move):
                print("Illegal move, try again.")
                continue
        else:
            notation = engine.play_engine_move()
            if notation is None:
                break
            score = engine.search.last_score
            print(f"Engine plays: {notation}" + (f" | Eval: {score}" if score is not None else ""))
        plies += 1

    print("Game Over")
    result = engine.board.result()
    if result is not None:
        print(f"Result: {result.winner.value} wins ({result.reason})")
    else:
        print("Result: unfinished")

    if args.analyze:
        print_report(engine)
    return result


if __name__ == "__main__":
    main()
