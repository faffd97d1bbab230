"""
Integration test suite for the Damier draughts engine.

Tests components working together end-to-end:
- Full game simulations (engine vs engine, every difficulty)
- Engine wrapper (book recording, analysis, reset)
- Async search lifecycle (start/stop/callback)
- Time management
- FastAPI REST API integration
- CLI game loop
"""

import threading
import time

import pytest

from damier.config import Config, MCTSConfig, SearchConfig
from damier.core.board import DraughtsBoard
from damier.core.evaluator import Evaluator
from damier.core.models import Color, Piece, PieceType, Position
from damier.core.rules import MoveValidator
from damier.core.search import Difficulty, SearchEngine
from damier.core.transposition import TranspositionTable
from damier.main import Engine


def quick_config(**search):
    cfg = Config()
    cfg.search = SearchConfig(**{"minimax_depth": 2, "alpha_beta_depth": 2, **search})
    cfg.mcts = MCTSConfig(max_iterations=30, max_simulation_depth=20, time_limit_ms=None)
    return cfg


def make_search(variant_validator=None, **search):
    v = variant_validator or MoveValidator()
    ev = Evaluator(v)
    engine = SearchEngine(
        v.get_all_moves, v.apply_move, ev.evaluate,
        tt=TranspositionTable(board_size=v.board_size, seed=1),
        config=SearchConfig(**search), board_size=v.board_size,
    )
    return v, engine


# ════════════════════════════════════════════════════════════════════════════
#  ENGINE VS ENGINE — FULL GAME SIMULATIONS
# ════════════════════════════════════════════════════════════════════════════


class TestFullGame:
    """Tests that the engine can play complete games without crashing."""

    def test_engine_vs_engine_english(self):
        """Two minimax players on the small board; every move must be legal."""
        engine = Engine(variant="english", difficulty="medium", config=quick_config(), seed=3)
        plies = 0
        while not engine.board.is_game_over() and plies < 150:
            legal = engine.board.get_legal_moves()
            notation = engine.play_engine_move()
            assert notation in legal, f"Illegal move {notation} at ply {plies}"
            plies += 1

        assert plies > 10
        assert len(engine.board.move_history) == plies
        if engine.board.is_game_over():
            assert engine.board.state.status == "finished"

    def test_random_game_international(self):
        engine = Engine(difficulty="easy", config=quick_config(), seed=5)
        plies = 0
        while not engine.board.is_game_over() and plies < 200:
            assert engine.play_engine_move() is not None
            plies += 1
        counts = engine.board.state.count_pieces()
        assert counts["white"]["pawns"] + counts["white"]["kings"] <= 20
        assert counts["black"]["pawns"] + counts["black"]["kings"] <= 20

    @pytest.mark.parametrize("difficulty", [d.value for d in Difficulty])
    def test_every_difficulty_plays(self, difficulty):
        engine = Engine(variant="brazilian", difficulty=difficulty, config=quick_config(), seed=1)
        for _ in range(6):
            legal = engine.board.get_legal_moves()
            notation = engine.play_engine_move()
            assert notation in legal

    def test_engine_finishes_won_position(self):
        v = MoveValidator()
        engine = Engine(difficulty="hard", config=quick_config(), seed=1)
        engine.board.set_state(v.new_state([
            Piece("w1", Color.WHITE, PieceType.KING, Position(9, 0)),
            Piece("b1", Color.BLACK, PieceType.PAWN, Position(7, 2)),
            Piece("b2", Color.BLACK, PieceType.PAWN, Position(5, 2)),
        ]))
        assert engine.play_engine_move() is not None
        assert engine.board.is_game_over()
        assert engine.board.result().winner is Color.WHITE
        assert engine.get_best_move() is None


# ════════════════════════════════════════════════════════════════════════════
#  ENGINE WRAPPER
# ════════════════════════════════════════════════════════════════════════════


class TestEngineWrapper:
    def setup_method(self):
        self.engine = Engine(config=quick_config(), seed=2)

    def test_best_move_is_legal(self):
        assert self.engine.get_best_move() in self.engine.board.get_legal_moves()

    def test_make_move_records_book(self):
        assert self.engine.make_move("31-27")
        assert self.engine.book.move_history == ["6,1-5,2"]
        assert not self.engine.make_move("31-27")
        assert self.engine.book.move_history == ["6,1-5,2"]

    def test_book_reply(self):
        self.engine.make_move("31-27")
        reply = self.engine.get_best_move()
        assert reply in ("17-21", "17-22", "18-22", "18-23")

    def test_white_book_reply_at_second_ply(self):
        assert self.engine.make_move("31-27")
        assert self.engine.make_move("17-21")
        entry = self.engine.book.get_book_move(Color.WHITE, 2)
        assert entry is not None
        assert entry.name in ("31-27", "32-28", "33-29", "34-30", "36-31")

    def test_analysis_names_opening(self):
        for notation in ("31-27", "17-21", "32-28"):
            assert self.engine.make_move(notation)
        analysis = self.engine.analyze()
        assert analysis.opening_name == "Roozenburg"
        assert analysis.summary.total_moves == 3
        assert [m.player for m in analysis.moves] == [Color.WHITE, Color.BLACK, Color.WHITE]

    def test_reset_clears_tt_and_book(self):
        self.engine.make_move("31-27")
        self.engine.make_move("17-21")
        self.engine.make_move("32-28")
        # black must capture, so no book reply applies and the search runs
        self.engine.get_best_move("hard")
        assert self.engine.tt_stats()["size"] > 0
        self.engine.reset()
        assert self.engine.tt_stats()["size"] == 0
        assert self.engine.book.move_history == []
        assert self.engine.board.move_history == []

    def test_variant_from_name(self):
        engine = Engine(variant="english", config=quick_config())
        assert engine.board.board_size == 8
        assert engine.book.get_book_move(Color.WHITE, 0) is None


# ════════════════════════════════════════════════════════════════════════════
#  ASYNC SEARCH LIFECYCLE
# ════════════════════════════════════════════════════════════════════════════


class TestAsyncSearch:
    def test_callback_per_depth_and_final(self):
        v, engine = make_search(alpha_beta_depth=3)
        calls = []
        done = threading.Event()

        def callback(move, depth, score):
            calls.append((move, depth, score))
            if depth == -1:
                done.set()

        engine.start_search(v.initial_state(), Color.WHITE, "hard", callback)
        assert done.wait(30)
        assert [d for _, d, _ in calls] == [1, 2, 3, -1]
        assert calls[-1][0] is not None

    def test_stop_returns_a_move(self):
        v, engine = make_search(alpha_beta_depth=30)
        result = {}
        done = threading.Event()

        def callback(move, depth, score):
            if depth == -1:
                result["move"] = move
                done.set()

        engine.start_search(v.initial_state(), Color.WHITE, "hard", callback)
        time.sleep(0.2)
        engine.stop()
        assert done.wait(10)
        assert result["move"] in v.get_all_moves(v.initial_state(), Color.WHITE)

    def test_stop_mcts(self):
        v = MoveValidator()
        ev = Evaluator(v)
        engine = SearchEngine(v.get_all_moves, v.apply_move, ev.evaluate,
                              mcts_config=MCTSConfig(max_iterations=10**9, time_limit_ms=None))
        done = threading.Event()
        result = {}

        def callback(move, depth, score):
            result["move"] = move
            done.set()

        engine.start_search(v.initial_state(), Color.WHITE, "expert", callback)
        time.sleep(0.2)
        engine.stop()
        assert done.wait(10)
        assert result["move"] is not None

    def test_second_start_ignored_while_running(self):
        v, engine = make_search(alpha_beta_depth=30)
        finals = []
        done = threading.Event()

        def callback(move, depth, score):
            if depth == -1:
                finals.append(move)
                done.set()

        engine.start_search(v.initial_state(), Color.WHITE, "hard", callback)
        engine.start_search(v.initial_state(), Color.WHITE, "hard", callback)
        engine.stop()
        assert done.wait(10)
        time.sleep(0.1)
        assert len(finals) == 1


# ════════════════════════════════════════════════════════════════════════════
#  TIME MANAGEMENT
# ════════════════════════════════════════════════════════════════════════════


class TestTimeManagement:
    def test_alpha_beta_time_limit(self):
        v, engine = make_search(alpha_beta_depth=30, time_limit_ms=200)
        start = time.monotonic()
        move = engine.find_best_move(v.initial_state(), Color.WHITE, "hard")
        assert time.monotonic() - start < 10
        assert move in v.get_all_moves(v.initial_state(), Color.WHITE)

    def test_mcts_time_limit(self):
        v = MoveValidator()
        ev = Evaluator(v)
        engine = SearchEngine(v.get_all_moves, v.apply_move, ev.evaluate,
                              mcts_config=MCTSConfig(max_iterations=10**9, time_limit_ms=200))
        start = time.monotonic()
        move = engine.find_best_move(v.initial_state(), Color.WHITE, "expert")
        assert time.monotonic() - start < 10
        assert move is not None


# ════════════════════════════════════════════════════════════════════════════
#  REST API
# ════════════════════════════════════════════════════════════════════════════


class TestAPI:
    @pytest.fixture(autouse=True)
    def setup_client(self):
        from fastapi.testclient import TestClient
        from interface.api import app, engine

        self.client = TestClient(app)
        self.engine = engine
        # Reset state before each test
        engine.reset()

    def test_get_board_initial(self):
        response = self.client.get("/board")
        assert response.status_code == 200
        data = response.json()
        assert data["turn"] == "white"
        assert len(data["legal_moves"]) == 9
        assert data["is_game_over"] is False
        assert data["pieces"]["white"]["pawns"] == 20

    def test_legal_move(self):
        response = self.client.post("/move", json={"move": "32-28"})
        assert response.status_code == 200
        data = response.json()
        assert data["turn"] == "black"
        assert data["move_history"] == ["32-28"]

    def test_illegal_move(self):
        response = self.client.post("/move", json={"move": "46-41"})
        assert response.status_code == 400

    def test_garbage_move(self):
        response = self.client.post("/move", json={"move": "e2e4"})
        assert response.status_code == 400

    def test_search(self):
        response = self.client.post("/search", json={"depth": 2})
        assert response.status_code == 200
        data = response.json()
        legal = self.client.get("/board").json()["legal_moves"]
        assert data["best_move"] in legal
        assert data["played"] is False

    def test_search_and_play(self):
        response = self.client.post("/search", json={"depth": 1, "difficulty": "medium", "play": True})
        assert response.status_code == 200
        assert response.json()["played"] is True
        assert self.client.get("/board").json()["turn"] == "black"

    def test_search_bad_depth(self):
        assert self.client.post("/search", json={"depth": 0}).status_code == 400

    def test_search_bad_difficulty(self):
        assert self.client.post("/search", json={"difficulty": "grandmaster"}).status_code == 422

    def test_game_over_rejects(self):
        v = MoveValidator()
        self.engine.board.set_state(v.new_state(
            [Piece("w1", Color.WHITE, PieceType.PAWN, Position(6, 1))], Color.BLACK))
        data = self.client.get("/board").json()
        assert data["is_game_over"] is True
        assert data["result"] == {"winner": "white", "reason": "no-pieces"}
        assert self.client.post("/search", json={}).status_code == 400
        assert self.client.post("/move", json={"move": "31-27"}).status_code == 400

    def test_reset(self):
        self.client.post("/move", json={"move": "32-28"})
        response = self.client.post("/reset")
        assert response.status_code == 200
        assert response.json()["move_history"] == []

    def test_analysis(self):
        for notation in ("31-27", "17-21"):
            self.client.post("/move", json={"move": notation})
        response = self.client.get("/analysis")
        assert response.status_code == 200
        data = response.json()
        assert len(data["moves"]) == 2
        assert data["opening_name"] == "Roozenburg"
        assert data["moves"][0]["move"] == "31-27"
        assert data["summary"]["total_moves"] == 2

    def test_stats(self):
        self.client.post("/search", json={"depth": 2})
        data = self.client.get("/stats").json()
        assert set(data["tt"]) == {"size", "hits", "misses", "hit_rate"}
        assert "iterations" in data["mcts"]


# ════════════════════════════════════════════════════════════════════════════
#  CLI
# ════════════════════════════════════════════════════════════════════════════


class TestCLI:
    def test_human_game_with_quit(self, capsys):
        from interface.cli import main

        answers = iter(["hello", "moves", "32-28", "quit"])
        main(["--difficulty", "easy", "--seed", "1"], input_fn=lambda prompt: next(answers))
        out = capsys.readouterr().out
        assert "Illegal move, try again." in out
        assert "32-28" in out
        assert "Engine plays:" in out
        assert "Game Over" in out

    def test_engine_only_game(self, capsys):
        from interface.cli import main

        main(["--variant", "english", "--difficulty", "easy", "--human", "none",
              "--max-moves", "20", "--seed", "4", "--analyze"])
        out = capsys.readouterr().out
        assert "Game Over" in out
        assert "Accuracy" in out

    def test_board_round_trip_with_cli_notation(self):
        b = DraughtsBoard()
        for notation in ("32-28", "19-23", "28x19"):
            assert b.make_move(notation), notation
        assert b.turn is Color.BLACK
