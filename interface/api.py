"""FastAPI REST interface for the engine."""

import threading
from dataclasses import asdict, replace
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from damier.config import CONFIG
from damier.core.models import move_to_notation
from damier.core.search import Difficulty
from damier.main import Engine

app = FastAPI(title=CONFIG.ui.engine_name, version="1.0.0")

# Shared game (board, TT and book persist across requests).
engine = Engine()
board = engine.board
_board_lock = threading.Lock()


class MoveRequest(BaseModel):
    move: str  # Manoury notation e.g. "32-28" or "28x19"


class SearchRequest(BaseModel):
    difficulty: Optional[Difficulty] = None
    depth: Optional[int] = None
    play: bool = False


def _board_payload():
    result = board.result()
    return {
        "variant": board.variant.id,
        "board": board.render().split("\n"),
        "turn": board.turn.value,
        "must_capture": board.state.must_capture,
        "legal_moves": board.get_legal_moves(),
        "move_history": list(board.move_history),
        "pieces": board.state.count_pieces(),
        "is_game_over": result is not None,
        "result": {"winner": result.winner.value, "reason": result.reason} if result else None,
    }


@app.get("/board")
def get_board():
    with _board_lock:
        return _board_payload()


@app.post("/move")
def make_move(req: MoveRequest):
    with _board_lock:
        if board.is_game_over():
            raise HTTPException(status_code=400, detail="Game is already over")
        if engine.board.find_move(req.move) is None:
            raise HTTPException(status_code=400, detail=f"Illegal move: {req.move}")
        engine.make_move(req.move)
        return {"move": req.move, **_board_payload()}


@app.post("/search")
def search_move(req: SearchRequest = SearchRequest()):
    with _board_lock:
        if board.is_game_over():
            raise HTTPException(status_code=400, detail="Game is already over")
        difficulty = (req.difficulty or Difficulty(engine.difficulty)).value
        if req.depth is not None and req.depth < 1:
            raise HTTPException(status_code=400, detail="Depth must be at least 1")

        saved = engine.search.config
        if req.depth is not None:
            engine.search.config = replace(saved, minimax_depth=req.depth, alpha_beta_depth=req.depth)
        try:
            move = engine.search.find_best_move(board.state, board.turn, difficulty)
        finally:
            engine.search.config = saved
        notation = move_to_notation(move, board.board_size) if move else None
        if req.play and move is not None:
            board.push(move)
            engine.book.record_move(move.from_pos, move.to_pos)
        return {
            "best_move": notation,
            "score": engine.search.last_score,
            "difficulty": difficulty,
            "nodes": engine.search.nodes,
            "played": bool(req.play and move is not None),
        }


@app.post("/reset")
def reset_board():
    with _board_lock:
        engine.reset()
        return _board_payload()


@app.get("/analysis")
def get_analysis():
    with _board_lock:
        analysis = engine.analyze()
    return {
        "opening_name": analysis.opening_name,
        "summary": asdict(analysis.summary),
        "suggestions": analysis.suggestions,
        "critical_moments": [asdict(c) for c in analysis.critical_moments],
        "moves": [
            {
                "ply": a.ply,
                "move_number": a.move_number,
                "player": a.player.value,
                "move": move_to_notation(a.move, board.board_size),
                "evaluation": a.evaluation,
                "accuracy": a.accuracy,
                "classification": a.classification.value,
                "suggestion": move_to_notation(a.suggestion, board.board_size) if a.suggestion else None,
                "comment": a.comment,
            }
            for a in analysis.moves
        ],
    }


@app.get("/stats")
def get_stats():
    with _board_lock:
        return {
            "tt": engine.tt_stats(),
            "mcts": {
                k: (move_to_notation(v, board.board_size) if k == "best_move" and v is not None else v)
                for k, v in engine.search.mcts.get_search_stats().items()
            },
        }
