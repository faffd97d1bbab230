"""Core engine components: models, rules, evaluator, search, MCTS, book and transposition table."""

from .board import DraughtsBoard
from .book import OpeningBook
from .evaluator import Evaluator
from .mcts import MCTS
from .models import Color, GameState, Move, Piece, PieceType, Position
from .rules import MoveValidator
from .search import Difficulty, SearchEngine
from .transposition import TranspositionTable
from .variants import BRAZILIAN, ENGLISH, INTERNATIONAL, Variant, get_variant
