# damier/config.py
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import os
import tomllib

# Defaults (centipawn-like units)
PIECE_VALUES = {
    "PAWN": 100,
    "KING": 300,
}

@dataclass
class SearchConfig:
    difficulty: str = "hard"
    minimax_depth: int = 3
    alpha_beta_depth: int = 5
    iterative_deepening: bool = True
    time_limit_ms: Optional[int] = None  # None means depth-only
    tt_max_entries: int = 1_000_000
    use_opening_book: bool = True

@dataclass
class MCTSConfig:
    max_iterations: int = 10000
    exploration: float = 1.414  # UCB1 constant, ~sqrt(2)
    max_simulation_depth: int = 100
    time_limit_ms: Optional[int] = 3000

@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    center_bonus: int = 5
    advancement_bonus: int = 2
    back_row_bonus: int = 10
    mobility_weight: int = 2

@dataclass
class BookConfig:
    max_book_depth: int = 8  # plies

@dataclass
class AnalyzerConfig:
    # thresholds on accuracy (played change minus best change), mover's POV
    TH_BRILLIANT: int = 200
    TH_GREAT: int = 100
    TH_GOOD: int = 0
    TH_INACCURACY: int = -25
    TH_MISTAKE: int = -100
    critical_swing: int = 150
    opening_plies: int = 8
    endgame_plies: int = 10

@dataclass
class UIConfig:
    engine_name: str = "Damier"

@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    mcts: MCTSConfig = field(default_factory=MCTSConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    book: BookConfig = field(default_factory=BookConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    variant: str = "international"
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "damier.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        return Config.from_dict(raw, cfg)

    @staticmethod
    def from_dict(raw: Dict[str, Any], cfg: Optional["Config"] = None) -> "Config":
        cfg = cfg or Config()
        for section in ("search", "mcts", "eval", "book", "analyzer", "ui"):
            if section in raw:
                target = getattr(cfg, section)
                for k, v in raw[section].items():
                    if hasattr(target, k):
                        setattr(target, k, v)
        for k in ("variant", "log_level"):
            if k in raw:
                setattr(cfg, k, raw[k])
        return cfg

# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("DAMIER_CONFIG_TOML", "damier.toml"))
# allow env override of depth for quick debugging
override_depth = os.environ.get("DAMIER_SEARCH_DEPTH")
if override_depth and override_depth.isdigit():
    CONFIG.search.minimax_depth = int(override_depth)
    CONFIG.search.alpha_beta_depth = int(override_depth)
