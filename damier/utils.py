import logging

logger = logging.getLogger("damier.search")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO"):
    """Configure root logging for entry points (CLI, API). Library code never calls this."""
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def format_pv(pv_moves, board_size: int = 10) -> str:
    from damier.core.models import move_to_notation

    return " ".join(move_to_notation(m, board_size) for m in pv_moves)


def log_search_info(d, score, nodes, elapsed, pv_moves, board_size, win_score):
    pv_str = format_pv(pv_moves, board_size)
    nps = int(nodes / elapsed) if elapsed > 0 else 0

    if abs(score) >= win_score:
        score_str = f"win {1 if score > 0 else -1}"
    else:
        score_str = f"cp {score}"

    logger.info(f"info depth {d} score {score_str} nodes {nodes} nps {nps} time {int(elapsed * 1000)} pv {pv_str}")
