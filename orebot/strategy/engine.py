from __future__ import annotations

from dataclasses import dataclass

from orebot.domain import Round, lamports_to_sol
from orebot.strategy.config import DynamicOptimized, FixedThreshold, StrategyConfig


@dataclass(frozen=True)
class Selection:
    squares: tuple[int, ...] | None
    threshold_sol: float
    candidates: int
    total_sol: float

    @property
    def reason(self) -> str:
        return "ok" if self.squares else "too_few_candidates"


def dynamic_threshold(total_sol: float, cfg: DynamicOptimized) -> float:
    return total_sol * cfg.dynamic_coefficient + cfg.dynamic_offset


def _pick(values: tuple[float, ...], threshold: float, min_squares: int, pick_squares: int) -> tuple[tuple[int, ...] | None, int]:
    # A non-positive threshold admits nothing since deployed amounts are >= 0.
    candidates = [(i, v) for i, v in enumerate(values) if v < threshold]
    if len(candidates) < min_squares:
        return None, len(candidates)
    # sorted() is stable, so ties keep index order
    ranked = sorted(candidates, key=lambda c: c[1])
    return tuple(i for i, _ in ranked[:pick_squares]), len(candidates)


def evaluate(round_: Round, cfg: StrategyConfig) -> Selection:
    values = round_.deployed_sol
    total_sol = lamports_to_sol(sum(round_.deployed))
    if isinstance(cfg, FixedThreshold):
        threshold = cfg.threshold_sol
    elif isinstance(cfg, DynamicOptimized):
        threshold = dynamic_threshold(total_sol, cfg)
    else:
        raise TypeError(f"unsupported strategy config: {type(cfg).__name__}")
    squares, count = _pick(values, threshold, cfg.min_squares, cfg.pick_squares)
    return Selection(squares=squares, threshold_sol=threshold, candidates=count, total_sol=total_sol)


def select_squares(round_: Round, cfg: StrategyConfig) -> list[int] | None:
    """Squares to deploy into, cheapest first, or None for no action."""
    squares = evaluate(round_, cfg).squares
    return list(squares) if squares is not None else None


class StrategyEngine:
    """Pure round-to-squares conversion, side-effect free."""

    def __init__(self, cfg: StrategyConfig):
        self.cfg = cfg

    @property
    def amount_sol(self) -> float:
        return self.cfg.amount_sol

    def decide(self, round_: Round) -> tuple[list[int] | None, Selection]:
        selection = evaluate(round_, self.cfg)
        squares = list(selection.squares) if selection.squares is not None else None
        return squares, selection
