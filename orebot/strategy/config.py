from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Union

from orebot.domain import SQUARE_COUNT, ConfigError

FIXED_THRESHOLD = "fixed_threshold"
DYNAMIC_OPTIMIZED = "dynamic_optimized"

DEFAULT_AMOUNT_SOL = 0.01
DEFAULT_MIN_SQUARES = 12
DEFAULT_PICK_SQUARES = 5
DEFAULT_DYNAMIC_COEFFICIENT = 0.036
DEFAULT_DYNAMIC_OFFSET = -0.005


def require_int(name: str, value: Any) -> int:
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    return value


def require_number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigError(f"{name} must be a finite number, got {value!r}")
    return float(value)


def _check_common(amount_sol: float, min_squares: int, pick_squares: int) -> None:
    require_number("amount_sol", amount_sol)
    require_int("min_squares", min_squares)
    require_int("pick_squares", pick_squares)
    if amount_sol <= 0:
        raise ConfigError("amount_sol must be > 0")
    if not 1 <= min_squares <= SQUARE_COUNT:
        raise ConfigError(f"min_squares must be within 1-{SQUARE_COUNT}")
    if not 1 <= pick_squares <= min_squares:
        raise ConfigError(f"pick_squares must be within 1-{min_squares}")


@dataclass(frozen=True)
class FixedThreshold:
    threshold_sol: float
    amount_sol: float = DEFAULT_AMOUNT_SOL
    min_squares: int = DEFAULT_MIN_SQUARES
    pick_squares: int = DEFAULT_PICK_SQUARES

    def __post_init__(self) -> None:
        if require_number("threshold_sol", self.threshold_sol) <= 0:
            raise ConfigError("threshold_sol must be > 0")
        _check_common(self.amount_sol, self.min_squares, self.pick_squares)

    @property
    def kind(self) -> str:
        return FIXED_THRESHOLD


@dataclass(frozen=True)
class DynamicOptimized:
    amount_sol: float = DEFAULT_AMOUNT_SOL
    min_squares: int = DEFAULT_MIN_SQUARES
    pick_squares: int = DEFAULT_PICK_SQUARES
    dynamic_coefficient: float = DEFAULT_DYNAMIC_COEFFICIENT
    dynamic_offset: float = DEFAULT_DYNAMIC_OFFSET

    def __post_init__(self) -> None:
        _check_common(self.amount_sol, self.min_squares, self.pick_squares)
        require_number("dynamic_offset", self.dynamic_offset)
        if require_number("dynamic_coefficient", self.dynamic_coefficient) <= 0:
            raise ConfigError("dynamic_coefficient must be > 0")

    @property
    def kind(self) -> str:
        return DYNAMIC_OPTIMIZED


StrategyConfig = Union[FixedThreshold, DynamicOptimized]

_VARIANTS: dict[str, type] = {
    FIXED_THRESHOLD: FixedThreshold,
    DYNAMIC_OPTIMIZED: DynamicOptimized,
}


def parse_strategy(raw: dict[str, Any]) -> StrategyConfig:
    """Build a validated strategy from its tagged JSON form."""
    if not isinstance(raw, dict):
        raise ConfigError("strategy must be an object")
    fields = dict(raw)
    kind = str(fields.pop("type", "")).strip().lower()
    cls = _VARIANTS.get(kind)
    if cls is None:
        raise ConfigError(f"unknown strategy type {kind!r}; expected one of {sorted(_VARIANTS)}")
    try:
        return cls(**fields)
    except TypeError as exc:
        raise ConfigError(f"invalid {kind} strategy: {exc}") from exc


def strategy_to_dict(cfg: StrategyConfig) -> dict[str, Any]:
    return {"type": cfg.kind, **asdict(cfg)}
