from .config import (
    DYNAMIC_OPTIMIZED,
    FIXED_THRESHOLD,
    DynamicOptimized,
    FixedThreshold,
    StrategyConfig,
    parse_strategy,
    require_int,
    require_number,
    strategy_to_dict,
)
from .engine import Selection, StrategyEngine, dynamic_threshold, evaluate, select_squares

__all__ = [
    "DYNAMIC_OPTIMIZED",
    "FIXED_THRESHOLD",
    "DynamicOptimized",
    "FixedThreshold",
    "StrategyConfig",
    "parse_strategy",
    "require_int",
    "require_number",
    "strategy_to_dict",
    "Selection",
    "StrategyEngine",
    "dynamic_threshold",
    "evaluate",
    "select_squares",
]
