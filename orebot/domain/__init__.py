from .errors import (
    AccountNotFound,
    ConfigError,
    OreBotError,
    PriceUnavailable,
    ReadError,
    RelayFailure,
    SignerError,
    SubmissionError,
    SubmissionRejected,
    SubmissionTransient,
)
from .models import (
    LAMPORTS_PER_SOL,
    ORE_DECIMALS,
    SLOT_SECONDS,
    SQUARE_COUNT,
    Board,
    Clock,
    Miner,
    Round,
    Snapshot,
    Treasury,
    estimated_refined_ore,
    lamports_to_sol,
    ore_to_ui,
    sol_to_lamports,
)

__all__ = [
    "AccountNotFound",
    "ConfigError",
    "OreBotError",
    "PriceUnavailable",
    "ReadError",
    "RelayFailure",
    "SignerError",
    "SubmissionError",
    "SubmissionRejected",
    "SubmissionTransient",
    "LAMPORTS_PER_SOL",
    "ORE_DECIMALS",
    "SLOT_SECONDS",
    "SQUARE_COUNT",
    "Board",
    "Clock",
    "Miner",
    "Round",
    "Snapshot",
    "Treasury",
    "estimated_refined_ore",
    "lamports_to_sol",
    "ore_to_ui",
    "sol_to_lamports",
]
