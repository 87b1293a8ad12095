from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

from orebot.domain.errors import ReadError

SQUARE_COUNT = 25
LAMPORTS_PER_SOL = 1_000_000_000
ORE_DECIMALS = 11
SLOT_SECONDS = 0.4


def lamports_to_sol(lamports: int) -> float:
    return int(lamports) / LAMPORTS_PER_SOL


def sol_to_lamports(sol: float) -> int:
    return int(round(float(sol) * LAMPORTS_PER_SOL))


def ore_to_ui(amount: int) -> float:
    return int(amount) / (10 ** ORE_DECIMALS)


@dataclass(frozen=True)
class Board:
    round_id: int
    start_slot: int
    end_slot: int


@dataclass(frozen=True)
class Clock:
    slot: int
    epoch_start_timestamp: int = 0
    epoch: int = 0
    leader_schedule_epoch: int = 0
    unix_timestamp: int = 0


@dataclass(frozen=True)
class Round:
    id: int
    deployed: tuple[int, ...]
    total_deployed: int = 0

    def __post_init__(self) -> None:
        if len(self.deployed) != SQUARE_COUNT:
            raise ValueError(f"round {self.id}: expected {SQUARE_COUNT} squares, got {len(self.deployed)}")

    @property
    def deployed_sol(self) -> tuple[float, ...]:
        return tuple(lamports_to_sol(v) for v in self.deployed)


@dataclass(frozen=True)
class Miner:
    authority: str
    round_id: int
    checkpoint_id: int
    rewards_sol: int
    rewards_ore: int
    refined_ore: int
    rewards_factor: Fraction


@dataclass(frozen=True)
class Treasury:
    balance: int
    motherlode: int
    miner_rewards_factor: Fraction
    stake_rewards_factor: Fraction
    total_staked: int
    total_unclaimed: int
    total_refined: int


def estimated_refined_ore(miner: Miner, treasury: Treasury) -> int:
    """Refined ORE including rewards accrued since the miner's last checkpoint.

    Estimate only; the program settles the authoritative figure on claim.
    """
    accumulated = treasury.miner_rewards_factor - miner.rewards_factor
    if accumulated < 0:
        raise ReadError(
            f"treasury rewards factor {treasury.miner_rewards_factor} is behind "
            f"miner factor {miner.rewards_factor}; state is stale or corrupt"
        )
    return miner.refined_ore + int(accumulated * miner.rewards_ore)


@dataclass(frozen=True)
class Snapshot:
    board: Board
    clock: Clock
    miner: Miner
    round: Round

    @property
    def round_id(self) -> int:
        return self.board.round_id

    def slots_remaining(self) -> int:
        return max(0, self.board.end_slot - self.clock.slot)

    def time_remaining(self) -> float:
        return self.slots_remaining() * SLOT_SECONDS

    def gate_open(self, *, start_before_seconds: float, remaining_slots: int) -> bool:
        return (
            self.time_remaining() <= start_before_seconds
            or self.slots_remaining() <= remaining_slots
        )

    def needs_checkpoint(self) -> bool:
        return self.miner.round_id < self.board.round_id

    def describe(self) -> dict:
        return {
            "round_id": self.board.round_id,
            "slot": self.clock.slot,
            "end_slot": self.board.end_slot,
            "slots_remaining": self.slots_remaining(),
            "time_remaining": round(self.time_remaining(), 2),
            "miner_round_id": self.miner.round_id,
            "checkpoint_id": self.miner.checkpoint_id,
        }
