import asyncio
from fractions import Fraction

import pytest

from orebot.config import default_settings
from orebot.domain import Board, Clock, Miner, ReadError, Treasury
from orebot.runtime.app import balance_lines, balance_report, board_lines, miner_lines, settings_lines, status_lines


class FakeReader:
    def __init__(self, treasury_factor):
        self.treasury_factor = treasury_factor

    async def get_balance(self):
        return 2_500_000_000

    async def get_wallet_ore(self):
        return 3 * 10**11

    async def get_miner(self):
        return Miner(
            authority="me",
            round_id=8,
            checkpoint_id=8,
            rewards_sol=1_000_000,
            rewards_ore=2 * 10**11,
            refined_ore=10**11,
            rewards_factor=Fraction(1),
        )

    async def get_treasury(self):
        return Treasury(
            balance=0,
            motherlode=0,
            miner_rewards_factor=self.treasury_factor,
            stake_rewards_factor=Fraction(0),
            total_staked=0,
            total_unclaimed=0,
            total_refined=0,
        )


def test_balance_report_includes_accrued_refined() -> None:
    report = asyncio.run(balance_report(FakeReader(Fraction(3, 2))))
    assert report["sol"] == 2.5
    assert report["ore"] == 3.0
    assert report["unclaimed_sol"] == 0.001
    assert report["unclaimed_ore"] == 2.0
    assert report["refined_ore"] == 2.0
    assert balance_lines(report)[1] == "  SOL: 2.500000"


def test_balance_report_rejects_stale_treasury() -> None:
    with pytest.raises(ReadError):
        asyncio.run(balance_report(FakeReader(Fraction(1, 2))))


def test_board_and_status_lines() -> None:
    board = Board(round_id=5, start_slot=100, end_slot=250)
    clock = Clock(slot=200)
    assert "  Time remaining: 20.00s" in board_lines(board, clock)
    assert "  Time remaining: 0.00s" in board_lines(board, Clock(slot=300))
    miner = asyncio.run(FakeReader(Fraction(1)).get_miner())
    assert "  Checkpoint ID: 8" in status_lines(board, clock, miner)
    assert "  Rewards SOL: 0.001000" in miner_lines(miner)


def test_settings_summary_covers_timing_and_fees() -> None:
    lines = settings_lines(default_settings())
    assert lines[0] == "Configuration"
    assert lines[1].startswith("  Strategy: fixed_threshold (threshold_sol=0.01,")
    assert "start_before=40.0s remaining_slots=15" in lines[2]
    assert "cooldown=60.0s" in lines[2]
    assert lines[3] == "  Priority fee: 20000 micro-lamports, compute limit 400000"
    assert lines[4] == "  Relay: on, tip 5000 lamports"
    assert lines[5] == "  Max retries: 4 (price 3)"
