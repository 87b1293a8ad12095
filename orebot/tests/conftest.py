from fractions import Fraction

import json

import pytest

from orebot.domain import LAMPORTS_PER_SOL, Board, Clock, Miner, Round, Snapshot


def lamports(values_sol):
    return tuple(int(round(v * LAMPORTS_PER_SOL)) for v in values_sol)


def build_round(round_id, values_sol):
    deployed = lamports(values_sol)
    return Round(id=round_id, deployed=deployed, total_deployed=sum(deployed))


def build_snapshot(*, round_id=10, miner_round=10, slot=1000, end_slot=1200, values_sol=None):
    values = values_sol if values_sol is not None else [0.02] * 25
    return Snapshot(
        board=Board(round_id=round_id, start_slot=end_slot - 150, end_slot=end_slot),
        clock=Clock(slot=slot),
        miner=Miner(
            authority="11111111111111111111111111111111",
            round_id=miner_round,
            checkpoint_id=miner_round,
            rewards_sol=0,
            rewards_ore=0,
            refined_ore=0,
            rewards_factor=Fraction(0),
        ),
        round=build_round(round_id, values),
    )


@pytest.fixture
def make_round():
    return build_round


@pytest.fixture
def make_snapshot():
    return build_snapshot


@pytest.fixture
def scenario_values():
    return [0.02] * 13 + [0.005] * 12


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


def read_event_rows(events):
    if events.path is None or not events.path.exists():
        return []
    return [json.loads(line) for line in events.path.read_text(encoding="utf-8").splitlines() if line.strip()]


@pytest.fixture
def event_rows():
    return read_event_rows
