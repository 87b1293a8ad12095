from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import replace
from enum import Enum

from orebot.config import TimingConfig
from orebot.data import LedgerReader, PriceOracle, SnapshotStore, StateMonitor
from orebot.domain import PriceUnavailable, ReadError, Snapshot, sol_to_lamports
from orebot.execution import DeployResult, SubmissionPipeline
from orebot.infra import RuntimeEventLogger
from orebot.strategy import StrategyEngine


class SchedulerState(str, Enum):
    WAITING = "waiting"
    ROUND_DETECTED = "round_detected"
    TIMING_GATE_OPEN = "timing_gate_open"
    SUBMITTING = "submitting"


class Scheduler:
    """Main decision loop: snapshot, timing gate, strategy, submit, repeat.

    ``step`` runs one pass and leaves the machine back in WAITING; ``run``
    repeats it every ``poll_interval`` seconds. A new round triggers a price
    refresh and a status write in the background. The gate check never waits
    on either.
    """

    def __init__(
        self,
        monitor: StateMonitor,
        reader: LedgerReader,
        engine: StrategyEngine,
        pipeline: SubmissionPipeline,
        *,
        timing: TimingConfig,
        oracle: PriceOracle | None = None,
        store: SnapshotStore | None = None,
        price_max_retries: int = 3,
        log=None,
        events: RuntimeEventLogger | None = None,
        sleep=asyncio.sleep,
    ):
        self.monitor = monitor
        self.reader = reader
        self.engine = engine
        self.pipeline = pipeline
        self.timing = timing
        self.oracle = oracle
        self.store = store
        self.price_max_retries = int(price_max_retries)
        self.log = log
        self.events = events or RuntimeEventLogger(None)
        self._sleep = sleep

        self.state = SchedulerState.WAITING
        self.transitions: deque[SchedulerState] = deque(maxlen=64)
        self.last_round_id: int | None = None
        self.submitted_round_id: int | None = None
        self.last_result: DeployResult | None = None
        self._background: set[asyncio.Task] = set()

    def _set(self, state: SchedulerState) -> None:
        if state == self.state:
            return
        if self.log is not None:
            self.log.debug("state %s -> %s", self.state.value, state.value)
        self.transitions.append(state)
        self.state = state

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ── round detection side effects ────────────────────────────────────────

    async def _refresh_price(self) -> None:
        if self.oracle is None:
            return
        try:
            await self.oracle.fetch_with_retry(self.price_max_retries)
        except PriceUnavailable as exc:
            if self.log is not None:
                self.log.warning("price refresh failed, keeping last price: %s", exc)
            self.events.emit("price.fail", error=str(exc))

    def status_payload(self, snap: Snapshot) -> dict:
        payload = {"ts": round(time.time(), 3), **snap.describe()}
        if self.oracle is not None and self.oracle.last is not None:
            payload["ore_usd"], payload["sol_usd"] = self.oracle.last
        if self.last_result is not None:
            payload["last_deploy"] = {
                "round_id": self.last_result.round_id,
                "ok": self.last_result.ok,
                "reason": self.last_result.reason,
                "signature": self.last_result.signature,
            }
        return payload

    async def _on_new_round(self, snap: Snapshot) -> None:
        await self._refresh_price()
        if self.store is not None:
            try:
                self.store.write(self.status_payload(snap))
            except OSError as exc:
                if self.log is not None:
                    self.log.warning("status write failed: %s", exc)

    # ── decision pass ───────────────────────────────────────────────────────

    def gate_open(self, snap: Snapshot) -> bool:
        return snap.gate_open(
            start_before_seconds=self.timing.start_before_seconds,
            remaining_slots=self.timing.remaining_slots,
        )

    async def _decide_and_submit(self, snap: Snapshot) -> None:
        round_id = snap.round_id
        try:
            fresh_round = await self.reader.get_round(round_id)
        except ReadError as exc:
            if self.log is not None:
                self.log.warning("round %d fetch at gate failed: %s", round_id, exc)
            self.events.emit("gate.read_fail", round_id=round_id, error=str(exc))
            return
        snap = replace(snap, round=fresh_round)

        squares, selection = self.engine.decide(fresh_round)
        if squares is None:
            if self.log is not None:
                self.log.info(
                    "round %d no action: %d candidates below %.6f SOL (need %d)",
                    round_id,
                    selection.candidates,
                    selection.threshold_sol,
                    self.engine.cfg.min_squares,
                )
            self.events.emit(
                "strategy.skip",
                round_id=round_id,
                candidates=selection.candidates,
                threshold_sol=selection.threshold_sol,
                total_sol=selection.total_sol,
            )
            return

        self._set(SchedulerState.SUBMITTING)
        amount = sol_to_lamports(self.engine.amount_sol)
        self.last_result = await self.pipeline.deploy(snap, squares, amount)
        self.submitted_round_id = round_id
        if self.log is not None:
            self.log.info(
                "round %d submission ok=%s reason=%s; cooling down %.0fs",
                round_id,
                self.last_result.ok,
                self.last_result.reason,
                self.timing.cooldown_seconds,
            )
        await self._sleep(self.timing.cooldown_seconds)

    async def step(self) -> SchedulerState:
        snap = await self.monitor.snapshot()

        if snap.round_id != self.last_round_id:
            self._set(SchedulerState.ROUND_DETECTED)
            self.last_round_id = snap.round_id
            if self.log is not None:
                self.log.info(
                    "new round %d slots_remaining=%d time_remaining=%.1fs",
                    snap.round_id,
                    snap.slots_remaining(),
                    snap.time_remaining(),
                )
            self.events.emit("round.detected", **snap.describe())
            self._spawn(self._on_new_round(snap))

        if self.submitted_round_id != snap.round_id and self.gate_open(snap):
            self._set(SchedulerState.TIMING_GATE_OPEN)
            self.events.emit(
                "gate.open",
                round_id=snap.round_id,
                slots_remaining=snap.slots_remaining(),
                time_remaining=round(snap.time_remaining(), 2),
            )
            await self._decide_and_submit(snap)

        self._set(SchedulerState.WAITING)
        return self.state

    async def run(self) -> None:
        while True:
            await self.step()
            await self._sleep(self.timing.poll_interval)
