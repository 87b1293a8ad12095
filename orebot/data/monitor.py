from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from orebot.data.ledger import LedgerReader
from orebot.domain import Board, Clock, Miner, ReadError, Round, Snapshot
from orebot.infra import RuntimeEventLogger

_T = TypeVar("_T")


class ValueCell(Generic[_T]):
    """Lock-guarded slot holding the latest immutable value of one entity."""

    def __init__(self, value: _T):
        self._value = value
        self._lock = asyncio.Lock()

    async def get(self) -> _T:
        async with self._lock:
            return self._value

    async def set(self, value: _T) -> None:
        async with self._lock:
            self._value = value


class StateMonitor:
    """Keeps Board, Clock, Miner and Round fresh with one loop per entity.

    Each entity sits in its own ``ValueCell``; a lock is held only to read or
    replace a value, never across an RPC call. ``snapshot`` reads the four
    cells one after the other and bundles them into an immutable ``Snapshot``.
    Refresh failures are logged and retried on the next tick.
    """

    def __init__(
        self,
        reader: LedgerReader,
        *,
        board: Board,
        clock: Clock,
        miner: Miner,
        round_: Round,
        refresh_interval: float = 1.0,
        log=None,
        events: RuntimeEventLogger | None = None,
    ):
        self.reader = reader
        self.refresh_interval = float(refresh_interval)
        self.log = log
        self.events = events or RuntimeEventLogger(None)
        self._board = ValueCell(board)
        self._clock = ValueCell(clock)
        self._miner = ValueCell(miner)
        self._round = ValueCell(round_)
        self._round_changed = asyncio.Event()

    @classmethod
    async def create(
        cls,
        reader: LedgerReader,
        *,
        refresh_interval: float = 1.0,
        log=None,
        events: RuntimeEventLogger | None = None,
    ) -> "StateMonitor":
        """Initial reads. Any failure here propagates; there is no snapshot to fall back on."""
        board = await reader.get_board()
        clock = await reader.get_clock()
        miner = await reader.get_miner()
        round_ = await reader.get_round(board.round_id)
        return cls(
            reader,
            board=board,
            clock=clock,
            miner=miner,
            round_=round_,
            refresh_interval=refresh_interval,
            log=log,
            events=events,
        )

    async def snapshot(self) -> Snapshot:
        board = await self._board.get()
        clock = await self._clock.get()
        miner = await self._miner.get()
        round_ = await self._round.get()
        return Snapshot(board=board, clock=clock, miner=miner, round=round_)

    # ── single refresh passes ───────────────────────────────────────────────

    def _warn(self, entity: str, exc: Exception) -> None:
        if self.log is not None:
            self.log.warning("refresh %s failed: %s", entity, exc)
        self.events.emit("refresh.fail", entity=entity, error=str(exc))

    async def refresh_board(self) -> bool:
        try:
            board = await self.reader.get_board()
        except ReadError as exc:
            self._warn("board", exc)
            return False
        previous = await self._board.get()
        await self._board.set(board)
        if board.round_id != previous.round_id:
            self._round_changed.set()
        return True

    async def refresh_clock(self) -> bool:
        try:
            clock = await self.reader.get_clock()
        except ReadError as exc:
            self._warn("clock", exc)
            return False
        await self._clock.set(clock)
        return True

    async def refresh_miner(self) -> bool:
        try:
            miner = await self.reader.get_miner()
        except ReadError as exc:
            self._warn("miner", exc)
            return False
        await self._miner.set(miner)
        return True

    async def refresh_round(self) -> bool:
        round_id = (await self._board.get()).round_id
        try:
            round_ = await self.reader.get_round(round_id)
        except ReadError as exc:
            self._warn(f"round {round_id}", exc)
            return False
        current_id = (await self._board.get()).round_id
        if current_id != round_id:
            # board advanced while the fetch was in flight
            if self.log is not None:
                self.log.debug("discarding round %d; board is at %d", round_id, current_id)
            self._round_changed.set()
            return False
        await self._round.set(round_)
        return True

    # ── loops ──────────────────────────────────────────────────────────────

    async def _periodic(self, refresh: Callable[[], Awaitable[bool]]) -> None:
        while True:
            await refresh()
            await asyncio.sleep(self.refresh_interval)

    async def board_loop(self) -> None:
        await self._periodic(self.refresh_board)

    async def clock_loop(self) -> None:
        await self._periodic(self.refresh_clock)

    async def miner_loop(self) -> None:
        await self._periodic(self.refresh_miner)

    async def round_loop(self) -> None:
        while True:
            self._round_changed.clear()
            await self.refresh_round()
            try:
                await asyncio.wait_for(self._round_changed.wait(), timeout=self.refresh_interval)
            except asyncio.TimeoutError:
                pass

    def loops(self) -> dict[str, Callable[[], Awaitable[None]]]:
        return {
            "monitor.board": self.board_loop,
            "monitor.clock": self.clock_loop,
            "monitor.miner": self.miner_loop,
            "monitor.round": self.round_loop,
        }
