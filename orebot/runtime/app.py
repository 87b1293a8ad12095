from __future__ import annotations

import asyncio

from orebot.chain import load_keypair
from orebot.config import Settings
from orebot.data import LedgerReader, PriceOracle, SnapshotStore, StateMonitor
from orebot.domain import (
    Board,
    Clock,
    Miner,
    OreBotError,
    PriceUnavailable,
    SLOT_SECONDS,
    estimated_refined_ore,
    lamports_to_sol,
    ore_to_ui,
)
from orebot.execution import DirectChannel, RelayChannel, SubmissionPipeline
from orebot.infra import RuntimeEventLogger, get_logger
from orebot.runtime.health import RuntimeHealth
from orebot.runtime.scheduler import Scheduler
from orebot.runtime.supervisor import LoopSupervisor
from orebot.strategy import StrategyEngine, strategy_to_dict


def _time_remaining(board: Board, clock: Clock) -> float:
    return max(0, board.end_slot - clock.slot) * SLOT_SECONDS


def board_lines(board: Board, clock: Clock) -> list[str]:
    return [
        "Board",
        f"  Round ID: {board.round_id}",
        f"  Start slot: {board.start_slot}",
        f"  End slot: {board.end_slot}",
        f"  Time remaining: {_time_remaining(board, clock):.2f}s",
    ]


def miner_lines(miner: Miner) -> list[str]:
    return [
        "Miner",
        f"  Authority: {miner.authority}",
        f"  Rewards SOL: {lamports_to_sol(miner.rewards_sol):.6f}",
        f"  Rewards ORE: {ore_to_ui(miner.rewards_ore)}",
        f"  Refined ORE: {ore_to_ui(miner.refined_ore)}",
        f"  Round ID: {miner.round_id}",
        f"  Checkpoint ID: {miner.checkpoint_id}",
    ]


def status_lines(board: Board, clock: Clock, miner: Miner) -> list[str]:
    return [
        "Status",
        f"  Round ID: {board.round_id}",
        f"  Current slot: {clock.slot}",
        f"  End slot: {board.end_slot}",
        f"  Time remaining: {_time_remaining(board, clock):.2f}s",
        f"  Miner round: {miner.round_id}",
        f"  Checkpoint ID: {miner.checkpoint_id}",
    ]


async def balance_report(reader: LedgerReader) -> dict[str, float]:
    """Wallet and claimable balances; refined ORE includes accrued treasury rewards."""
    lamports = await reader.get_balance()
    wallet_ore = await reader.get_wallet_ore()
    miner = await reader.get_miner()
    treasury = await reader.get_treasury()
    refined = estimated_refined_ore(miner, treasury)
    return {
        "sol": lamports_to_sol(lamports),
        "ore": ore_to_ui(wallet_ore),
        "unclaimed_sol": lamports_to_sol(miner.rewards_sol),
        "unclaimed_ore": ore_to_ui(miner.rewards_ore),
        "refined_ore": ore_to_ui(refined),
    }


def balance_lines(report: dict[str, float]) -> list[str]:
    return [
        "Balance",
        f"  SOL: {report['sol']:.6f}",
        f"  ORE: {report['ore']:.11f}",
        f"  Unclaimed SOL: {report['unclaimed_sol']:.6f}",
        f"  Unclaimed ORE: {report['unclaimed_ore']:.11f}",
        f"  Refined ORE: {report['refined_ore']:.11f}",
    ]


def settings_lines(s: Settings) -> list[str]:
    t = s.timing
    a = s.advanced
    strategy = ", ".join(f"{k}={v}" for k, v in strategy_to_dict(s.strategy).items() if k != "type")
    return [
        "Configuration",
        f"  Strategy: {s.strategy.kind} ({strategy})",
        f"  Timing: start_before={t.start_before_seconds}s remaining_slots={t.remaining_slots} "
        f"refresh={t.refresh_interval}s poll={t.poll_interval}s cooldown={t.cooldown_seconds}s",
        f"  Priority fee: {a.compute_unit_price} micro-lamports, compute limit {a.compute_unit_limit}",
        f"  Relay: {'on' if a.enable_jito else 'off'}, tip {a.jito_tip} lamports",
        f"  Max retries: {a.max_retries} (price {s.price_max_retries})",
        f"  Dry run: {s.dry_run}",
    ]


class App:
    """Top-level orchestrator: wires reader, monitor, channels and scheduler."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("orebot", settings.log_level)
        self.events = RuntimeEventLogger(settings.data_dir)

    def _reader(self):
        signer = load_keypair(self.settings.keypair)
        self.log.info("wallet %s", signer.pubkey())
        return signer, LedgerReader.connect(self.settings.rpc, signer.pubkey())

    def _direct(self, reader: LedgerReader, signer) -> DirectChannel:
        adv = self.settings.advanced
        return DirectChannel(
            reader.client,
            signer,
            compute_unit_limit=adv.compute_unit_limit,
            compute_unit_price=adv.compute_unit_price,
            max_retries=adv.max_retries,
            log=self.log,
        )

    def _emit_lines(self, lines: list[str]) -> None:
        for line in lines:
            self.log.info("%s", line)

    async def balance(self) -> dict[str, float]:
        _, reader = self._reader()
        try:
            report = await balance_report(reader)
        finally:
            await reader.close()
        self._emit_lines(balance_lines(report))
        return report

    async def board(self) -> None:
        _, reader = self._reader()
        try:
            board = await reader.get_board()
            clock = await reader.get_clock()
        finally:
            await reader.close()
        self._emit_lines(board_lines(board, clock))

    async def miner(self) -> None:
        _, reader = self._reader()
        try:
            miner = await reader.get_miner()
        finally:
            await reader.close()
        self._emit_lines(miner_lines(miner))

    async def status(self) -> None:
        _, reader = self._reader()
        try:
            self._emit_lines(balance_lines(await balance_report(reader)))
            board = await reader.get_board()
            clock = await reader.get_clock()
            miner = await reader.get_miner()
        finally:
            await reader.close()
        self._emit_lines(status_lines(board, clock, miner))

    async def claim(self) -> str:
        signer, reader = self._reader()
        try:
            pipeline = SubmissionPipeline(
                self._direct(reader, signer),
                None,
                signer.pubkey(),
                dry_run=self.settings.dry_run,
                log=self.log,
                events=self.events,
            )
            return await pipeline.claim()
        finally:
            await reader.close()

    async def run(self) -> None:
        s = self.settings
        self.log.info(
            "starting orebot strategy=%s dry_run=%s relay=%s",
            s.strategy.kind,
            s.dry_run,
            s.advanced.enable_jito,
        )
        self._emit_lines(settings_lines(s))
        signer, reader = self._reader()
        oracle = PriceOracle(log=self.log)
        try:
            monitor = await StateMonitor.create(
                reader,
                refresh_interval=s.timing.refresh_interval,
                log=self.log,
                events=self.events,
            )
            try:
                self._emit_lines(balance_lines(await balance_report(reader)))
            except OreBotError as exc:
                self.log.warning("startup balance unavailable: %s", exc)
            try:
                await oracle.fetch_with_retry(s.price_max_retries)
            except PriceUnavailable as exc:
                self.log.warning("initial price unavailable: %s", exc)

            direct = self._direct(reader, signer)
            relay = None
            if s.advanced.enable_jito:
                relay = RelayChannel(
                    signer,
                    direct.latest_blockhash,
                    tip_lamports=s.advanced.jito_tip,
                    compute_unit_limit=s.advanced.compute_unit_limit,
                    log=self.log,
                    events=self.events,
                )
            pipeline = SubmissionPipeline(
                direct,
                relay,
                signer.pubkey(),
                dry_run=s.dry_run,
                log=self.log,
                events=self.events,
            )
            scheduler = Scheduler(
                monitor,
                reader,
                StrategyEngine(s.strategy),
                pipeline,
                timing=s.timing,
                oracle=oracle,
                store=SnapshotStore(s.data_dir),
                price_max_retries=s.price_max_retries,
                log=self.log,
                events=self.events,
            )
            supervisor = LoopSupervisor(health=RuntimeHealth(), events=self.events)
            tasks = [supervisor.spawn(name, fn, self.log) for name, fn in monitor.loops().items()]
            tasks.append(asyncio.create_task(supervisor.health_loop(self.log), name="runtime-health"))
            self.events.emit("engine.start", wallet=str(signer.pubkey()), dry_run=s.dry_run)
            try:
                await scheduler.run()
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await oracle.close()
            await reader.close()


def run_main(settings: Settings) -> None:
    asyncio.run(App(settings).run())
