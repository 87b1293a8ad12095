from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from orebot.chain import program
from orebot.domain import Snapshot, SubmissionError, lamports_to_sol
from orebot.execution.direct import DirectChannel
from orebot.execution.relay import RelayChannel
from orebot.infra import RuntimeEventLogger


@dataclass(frozen=True)
class DeployResult:
    ok: bool
    reason: str
    round_id: int = 0
    squares: tuple[int, ...] = ()
    amount_lamports: int = 0
    signature: str = ""
    checkpoint_signature: str = ""
    stage: str = "deploy"
    relay_spawned: bool = False


class SubmissionPipeline:
    """Submission boundary: checkpoint if due, then deploy on both channels.

    Only the direct channel decides the outcome. The relay copy is spawned
    before the direct send and never awaited here.
    """

    def __init__(
        self,
        direct: DirectChannel,
        relay: RelayChannel | None,
        authority: Pubkey,
        *,
        dry_run: bool = False,
        log=None,
        events: RuntimeEventLogger | None = None,
    ):
        self.direct = direct
        self.relay = relay
        self.authority = authority
        self.dry_run = dry_run
        self.log = log
        self.events = events or RuntimeEventLogger(None)

    def _info(self, msg: str, *args) -> None:
        if self.log is not None:
            self.log.info(msg, *args)

    async def _checkpoint(self, snapshot: Snapshot) -> tuple[str, DeployResult | None]:
        prior_round = snapshot.miner.round_id
        ix = program.checkpoint_ix(self.authority, self.authority, prior_round)
        self._info("checkpoint round=%d (board at %d)", prior_round, snapshot.round_id)
        if self.dry_run:
            self.events.emit("deploy.checkpoint", round_id=prior_round, dry_run=True)
            return "dry-run-checkpoint", None
        try:
            sig = await self.direct.submit([ix], label="checkpoint")
        except SubmissionError as exc:
            if self.log is not None:
                self.log.error("checkpoint round=%d failed, deploy aborted: %s", prior_round, exc)
            self.events.emit("deploy.checkpoint", round_id=prior_round, ok=False, error=str(exc))
            return "", DeployResult(
                ok=False,
                reason=f"checkpoint_failed: {exc}",
                round_id=snapshot.round_id,
                stage="checkpoint",
            )
        self._info("checkpoint round=%d ok sig=%s", prior_round, sig)
        self.events.emit("deploy.checkpoint", round_id=prior_round, ok=True, signature=sig)
        return sig, None

    def deploy_instruction(self, snapshot: Snapshot, squares: Sequence[int], amount_lamports: int) -> Instruction:
        mask = program.squares_mask(squares)
        return program.deploy_ix(self.authority, self.authority, amount_lamports, snapshot.round_id, mask)

    async def deploy(self, snapshot: Snapshot, squares: Sequence[int], amount_lamports: int) -> DeployResult:
        picked = tuple(int(s) for s in squares)
        round_id = snapshot.round_id
        checkpoint_sig = ""
        if snapshot.needs_checkpoint():
            checkpoint_sig, failed = await self._checkpoint(snapshot)
            if failed is not None:
                return failed

        ix = self.deploy_instruction(snapshot, picked, amount_lamports)
        context = {"round_id": round_id, "squares": list(picked), "amount_lamports": int(amount_lamports)}
        self._info(
            "deploy round=%d squares=%s amount=%.6f SOL each slots_remaining=%d",
            round_id,
            list(picked),
            lamports_to_sol(amount_lamports),
            snapshot.slots_remaining(),
        )

        if self.dry_run:
            self.events.emit("deploy.dry_run", **context)
            return DeployResult(
                ok=True,
                reason="dry_run",
                round_id=round_id,
                squares=picked,
                amount_lamports=int(amount_lamports),
                signature="dry-run-deploy",
                checkpoint_signature=checkpoint_sig,
            )

        relay_spawned = False
        if self.relay is not None:
            self.relay.spawn([ix], label=f"deploy round={round_id}", **context)
            relay_spawned = True

        try:
            sig = await self.direct.submit([ix], label="deploy")
        except SubmissionError as exc:
            if self.log is not None:
                self.log.error("deploy round=%d direct channel failed: %s", round_id, exc)
            self.events.emit("deploy.direct.fail", error=str(exc), error_type=type(exc).__name__, **context)
            return DeployResult(
                ok=False,
                reason=f"{type(exc).__name__}: {exc}",
                round_id=round_id,
                squares=picked,
                amount_lamports=int(amount_lamports),
                checkpoint_signature=checkpoint_sig,
                relay_spawned=relay_spawned,
            )

        self._info(
            "deploy round=%d ok sig=%s total=%.6f SOL",
            round_id,
            sig,
            lamports_to_sol(amount_lamports * len(picked)),
        )
        self.events.emit("deploy.direct.ok", signature=sig, **context)
        return DeployResult(
            ok=True,
            reason="submitted",
            round_id=round_id,
            squares=picked,
            amount_lamports=int(amount_lamports),
            signature=sig,
            checkpoint_signature=checkpoint_sig,
            relay_spawned=relay_spawned,
        )

    async def claim(self) -> str:
        """Claim SOL and ORE rewards in one direct transaction."""
        ixs = [program.claim_sol_ix(self.authority), program.claim_ore_ix(self.authority)]
        if self.dry_run:
            self._info("dry run: claim not sent")
            return "dry-run-claim"
        sig = await self.direct.submit(ixs, label="claim")
        self._info("claim ok sig=%s", sig)
        self.events.emit("claim.ok", signature=sig)
        return sig
