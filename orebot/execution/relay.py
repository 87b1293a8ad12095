from __future__ import annotations

import asyncio
import json
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import aiohttp
import base58
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from orebot.chain.program import tip_ix
from orebot.domain import RelayFailure
from orebot.execution.direct import build_transaction
from orebot.infra import RuntimeEventLogger

RELAY_ENDPOINTS = (
    "https://amsterdam.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "https://frankfurt.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "https://ny.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "https://slc.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "https://tokyo.mainnet.block-engine.jito.wtf/api/v1/bundles",
)

TIP_RECIPIENTS = tuple(
    Pubkey.from_string(k)
    for k in (
        "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
        "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
        "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
        "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
        "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
        "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
        "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
        "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
    )
)

ALREADY_PROCESSED = "bundle contains an already processed transaction"


def interpret_response(status: int, body: Any) -> str:
    """Return the bundle id, ``"already_processed"``, or raise RelayFailure."""
    if isinstance(body, dict) and body.get("result") is not None:
        return str(body["result"])
    text = str(body.get("error") if isinstance(body, dict) else body)
    if ALREADY_PROCESSED in text:
        return "already_processed"
    raise RelayFailure(f"relay rejected bundle (HTTP {status}): {text}")


class RelayChannel:
    """Channel B: single-transaction bundle posted to a random block engine.

    The transaction carries the compute limit, a zero priority fee and a tip
    to a random recipient ahead of the payload. ``spawn`` detaches the send;
    its outcome only reaches the log and the event file.
    """

    name = "relay"

    def __init__(
        self,
        signer: Keypair,
        blockhash: Callable[[], Awaitable[Hash]],
        *,
        tip_lamports: int = 5_000,
        compute_unit_limit: int = 400_000,
        endpoints: Sequence[str] = RELAY_ENDPOINTS,
        recipients: Sequence[Pubkey] = TIP_RECIPIENTS,
        post: Callable[[str, dict], Awaitable[tuple[int, Any]]] | None = None,
        rng: random.Random | None = None,
        timeout: float = 8.0,
        log=None,
        events: RuntimeEventLogger | None = None,
    ):
        self.signer = signer
        self._blockhash = blockhash
        self.tip_lamports = int(tip_lamports)
        self.compute_unit_limit = int(compute_unit_limit)
        self.endpoints = tuple(endpoints)
        self.recipients = tuple(recipients)
        self._post = post or self._post_json
        self._rng = rng or random.Random()
        self.timeout = float(timeout)
        self.log = log
        self.events = events or RuntimeEventLogger(None)
        self._tasks: set[asyncio.Task] = set()

    def prefix_instructions(self, recipient: Pubkey) -> list[Instruction]:
        return [
            set_compute_unit_limit(self.compute_unit_limit),
            set_compute_unit_price(0),
            tip_ix(self.signer.pubkey(), recipient, self.tip_lamports),
        ]

    def build_bundle(self, instructions: Sequence[Instruction], blockhash: Hash) -> list[str]:
        recipient = self._rng.choice(self.recipients)
        tx = build_transaction(self.signer, [*self.prefix_instructions(recipient), *instructions], blockhash)
        return [base58.b58encode(bytes(tx)).decode("ascii")]

    async def _post_json(self, url: str, payload: dict) -> tuple[int, Any]:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload) as resp:
                text = await resp.text()
                try:
                    body = json.loads(text)
                except ValueError:
                    body = text
                return resp.status, body

    async def send(self, instructions: Sequence[Instruction], *, label: str = "bundle") -> str:
        try:
            blockhash = await self._blockhash()
            bundle = self.build_bundle(instructions, blockhash)
            url = self._rng.choice(self.endpoints)
            payload = {"jsonrpc": "2.0", "id": 1, "method": "sendBundle", "params": [bundle]}
            if self.log is not None:
                self.log.info("relay %s -> %s", label, url)
            status, body = await self._post(url, payload)
        except asyncio.CancelledError:
            raise
        except RelayFailure:
            raise
        except Exception as exc:
            raise RelayFailure(f"relay send failed: {exc}") from exc
        return interpret_response(status, body)

    async def _run(self, instructions: Sequence[Instruction], label: str, context: dict) -> None:
        try:
            result = await self.send(instructions, label=label)
        except RelayFailure as exc:
            if self.log is not None:
                self.log.warning("relay %s failed: %s", label, exc)
            self.events.emit("relay.fail", label=label, error=str(exc), **context)
            return
        if self.log is not None:
            if result == "already_processed":
                self.log.info("relay %s already landed", label)
            else:
                self.log.info("relay %s accepted bundle=%s", label, result)
        self.events.emit("relay.ok", label=label, result=result, **context)

    def spawn(self, instructions: Sequence[Instruction], *, label: str = "bundle", **context: Any) -> asyncio.Task:
        """Fire and forget. The caller never awaits the returned task."""
        task = asyncio.get_running_loop().create_task(self._run(list(instructions), label, context))
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self.log is not None:
            self.log.error("relay task crashed: %s", exc, exc_info=exc)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)
