from __future__ import annotations

import asyncio
from collections.abc import Sequence

import httpx
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Processed
from solana.rpc.types import TxOpts
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from orebot.domain import SubmissionError, SubmissionRejected, SubmissionTransient
from orebot.infra import retry_async

_TRANSIENT_MARKERS = ("blockhash", "timeout", "timed out", "connection")
_TRANSIENT_TYPES = (
    httpx.TimeoutException,
    httpx.TransportError,
    asyncio.TimeoutError,
    ConnectionError,
)


def _chain(exc: BaseException):
    seen = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        yield cur
        cur = cur.__cause__ or cur.__context__


def classify_error(exc: BaseException, *, channel: str = "direct") -> SubmissionError:
    """Map a send failure to SubmissionTransient (retry) or SubmissionRejected (stop)."""
    if isinstance(exc, SubmissionError):
        return exc
    for link in _chain(exc):
        if isinstance(link, _TRANSIENT_TYPES):
            return SubmissionTransient(f"{type(link).__name__}: {link}", channel=channel)
    text = str(exc).lower()
    if any(marker in text for marker in _TRANSIENT_MARKERS):
        return SubmissionTransient(str(exc), channel=channel)
    return SubmissionRejected(str(exc) or type(exc).__name__, channel=channel)


def build_transaction(
    signer: Keypair,
    instructions: Sequence[Instruction],
    blockhash: Hash,
) -> VersionedTransaction:
    message = MessageV0.try_compile(signer.pubkey(), list(instructions), [], blockhash)
    return VersionedTransaction(message, [signer])


def padded_unit_limit(units: int) -> int:
    return int(units) * 11 // 10


class DirectChannel:
    """Channel A: sign and broadcast through the RPC node with bounded retry.

    Each attempt fetches a fresh blockhash, prepends the compute budget
    (limit padded by 10% plus the priority fee) and sends with preflight
    skipped. Only transient failures are retried.
    """

    name = "direct"

    def __init__(
        self,
        client: AsyncClient,
        signer: Keypair,
        *,
        compute_unit_limit: int = 400_000,
        compute_unit_price: int = 20_000,
        max_retries: int = 4,
        sleep=asyncio.sleep,
        log=None,
    ):
        self.client = client
        self.signer = signer
        self.compute_unit_limit = int(compute_unit_limit)
        self.compute_unit_price = int(compute_unit_price)
        self.max_retries = int(max_retries)
        self._sleep = sleep
        self.log = log

    def budget_instructions(self) -> list[Instruction]:
        return [
            set_compute_unit_limit(padded_unit_limit(self.compute_unit_limit)),
            set_compute_unit_price(self.compute_unit_price),
        ]

    async def latest_blockhash(self) -> Hash:
        resp = await self.client.get_latest_blockhash(commitment=Processed)
        return resp.value.blockhash

    async def _attempt(self, instructions: Sequence[Instruction]) -> str:
        try:
            blockhash = await self.latest_blockhash()
            tx = build_transaction(self.signer, [*self.budget_instructions(), *instructions], blockhash)
            resp = await self.client.send_raw_transaction(bytes(tx), opts=TxOpts(skip_preflight=True))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise classify_error(exc, channel=self.name) from exc
        return str(resp.value)

    async def submit(self, instructions: Sequence[Instruction], *, label: str = "transaction") -> str:
        """Send ``instructions`` and return the signature; raises SubmissionError."""
        return await retry_async(
            lambda: self._attempt(instructions),
            max_retries=self.max_retries,
            base_delay=1.0,
            is_retryable=lambda exc: isinstance(exc, SubmissionTransient),
            sleep=self._sleep,
            log=self.log,
            label=f"{self.name} {label}",
        )
