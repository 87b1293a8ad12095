import asyncio
from types import SimpleNamespace

import httpx
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from orebot.chain import program
from orebot.domain import SubmissionRejected, SubmissionTransient
from orebot.execution import DirectChannel, classify_error, padded_unit_limit


class FakeRpc:
    """Scripted send results: exceptions are raised, anything else is returned as the signature."""

    def __init__(self, script):
        self.script = list(script)
        self.sent = []
        self.blockhash_calls = 0

    async def get_latest_blockhash(self, commitment=None):
        self.blockhash_calls += 1
        return SimpleNamespace(value=SimpleNamespace(blockhash=Hash.default()))

    async def send_raw_transaction(self, txn, opts=None):
        self.sent.append((txn, opts))
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return SimpleNamespace(value=step)


def _channel(rpc, sleeps, max_retries=4):
    return DirectChannel(rpc, Keypair(), compute_unit_limit=400_000, compute_unit_price=20_000, max_retries=max_retries, sleep=sleeps)


def _ix(signer):
    return program.deploy_ix(signer, signer, 1_000_000, 3, program.squares_mask([0, 1]))


def test_classify_error() -> None:
    assert isinstance(classify_error(httpx.ConnectTimeout("slow")), SubmissionTransient)
    assert isinstance(classify_error(Exception("Blockhash not found")), SubmissionTransient)
    assert isinstance(classify_error(Exception("Connection reset by peer")), SubmissionTransient)
    assert isinstance(classify_error(Exception("custom program error: 0x1")), SubmissionRejected)
    try:
        try:
            raise httpx.ReadTimeout("read")
        except httpx.ReadTimeout as inner:
            raise RuntimeError("rpc call failed") from inner
    except RuntimeError as outer:
        assert isinstance(classify_error(outer), SubmissionTransient)


def test_unit_limit_padding() -> None:
    assert padded_unit_limit(400_000) == 440_000


def test_transient_failures_are_retried(sleeps) -> None:
    sig = Signature.default()
    rpc = FakeRpc([Exception("Blockhash not found"), httpx.ConnectError("refused"), sig])
    channel = _channel(rpc, sleeps)
    out = asyncio.run(channel.submit([_ix(channel.signer.pubkey())], label="deploy"))
    assert out == str(sig)
    assert sleeps.calls == [1.0, 2.0]
    assert rpc.blockhash_calls == 3
    txn, opts = rpc.sent[-1]
    assert opts.skip_preflight is True
    tx = VersionedTransaction.from_bytes(txn)
    assert len(tx.message.instructions) == 3


def test_rejection_is_not_retried(sleeps) -> None:
    rpc = FakeRpc([Exception("Transaction simulation failed: custom program error: 0x0")])
    channel = _channel(rpc, sleeps)
    with pytest.raises(SubmissionRejected) as info:
        asyncio.run(channel.submit([_ix(channel.signer.pubkey())]))
    assert info.value.channel == "direct"
    assert len(rpc.sent) == 1
    assert sleeps.calls == []


def test_retry_ceiling(sleeps) -> None:
    rpc = FakeRpc([Exception("connection closed")] * 5)
    channel = _channel(rpc, sleeps, max_retries=2)
    with pytest.raises(SubmissionTransient):
        asyncio.run(channel.submit([_ix(channel.signer.pubkey())]))
    assert len(rpc.sent) == 3
    assert sleeps.calls == [1.0, 2.0]
