import asyncio
import random
from pathlib import Path

import base58
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from orebot.chain import program
from orebot.domain import RelayFailure
from orebot.execution import ALREADY_PROCESSED, RELAY_ENDPOINTS, TIP_RECIPIENTS, RelayChannel, interpret_response
from orebot.infra import RuntimeEventLogger


async def _blockhash():
    return Hash.default()


def _relay(post, tmp_path=None, tip=5_000):
    events = RuntimeEventLogger(str(tmp_path) if tmp_path else None)
    return RelayChannel(Keypair(), _blockhash, tip_lamports=tip, post=post, rng=random.Random(3), events=events)


def test_interpret_response() -> None:
    assert interpret_response(200, {"jsonrpc": "2.0", "result": "bundle-1", "id": 1}) == "bundle-1"
    already = {"error": {"code": -32602, "message": ALREADY_PROCESSED}}
    assert interpret_response(400, already) == "already_processed"
    assert interpret_response(400, f"error: {ALREADY_PROCESSED}") == "already_processed"
    with pytest.raises(RelayFailure):
        interpret_response(429, {"error": {"message": "rate limited"}})


def test_bundle_shape() -> None:
    posts = []

    async def post(url, payload):
        posts.append((url, payload))
        return 200, {"result": "bundle-9"}

    relay = _relay(post)
    signer = relay.signer.pubkey()
    ix = program.deploy_ix(signer, signer, 10_000_000, 4, program.squares_mask([2]))
    assert asyncio.run(relay.send([ix])) == "bundle-9"

    url, payload = posts[0]
    assert url in RELAY_ENDPOINTS
    assert payload["method"] == "sendBundle"
    (bundle,) = payload["params"]
    assert len(bundle) == 1
    tx = VersionedTransaction.from_bytes(base58.b58decode(bundle[0]))
    assert len(tx.message.instructions) == 4
    keys = set(tx.message.account_keys)
    assert any(r in keys for r in TIP_RECIPIENTS)


def test_spawned_failure_is_only_logged(tmp_path: Path, event_rows) -> None:
    async def post(url, payload):
        raise ConnectionError("engine down")

    async def scenario():
        relay = _relay(post, tmp_path)
        task = relay.spawn([], label="deploy round=1", round_id=1)
        await task
        await asyncio.sleep(0)
        return relay, task

    relay, task = asyncio.run(scenario())
    assert task.exception() is None
    assert relay.in_flight == 0
    rows = event_rows(relay.events)
    assert rows[-1]["event"] == "relay.fail"
    assert rows[-1]["round_id"] == 1


def test_already_processed_counts_as_landed(tmp_path: Path, event_rows) -> None:
    async def post(url, payload):
        return 400, {"error": {"message": ALREADY_PROCESSED}}

    async def scenario():
        relay = _relay(post, tmp_path)
        await relay.spawn([], label="deploy")
        return relay

    relay = asyncio.run(scenario())
    rows = event_rows(relay.events)
    assert rows[-1]["event"] == "relay.ok"
    assert rows[-1]["result"] == "already_processed"


class BrokenEvents(RuntimeEventLogger):
    def emit(self, event, **fields):
        raise OSError("disk full")


class RecordingLog:
    def __init__(self):
        self.errors = []

    def info(self, msg, *args, **kwargs):
        pass

    def warning(self, msg, *args, **kwargs):
        pass

    def error(self, msg, *args, **kwargs):
        self.errors.append(msg % args)


def test_unexpected_task_error_is_logged() -> None:
    async def post(url, payload):
        return 200, {"result": "bundle-9"}

    log = RecordingLog()
    relay = RelayChannel(Keypair(), _blockhash, post=post, log=log, events=BrokenEvents(None))

    async def scenario():
        task = relay.spawn([], label="deploy round=2")
        await asyncio.wait({task})
        await asyncio.sleep(0)
        return task

    task = asyncio.run(scenario())
    assert isinstance(task.exception(), OSError)
    assert relay.in_flight == 0
    assert log.errors == ["relay task crashed: disk full"]
