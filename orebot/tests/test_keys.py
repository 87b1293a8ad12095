import json
from pathlib import Path

import base58
import pytest
from solders.keypair import Keypair

from orebot.chain import load_keypair, parse_keypair
from orebot.domain import SignerError


def test_parse_json_byte_array() -> None:
    kp = Keypair()
    assert parse_keypair(json.dumps(list(bytes(kp)))).pubkey() == kp.pubkey()


def test_parse_base58_secret() -> None:
    kp = Keypair()
    assert parse_keypair(base58.b58encode(bytes(kp)).decode()).pubkey() == kp.pubkey()


@pytest.mark.parametrize("raw", ["", "   ", "[not json", "not-base58-0OIl!"])
def test_bad_material_raises_signer_error(raw) -> None:
    with pytest.raises(SignerError):
        parse_keypair(raw)


def test_load_keypair_file(tmp_path: Path) -> None:
    kp = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(kp))))
    assert load_keypair(path).pubkey() == kp.pubkey()
    with pytest.raises(SignerError):
        load_keypair(tmp_path / "missing.json")
