from __future__ import annotations

import json
from pathlib import Path

import base58
from solders.keypair import Keypair

from orebot.domain import SignerError


def parse_keypair(raw: str) -> Keypair:
    """Accept a solana-cli JSON byte array or a base58 secret key."""
    value = raw.strip()
    if not value:
        raise SignerError("empty keypair material")
    if value.startswith("["):
        try:
            arr = json.loads(value)
            return Keypair.from_bytes(bytes(arr))
        except (ValueError, TypeError) as exc:
            raise SignerError(f"invalid keypair byte array: {exc}") from exc
    try:
        return Keypair.from_bytes(base58.b58decode(value))
    except ValueError as exc:
        raise SignerError(f"invalid base58 keypair: {exc}") from exc


def load_keypair(path: str | Path) -> Keypair:
    keypair_path = Path(path).expanduser()
    try:
        raw = keypair_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SignerError(f"cannot read keypair file {keypair_path}: {exc}") from exc
    return parse_keypair(raw)
