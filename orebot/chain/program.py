"""ORE program capability: addresses, account decoding, instruction building.

All byte layouts of the on-chain program live here. Account structs are
little-endian and prefixed with an 8-byte discriminator; the Clock sysvar is a
bare bincode struct. Fixed-point factors are I80F48 (i128 with 48 fractional
bits) and are decoded to exact ``Fraction`` values.
"""
from __future__ import annotations

import struct
from collections.abc import Iterable, Sequence
from fractions import Fraction

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import TransferParams, transfer
from solders.sysvar import CLOCK as CLOCK_SYSVAR_ID

from orebot.domain import SQUARE_COUNT, Board, Clock, Miner, ReadError, Round, Treasury

PROGRAM_ID = Pubkey.from_string("oreV3EG1i9BEgiAJ8b177Z2S2rMarzak4NMv1kULvWv")
MINT_ADDRESS = Pubkey.from_string("oreoU2P8bN6jkk3jbaiVxYnG1dCXcYxwhwyK9jSybcp")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTLsNBE4e8")

_DISCRIMINATOR_LEN = 8
_I80F48_SCALE = 1 << 48

# instruction tags
IX_CHECKPOINT = 2
IX_CLAIM_SOL = 3
IX_CLAIM_ORE = 4
IX_DEPLOY = 6

__all__ = [
    "PROGRAM_ID",
    "MINT_ADDRESS",
    "CLOCK_SYSVAR_ID",
    "board_pda",
    "round_pda",
    "miner_pda",
    "treasury_pda",
    "automation_pda",
    "associated_token_address",
    "decode_board",
    "decode_clock",
    "decode_round",
    "decode_miner",
    "decode_treasury",
    "squares_mask",
    "checkpoint_ix",
    "deploy_ix",
    "claim_sol_ix",
    "claim_ore_ix",
    "tip_ix",
]


def _pda(*seeds: bytes) -> Pubkey:
    return Pubkey.find_program_address(list(seeds), PROGRAM_ID)[0]


def board_pda() -> Pubkey:
    return _pda(b"board")


def round_pda(round_id: int) -> Pubkey:
    return _pda(b"round", int(round_id).to_bytes(8, "little"))


def miner_pda(authority: Pubkey) -> Pubkey:
    return _pda(b"miner", bytes(authority))


def treasury_pda() -> Pubkey:
    return _pda(b"treasury")


def automation_pda(authority: Pubkey) -> Pubkey:
    return _pda(b"automation", bytes(authority))


def associated_token_address(owner: Pubkey, mint: Pubkey = MINT_ADDRESS) -> Pubkey:
    return Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )[0]


# ── account decoding ────────────────────────────────────────────────────────


def _body(label: str, data: bytes, size: int) -> bytes:
    body = bytes(data)[_DISCRIMINATOR_LEN:]
    if len(body) < size:
        raise ReadError(f"{label} account too short: {len(data)} bytes")
    return body


def _i80f48(raw: bytes) -> Fraction:
    return Fraction(int.from_bytes(raw, "little", signed=True), _I80F48_SCALE)


def decode_board(data: bytes) -> Board:
    round_id, start_slot, end_slot = struct.unpack_from("<QQQ", _body("board", data, 24))
    return Board(round_id=round_id, start_slot=start_slot, end_slot=end_slot)


def decode_clock(data: bytes) -> Clock:
    if len(data) < 40:
        raise ReadError(f"clock sysvar too short: {len(data)} bytes")
    slot, epoch_start, epoch, leader_epoch, unix_ts = struct.unpack_from("<QqQQq", bytes(data))
    return Clock(
        slot=slot,
        epoch_start_timestamp=epoch_start,
        epoch=epoch,
        leader_schedule_epoch=leader_epoch,
        unix_timestamp=unix_ts,
    )


def decode_round(data: bytes) -> Round:
    body = _body("round", data, 8 + 8 * SQUARE_COUNT)
    round_id = struct.unpack_from("<Q", body, 0)[0]
    deployed = struct.unpack_from(f"<{SQUARE_COUNT}Q", body, 8)
    return Round(id=round_id, deployed=tuple(deployed), total_deployed=sum(deployed))


# Miner: authority, deployed[25], cumulative[25], checkpoint_fee, checkpoint_id,
# last_claim_ore_at, last_claim_sol_at, rewards_factor, rewards_sol,
# rewards_ore, refined_ore, round_id
_MINER_CHECKPOINT_ID = 32 + 16 * SQUARE_COUNT + 8
_MINER_REWARDS_FACTOR = _MINER_CHECKPOINT_ID + 8 + 16
_MINER_TAIL = _MINER_REWARDS_FACTOR + 16
_MINER_SIZE = _MINER_TAIL + 32


def decode_miner(data: bytes) -> Miner:
    body = _body("miner", data, _MINER_SIZE)
    authority = Pubkey.from_bytes(body[:32])
    checkpoint_id = struct.unpack_from("<Q", body, _MINER_CHECKPOINT_ID)[0]
    rewards_factor = _i80f48(body[_MINER_REWARDS_FACTOR:_MINER_REWARDS_FACTOR + 16])
    rewards_sol, rewards_ore, refined_ore, round_id = struct.unpack_from("<QQQQ", body, _MINER_TAIL)
    return Miner(
        authority=str(authority),
        round_id=round_id,
        checkpoint_id=checkpoint_id,
        rewards_sol=rewards_sol,
        rewards_ore=rewards_ore,
        refined_ore=refined_ore,
        rewards_factor=rewards_factor,
    )


def decode_treasury(data: bytes) -> Treasury:
    body = _body("treasury", data, 16 + 32 + 24)
    balance, motherlode = struct.unpack_from("<QQ", body, 0)
    miner_factor = _i80f48(body[16:32])
    stake_factor = _i80f48(body[32:48])
    total_staked, total_unclaimed, total_refined = struct.unpack_from("<QQQ", body, 48)
    return Treasury(
        balance=balance,
        motherlode=motherlode,
        miner_rewards_factor=miner_factor,
        stake_rewards_factor=stake_factor,
        total_staked=total_staked,
        total_unclaimed=total_unclaimed,
        total_refined=total_refined,
    )


# ── instructions ────────────────────────────────────────────────────────────


def squares_mask(indices: Iterable[int]) -> list[bool]:
    mask = [False] * SQUARE_COUNT
    for idx in indices:
        i = int(idx)
        if not 0 <= i < SQUARE_COUNT:
            raise ValueError(f"square index out of range: {i}")
        mask[i] = True
    return mask


def _mask_bits(mask: Sequence[bool]) -> int:
    bits = 0
    for i, on in enumerate(mask):
        if on:
            bits |= 1 << i
    return bits


def checkpoint_ix(signer: Pubkey, authority: Pubkey, round_id: int) -> Instruction:
    accounts = [
        AccountMeta(signer, is_signer=True, is_writable=True),
        AccountMeta(board_pda(), is_signer=False, is_writable=False),
        AccountMeta(miner_pda(authority), is_signer=False, is_writable=True),
        AccountMeta(round_pda(round_id), is_signer=False, is_writable=True),
        AccountMeta(treasury_pda(), is_signer=False, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(PROGRAM_ID, bytes([IX_CHECKPOINT]), accounts)


def deploy_ix(
    signer: Pubkey,
    authority: Pubkey,
    amount_lamports: int,
    round_id: int,
    mask: Sequence[bool],
) -> Instruction:
    if len(mask) != SQUARE_COUNT:
        raise ValueError(f"mask must have {SQUARE_COUNT} entries")
    data = bytes([IX_DEPLOY]) + struct.pack("<QI", int(amount_lamports), _mask_bits(mask))
    accounts = [
        AccountMeta(signer, is_signer=True, is_writable=True),
        AccountMeta(authority, is_signer=False, is_writable=True),
        AccountMeta(automation_pda(authority), is_signer=False, is_writable=True),
        AccountMeta(board_pda(), is_signer=False, is_writable=True),
        AccountMeta(miner_pda(authority), is_signer=False, is_writable=True),
        AccountMeta(round_pda(round_id), is_signer=False, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(PROGRAM_ID, data, accounts)


def claim_sol_ix(signer: Pubkey) -> Instruction:
    accounts = [
        AccountMeta(signer, is_signer=True, is_writable=True),
        AccountMeta(miner_pda(signer), is_signer=False, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(PROGRAM_ID, bytes([IX_CLAIM_SOL]), accounts)


def claim_ore_ix(signer: Pubkey) -> Instruction:
    treasury = treasury_pda()
    accounts = [
        AccountMeta(signer, is_signer=True, is_writable=True),
        AccountMeta(miner_pda(signer), is_signer=False, is_writable=True),
        AccountMeta(MINT_ADDRESS, is_signer=False, is_writable=True),
        AccountMeta(associated_token_address(signer), is_signer=False, is_writable=True),
        AccountMeta(treasury, is_signer=False, is_writable=True),
        AccountMeta(associated_token_address(treasury), is_signer=False, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(PROGRAM_ID, bytes([IX_CLAIM_ORE]), accounts)


def tip_ix(payer: Pubkey, recipient: Pubkey, lamports: int) -> Instruction:
    return transfer(TransferParams(from_pubkey=payer, to_pubkey=recipient, lamports=int(lamports)))
