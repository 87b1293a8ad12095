from __future__ import annotations

import struct

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Processed
from solders.pubkey import Pubkey

from orebot.chain import program
from orebot.domain import (
    AccountNotFound,
    Board,
    Clock,
    Miner,
    ReadError,
    Round,
    Treasury,
)


class LedgerReader:
    """Typed reads of the ORE program accounts over a Solana RPC endpoint.

    Every read uses processed commitment. A missing account raises
    ``AccountNotFound``; transport and decode failures raise ``ReadError``.
    """

    def __init__(self, client: AsyncClient, authority: Pubkey):
        self.client = client
        self.authority = authority

    @classmethod
    def connect(cls, rpc_url: str, authority: Pubkey) -> "LedgerReader":
        return cls(AsyncClient(rpc_url, commitment=Processed), authority)

    async def close(self) -> None:
        await self.client.close()

    async def _account_data(self, label: str, address: Pubkey) -> bytes:
        try:
            resp = await self.client.get_account_info(address, commitment=Processed)
        except Exception as exc:
            raise ReadError(f"{label} fetch failed: {exc}") from exc
        if resp.value is None:
            raise AccountNotFound(label, str(address))
        return bytes(resp.value.data)

    async def _decoded(self, label: str, address: Pubkey, decode):
        data = await self._account_data(label, address)
        try:
            return decode(data)
        except (ValueError, IndexError, struct.error) as exc:
            raise ReadError(f"{label} decode failed: {exc}") from exc

    async def get_board(self) -> Board:
        return await self._decoded("board", program.board_pda(), program.decode_board)

    async def get_clock(self) -> Clock:
        return await self._decoded("clock", program.CLOCK_SYSVAR_ID, program.decode_clock)

    async def get_round(self, round_id: int) -> Round:
        return await self._decoded(f"round {round_id}", program.round_pda(round_id), program.decode_round)

    async def get_miner(self, authority: Pubkey | None = None) -> Miner:
        owner = authority or self.authority
        return await self._decoded("miner", program.miner_pda(owner), program.decode_miner)

    async def get_treasury(self) -> Treasury:
        return await self._decoded("treasury", program.treasury_pda(), program.decode_treasury)

    async def get_balance(self, owner: Pubkey | None = None) -> int:
        """Wallet balance in lamports."""
        try:
            resp = await self.client.get_balance(owner or self.authority, commitment=Processed)
        except Exception as exc:
            raise ReadError(f"balance fetch failed: {exc}") from exc
        return int(resp.value)

    async def get_wallet_ore(self, owner: Pubkey | None = None) -> int:
        """Raw ORE units held in the owner's associated token account, 0 if none."""
        ata = program.associated_token_address(owner or self.authority)
        try:
            info = await self.client.get_account_info(ata, commitment=Processed)
            if info.value is None:
                return 0
            resp = await self.client.get_token_account_balance(ata, commitment=Processed)
        except Exception as exc:
            raise ReadError(f"token balance fetch failed: {exc}") from exc
        return int(resp.value.amount)
