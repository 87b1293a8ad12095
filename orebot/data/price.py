from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import aiohttp

from orebot.domain import PriceUnavailable
from orebot.infra import retry_async

SOL_MINT = "So11111111111111111111111111111111111111112"
ORE_MINT = "oreoU2P8bN6jkk3jbaiVxYnG1dCXcYxwhwyK9jSybcp"
PRICE_URL = "https://lite-api.jup.ag/price/v3"


@dataclass(frozen=True)
class PriceRecord:
    usd_price: float
    block_id: int
    decimals: int
    price_change_24h: float


def parse_record(mint: str, raw: Any) -> PriceRecord:
    if not isinstance(raw, dict):
        raise PriceUnavailable(f"price record for {mint} missing")
    try:
        return PriceRecord(
            usd_price=float(raw["usdPrice"]),
            block_id=int(raw.get("blockId") or 0),
            decimals=int(raw.get("decimals") or 0),
            price_change_24h=float(raw.get("priceChange24h") or 0.0),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise PriceUnavailable(f"malformed price record for {mint}: {exc}") from exc


def extract_prices(payload: Any) -> tuple[float, float]:
    """Return ``(ore_usd, sol_usd)`` from a price feed response."""
    if not isinstance(payload, dict):
        raise PriceUnavailable("price feed returned a non-object payload")
    ore = parse_record(ORE_MINT, payload.get(ORE_MINT))
    sol = parse_record(SOL_MINT, payload.get(SOL_MINT))
    return ore.usd_price, sol.usd_price


class PriceOracle:
    """USD prices for ORE and SOL from the Jupiter price API."""

    def __init__(
        self,
        *,
        url: str = PRICE_URL,
        timeout: float = 8.0,
        session: aiohttp.ClientSession | None = None,
        log=None,
        sleep=asyncio.sleep,
    ):
        self.url = url
        self.timeout = float(timeout)
        self.log = log
        self._session = session
        self._own_session = session is None
        self._sleep = sleep
        self.last: tuple[float, float] | None = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": "orebot/1.0"},
            )
            self._own_session = True
        return self._session

    async def close(self) -> None:
        if self._own_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _get_json(self) -> Any:
        session = await self._ensure_session()
        params = {"ids": f"{SOL_MINT},{ORE_MINT}"}
        try:
            async with session.get(self.url, params=params) as resp:
                if resp.status != 200:
                    raise PriceUnavailable(f"price feed HTTP {resp.status}")
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise PriceUnavailable(f"price feed unreachable: {exc}") from exc

    async def fetch_prices(self) -> tuple[float, float]:
        prices = extract_prices(await self._get_json())
        self.last = prices
        if self.log is not None:
            self.log.info("price updated ORE=$%.4f SOL=$%.2f", prices[0], prices[1])
        return prices

    async def fetch_with_retry(self, max_retries: int) -> tuple[float, float]:
        return await retry_async(
            self.fetch_prices,
            max_retries=max_retries,
            base_delay=1.0,
            is_retryable=lambda exc: isinstance(exc, PriceUnavailable),
            sleep=self._sleep,
            log=self.log,
            label="price fetch",
        )
