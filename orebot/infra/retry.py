"""Retry with exponential backoff.

Used by the price feed, the blockhash fetch and the direct submission channel.
The first attempt runs immediately; retry ``n`` (1-based) waits
``base_delay * 2 ** (n - 1)`` seconds beforehand.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

_T = TypeVar("_T")


def backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    return float(base_delay) * (2 ** (max(1, int(attempt)) - 1))


def _always(_exc: BaseException) -> bool:
    return True


async def retry_async(
    operation: Callable[[], Awaitable[_T]],
    *,
    max_retries: int,
    base_delay: float = 1.0,
    is_retryable: Callable[[BaseException], bool] = _always,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    log: logging.Logger | None = None,
    label: str = "operation",
) -> _T:
    retries = 0
    while True:
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not is_retryable(exc) or retries >= max_retries:
                raise
            retries += 1
            wait_s = backoff_delay(retries, base_delay)
            if log is not None:
                log.info(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    label,
                    retries,
                    max_retries,
                    wait_s,
                    exc,
                )
            await sleep(wait_s)
