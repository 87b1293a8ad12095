from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from orebot.infra import RuntimeEventLogger
from orebot.runtime.health import RuntimeHealth


class LoopSupervisor:
    """Restarts managed async loops after failure with bounded backoff."""

    def __init__(
        self,
        *,
        base_delay: float = 2.0,
        max_delay: float = 20.0,
        health: RuntimeHealth | None = None,
        events: RuntimeEventLogger | None = None,
        sleep=asyncio.sleep,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.health = health or RuntimeHealth()
        self.events = events or RuntimeEventLogger(None)
        self._sleep = sleep

    async def run_forever(self, name: str, fn: Callable[[], Awaitable[None]], log) -> None:
        delay = self.base_delay
        while True:
            self.health.touch(name, alive=True)
            try:
                await fn()
                self.health.touch(name, alive=False)
                log.warning("loop %s exited cleanly; restarting", name)
            except asyncio.CancelledError:
                self.health.touch(name, alive=False)
                raise
            except Exception as exc:
                self.health.restarted(name, exc)
                log.exception("loop %s crashed: %s", name, exc)
                self.events.emit("loop.crash", name=name, error=str(exc), restarts=self.health.loops[name].restarts)
            await self._sleep(delay)
            delay = min(self.max_delay, max(self.base_delay, delay * 1.5))

    def spawn(self, name: str, fn: Callable[[], Awaitable[None]], log) -> asyncio.Task:
        return asyncio.create_task(self.run_forever(name, fn, log), name=f"loop:{name}")

    async def health_loop(self, log, interval: float = 30.0) -> None:
        while True:
            log.info("runtime-health %s", self.health.summary())
            await self._sleep(interval)
