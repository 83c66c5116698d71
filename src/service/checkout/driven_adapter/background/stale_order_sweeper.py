from typing import Callable

import anyio
from anyio.abc import TaskGroup

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.command.expire_stale_orders_use_case import ExpireStaleOrdersUseCase


class StaleOrderSweeper:
    """Runs the stale-order expiry on a fixed interval inside the app's task group"""

    def __init__(
        self,
        *,
        use_case_factory: Callable[[], ExpireStaleOrdersUseCase],
        interval_seconds: float = 60.0,
    ) -> None:
        self.use_case_factory = use_case_factory
        self.interval_seconds = interval_seconds

    async def start(self, *, task_group: TaskGroup) -> None:
        task_group.start_soon(self._sweep_loop)  # pyrefly: ignore[bad-argument-type]
        Logger.base.info(f'🧹 [Sweeper] Started, every {self.interval_seconds}s')

    async def _sweep_loop(self) -> None:
        while True:
            await anyio.sleep(self.interval_seconds)
            await self.sweep_once()

    async def sweep_once(self) -> None:
        try:
            await self.use_case_factory().execute()
        except Exception as e:
            # Database hiccups must not kill the loop
            Logger.base.error(f'❌ [Sweeper] Sweep failed: {e}')
