from datetime import datetime, timedelta, timezone
from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.checkout_dto import RecentOrderResult
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo


class CheckForRecentOrderUseCase:
    """
    Duplicate-submission guard

    Tells the checkout page whether the signed-in buyer already paid for this
    listing a moment ago. Advisory only: any problem answers "no recent order".
    """

    def __init__(self, *, order_query_repo: IOrderQueryRepo, window_seconds: int = 180) -> None:
        self.order_query_repo = order_query_repo
        self.window_seconds = window_seconds

    @classmethod
    @inject
    def depends(
        cls,
        order_query_repo: IOrderQueryRepo = Depends(Provide[Container.order_query_repo]),
        settings: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            order_query_repo=order_query_repo,
            window_seconds=settings.RECENT_ORDER_WINDOW_SECONDS,
        )

    @Logger.io
    async def check_for_recent_order(
        self, *, listing_id: str, user_id: Optional[str]
    ) -> RecentOrderResult:
        if not user_id:
            return RecentOrderResult(recent_order=False)

        try:
            order = await self.order_query_repo.find_latest_completed(
                user_id=user_id,
                listing_id=listing_id,
                created_after=datetime.now(timezone.utc) - timedelta(seconds=self.window_seconds),
            )
        except Exception as e:
            Logger.base.error(f'🔍 [RECENT-ORDER] Error checking for recent order: {e}')
            return RecentOrderResult(recent_order=False)

        if order is None:
            return RecentOrderResult(recent_order=False)
        return RecentOrderResult(recent_order=True, order_id=order.id)
