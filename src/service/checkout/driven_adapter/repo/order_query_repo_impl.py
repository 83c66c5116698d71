from datetime import datetime
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.checkout.domain.entity.order_entity import Order, OrderStatus
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.repo.entity_mapper import to_order_entity


class OrderQueryRepoImpl(IOrderQueryRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @Logger.io
    async def find_latest_completed(
        self, *, user_id: str, listing_id: str, created_after: datetime
    ) -> Optional[Order]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(OrderModel)
                .where(
                    OrderModel.user_id == user_id,
                    OrderModel.listing_id == listing_id,
                    OrderModel.status == OrderStatus.COMPLETED.value,
                    OrderModel.created_at >= created_after,
                )
                .order_by(OrderModel.created_at.desc())
                .limit(1)
            )
            db_order = result.scalar_one_or_none()
            return to_order_entity(db_order) if db_order else None
