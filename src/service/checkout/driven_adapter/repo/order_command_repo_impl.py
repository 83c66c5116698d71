from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.checkout.domain.entity.order_entity import Order, OrderStatus
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.repo.entity_mapper import (
    to_order_entity,
    to_order_model,
)


class OrderCommandRepoImpl(IOrderCommandRepo):
    def __init__(
        self, session_factory: Callable[..., AsyncContextManager[AsyncSession]] | None = None
    ):
        self.session_factory = session_factory
        self.session: AsyncSession | None = None

    @asynccontextmanager
    async def _get_session(self) -> AsyncIterator[AsyncSession]:
        if self.session is not None:
            yield self.session
        elif self.session_factory is not None:
            async with self.session_factory() as session:
                yield session
        else:
            raise RuntimeError('No session or session_factory available')

    @Logger.io
    async def create(self, *, order: Order) -> Order:
        async with self._get_session() as session:
            session.add(to_order_model(order))
            await session.flush()
            return order

    @Logger.io
    async def get_by_id(self, *, order_id: str) -> Optional[Order]:
        async with self._get_session() as session:
            result = await session.execute(
                select(OrderModel)
                .where(OrderModel.id == order_id)
                .execution_options(populate_existing=True)
            )
            db_order = result.scalar_one_or_none()
            return to_order_entity(db_order) if db_order else None

    @Logger.io
    async def update(self, *, order: Order) -> Order:
        async with self._get_session() as session:
            await session.execute(
                update(OrderModel)
                .where(OrderModel.id == order.id)
                .values(
                    status=order.status.value,
                    inventory_released=order.inventory_released,
                    updated_at=order.updated_at,
                )
                .execution_options(synchronize_session=False)
            )
            return order

    @Logger.io
    async def list_stale(self, *, updated_before: datetime, limit: int) -> list[Order]:
        async with self._get_session() as session:
            result = await session.execute(
                select(OrderModel)
                .where(
                    OrderModel.status.in_([OrderStatus.PENDING.value, OrderStatus.FAILED.value]),
                    OrderModel.inventory_released.is_(False),
                    OrderModel.updated_at < updated_before,
                )
                .order_by(OrderModel.updated_at)
                .limit(limit)
            )
            return [to_order_entity(db_order) for db_order in result.scalars().all()]
