from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_promocode_repo import IPromocodeRepo
from src.service.checkout.domain.entity.promocode_entity import Promocode
from src.service.checkout.driven_adapter.model.promocode_model import PromocodeModel
from src.service.checkout.driven_adapter.repo.entity_mapper import to_promocode_entity


class PromocodeRepoImpl(IPromocodeRepo):
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
    async def get_by_code(self, *, code: str) -> Optional[Promocode]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PromocodeModel).where(PromocodeModel.code == code.strip().upper())
            )
            db_promocode = result.scalar_one_or_none()
            return to_promocode_entity(db_promocode) if db_promocode else None

    @Logger.io
    async def record_usage(self, *, promocode_id: str, revenue: float) -> None:
        async with self._get_session() as session:
            await session.execute(
                update(PromocodeModel)
                .where(PromocodeModel.id == promocode_id)
                .values(
                    usage_count=PromocodeModel.usage_count + 1,
                    revenue_generated=PromocodeModel.revenue_generated + revenue,
                )
                .execution_options(synchronize_session=False)
            )
