from datetime import datetime
from typing import AsyncContextManager, Callable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_rate_limit_repo import IRateLimitRepo
from src.service.checkout.domain.entity.rate_limit_entity import RateLimitRecord
from src.service.checkout.driven_adapter.model.rate_limit_record_model import (
    RateLimitRecordModel,
)


class RateLimitRepoImpl(IRateLimitRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @Logger.io
    async def count_since(self, *, key: str, since: datetime) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(RateLimitRecordModel)
                .where(RateLimitRecordModel.key == key, RateLimitRecordModel.created_at > since)
            )
            return int(result.scalar_one())

    @Logger.io
    async def add(self, *, record: RateLimitRecord) -> None:
        async with self.session_factory() as session:
            session.add(
                RateLimitRecordModel(
                    key=record.key, created_at=record.created_at, expires_at=record.expires_at
                )
            )
            await session.commit()

    @Logger.io
    async def delete_expired(self, *, now: datetime) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(RateLimitRecordModel).where(RateLimitRecordModel.expires_at <= now)
            )
            await session.commit()
            return int(result.rowcount or 0)  # type: ignore[attr-defined]
