from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_transaction_query_repo import ITransactionQueryRepo
from src.service.checkout.domain.entity.transaction_entity import Transaction
from src.service.checkout.driven_adapter.model.transaction_model import TransactionModel
from src.service.checkout.driven_adapter.repo.entity_mapper import to_transaction_entity


class TransactionQueryRepoImpl(ITransactionQueryRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @Logger.io
    async def get_by_id(self, *, transaction_id: str) -> Optional[Transaction]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TransactionModel).where(TransactionModel.id == transaction_id)
            )
            db_transaction = result.scalar_one_or_none()
            return to_transaction_entity(db_transaction) if db_transaction else None
