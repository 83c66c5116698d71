from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_transaction_command_repo import (
    ITransactionCommandRepo,
)
from src.service.checkout.domain.entity.transaction_entity import Transaction
from src.service.checkout.driven_adapter.model.transaction_model import TransactionModel
from src.service.checkout.driven_adapter.repo.entity_mapper import (
    to_transaction_entity,
    to_transaction_model,
)


class TransactionCommandRepoImpl(ITransactionCommandRepo):
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

    async def _get_one(self, *criteria) -> Optional[Transaction]:
        async with self._get_session() as session:
            # Bulk updates bypass the identity map, so always reload from the row
            result = await session.execute(
                select(TransactionModel)
                .where(*criteria)
                .execution_options(populate_existing=True)
            )
            db_transaction = result.scalar_one_or_none()
            return to_transaction_entity(db_transaction) if db_transaction else None

    @Logger.io
    async def create(self, *, transaction: Transaction) -> Transaction:
        async with self._get_session() as session:
            session.add(to_transaction_model(transaction))
            await session.flush()
            return transaction

    @Logger.io
    async def get_by_id(self, *, transaction_id: str) -> Optional[Transaction]:
        return await self._get_one(TransactionModel.id == transaction_id)

    @Logger.io
    async def get_by_order_id(self, *, order_id: str) -> Optional[Transaction]:
        return await self._get_one(TransactionModel.order_id == order_id)

    @Logger.io
    async def get_by_checkout_request_id(
        self, *, checkout_request_id: str
    ) -> Optional[Transaction]:
        return await self._get_one(
            TransactionModel.mpesa_checkout_request_id == checkout_request_id
        )

    @Logger.io
    async def update(self, *, transaction: Transaction) -> Transaction:
        async with self._get_session() as session:
            await session.execute(
                update(TransactionModel)
                .where(TransactionModel.id == transaction.id)
                .values(
                    status=transaction.status.value,
                    mpesa_checkout_request_id=transaction.mpesa_checkout_request_id,
                    mpesa_callback_data=transaction.mpesa_callback_data,
                    mpesa_confirmation_code=transaction.mpesa_confirmation_code,
                    mpesa_transaction_date=transaction.mpesa_transaction_date,
                    mpesa_payer_phone_number=transaction.mpesa_payer_phone_number,
                    fail_reason=transaction.fail_reason,
                    retry_count=transaction.retry_count,
                    updated_at=transaction.updated_at,
                )
                .execution_options(synchronize_session=False)
            )
            return transaction
