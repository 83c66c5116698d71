from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.checkout_dto import (
    UNEXPECTED_ERROR_MESSAGE,
    TransactionStatusResult,
)
from src.service.checkout.app.interface.i_transaction_query_repo import ITransactionQueryRepo
from src.service.checkout.domain.mpesa_failure_translator import translate_mpesa_error


class GetTransactionStatusUseCase:
    """What the checkout page polls while the buyer confirms the STK push."""

    def __init__(self, *, transaction_query_repo: ITransactionQueryRepo) -> None:
        self.transaction_query_repo = transaction_query_repo

    @classmethod
    @inject
    def depends(
        cls,
        transaction_query_repo: ITransactionQueryRepo = Depends(
            Provide[Container.transaction_query_repo]
        ),
    ) -> Self:
        return cls(transaction_query_repo=transaction_query_repo)

    @Logger.io
    async def get_transaction_status(self, *, transaction_id: str) -> TransactionStatusResult:
        try:
            transaction = await self.transaction_query_repo.get_by_id(
                transaction_id=transaction_id
            )
        except Exception as e:
            Logger.base.error(f'🔍 [STATUS] Failed to load transaction {transaction_id}: {e}')
            return TransactionStatusResult(success=False, error=UNEXPECTED_ERROR_MESSAGE)

        if transaction is None:
            return TransactionStatusResult(success=False, error='Transaction not found.')

        return TransactionStatusResult(
            success=True,
            status=transaction.status.value,
            fail_reason=translate_mpesa_error(transaction.fail_reason),
            retry_count=transaction.retry_count,
        )
