from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.command.initiate_payment_for_order_use_case import (
    InitiatePaymentForOrderUseCase,
)
from src.service.checkout.app.dto.checkout_dto import CheckoutResult
from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.transaction_entity import Transaction, TransactionStatus
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


class RetryPaymentUseCase:
    """
    Send a fresh STK push for an existing order.

    Never touches the inventory: the order and transaction go back to pending,
    the transaction's retry_count is incremented and the new request id is
    stored. Paid orders and orders whose tickets were released by the
    stale-order sweep are refused.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        payment_initiator: InitiatePaymentForOrderUseCase,
    ) -> None:
        self.uow_factory = uow_factory
        self.payment_initiator = payment_initiator
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        payment_initiator: InitiatePaymentForOrderUseCase = Depends(
            Provide[Container.payment_initiator]
        ),
    ) -> Self:
        return cls(uow_factory=uow_factory, payment_initiator=payment_initiator)

    @Logger.io
    async def retry(self, *, order_id: str, transaction_id: Optional[str] = None) -> CheckoutResult:
        with self.tracer.start_as_current_span(
            'use_case.retry_payment', attributes={'order.id': order_id}
        ):
            try:
                order, transaction = await self._reset_for_retry(
                    order_id=order_id, transaction_id=transaction_id
                )
                Logger.base.info(
                    f'🔄 [RETRY] Order {order.id} retry #{transaction.retry_count}'
                )
                result = await self.payment_initiator.initiate(
                    order=order, transaction_id=transaction.id, is_retry=True
                )
            except CheckoutError as e:
                Logger.base.warning(f'🔄 [RETRY] Order {order_id} refused: {e.message}')
                result = CheckoutResult.from_error(
                    e, order_id=order_id, transaction_id=transaction_id
                )
            except Exception as e:
                Logger.base.exception(f'💥 [RETRY] Unexpected error for order {order_id}: {e}')
                result = CheckoutResult.unexpected(order_id=order_id, transaction_id=transaction_id)

            metrics.record_checkout(
                result=result.error_code.value if result.error_code else 'success'
            )
            return result

    async def _reset_for_retry(
        self, *, order_id: str, transaction_id: Optional[str]
    ) -> tuple[Order, Transaction]:
        async with self.uow_factory() as uow:
            snapshot = await uow.order_command_repo.get_by_id(order_id=order_id)
            if snapshot is None:
                raise CheckoutError(CheckoutErrorCode.ORDER_NOT_FOUND, 'Order not found.')

            # Same lock the settlement and the stale-order sweep take
            await uow.listing_command_repo.get_for_update(listing_id=snapshot.listing_id)
            order = await uow.order_command_repo.get_by_id(order_id=order_id)
            if transaction_id:
                transaction = await uow.transaction_command_repo.get_by_id(
                    transaction_id=transaction_id
                )
            else:
                transaction = await uow.transaction_command_repo.get_by_order_id(order_id=order_id)

            if order is None or transaction is None or transaction.order_id != order.id:
                raise CheckoutError(CheckoutErrorCode.ORDER_NOT_FOUND, 'Order not found.')
            if transaction.status == TransactionStatus.COMPLETED:
                raise CheckoutError(
                    CheckoutErrorCode.ORDER_ALREADY_PAID, 'This order has already been paid.'
                )

            order = order.reset_to_pending()
            transaction = transaction.reset_for_retry()
            await uow.order_command_repo.update(order=order)
            await uow.transaction_command_repo.update(transaction=transaction)
            await uow.commit()

        return order, transaction
