from typing import Callable

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.dto.checkout_dto import CheckoutResult
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


GATEWAY_FAILED_MESSAGE = 'Failed to initiate M-Pesa payment.'


class InitiatePaymentForOrderUseCase:
    """
    Send the STK push for an already committed order and remember its request id.

    Runs after the order commit, outside of it: a gateway failure leaves the
    order and transaction pending so the buyer can retry.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        payment_gateway: IPaymentGateway,
    ) -> None:
        self.uow_factory = uow_factory
        self.payment_gateway = payment_gateway
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def initiate(
        self, *, order: Order, transaction_id: str, is_retry: bool = False
    ) -> CheckoutResult:
        with self.tracer.start_as_current_span(
            'use_case.initiate_payment_for_order',
            attributes={
                'order.id': order.id,
                'transaction.id': transaction_id,
                'checkout.is_retry': is_retry,
            },
        ) as span:
            result = await self.payment_gateway.initiate(
                phone_number=order.user_phone,
                amount=order.gateway_amount,
                order_id=order.id,
            )
            succeeded = result.success and bool(result.checkout_request_id)
            metrics.record_payment_initiation(success=succeeded, is_retry=is_retry)

            if not succeeded or result.checkout_request_id is None:
                Logger.base.warning(
                    f'📵 [PAYMENT] STK push for order {order.id} failed: {result.error}'
                )
                return CheckoutResult.from_error(
                    CheckoutError(
                        CheckoutErrorCode.GATEWAY_INITIATION_FAILED,
                        result.error or GATEWAY_FAILED_MESSAGE,
                    ),
                    order_id=order.id,
                    transaction_id=transaction_id,
                )

            span.set_attribute('mpesa.checkout_request_id', result.checkout_request_id)
            async with self.uow_factory() as uow:
                transaction = await uow.transaction_command_repo.get_by_id(
                    transaction_id=transaction_id
                )
                if transaction is None:
                    raise CheckoutError(
                        CheckoutErrorCode.ORDER_NOT_FOUND, 'Transaction not found.'
                    )
                await uow.transaction_command_repo.update(
                    transaction=transaction.attach_checkout_request(
                        checkout_request_id=result.checkout_request_id
                    )
                )
                await uow.commit()

            Logger.base.info(
                f'📲 [PAYMENT] Order {order.id} awaiting payment '
                f'(request {result.checkout_request_id})'
            )
            return CheckoutResult.ok(order_id=order.id, transaction_id=transaction_id)
