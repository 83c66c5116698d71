from typing import Optional

from fastapi import APIRouter, Depends, Response
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.command.create_order_and_initiate_payment_use_case import (
    CreateOrderAndInitiatePaymentUseCase,
)
from src.service.checkout.app.command.log_checkout_rating_use_case import (
    LogCheckoutRatingUseCase,
)
from src.service.checkout.app.command.retry_payment_use_case import RetryPaymentUseCase
from src.service.checkout.app.dto.checkout_dto import CheckoutResult, ClientContext
from src.service.checkout.app.query.check_for_recent_order_use_case import (
    CheckForRecentOrderUseCase,
)
from src.service.checkout.app.query.get_transaction_status_use_case import (
    GetTransactionStatusUseCase,
)
from src.service.checkout.driving_adapter.http_controller.auth.client_context import (
    get_client_context,
    get_optional_user_id,
)
from src.service.checkout.driving_adapter.http_controller.schema.checkout_schema import (
    CheckoutFeedbackRequest,
    CheckoutFeedbackResponse,
    CheckoutResponse,
    CreateOrderRequest,
    RecentOrderResponse,
    RetryPaymentRequest,
    TransactionStatusResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


def _checkout_response(result: CheckoutResult, response: Response) -> CheckoutResponse:
    # Failures keep the structured body; the status code mirrors the error code
    if not result.success and result.error_code is not None:
        response.status_code = result.error_code.http_status
    return CheckoutResponse.from_result(result)


@router.post('/orders')
@Logger.io
async def create_order(
    request: CreateOrderRequest,
    response: Response,
    client: ClientContext = Depends(get_client_context),
    use_case: CreateOrderAndInitiatePaymentUseCase = Depends(
        CreateOrderAndInitiatePaymentUseCase.depends
    ),
) -> CheckoutResponse:
    with tracer.start_as_current_span('controller.create_order') as span:
        span.set_attribute('listing.id', request.listing_id)
        span.set_attribute('checkout.is_retry', request.is_retry)

        result = await use_case.create_order_and_initiate_payment(
            payload=request.to_payload(),
            client=client,
            is_retry=request.is_retry,
            order_id=request.order_id,
            transaction_id=request.transaction_id,
        )

        if result.order_id:
            span.set_attribute('order.id', result.order_id)
        return _checkout_response(result, response)


@router.post('/orders/{order_id}/retry')
@Logger.io
async def retry_payment(
    order_id: str,
    response: Response,
    request: Optional[RetryPaymentRequest] = None,
    use_case: RetryPaymentUseCase = Depends(RetryPaymentUseCase.depends),
) -> CheckoutResponse:
    with tracer.start_as_current_span('controller.retry_payment') as span:
        span.set_attribute('order.id', order_id)
        result = await use_case.retry(
            order_id=order_id, transaction_id=request.transaction_id if request else None
        )
        return _checkout_response(result, response)


@router.get('/transactions/{transaction_id}/status')
@Logger.io
async def get_transaction_status(
    transaction_id: str,
    use_case: GetTransactionStatusUseCase = Depends(GetTransactionStatusUseCase.depends),
) -> TransactionStatusResponse:
    result = await use_case.get_transaction_status(transaction_id=transaction_id)
    return TransactionStatusResponse.from_result(result)


@router.get('/listings/{listing_id}/recent-order')
@Logger.io
async def check_for_recent_order(
    listing_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    use_case: CheckForRecentOrderUseCase = Depends(CheckForRecentOrderUseCase.depends),
) -> RecentOrderResponse:
    result = await use_case.check_for_recent_order(listing_id=listing_id, user_id=user_id)
    return RecentOrderResponse.from_result(result)


@router.post('/orders/{order_id}/feedback')
@Logger.io
async def log_checkout_rating(
    order_id: str,
    request: CheckoutFeedbackRequest,
    response: Response,
    user_id: Optional[str] = Depends(get_optional_user_id),
    use_case: LogCheckoutRatingUseCase = Depends(LogCheckoutRatingUseCase.depends),
) -> CheckoutFeedbackResponse:
    result = await use_case.log_checkout_rating(
        rating=request.rating, reason=request.reason, order_id=order_id, user_id=user_id
    )
    if not result.success:
        response.status_code = 400
    return CheckoutFeedbackResponse(success=result.success, error=result.error)
