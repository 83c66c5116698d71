"""Checkout request/result DTOs."""

from typing import Optional

import attrs

from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.entity.order_entity import (
    OrderTicketLine,
    PaymentType,
    SalesChannel,
)
from src.service.checkout.domain.entity.rate_limit_entity import UNKNOWN_CLIENT
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


UNEXPECTED_ERROR_MESSAGE = 'An unexpected server error occurred.'


@attrs.define(frozen=True)
class OrderPayload:
    """
    What the buyer submitted at checkout.

    The monetary breakdown is computed by the storefront and stored as-is.
    """

    listing_id: str
    user_name: Optional[str]
    user_email: Optional[str]
    user_phone: Optional[str]
    tickets: list[OrderTicketLine]
    subtotal: float
    total: float
    discount: float = 0.0
    platform_fee: float = 0.0
    processing_fee: float = 0.0
    payment_type: PaymentType = PaymentType.FULL
    channel: SalesChannel = SalesChannel.DIRECT
    promocode: Optional[str] = None


@attrs.define(frozen=True)
class ClientContext:
    """Who is calling, as seen by the HTTP layer."""

    ip_address: str = UNKNOWN_CLIENT
    user_agent: str = ''
    user_id: Optional[str] = None
    tracker_promocode_id: Optional[str] = None
    tracker_link_id: Optional[str] = None


@attrs.define(frozen=True)
class CheckoutResult:
    success: bool
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[CheckoutErrorCode] = None

    @classmethod
    def ok(cls, *, order_id: str, transaction_id: str) -> 'CheckoutResult':
        return cls(success=True, order_id=order_id, transaction_id=transaction_id)

    @classmethod
    def from_error(
        cls,
        error: CheckoutError,
        *,
        order_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> 'CheckoutResult':
        return cls(
            success=False,
            order_id=order_id,
            transaction_id=transaction_id,
            error=error.message,
            error_code=error.code,
        )

    @classmethod
    def unexpected(
        cls, *, order_id: Optional[str] = None, transaction_id: Optional[str] = None
    ) -> 'CheckoutResult':
        return cls(
            success=False,
            order_id=order_id,
            transaction_id=transaction_id,
            error=UNEXPECTED_ERROR_MESSAGE,
            error_code=CheckoutErrorCode.UNKNOWN,
        )


@attrs.define(frozen=True)
class RateLimitDecision:
    allowed: bool
    error: Optional[str] = None


@attrs.define(frozen=True)
class TransactionStatusResult:
    success: bool
    status: Optional[str] = None
    fail_reason: Optional[str] = None
    retry_count: int = 0
    error: Optional[str] = None


@attrs.define(frozen=True)
class RecentOrderResult:
    recent_order: bool
    order_id: Optional[str] = None


@attrs.define(frozen=True)
class FeedbackResult:
    success: bool
    error: Optional[str] = None
