from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.service.checkout.app.dto.checkout_dto import (
    CheckoutResult,
    OrderPayload,
    RecentOrderResult,
    TransactionStatusResult,
)
from src.service.checkout.domain.entity.order_entity import (
    OrderTicketLine,
    PaymentType,
    SalesChannel,
)


class TicketLineRequest(BaseModel):
    name: str
    quantity: int
    price: float


class CreateOrderRequest(BaseModel):
    # Buyer fields may be missing; the use case answers with missing-buyer-info
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            'example': {
                'listing_id': '01934b7e-6a3f-7c2d-9e1a-2b3c4d5e6f70',
                'user_name': 'Wanjiru Kamau',
                'user_email': 'wanjiru@example.com',
                'user_phone': '0712345678',
                'tickets': [{'name': 'Regular', 'quantity': 2, 'price': 1500}],
                'subtotal': 3000,
                'discount': 0,
                'platform_fee': 150,
                'processing_fee': 45.5,
                'total': 3195.5,
                'payment_type': 'full',
                'channel': 'direct',
                'promocode': None,
            }
        },
    )

    listing_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_phone: Optional[str] = Field(default=None, alias='phone_number')
    tickets: List[TicketLineRequest] = []
    subtotal: float = 0
    discount: float = 0
    platform_fee: float = 0
    processing_fee: float = 0
    total: float = 0
    payment_type: PaymentType = PaymentType.FULL
    channel: SalesChannel = SalesChannel.DIRECT
    promocode: Optional[str] = None
    is_retry: bool = False
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None

    def to_payload(self) -> OrderPayload:
        return OrderPayload(
            listing_id=self.listing_id,
            user_name=self.user_name,
            user_email=self.user_email,
            user_phone=self.user_phone,
            tickets=[
                OrderTicketLine(name=t.name, quantity=t.quantity, price=t.price)
                for t in self.tickets
            ],
            subtotal=self.subtotal,
            total=self.total,
            discount=self.discount,
            platform_fee=self.platform_fee,
            processing_fee=self.processing_fee,
            payment_type=self.payment_type,
            channel=self.channel,
            promocode=self.promocode,
        )


class RetryPaymentRequest(BaseModel):
    transaction_id: Optional[str] = None

    class Config:
        json_schema_extra = {'example': {'transaction_id': '01934b7e-7b40-7d3e-8f2a-3c4d5e6f7081'}}


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {
                'success': False,
                'order_id': None,
                'transaction_id': None,
                'error': 'Not enough "Regular" tickets left. Only 1 remaining.',
                'error_code': 'insufficient-inventory',
            }
        }
    )

    success: bool
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def from_result(cls, result: CheckoutResult) -> 'CheckoutResponse':
        return cls(
            success=result.success,
            order_id=result.order_id,
            transaction_id=result.transaction_id,
            error=result.error,
            error_code=result.error_code.value if result.error_code else None,
        )


class TransactionStatusResponse(BaseModel):
    success: bool
    status: Optional[str] = None
    fail_reason: Optional[str] = None
    retry_count: int = 0
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: TransactionStatusResult) -> 'TransactionStatusResponse':
        return cls(
            success=result.success,
            status=result.status,
            fail_reason=result.fail_reason,
            retry_count=result.retry_count,
            error=result.error,
        )


class RecentOrderResponse(BaseModel):
    recent_order: bool
    order_id: Optional[str] = None

    @classmethod
    def from_result(cls, result: RecentOrderResult) -> 'RecentOrderResponse':
        return cls(recent_order=result.recent_order, order_id=result.order_id)


class CheckoutFeedbackRequest(BaseModel):
    rating: int
    reason: Optional[str] = None

    class Config:
        json_schema_extra = {'example': {'rating': 5, 'reason': 'Smooth and quick'}}


class CheckoutFeedbackResponse(BaseModel):
    success: bool
    error: Optional[str] = None
