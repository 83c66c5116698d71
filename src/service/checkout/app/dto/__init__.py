"""Application layer DTOs"""

from src.service.checkout.app.dto.checkout_dto import (
    CheckoutResult,
    ClientContext,
    FeedbackResult,
    OrderPayload,
    RateLimitDecision,
    RecentOrderResult,
    TransactionStatusResult,
)
from src.service.checkout.app.dto.payment_dto import (
    CallbackAcknowledgement,
    GatewayStatusResult,
    PaymentInitiationResult,
    PaymentOutcome,
    SweepReport,
)

__all__ = [
    'CallbackAcknowledgement',
    'CheckoutResult',
    'ClientContext',
    'FeedbackResult',
    'GatewayStatusResult',
    'OrderPayload',
    'PaymentInitiationResult',
    'PaymentOutcome',
    'RateLimitDecision',
    'RecentOrderResult',
    'SweepReport',
    'TransactionStatusResult',
]
