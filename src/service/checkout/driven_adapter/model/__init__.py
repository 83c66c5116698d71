"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.checkout.driven_adapter.model.checkout_feedback_model import (
    CheckoutFeedbackModel,
)
from src.service.checkout.driven_adapter.model.listing_model import ListingModel, TicketTypeModel
from src.service.checkout.driven_adapter.model.notification_model import NotificationModel
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.model.promocode_model import PromocodeModel
from src.service.checkout.driven_adapter.model.rate_limit_record_model import (
    RateLimitRecordModel,
)
from src.service.checkout.driven_adapter.model.ticket_model import TicketModel
from src.service.checkout.driven_adapter.model.transaction_model import TransactionModel

__all__ = [
    'CheckoutFeedbackModel',
    'ListingModel',
    'NotificationModel',
    'OrderModel',
    'PromocodeModel',
    'RateLimitRecordModel',
    'TicketModel',
    'TicketTypeModel',
    'TransactionModel',
]
