"""Application layer interfaces (Ports)"""

from src.service.checkout.app.interface.i_checkout_feedback_repo import ICheckoutFeedbackRepo
from src.service.checkout.app.interface.i_listing_command_repo import IListingCommandRepo
from src.service.checkout.app.interface.i_notification_emitter import INotificationEmitter
from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.app.interface.i_promocode_repo import IPromocodeRepo
from src.service.checkout.app.interface.i_rate_limit_repo import IRateLimitRepo
from src.service.checkout.app.interface.i_ticket_command_repo import ITicketCommandRepo
from src.service.checkout.app.interface.i_transaction_command_repo import (
    ITransactionCommandRepo,
)
from src.service.checkout.app.interface.i_transaction_query_repo import ITransactionQueryRepo

__all__ = [
    'ICheckoutFeedbackRepo',
    'IListingCommandRepo',
    'INotificationEmitter',
    'IOrderCommandRepo',
    'IOrderQueryRepo',
    'IPaymentGateway',
    'IPromocodeRepo',
    'IRateLimitRepo',
    'ITicketCommandRepo',
    'ITransactionCommandRepo',
    'ITransactionQueryRepo',
]
