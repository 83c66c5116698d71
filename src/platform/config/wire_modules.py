"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.checkout.app.command import (
    create_order_and_initiate_payment_use_case,
    log_checkout_rating_use_case,
    reconcile_payment_callback_use_case,
    retry_payment_use_case,
)
from src.service.checkout.app.query import (
    check_for_recent_order_use_case,
    get_transaction_status_use_case,
)
from src.service.checkout.driving_adapter.http_controller.auth import client_context


WIRE_MODULES: list[ModuleType] = [
    create_order_and_initiate_payment_use_case,
    retry_payment_use_case,
    reconcile_payment_callback_use_case,
    log_checkout_rating_use_case,
    get_transaction_status_use_case,
    check_for_recent_order_use_case,
    client_context,
]
