"""Checkout Domain Enums"""

from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode

__all__ = ['CheckoutErrorCode']
