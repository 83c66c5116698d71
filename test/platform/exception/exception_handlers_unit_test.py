"""
Unit tests for the HTTP error mapping

Tests:
- Each error of the hierarchy keeps its status and lands in the failure envelope
- Checkout errors carry their error code
"""

from unittest.mock import MagicMock

import orjson
import pytest
from fastapi import Request

from src.platform.exception.exception_handlers import custom_error_handler
from src.platform.exception.exceptions import DomainError, WriteConflictError
from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


@pytest.mark.unit
class TestCustomErrorHandler:
    @pytest.mark.parametrize(
        'error, status_code, body',
        [
            (
                DomainError('Rating must be between 1 and 5.'),
                400,
                {'success': False, 'error': 'Rating must be between 1 and 5.'},
            ),
            (
                WriteConflictError(),
                409,
                {'success': False, 'error': 'Listing was updated concurrently, please retry'},
            ),
            (
                CheckoutError(CheckoutErrorCode.ORDER_NOT_FOUND, 'Order not found.'),
                404,
                {'success': False, 'error': 'Order not found.', 'error_code': 'order-not-found'},
            ),
            (
                CheckoutError(CheckoutErrorCode.ORDER_EXPIRED, 'Order expired.'),
                410,
                {'success': False, 'error': 'Order expired.', 'error_code': 'order-expired'},
            ),
        ],
    )
    async def test_error_is_rendered_with_its_status(self, error, status_code: int, body: dict):
        response = await custom_error_handler(MagicMock(spec=Request), error)

        assert response.status_code == status_code
        assert orjson.loads(response.body) == body
