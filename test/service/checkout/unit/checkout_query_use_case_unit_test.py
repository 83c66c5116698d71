"""
Unit tests for the read side of checkout

Tests:
- GetTransactionStatusUseCase: translated failure reason with retry count, not found
- CheckForRecentOrderUseCase: guests, trailing window, repository errors
- LogCheckoutRatingUseCase: rating bounds
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from src.service.checkout.app.command.log_checkout_rating_use_case import (
    LogCheckoutRatingUseCase,
)
from src.service.checkout.app.dto.checkout_dto import UNEXPECTED_ERROR_MESSAGE
from src.service.checkout.app.query.check_for_recent_order_use_case import (
    CheckForRecentOrderUseCase,
)
from src.service.checkout.app.query.get_transaction_status_use_case import (
    GetTransactionStatusUseCase,
)
from src.service.checkout.domain.mpesa_failure_translator import UNKNOWN_ERROR_MESSAGE
from test.service.checkout.fakes import make_pending_order


@pytest.mark.unit
class TestGetTransactionStatus:
    @pytest.fixture
    def transaction_query_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def use_case(self, transaction_query_repo: AsyncMock) -> GetTransactionStatusUseCase:
        return GetTransactionStatusUseCase(transaction_query_repo=transaction_query_repo)

    async def test_cancelled_push_is_translated(
        self, use_case: GetTransactionStatusUseCase, transaction_query_repo: AsyncMock
    ):
        # Given: the buyer cancelled the prompt on the second attempt
        _, transaction = make_pending_order()
        transaction = transaction.reset_for_retry().mark_as_failed(
            reason='Request cancelled by user 1032'
        )
        transaction_query_repo.get_by_id.return_value = transaction

        # When
        result = await use_case.get_transaction_status(transaction_id='txn-1')

        # Then
        assert result.success is True
        assert result.status == 'failed'
        assert result.fail_reason is not None
        assert result.fail_reason.startswith('You cancelled the M-Pesa request')
        assert result.retry_count == 1
        transaction_query_repo.get_by_id.assert_awaited_once_with(transaction_id='txn-1')

    async def test_pending_transaction(self, use_case, transaction_query_repo: AsyncMock):
        _, transaction = make_pending_order()
        transaction_query_repo.get_by_id.return_value = transaction

        result = await use_case.get_transaction_status(transaction_id='txn-1')

        assert result.status == 'pending'
        assert result.retry_count == 0
        assert result.fail_reason == UNKNOWN_ERROR_MESSAGE

    async def test_unknown_transaction(self, use_case, transaction_query_repo: AsyncMock):
        transaction_query_repo.get_by_id.return_value = None

        result = await use_case.get_transaction_status(transaction_id='missing')

        assert result.success is False
        assert result.error == 'Transaction not found.'

    async def test_store_error(self, use_case, transaction_query_repo: AsyncMock):
        transaction_query_repo.get_by_id.side_effect = RuntimeError('connection reset')

        result = await use_case.get_transaction_status(transaction_id='txn-1')

        assert result.success is False
        assert result.error == UNEXPECTED_ERROR_MESSAGE


@pytest.mark.unit
class TestCheckForRecentOrder:
    @pytest.fixture
    def order_query_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def use_case(self, order_query_repo: AsyncMock) -> CheckForRecentOrderUseCase:
        return CheckForRecentOrderUseCase(order_query_repo=order_query_repo, window_seconds=180)

    async def test_recent_completed_order_is_reported(
        self, use_case: CheckForRecentOrderUseCase, order_query_repo: AsyncMock
    ):
        order, _ = make_pending_order(order_id='order-42')
        order_query_repo.find_latest_completed.return_value = order.mark_as_completed()

        result = await use_case.check_for_recent_order(listing_id='listing-1', user_id='user-1')

        assert result.recent_order is True
        assert result.order_id == 'order-42'

    async def test_window_cutoff_is_three_minutes_back(
        self, use_case: CheckForRecentOrderUseCase, order_query_repo: AsyncMock
    ):
        order_query_repo.find_latest_completed.return_value = None
        before = datetime.now(timezone.utc)

        result = await use_case.check_for_recent_order(listing_id='listing-1', user_id='user-1')

        assert result.recent_order is False
        kwargs = order_query_repo.find_latest_completed.await_args.kwargs
        assert kwargs['user_id'] == 'user-1'
        assert kwargs['listing_id'] == 'listing-1'
        cutoff = kwargs['created_after']
        assert before - timedelta(seconds=181) < cutoff <= datetime.now(timezone.utc) - timedelta(
            seconds=179
        )

    async def test_guest_is_never_matched(self, use_case, order_query_repo: AsyncMock):
        result = await use_case.check_for_recent_order(listing_id='listing-1', user_id=None)

        assert result.recent_order is False
        order_query_repo.find_latest_completed.assert_not_awaited()

    async def test_store_error_means_no_recent_order(self, use_case, order_query_repo: AsyncMock):
        order_query_repo.find_latest_completed.side_effect = RuntimeError('timeout')

        result = await use_case.check_for_recent_order(listing_id='listing-1', user_id='user-1')

        assert result.recent_order is False
        assert result.order_id is None


@pytest.mark.unit
class TestLogCheckoutRating:
    @pytest.fixture
    def feedback_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def use_case(self, feedback_repo: AsyncMock) -> LogCheckoutRatingUseCase:
        return LogCheckoutRatingUseCase(checkout_feedback_repo=feedback_repo)

    async def test_rating_is_stored(self, use_case, feedback_repo: AsyncMock):
        result = await use_case.log_checkout_rating(
            rating=4, reason='  Smooth checkout  ', order_id='order-1', user_id='user-1'
        )

        assert result.success is True
        feedback = feedback_repo.create.await_args.kwargs['feedback']
        assert feedback.rating == 4
        assert feedback.reason == 'Smooth checkout'
        assert feedback.order_id == 'order-1'

    @pytest.mark.parametrize('rating', [0, 6])
    async def test_out_of_range_rating_is_rejected(
        self, use_case, feedback_repo: AsyncMock, rating: int
    ):
        result = await use_case.log_checkout_rating(
            rating=rating, reason=None, order_id='order-1', user_id=None
        )

        assert result.success is False
        assert result.error == 'Rating must be between 1 and 5.'
        feedback_repo.create.assert_not_awaited()

    async def test_store_error(self, use_case, feedback_repo: AsyncMock):
        feedback_repo.create.side_effect = RuntimeError('disk full')

        result = await use_case.log_checkout_rating(
            rating=5, reason=None, order_id='order-1', user_id=None
        )

        assert result.success is False
        assert result.error == UNEXPECTED_ERROR_MESSAGE
