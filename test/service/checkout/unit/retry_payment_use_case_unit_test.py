"""
Unit tests for RetryPaymentUseCase

Tests:
- A retry reuses the order: no new rows, no inventory movement, retry_count + 1
- Paid, expired and unknown orders are refused
- A sweep or settlement landing between the first read and the lock wins
"""

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional
from unittest.mock import AsyncMock

import pytest

from src.service.checkout.app.command.expire_stale_orders_use_case import (
    ExpireStaleOrdersUseCase,
)
from src.service.checkout.app.command.initiate_payment_for_order_use_case import (
    InitiatePaymentForOrderUseCase,
)
from src.service.checkout.app.command.payment_outcome_applier import PaymentOutcomeApplier
from src.service.checkout.app.command.retry_payment_use_case import RetryPaymentUseCase
from src.service.checkout.app.dto.payment_dto import GatewayStatusResult
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.domain.entity.order_entity import Order, OrderStatus
from src.service.checkout.domain.entity.transaction_entity import TransactionStatus
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode
from src.service.checkout.driven_adapter.payment.mock_payment_gateway_impl import (
    MockPaymentGatewayImpl,
)
from test.service.checkout.fakes import (
    FakeUnitOfWork,
    InMemoryCheckoutStore,
    make_listing,
    make_pending_order,
)


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class InterleavingUnitOfWork(FakeUnitOfWork):
    """Runs `between` once, right after the first order read of the block."""

    def __init__(
        self, store: InMemoryCheckoutStore, *, between: Callable[[], Awaitable[None]]
    ) -> None:
        super().__init__(store)
        self.between: Optional[Callable[[], Awaitable[None]]] = between
        read_order = self.order_command_repo.get_by_id

        async def get_by_id(*, order_id: str) -> Optional[Order]:
            order = await read_order(order_id=order_id)
            if self.between is not None:
                between, self.between = self.between, None
                await between()
            return order

        self.order_command_repo.get_by_id = get_by_id  # type: ignore[method-assign]


@pytest.fixture
def store() -> InMemoryCheckoutStore:
    store = InMemoryCheckoutStore()
    store.add_listing(make_listing(regular_quantity=100, regular_sold=2))
    return store


@pytest.fixture
def gateway() -> MockPaymentGatewayImpl:
    return MockPaymentGatewayImpl()


@pytest.fixture
def use_case(store: InMemoryCheckoutStore, gateway: MockPaymentGatewayImpl) -> RetryPaymentUseCase:
    return RetryPaymentUseCase(
        uow_factory=store.uow_factory,
        payment_initiator=InitiatePaymentForOrderUseCase(
            uow_factory=store.uow_factory, payment_gateway=gateway
        ),
    )


@pytest.mark.unit
class TestRetryPayment:
    async def test_failed_payment_is_retried_on_the_same_order(
        self,
        use_case: RetryPaymentUseCase,
        store: InMemoryCheckoutStore,
        gateway: MockPaymentGatewayImpl,
    ):
        # Given: a cancelled STK push
        order, transaction = make_pending_order(checkout_request_id='ws_CO_old')
        store.add_order(
            order.mark_as_failed(),
            transaction.mark_as_failed(reason='Request cancelled by user 1032'),
        )

        # When
        result = await use_case.retry(order_id='order-1', transaction_id='txn-1')

        # Then: same ids, fresh push
        assert result.success is True
        assert (result.order_id, result.transaction_id) == ('order-1', 'txn-1')
        [push] = gateway.pushes
        assert push.order_id == 'order-1'
        assert push.amount == 3000

        # And: no new rows, no inventory movement
        assert len(store.orders) == 1
        assert len(store.transactions) == 1
        assert store.sold('Regular') == 2

        # And: back to pending with the new request id
        assert store.orders[0].status == OrderStatus.PENDING
        retried = store.transactions[0]
        assert retried.status == TransactionStatus.PENDING
        assert retried.retry_count == 1
        assert retried.fail_reason is None
        assert retried.mpesa_checkout_request_id == push.checkout_request_id

    async def test_transaction_is_found_by_order_when_id_is_missing(
        self, use_case: RetryPaymentUseCase, store: InMemoryCheckoutStore
    ):
        store.add_order(*make_pending_order())

        result = await use_case.retry(order_id='order-1')

        assert result.success is True
        assert result.transaction_id == 'txn-1'
        assert store.transactions[0].retry_count == 1

    async def test_repeated_retries_count_up(self, use_case, store: InMemoryCheckoutStore):
        store.add_order(*make_pending_order())

        await use_case.retry(order_id='order-1', transaction_id='txn-1')
        await use_case.retry(order_id='order-1', transaction_id='txn-1')

        assert store.transactions[0].retry_count == 2

    async def test_paid_order_is_refused(
        self, use_case, store: InMemoryCheckoutStore, gateway: MockPaymentGatewayImpl
    ):
        order, transaction = make_pending_order()
        store.add_order(
            order.mark_as_completed(),
            transaction.mark_as_completed(
                callback_data=None,
                confirmation_code='NLJ7RT61SV',
                transaction_date=None,
                payer_phone_number=None,
            ),
        )

        result = await use_case.retry(order_id='order-1', transaction_id='txn-1')

        assert result.success is False
        assert result.error_code == CheckoutErrorCode.ORDER_ALREADY_PAID
        assert gateway.pushes == []
        assert store.transactions[0].retry_count == 0

    async def test_expired_order_is_refused(
        self, use_case, store: InMemoryCheckoutStore, gateway: MockPaymentGatewayImpl
    ):
        order, transaction = make_pending_order()
        store.add_order(
            order.mark_inventory_released(),
            transaction.mark_as_failed(reason='Payment was not completed in time.'),
        )

        result = await use_case.retry(order_id='order-1', transaction_id='txn-1')

        assert result.error_code == CheckoutErrorCode.ORDER_EXPIRED
        assert gateway.pushes == []
        assert store.orders[0].inventory_released is True

    async def test_unknown_order_is_not_found(self, use_case):
        result = await use_case.retry(order_id='missing', transaction_id='txn-1')

        assert result.error_code == CheckoutErrorCode.ORDER_NOT_FOUND
        assert result.order_id == 'missing'

    async def test_transaction_of_another_order_is_not_found(
        self, use_case, store: InMemoryCheckoutStore
    ):
        store.add_order(*make_pending_order())
        store.add_order(*make_pending_order(order_id='order-2', transaction_id='txn-2'))

        result = await use_case.retry(order_id='order-1', transaction_id='txn-2')

        assert result.error_code == CheckoutErrorCode.ORDER_NOT_FOUND

    async def test_gateway_failure_keeps_ids(self, store: InMemoryCheckoutStore):
        store.add_order(*make_pending_order())
        use_case = RetryPaymentUseCase(
            uow_factory=store.uow_factory,
            payment_initiator=InitiatePaymentForOrderUseCase(
                uow_factory=store.uow_factory,
                payment_gateway=MockPaymentGatewayImpl(fail_with='M-Pesa is unreachable'),
            ),
        )

        result = await use_case.retry(order_id='order-1', transaction_id='txn-1')

        assert result.error_code == CheckoutErrorCode.GATEWAY_INITIATION_FAILED
        assert result.error == 'M-Pesa is unreachable'
        assert (result.order_id, result.transaction_id) == ('order-1', 'txn-1')
        # The reset is committed before the push
        assert store.transactions[0].retry_count == 1

    async def test_sweep_between_read_and_lock_keeps_order_expired(
        self, store: InMemoryCheckoutStore, gateway: MockPaymentGatewayImpl
    ):
        # Given: an abandoned pending order the sweep is about to expire
        store.add_order(*make_pending_order(updated_at=NOW - timedelta(minutes=30)))
        status_gateway = AsyncMock(spec=IPaymentGateway)
        status_gateway.query_status.return_value = GatewayStatusResult()
        sweep = ExpireStaleOrdersUseCase(
            uow_factory=store.uow_factory,
            payment_gateway=status_gateway,
            outcome_applier=PaymentOutcomeApplier(),
            rate_limit_repo=AsyncMock(**{'delete_expired.return_value': 0}),
            ttl_seconds=900,
            batch_size=100,
            clock=lambda: NOW,
        )

        async def run_sweep() -> None:
            await sweep.execute()

        use_case = RetryPaymentUseCase(
            uow_factory=lambda: InterleavingUnitOfWork(store, between=run_sweep),
            payment_initiator=InitiatePaymentForOrderUseCase(
                uow_factory=store.uow_factory, payment_gateway=gateway
            ),
        )

        # When: the sweep commits after the retry's first read
        result = await use_case.retry(order_id='order-1', transaction_id='txn-1')

        # Then: the released order is not brought back
        assert result.error_code == CheckoutErrorCode.ORDER_EXPIRED
        assert gateway.pushes == []
        order = store.orders[0]
        assert order.status == OrderStatus.FAILED
        assert order.inventory_released is True
        assert store.sold('Regular') == 0
        assert store.transactions[0].retry_count == 0

    async def test_payment_settled_between_read_and_lock_is_not_retried(
        self, store: InMemoryCheckoutStore, gateway: MockPaymentGatewayImpl
    ):
        order, transaction = make_pending_order()
        store.add_order(order.mark_as_failed(), transaction.mark_as_failed(reason='Timeout'))

        async def settle() -> None:
            store.add_order(
                order.mark_as_completed(),
                transaction.mark_as_completed(
                    callback_data=None,
                    confirmation_code='NLJ7RT61SV',
                    transaction_date=None,
                    payer_phone_number=None,
                ),
            )

        use_case = RetryPaymentUseCase(
            uow_factory=lambda: InterleavingUnitOfWork(store, between=settle),
            payment_initiator=InitiatePaymentForOrderUseCase(
                uow_factory=store.uow_factory, payment_gateway=gateway
            ),
        )

        result = await use_case.retry(order_id='order-1', transaction_id='txn-1')

        assert result.error_code == CheckoutErrorCode.ORDER_ALREADY_PAID
        assert gateway.pushes == []
        assert store.orders[0].status == OrderStatus.COMPLETED
        assert store.transactions[0].status == TransactionStatus.COMPLETED
