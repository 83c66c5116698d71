"""
Unit tests for ReconcilePaymentCallbackUseCase and PaymentOutcomeApplier

Tests:
- Webhook guard: wrong secret (403), malformed envelope (400), unknown request (200)
- Success settles order, transaction, tickets, revenue and promocode usage
- Failure keeps the provider's reason
- A repeated callback changes nothing
- A late success for an expired order re-claims its tickets, or is flagged for refund
"""

from typing import Any, Optional

import attrs
import pytest

from src.service.checkout.app.command.payment_outcome_applier import (
    AppliedOutcome,
    PaymentOutcomeApplier,
)
from src.service.checkout.app.command.reconcile_payment_callback_use_case import (
    ReconcilePaymentCallbackUseCase,
)
from src.service.checkout.app.dto.payment_dto import PaymentOutcome
from src.service.checkout.domain.entity.order_entity import OrderStatus
from src.service.checkout.domain.entity.promocode_entity import Promocode
from src.service.checkout.domain.entity.transaction_entity import TransactionStatus
from test.service.checkout.fakes import (
    InMemoryCheckoutStore,
    make_listing,
    make_pending_order,
)


SECRET = 'callback-secret'


def stk_callback(
    checkout_request_id: Optional[str] = 'ws_CO_1',
    result_code: Any = 0,
    result_desc: str = 'The service request is processed successfully.',
) -> dict:
    callback: dict[str, Any] = {
        'MerchantRequestID': '29115-34620561-1',
        'ResultCode': result_code,
        'ResultDesc': result_desc,
    }
    if checkout_request_id is not None:
        callback['CheckoutRequestID'] = checkout_request_id
    if result_code == 0:
        callback['CallbackMetadata'] = {
            'Item': [
                {'Name': 'Amount', 'Value': 3000},
                {'Name': 'MpesaReceiptNumber', 'Value': 'NLJ7RT61SV'},
                {'Name': 'Balance'},
                {'Name': 'TransactionDate', 'Value': 20261019102115},
                {'Name': 'PhoneNumber', 'Value': 254712345678},
            ]
        }
    return {'Body': {'stkCallback': callback}}


@pytest.fixture
def store() -> InMemoryCheckoutStore:
    # Pending order holding 2 Regular tickets
    store = InMemoryCheckoutStore()
    store.add_listing(make_listing(regular_quantity=100, regular_sold=2))
    store.add_order(*make_pending_order(promocode_id='promo-1'))
    store.add_promocode(
        Promocode(id='promo-1', code='JAZZ10', discount_type='percentage', discount_value=10)
    )
    return store


@pytest.fixture
def use_case(store: InMemoryCheckoutStore) -> ReconcilePaymentCallbackUseCase:
    return ReconcilePaymentCallbackUseCase(
        uow_factory=store.uow_factory,
        outcome_applier=PaymentOutcomeApplier(),
        callback_secret=SECRET,
    )


@pytest.mark.unit
class TestCallbackGuard:
    async def test_wrong_secret_is_forbidden(self, use_case, store: InMemoryCheckoutStore):
        ack = await use_case.reconcile(secret='guess', body=stk_callback())

        assert ack.http_status == 403
        assert ack.to_body() == {'ResultCode': 1, 'ResultDesc': 'Invalid secret'}
        assert store.commits == 0

    async def test_empty_configured_secret_rejects_everything(self, store):
        use_case = ReconcilePaymentCallbackUseCase(
            uow_factory=store.uow_factory,
            outcome_applier=PaymentOutcomeApplier(),
            callback_secret='',
        )

        ack = await use_case.reconcile(secret='', body=stk_callback())

        assert ack.http_status == 403

    @pytest.mark.parametrize(
        'body',
        [
            None,
            'not-a-dict',
            {},
            {'Body': {}},
            {'Body': 'oops'},
            {'Body': [1]},
            {'Body': {'stkCallback': 'oops'}},
            {'Body': {'stkCallback': {'CheckoutRequestID': 'ws_CO_1', 'CallbackMetadata': 'bad'}}},
            {
                'Body': {
                    'stkCallback': {
                        'CheckoutRequestID': 'ws_CO_1',
                        'ResultCode': 0,
                        'CallbackMetadata': {'Item': 'bad'},
                    }
                }
            },
            stk_callback(checkout_request_id=None),
        ],
    )
    async def test_malformed_envelope_is_bad_request(self, use_case, body):
        ack = await use_case.reconcile(secret=SECRET, body=body)

        assert ack.http_status == 400
        assert ack.result_desc == 'Invalid callback data'

    async def test_unknown_request_is_acknowledged(self, use_case, store: InMemoryCheckoutStore):
        ack = await use_case.reconcile(secret=SECRET, body=stk_callback('ws_CO_unknown'))

        assert ack.http_status == 200
        assert ack.to_body() == {'ResultCode': 0, 'ResultDesc': 'Accepted'}
        assert store.commits == 0


@pytest.mark.unit
class TestCallbackSettlement:
    async def test_success_completes_order_and_issues_tickets(
        self, use_case, store: InMemoryCheckoutStore
    ):
        # When
        ack = await use_case.reconcile(secret=SECRET, body=stk_callback())

        # Then
        assert ack.http_status == 200
        [order] = store.orders
        [transaction] = store.transactions
        assert order.status == OrderStatus.COMPLETED
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.mpesa_confirmation_code == 'NLJ7RT61SV'
        assert transaction.mpesa_transaction_date == '20261019102115'
        assert transaction.mpesa_payer_phone_number == '254712345678'
        assert transaction.mpesa_callback_data == stk_callback()

        # And: one ticket per unit, revenue and promocode usage booked
        assert [t.ticket_type for t in store.tickets] == ['Regular', 'Regular']
        assert store.listing().total_revenue == 3000.0
        promocode = store.state.promocodes['JAZZ10']
        assert promocode.usage_count == 1
        assert promocode.revenue_generated == 3000.0

        # And: inventory was already claimed at checkout
        assert store.sold('Regular') == 2

    async def test_failure_records_provider_reason(self, use_case, store: InMemoryCheckoutStore):
        ack = await use_case.reconcile(
            secret=SECRET,
            body=stk_callback(result_code=1032, result_desc='Request cancelled by user'),
        )

        assert ack.http_status == 200
        assert store.orders[0].status == OrderStatus.FAILED
        transaction = store.transactions[0]
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.fail_reason == 'Request cancelled by user'
        assert store.tickets == []
        # Tickets stay claimed until the sweep releases them
        assert store.sold('Regular') == 2

    async def test_non_numeric_result_code_is_a_failure(
        self, use_case, store: InMemoryCheckoutStore
    ):
        await use_case.reconcile(secret=SECRET, body=stk_callback(result_code='abc'))

        assert store.transactions[0].status == TransactionStatus.FAILED

    async def test_repeated_success_is_a_no_op(self, use_case, store: InMemoryCheckoutStore):
        await use_case.reconcile(secret=SECRET, body=stk_callback())
        commits_after_first = store.commits

        ack = await use_case.reconcile(secret=SECRET, body=stk_callback())

        assert ack.http_status == 200
        assert store.commits == commits_after_first
        assert len(store.tickets) == 2
        assert store.listing().total_revenue == 3000.0
        assert store.state.promocodes['JAZZ10'].usage_count == 1

    async def test_failure_after_success_is_ignored(self, use_case, store: InMemoryCheckoutStore):
        await use_case.reconcile(secret=SECRET, body=stk_callback())

        await use_case.reconcile(secret=SECRET, body=stk_callback(result_code=1032))

        assert store.orders[0].status == OrderStatus.COMPLETED
        assert store.transactions[0].status == TransactionStatus.COMPLETED

    async def test_late_success_for_previous_push_settles_retried_order(
        self, use_case, store: InMemoryCheckoutStore
    ):
        # Given: a retry reset the order, its new push has not been accepted yet
        order, transaction = store.orders[0], store.transactions[0]
        store.add_order(
            order.mark_as_failed().reset_to_pending(),
            transaction.mark_as_failed(reason='Timeout').reset_for_retry(),
        )

        # When: the buyer pays the first prompt after all
        ack = await use_case.reconcile(secret=SECRET, body=stk_callback('ws_CO_1'))

        # Then
        assert ack.http_status == 200
        assert store.orders[0].status == OrderStatus.COMPLETED
        settled = store.transactions[0]
        assert settled.status == TransactionStatus.COMPLETED
        assert settled.mpesa_confirmation_code == 'NLJ7RT61SV'
        assert settled.retry_count == 1

    async def test_processing_error_asks_provider_to_retry(self, store: InMemoryCheckoutStore):
        class ExplodingApplier(PaymentOutcomeApplier):
            async def apply(self, **kwargs):
                raise RuntimeError('database went away')

        use_case = ReconcilePaymentCallbackUseCase(
            uow_factory=store.uow_factory,
            outcome_applier=ExplodingApplier(),
            callback_secret=SECRET,
        )

        ack = await use_case.reconcile(secret=SECRET, body=stk_callback())

        assert ack.http_status == 500
        assert ack.to_body() == {'ResultCode': 1, 'ResultDesc': 'Internal Server Error'}
        assert store.orders[0].status == OrderStatus.PENDING


@pytest.mark.unit
class TestLateSuccessForExpiredOrder:
    @pytest.fixture
    def expired_store(self) -> InMemoryCheckoutStore:
        # Swept order: failed, tickets handed back
        store = InMemoryCheckoutStore()
        order, transaction = make_pending_order()
        store.add_order(
            order.mark_inventory_released(),
            transaction.mark_as_failed(reason='Payment was not completed in time.'),
        )
        store.add_listing(make_listing(regular_quantity=100, regular_sold=0))
        return store

    async def test_released_tickets_are_reclaimed(self, expired_store: InMemoryCheckoutStore):
        applier = PaymentOutcomeApplier()
        outcome = PaymentOutcome(
            checkout_request_id='ws_CO_1', result_code=0, receipt_number='LATE123'
        )

        async with expired_store.uow_factory() as uow:
            transaction = await uow.transaction_command_repo.get_by_id(transaction_id='txn-1')
            applied = await applier.apply(uow=uow, transaction=transaction, outcome=outcome)
            await uow.commit()

        assert applied == AppliedOutcome.COMPLETED
        order = expired_store.orders[0]
        assert order.status == OrderStatus.COMPLETED
        assert order.inventory_released is False
        assert expired_store.sold('Regular') == 2
        assert len(expired_store.tickets) == 2

    async def test_sold_out_listing_leaves_order_for_refund(
        self, expired_store: InMemoryCheckoutStore
    ):
        # Given: the released tickets were bought by someone else
        listing = expired_store.listing()
        listing.ticket_types[0] = attrs.evolve(listing.ticket_types[0], tickets_sold=99)
        applier = PaymentOutcomeApplier()
        outcome = PaymentOutcome(checkout_request_id='ws_CO_1', result_code=0)

        # When
        async with expired_store.uow_factory() as uow:
            transaction = await uow.transaction_command_repo.get_by_id(transaction_id='txn-1')
            applied = await applier.apply(uow=uow, transaction=transaction, outcome=outcome)
            await uow.commit()

        # Then: money is recorded, no tickets issued, no oversell
        assert applied == AppliedOutcome.UNFULFILLED
        assert expired_store.transactions[0].status == TransactionStatus.COMPLETED
        assert expired_store.orders[0].status == OrderStatus.FAILED
        assert expired_store.sold('Regular') == 99
        assert expired_store.tickets == []

    async def test_late_failure_for_expired_order_is_ignored(
        self, expired_store: InMemoryCheckoutStore
    ):
        applier = PaymentOutcomeApplier()
        outcome = PaymentOutcome(checkout_request_id='ws_CO_1', result_code=1037)

        async with expired_store.uow_factory() as uow:
            transaction = await uow.transaction_command_repo.get_by_id(transaction_id='txn-1')
            applied = await applier.apply(uow=uow, transaction=transaction, outcome=outcome)

        assert applied == AppliedOutcome.IGNORED


@pytest.mark.unit
class TestPaymentOutcomeParsing:
    def test_metadata_items_are_extracted(self):
        outcome = PaymentOutcome.from_stk_callback(stk_callback())

        assert outcome is not None
        assert outcome.is_success
        assert outcome.checkout_request_id == 'ws_CO_1'
        assert outcome.receipt_number == 'NLJ7RT61SV'
        assert outcome.phone_number == '254712345678'

    def test_failure_has_no_metadata(self):
        outcome = PaymentOutcome.from_stk_callback(
            stk_callback(result_code=1037, result_desc='DS timeout user cannot be reached')
        )

        assert outcome is not None
        assert not outcome.is_success
        assert outcome.result_code == 1037
        assert outcome.receipt_number is None
