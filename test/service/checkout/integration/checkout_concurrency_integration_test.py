"""
Integration tests for checkout against a real SQLite database

Tests:
- Two buyers race for the last Regular ticket: exactly one order is created
- A rejected checkout leaves no rows behind
- Releasing more tickets than were sold floors the counters at zero
"""

import asyncio
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from src.platform.database.orm_db_setting import get_session_maker
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.checkout.app.command.create_order_and_initiate_payment_use_case import (
    CreateOrderAndInitiatePaymentUseCase,
)
from src.service.checkout.app.command.initiate_payment_for_order_use_case import (
    InitiatePaymentForOrderUseCase,
)
from src.service.checkout.app.command.retry_payment_use_case import RetryPaymentUseCase
from src.service.checkout.app.dto.checkout_dto import RateLimitDecision
from src.service.checkout.domain.entity.order_entity import OrderTicketLine
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode
from src.service.checkout.driven_adapter.model import (
    ListingModel,
    OrderModel,
    TicketTypeModel,
    TransactionModel,
)
from src.service.checkout.driven_adapter.payment.mock_payment_gateway_impl import (
    MockPaymentGatewayImpl,
)
from test.service.checkout.fakes import LISTING_ID, ORGANIZER_ID, make_client, make_payload


async def _seed_listing(*, regular_quantity: int, regular_sold: int) -> None:
    async with get_session_maker()() as session:
        session.add(
            ListingModel(
                id=LISTING_ID,
                name='Nairobi Jazz Night',
                organizer_id=ORGANIZER_ID,
                listing_type='event',
                total_tickets_sold=regular_sold,
                ticket_types=[
                    TicketTypeModel(
                        name='Regular',
                        price=1500.0,
                        quantity=regular_quantity,
                        tickets_sold=regular_sold,
                    ),
                    TicketTypeModel(name='VIP', price=5000.0, quantity=20, tickets_sold=0),
                ],
            )
        )
        await session.commit()


async def _regular_sold() -> int:
    async with get_session_maker()() as session:
        result = await session.execute(
            select(TicketTypeModel.tickets_sold).where(
                TicketTypeModel.listing_id == LISTING_ID, TicketTypeModel.name == 'Regular'
            )
        )
        return result.scalar_one()


async def _count(model) -> int:
    async with get_session_maker()() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


@pytest.fixture
async def last_regular_ticket(clean_database: None) -> AsyncIterator[None]:
    await _seed_listing(regular_quantity=100, regular_sold=99)
    yield


@pytest.fixture
def gateway() -> MockPaymentGatewayImpl:
    return MockPaymentGatewayImpl()


@pytest.fixture
def use_case(gateway: MockPaymentGatewayImpl) -> CreateOrderAndInitiatePaymentUseCase:
    rate_limiter = AsyncMock()
    rate_limiter.check_rate_limit = AsyncMock(return_value=RateLimitDecision(allowed=True))
    return CreateOrderAndInitiatePaymentUseCase(
        uow_factory=SqlAlchemyUnitOfWork,
        rate_limiter=rate_limiter,
        notification_emitter=AsyncMock(),
        payment_initiator=InitiatePaymentForOrderUseCase(
            uow_factory=SqlAlchemyUnitOfWork, payment_gateway=gateway
        ),
        retry_payment=AsyncMock(spec=RetryPaymentUseCase),
        max_commit_attempts=3,
    )


class TestLastTicketRace:
    async def test_only_one_buyer_gets_the_last_ticket(
        self,
        last_regular_ticket: None,
        use_case: CreateOrderAndInitiatePaymentUseCase,
        gateway: MockPaymentGatewayImpl,
    ):
        # Given: Regular 100 capacity, 99 sold, two buyers each asking for one
        payload = make_payload(tickets=[OrderTicketLine('Regular', 1, 1500.0)], total=1575.5)

        # When
        results = await asyncio.gather(
            use_case.create_order_and_initiate_payment(
                payload=payload, client=make_client(ip_address='41.90.64.12', user_id='user-1')
            ),
            use_case.create_order_and_initiate_payment(
                payload=payload, client=make_client(ip_address='41.90.64.13', user_id='user-2')
            ),
        )

        # Then
        winners = [r for r in results if r.success]
        losers = [r for r in results if not r.success]
        assert len(winners) == 1
        assert len(losers) == 1
        assert losers[0].error_code == CheckoutErrorCode.INSUFFICIENT_INVENTORY
        assert losers[0].order_id is None

        assert await _regular_sold() == 100
        assert await _count(OrderModel) == 1
        assert await _count(TransactionModel) == 1
        assert [push.order_id for push in gateway.pushes] == [winners[0].order_id]


class TestRejectedCheckout:
    async def test_insufficient_inventory_writes_nothing(
        self,
        last_regular_ticket: None,
        use_case: CreateOrderAndInitiatePaymentUseCase,
        gateway: MockPaymentGatewayImpl,
    ):
        payload = make_payload(tickets=[OrderTicketLine('Regular', 2, 1500.0)], total=3000.0)

        result = await use_case.create_order_and_initiate_payment(
            payload=payload, client=make_client()
        )

        assert result.error_code == CheckoutErrorCode.INSUFFICIENT_INVENTORY
        assert result.error == 'Not enough "Regular" tickets left. Only 1 remaining.'
        assert await _regular_sold() == 99
        assert await _count(OrderModel) == 0
        assert await _count(TransactionModel) == 0
        assert gateway.pushes == []


class TestReleaseTickets:
    async def test_release_never_goes_below_zero(self, clean_database: None):
        # Given
        await _seed_listing(regular_quantity=100, regular_sold=1)

        # When
        async with SqlAlchemyUnitOfWork() as uow:
            await uow.listing_command_repo.release_tickets(
                listing_id=LISTING_ID, requested={'Regular': 2}
            )
            await uow.commit()

        # Then
        assert await _regular_sold() == 0
        async with get_session_maker()() as session:
            listing = await session.get(ListingModel, LISTING_ID)
            assert listing is not None
            assert listing.total_tickets_sold == 0
