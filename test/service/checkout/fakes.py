"""
In-memory unit of work for checkout use case tests

Each `async with` works on a deep copy of the store; commit() publishes the
copy, leaving the block without commit() discards it. That mirrors the
all-or-nothing behaviour of the SQLAlchemy unit of work closely enough to
assert "nothing was created" after a rejected checkout.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Optional

import attrs

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.service.checkout.app.dto.checkout_dto import ClientContext, OrderPayload
from src.service.checkout.app.interface.i_listing_command_repo import IListingCommandRepo
from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.checkout.app.interface.i_promocode_repo import IPromocodeRepo
from src.service.checkout.app.interface.i_ticket_command_repo import ITicketCommandRepo
from src.service.checkout.app.interface.i_transaction_command_repo import (
    ITransactionCommandRepo,
)
from src.service.checkout.domain.entity.listing_entity import (
    FreeMerch,
    Listing,
    ListingType,
    TicketType,
)
from src.service.checkout.domain.entity.order_entity import (
    Order,
    OrderStatus,
    OrderTicketLine,
    PaymentType,
)
from src.service.checkout.domain.entity.promocode_entity import Promocode
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.entity.transaction_entity import Transaction


LISTING_ID = 'listing-1'
ORGANIZER_ID = 'organizer-1'
BUYER_IP = '41.90.64.12'


@attrs.define
class CheckoutState:
    listings: dict[str, Listing] = attrs.field(factory=dict)
    orders: dict[str, Order] = attrs.field(factory=dict)
    transactions: dict[str, Transaction] = attrs.field(factory=dict)
    promocodes: dict[str, Promocode] = attrs.field(factory=dict)
    tickets: list[Ticket] = attrs.field(factory=list)


class InMemoryCheckoutStore:
    def __init__(self) -> None:
        self.state = CheckoutState()
        self.commits = 0

    def uow_factory(self) -> 'FakeUnitOfWork':
        return FakeUnitOfWork(self)

    # Helpers for Arrange / Assert
    def add_listing(self, listing: Listing) -> None:
        self.state.listings[listing.id] = listing

    def add_promocode(self, promocode: Promocode) -> None:
        self.state.promocodes[promocode.code.upper()] = promocode

    def add_order(self, order: Order, transaction: Transaction) -> None:
        self.state.orders[order.id] = order
        self.state.transactions[transaction.id] = transaction

    def listing(self, listing_id: str = LISTING_ID) -> Listing:
        return self.state.listings[listing_id]

    def sold(self, name: str, listing_id: str = LISTING_ID) -> int:
        ticket_type = self.listing(listing_id).find_ticket_type(name)
        assert ticket_type is not None
        return ticket_type.tickets_sold

    @property
    def orders(self) -> list[Order]:
        return list(self.state.orders.values())

    @property
    def transactions(self) -> list[Transaction]:
        return list(self.state.transactions.values())

    @property
    def tickets(self) -> list[Ticket]:
        return list(self.state.tickets)


class FakeListingCommandRepo(IListingCommandRepo):
    def __init__(self, uow: 'FakeUnitOfWork') -> None:
        self.uow = uow

    async def get_for_update(self, *, listing_id: str) -> Optional[Listing]:
        # Row lock: later reads see whatever was committed before it was granted
        self.uow.staged = copy.deepcopy(self.uow.store.state)
        listing = self.uow.staged.listings.get(listing_id)
        return copy.deepcopy(listing)

    async def claim_tickets(self, *, listing_id: str, requested: dict[str, int]) -> Optional[str]:
        listing = self.uow.staged.listings[listing_id]
        for name, quantity in requested.items():
            ticket_type = listing.find_ticket_type(name)
            if ticket_type is None or not ticket_type.can_fulfil(quantity):
                return name
            ticket_type.tickets_sold += quantity
        listing.total_tickets_sold += sum(requested.values())
        return None

    async def release_tickets(self, *, listing_id: str, requested: dict[str, int]) -> None:
        listing = self.uow.staged.listings[listing_id]
        for name, quantity in requested.items():
            ticket_type = listing.find_ticket_type(name)
            if ticket_type is not None:
                ticket_type.tickets_sold = max(ticket_type.tickets_sold - quantity, 0)
        listing.total_tickets_sold = max(listing.total_tickets_sold - sum(requested.values()), 0)

    async def add_revenue(self, *, listing_id: str, amount: float) -> None:
        self.uow.staged.listings[listing_id].total_revenue += amount


class FakeOrderCommandRepo(IOrderCommandRepo):
    def __init__(self, uow: 'FakeUnitOfWork') -> None:
        self.uow = uow

    async def create(self, *, order: Order) -> Order:
        self.uow.staged.orders[order.id] = copy.deepcopy(order)
        return order

    async def get_by_id(self, *, order_id: str) -> Optional[Order]:
        return copy.deepcopy(self.uow.staged.orders.get(order_id))

    async def update(self, *, order: Order) -> Order:
        self.uow.staged.orders[order.id] = copy.deepcopy(order)
        return order

    async def list_stale(self, *, updated_before: datetime, limit: int) -> list[Order]:
        stale = [
            order
            for order in self.uow.staged.orders.values()
            if order.status in (OrderStatus.PENDING, OrderStatus.FAILED)
            and not order.inventory_released
            and order.updated_at is not None
            and order.updated_at < updated_before
        ]
        stale.sort(key=lambda o: o.updated_at or datetime.min.replace(tzinfo=timezone.utc))
        return copy.deepcopy(stale[:limit])


class FakeTransactionCommandRepo(ITransactionCommandRepo):
    def __init__(self, uow: 'FakeUnitOfWork') -> None:
        self.uow = uow

    async def create(self, *, transaction: Transaction) -> Transaction:
        self.uow.staged.transactions[transaction.id] = copy.deepcopy(transaction)
        return transaction

    async def get_by_id(self, *, transaction_id: str) -> Optional[Transaction]:
        return copy.deepcopy(self.uow.staged.transactions.get(transaction_id))

    async def get_by_order_id(self, *, order_id: str) -> Optional[Transaction]:
        for transaction in self.uow.staged.transactions.values():
            if transaction.order_id == order_id:
                return copy.deepcopy(transaction)
        return None

    async def get_by_checkout_request_id(
        self, *, checkout_request_id: str
    ) -> Optional[Transaction]:
        for transaction in self.uow.staged.transactions.values():
            if transaction.mpesa_checkout_request_id == checkout_request_id:
                return copy.deepcopy(transaction)
        return None

    async def update(self, *, transaction: Transaction) -> Transaction:
        self.uow.staged.transactions[transaction.id] = copy.deepcopy(transaction)
        return transaction


class FakePromocodeRepo(IPromocodeRepo):
    def __init__(self, uow: 'FakeUnitOfWork') -> None:
        self.uow = uow

    async def get_by_code(self, *, code: str) -> Optional[Promocode]:
        return copy.deepcopy(self.uow.staged.promocodes.get(code.upper()))

    async def record_usage(self, *, promocode_id: str, revenue: float) -> None:
        for code, promocode in self.uow.staged.promocodes.items():
            if promocode.id == promocode_id:
                self.uow.staged.promocodes[code] = attrs.evolve(
                    promocode,
                    usage_count=promocode.usage_count + 1,
                    revenue_generated=promocode.revenue_generated + revenue,
                )


class FakeTicketCommandRepo(ITicketCommandRepo):
    def __init__(self, uow: 'FakeUnitOfWork') -> None:
        self.uow = uow

    async def create_many(self, *, tickets: list[Ticket]) -> None:
        self.uow.staged.tickets.extend(copy.deepcopy(tickets))

    async def count_by_order_id(self, *, order_id: str) -> int:
        return sum(1 for t in self.uow.staged.tickets if t.order_id == order_id)


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store: InMemoryCheckoutStore) -> None:
        self.store = store
        self.staged = CheckoutState()
        self.listing_command_repo = FakeListingCommandRepo(self)
        self.order_command_repo = FakeOrderCommandRepo(self)
        self.transaction_command_repo = FakeTransactionCommandRepo(self)
        self.promocode_repo = FakePromocodeRepo(self)
        self.ticket_command_repo = FakeTicketCommandRepo(self)

    async def __aenter__(self) -> AbstractUnitOfWork:
        self.staged = copy.deepcopy(self.store.state)
        return await super().__aenter__()

    async def _commit(self) -> None:
        self.store.state = copy.deepcopy(self.staged)
        self.store.commits += 1

    async def rollback(self) -> None:
        self.staged = copy.deepcopy(self.store.state)


# =============================================================================
# Builders
# =============================================================================
def make_listing(
    *,
    listing_id: str = LISTING_ID,
    listing_type: ListingType = ListingType.EVENT,
    regular_quantity: int = 100,
    regular_sold: int = 0,
    vip_quantity: int = 10,
    vip_sold: int = 0,
) -> Listing:
    return Listing(
        id=listing_id,
        name='Nairobi Jazz Night',
        organizer_id=ORGANIZER_ID,
        listing_type=listing_type,
        ticket_types=[
            TicketType(
                name='Regular', price=1500.0, quantity=regular_quantity, tickets_sold=regular_sold
            ),
            TicketType(name='VIP', price=5000.0, quantity=vip_quantity, tickets_sold=vip_sold),
        ],
        total_tickets_sold=regular_sold + vip_sold,
        free_merch=FreeMerch(product_id='merch-tee', product_name='Festival T-Shirt'),
    )


def make_payload(
    *,
    listing_id: str = LISTING_ID,
    tickets: Optional[list[OrderTicketLine]] = None,
    total: float = 1575.5,
    promocode: Optional[str] = None,
    **overrides: Any,
) -> OrderPayload:
    lines = tickets if tickets is not None else [OrderTicketLine('Regular', 1, 1500.0)]
    fields: dict[str, Any] = {
        'listing_id': listing_id,
        'user_name': 'Wanjiru Kamau',
        'user_email': 'wanjiru@example.com',
        'user_phone': '0712345678',
        'tickets': lines,
        'subtotal': sum(line.quantity * line.price for line in lines),
        'platform_fee': 50.0,
        'processing_fee': 25.5,
        'total': total,
        'promocode': promocode,
    }
    fields.update(overrides)
    return OrderPayload(**fields)


def make_client(
    *, ip_address: str = BUYER_IP, user_id: Optional[str] = 'user-1', **overrides: Any
) -> ClientContext:
    return ClientContext(
        ip_address=ip_address, user_agent='pytest-agent', user_id=user_id, **overrides
    )


def make_pending_order(
    *,
    order_id: str = 'order-1',
    transaction_id: str = 'txn-1',
    listing_id: str = LISTING_ID,
    tickets: Optional[list[OrderTicketLine]] = None,
    total: float = 3000.0,
    checkout_request_id: Optional[str] = 'ws_CO_1',
    updated_at: Optional[datetime] = None,
    promocode_id: Optional[str] = None,
) -> tuple[Order, Transaction]:
    order = Order.create(
        id=order_id,
        listing_id=listing_id,
        organizer_id=ORGANIZER_ID,
        listing_type=ListingType.EVENT,
        payment_type=PaymentType.FULL,
        user_id='user-1',
        user_name='Wanjiru Kamau',
        user_email='wanjiru@example.com',
        user_phone='0712345678',
        tickets=tickets or [OrderTicketLine('Regular', 2, 1500.0)],
        subtotal=total,
        discount=0.0,
        platform_fee=0.0,
        processing_fee=0.0,
        total=total,
        promocode_id=promocode_id,
    )
    transaction = Transaction.create(
        id=transaction_id, order_id=order_id, user_id='user-1', amount=total
    )
    if checkout_request_id:
        transaction = transaction.attach_checkout_request(checkout_request_id=checkout_request_id)
    if updated_at is not None:
        order = attrs.evolve(order, updated_at=updated_at)
        transaction = attrs.evolve(transaction, updated_at=updated_at)
    return order, transaction
