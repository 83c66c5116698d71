from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Optional

import attrs

from src.platform.logging.loguru_io import Logger
from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.entity.listing_entity import FreeMerch, ListingType
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


MISSING_BUYER_INFO_MESSAGE = (
    'User details are missing. Please provide your name, email and phone number.'
)


class OrderStatus(StrEnum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'


class PaymentType(StrEnum):
    FULL = 'full'
    BOOKING = 'booking'


class SalesChannel(StrEnum):
    DIRECT = 'direct'
    REFERRAL = 'referral'
    AD = 'ad'
    SEARCH = 'search'
    ORGANIC_SOCIAL = 'organic_social'


@attrs.define(frozen=True)
class OrderTicketLine:
    name: str
    quantity: int
    price: float


@attrs.define(frozen=True)
class DeviceInfo:
    user_agent: str
    ip_address: str


def validate_checkout_request(
    *,
    user_name: Optional[str],
    user_email: Optional[str],
    user_phone: Optional[str],
    tickets: list[OrderTicketLine],
) -> None:
    """
    Raises:
        CheckoutError: missing-buyer-info / invalid-order
    """
    if not (user_name and user_name.strip()) or not (user_email and user_email.strip()):
        raise CheckoutError(CheckoutErrorCode.MISSING_BUYER_INFO, MISSING_BUYER_INFO_MESSAGE)
    if not (user_phone and user_phone.strip()):
        raise CheckoutError(CheckoutErrorCode.MISSING_BUYER_INFO, MISSING_BUYER_INFO_MESSAGE)

    if not tickets:
        raise CheckoutError(CheckoutErrorCode.INVALID_ORDER, 'Please select at least one ticket.')
    for line in tickets:
        if line.quantity <= 0:
            raise CheckoutError(
                CheckoutErrorCode.INVALID_ORDER,
                f'Ticket quantity for "{line.name}" must be at least 1.',
            )
        if line.price < 0:
            raise CheckoutError(
                CheckoutErrorCode.INVALID_ORDER, f'Ticket price for "{line.name}" is invalid.'
            )


@attrs.define
class Order:
    id: str
    listing_id: str
    organizer_id: str
    listing_type: ListingType
    payment_type: PaymentType
    user_id: Optional[str]
    user_name: str
    user_email: str
    user_phone: str
    tickets: list[OrderTicketLine]
    subtotal: float
    discount: float
    platform_fee: float
    processing_fee: float
    total: float
    status: OrderStatus = OrderStatus.PENDING
    channel: SalesChannel = SalesChannel.DIRECT
    device_info: Optional[DeviceInfo] = None
    promocode_id: Optional[str] = None
    tracking_link_id: Optional[str] = None
    free_merch: Optional[FreeMerch] = None
    inventory_released: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: str,
        listing_id: str,
        organizer_id: str,
        listing_type: ListingType,
        payment_type: PaymentType,
        user_id: Optional[str],
        user_name: str,
        user_email: str,
        user_phone: str,
        tickets: list[OrderTicketLine],
        subtotal: float,
        discount: float,
        platform_fee: float,
        processing_fee: float,
        total: float,
        channel: SalesChannel = SalesChannel.DIRECT,
        device_info: Optional[DeviceInfo] = None,
        promocode_id: Optional[str] = None,
        tracking_link_id: Optional[str] = None,
        free_merch: Optional[FreeMerch] = None,
    ) -> 'Order':
        validate_checkout_request(
            user_name=user_name, user_email=user_email, user_phone=user_phone, tickets=tickets
        )
        if total < 0:
            raise CheckoutError(CheckoutErrorCode.INVALID_ORDER, 'Order total cannot be negative.')

        now = datetime.now(timezone.utc)
        return cls(
            id=id,
            listing_id=listing_id,
            organizer_id=organizer_id,
            listing_type=listing_type,
            payment_type=payment_type,
            user_id=user_id,
            user_name=user_name.strip(),
            user_email=user_email.strip(),
            user_phone=user_phone.strip(),
            tickets=list(tickets),
            subtotal=subtotal,
            discount=discount,
            platform_fee=platform_fee,
            processing_fee=processing_fee,
            total=total,
            status=OrderStatus.PENDING,
            channel=channel,
            device_info=device_info,
            promocode_id=promocode_id,
            tracking_link_id=tracking_link_id,
            free_merch=free_merch,
            inventory_released=False,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def requested_quantities(tickets: list[OrderTicketLine]) -> dict[str, int]:
        """Lines naming the same ticket type are summed."""
        requested: dict[str, int] = {}
        for line in tickets:
            requested[line.name] = requested.get(line.name, 0) + line.quantity
        return requested

    @property
    def ticket_count(self) -> int:
        return sum(line.quantity for line in self.tickets)

    @property
    def gateway_amount(self) -> int:
        """M-Pesa only accepts whole shillings; halves round up."""
        return int(Decimal(str(self.total)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED

    def mark_as_completed(self) -> 'Order':
        return attrs.evolve(
            self, status=OrderStatus.COMPLETED, updated_at=datetime.now(timezone.utc)
        )

    def mark_as_failed(self) -> 'Order':
        return attrs.evolve(self, status=OrderStatus.FAILED, updated_at=datetime.now(timezone.utc))

    def reset_to_pending(self) -> 'Order':
        """
        Raises:
            CheckoutError: order-already-paid / order-expired
        """
        if self.is_completed:
            raise CheckoutError(
                CheckoutErrorCode.ORDER_ALREADY_PAID, 'This order has already been paid.'
            )
        if self.inventory_released:
            raise CheckoutError(
                CheckoutErrorCode.ORDER_EXPIRED,
                'This order has expired and its tickets were released. Please start a new order.',
            )
        return attrs.evolve(
            self, status=OrderStatus.PENDING, updated_at=datetime.now(timezone.utc)
        )

    def mark_inventory_released(self) -> 'Order':
        return attrs.evolve(
            self,
            status=OrderStatus.FAILED,
            inventory_released=True,
            updated_at=datetime.now(timezone.utc),
        )

    def mark_inventory_reclaimed(self) -> 'Order':
        return attrs.evolve(self, inventory_released=False, updated_at=datetime.now(timezone.utc))
