from datetime import datetime
from enum import StrEnum
from typing import Optional

import attrs

from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


class ListingType(StrEnum):
    EVENT = 'event'
    TOUR = 'tour'


@attrs.define(frozen=True)
class FreeMerch:
    product_id: str
    product_name: str


@attrs.define
class TicketType:
    name: str
    price: float
    quantity: int  # capacity
    tickets_sold: int = 0

    @property
    def remaining(self) -> int:
        return max(self.quantity - self.tickets_sold, 0)

    def can_fulfil(self, requested: int) -> bool:
        return self.tickets_sold + requested <= self.quantity


@attrs.define
class Listing:
    """
    A sellable event or tour together with its inventory ledger.

    tickets_sold per ticket type never exceeds quantity; the counters only move
    inside the checkout commit (and the stale-order release).
    """

    id: str
    name: str
    organizer_id: str
    listing_type: ListingType
    ticket_types: list[TicketType] = attrs.field(factory=list)
    total_tickets_sold: int = 0
    total_revenue: float = 0.0
    free_merch: Optional[FreeMerch] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def find_ticket_type(self, name: str) -> Optional[TicketType]:
        return next((t for t in self.ticket_types if t.name == name), None)

    def ensure_can_fulfil(self, requested: dict[str, int]) -> None:
        """
        Raises:
            CheckoutError: ticket-type-unavailable for an unknown ticket type,
                insufficient-inventory when a request exceeds what is left
        """
        for name, quantity in requested.items():
            ticket_type = self.find_ticket_type(name)
            if ticket_type is None:
                raise CheckoutError(
                    CheckoutErrorCode.TICKET_TYPE_UNAVAILABLE,
                    f'Ticket type "{name}" is not available for this listing.',
                )
            if not ticket_type.can_fulfil(quantity):
                raise CheckoutError(
                    CheckoutErrorCode.INSUFFICIENT_INVENTORY,
                    f'Not enough "{name}" tickets left. '
                    f'Only {ticket_type.remaining} remaining.',
                )
