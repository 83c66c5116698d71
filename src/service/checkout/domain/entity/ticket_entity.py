from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

import attrs
import uuid_utils

from src.service.checkout.domain.entity.order_entity import Order


class TicketStatus(StrEnum):
    VALID = 'valid'
    USED = 'used'
    CANCELLED = 'cancelled'


class TicketSource(StrEnum):
    ONLINE_SALE = 'online_sale'
    MANUAL = 'manual'


@attrs.define
class Ticket:
    id: str
    order_id: str
    user_id: Optional[str]
    user_name: str
    listing_id: str
    ticket_type: str
    qr_code: str
    status: TicketStatus = TicketStatus.VALID
    generated_by: TicketSource = TicketSource.ONLINE_SALE
    created_at: Optional[datetime] = None

    @classmethod
    def issue_for_order(cls, order: Order) -> list['Ticket']:
        """One ticket per purchased unit; the QR code carries the ticket id."""
        now = datetime.now(timezone.utc)
        tickets: list[Ticket] = []
        for line in order.tickets:
            for _ in range(line.quantity):
                ticket_id = str(uuid_utils.uuid7())
                tickets.append(
                    cls(
                        id=ticket_id,
                        order_id=order.id,
                        user_id=order.user_id,
                        user_name=order.user_name,
                        listing_id=order.listing_id,
                        ticket_type=line.name,
                        qr_code=ticket_id,
                        status=TicketStatus.VALID,
                        generated_by=TicketSource.ONLINE_SALE,
                        created_at=now,
                    )
                )
        return tickets
