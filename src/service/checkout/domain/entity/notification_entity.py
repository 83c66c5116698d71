from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

import attrs

from src.service.checkout.domain.entity.order_entity import Order


class NotificationType(StrEnum):
    NEW_ORDER = 'new_order'


ADMIN_ROLES = ('admin', 'super-admin')


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else f'{amount:.2f}'


@attrs.define
class Notification:
    type: NotificationType
    message: str
    link: str
    target_roles: list[str] = attrs.field(factory=list)
    target_users: list[str] = attrs.field(factory=list)
    read_by: list[str] = attrs.field(factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def new_order(
        cls, *, order: Order, listing_name: Optional[str], transaction_id: str
    ) -> 'Notification':
        return cls(
            type=NotificationType.NEW_ORDER,
            message=(
                f'{order.user_name} just placed an order for {listing_name or "an event"} '
                f'worth Ksh {_format_amount(order.total)}.'
            ),
            link=f'/admin/transactions/{transaction_id}',
            target_roles=list(ADMIN_ROLES),
            target_users=[order.organizer_id],
            read_by=[],
            created_at=datetime.now(timezone.utc),
        )
