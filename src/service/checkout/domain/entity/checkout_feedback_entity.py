from datetime import datetime, timezone
from typing import Optional

import attrs

from src.platform.exception.exceptions import DomainError


@attrs.define
class CheckoutFeedback:
    order_id: str
    rating: int
    user_id: Optional[str] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def create(
        cls, *, order_id: str, rating: int, user_id: Optional[str], reason: Optional[str]
    ) -> 'CheckoutFeedback':
        if not 1 <= rating <= 5:
            raise DomainError('Rating must be between 1 and 5.')
        return cls(
            order_id=order_id,
            rating=rating,
            user_id=user_id,
            reason=(reason or '').strip() or None,
            created_at=datetime.now(timezone.utc),
        )
