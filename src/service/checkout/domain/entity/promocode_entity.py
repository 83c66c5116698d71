from datetime import datetime
from typing import Optional

import attrs


@attrs.define
class Promocode:
    """Discount code; checkout only reads it and books usage once payment lands."""

    id: str
    code: str
    discount_type: str
    discount_value: float
    listing_id: Optional[str] = None
    is_active: bool = True
    usage_count: int = 0
    usage_limit: Optional[int] = None
    expires_at: Optional[datetime] = None
    revenue_generated: float = 0.0

    def is_applicable(self, *, listing_id: str, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.listing_id is not None and self.listing_id != listing_id:
            return False
        if self.expires_at is not None and self.expires_at <= now:
            return False
        if self.usage_limit is not None and self.usage_count >= self.usage_limit:
            return False
        return True
