from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.service.checkout.domain.entity.order_entity import Order


class IOrderQueryRepo(ABC):
    """Repository interface for order read operations"""

    @abstractmethod
    async def find_latest_completed(
        self, *, user_id: str, listing_id: str, created_after: datetime
    ) -> Optional[Order]:
        """Newest completed order of the user for the listing created after the cutoff."""
        pass
