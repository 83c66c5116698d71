from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.service.checkout.domain.entity.order_entity import Order


class IOrderCommandRepo(ABC):
    @abstractmethod
    async def create(self, *, order: Order) -> Order:
        pass

    @abstractmethod
    async def get_by_id(self, *, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def update(self, *, order: Order) -> Order:
        """Persist status, inventory_released and updated_at."""
        pass

    @abstractmethod
    async def list_stale(self, *, updated_before: datetime, limit: int) -> list[Order]:
        """
        Pending/failed orders last touched before the cutoff whose inventory is
        still held, oldest first.
        """
        pass
