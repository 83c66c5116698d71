from abc import ABC, abstractmethod
from typing import Optional

from src.service.checkout.domain.entity.promocode_entity import Promocode


class IPromocodeRepo(ABC):
    @abstractmethod
    async def get_by_code(self, *, code: str) -> Optional[Promocode]:
        """Codes are matched case-insensitively (stored upper case)."""
        pass

    @abstractmethod
    async def record_usage(self, *, promocode_id: str, revenue: float) -> None:
        """usage_count += 1 and revenue_generated += revenue."""
        pass
