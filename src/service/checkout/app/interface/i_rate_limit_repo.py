from abc import ABC, abstractmethod
from datetime import datetime

from src.service.checkout.domain.entity.rate_limit_entity import RateLimitRecord


class IRateLimitRepo(ABC):
    @abstractmethod
    async def count_since(self, *, key: str, since: datetime) -> int:
        """Number of records for the key created strictly after `since`."""
        pass

    @abstractmethod
    async def add(self, *, record: RateLimitRecord) -> None:
        pass

    @abstractmethod
    async def delete_expired(self, *, now: datetime) -> int:
        pass
