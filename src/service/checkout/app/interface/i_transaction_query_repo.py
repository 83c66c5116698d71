from abc import ABC, abstractmethod
from typing import Optional

from src.service.checkout.domain.entity.transaction_entity import Transaction


class ITransactionQueryRepo(ABC):
    """Repository interface for transaction read operations (status polling)"""

    @abstractmethod
    async def get_by_id(self, *, transaction_id: str) -> Optional[Transaction]:
        pass
