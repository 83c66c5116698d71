from abc import ABC, abstractmethod
from typing import Optional

from src.service.checkout.domain.entity.transaction_entity import Transaction


class ITransactionCommandRepo(ABC):
    @abstractmethod
    async def create(self, *, transaction: Transaction) -> Transaction:
        pass

    @abstractmethod
    async def get_by_id(self, *, transaction_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def get_by_order_id(self, *, order_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def get_by_checkout_request_id(
        self, *, checkout_request_id: str
    ) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def update(self, *, transaction: Transaction) -> Transaction:
        pass
