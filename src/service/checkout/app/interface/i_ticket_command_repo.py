from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.ticket_entity import Ticket


class ITicketCommandRepo(ABC):
    @abstractmethod
    async def create_many(self, *, tickets: list[Ticket]) -> None:
        pass

    @abstractmethod
    async def count_by_order_id(self, *, order_id: str) -> int:
        pass
