"""
Listing Command Repository Interface (Inventory Ledger)

All counter changes are compare-and-set so the ledger can never go above
capacity or below zero, whatever the interleaving.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.service.checkout.domain.entity.listing_entity import Listing


class IListingCommandRepo(ABC):
    @abstractmethod
    async def get_for_update(self, *, listing_id: str) -> Optional[Listing]:
        """
        Read the listing with its ticket types and hold its row lock until the
        surrounding unit of work ends.
        """
        pass

    @abstractmethod
    async def claim_tickets(self, *, listing_id: str, requested: dict[str, int]) -> Optional[str]:
        """
        Increment tickets_sold for every requested ticket type and the listing's
        total_tickets_sold.

        Returns:
            None when every counter moved, otherwise the name of the first ticket
            type whose capacity would have been exceeded (the caller must abort)
        """
        pass

    @abstractmethod
    async def release_tickets(self, *, listing_id: str, requested: dict[str, int]) -> None:
        """Give tickets back, never taking a counter below zero."""
        pass

    @abstractmethod
    async def add_revenue(self, *, listing_id: str, amount: float) -> None:
        pass
