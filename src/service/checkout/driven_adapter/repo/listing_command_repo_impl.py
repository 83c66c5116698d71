from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_listing_command_repo import IListingCommandRepo
from src.service.checkout.domain.entity.listing_entity import Listing
from src.service.checkout.driven_adapter.model.listing_model import ListingModel, TicketTypeModel
from src.service.checkout.driven_adapter.repo.entity_mapper import to_listing_entity


class ListingCommandRepoImpl(IListingCommandRepo):
    def __init__(
        self, session_factory: Callable[..., AsyncContextManager[AsyncSession]] | None = None
    ):
        self.session_factory = session_factory
        self.session: AsyncSession | None = None

    @asynccontextmanager
    async def _get_session(self) -> AsyncIterator[AsyncSession]:
        """
        If session is injected (from UoW), yield it directly without context management.
        Otherwise, use session_factory context manager.
        """
        if self.session is not None:
            yield self.session
        elif self.session_factory is not None:
            async with self.session_factory() as session:
                yield session
        else:
            raise RuntimeError('No session or session_factory available')

    @Logger.io
    async def get_for_update(self, *, listing_id: str) -> Optional[Listing]:
        async with self._get_session() as session:
            # FOR UPDATE is a no-op on SQLite, where BEGIN IMMEDIATE already holds the write lock
            result = await session.execute(
                select(ListingModel)
                .where(ListingModel.id == listing_id)
                .with_for_update(of=ListingModel)
                .execution_options(populate_existing=True)
            )
            db_listing = result.scalar_one_or_none()
            return to_listing_entity(db_listing) if db_listing else None

    @Logger.io
    async def claim_tickets(self, *, listing_id: str, requested: dict[str, int]) -> Optional[str]:
        async with self._get_session() as session:
            for name, quantity in requested.items():
                result = await session.execute(
                    update(TicketTypeModel)
                    .where(
                        TicketTypeModel.listing_id == listing_id,
                        TicketTypeModel.name == name,
                        TicketTypeModel.tickets_sold + quantity <= TicketTypeModel.quantity,
                    )
                    .values(tickets_sold=TicketTypeModel.tickets_sold + quantity)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:  # type: ignore[attr-defined]
                    return name

            await session.execute(
                update(ListingModel)
                .where(ListingModel.id == listing_id)
                .values(
                    total_tickets_sold=ListingModel.total_tickets_sold + sum(requested.values()),
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            return None

    @Logger.io
    async def release_tickets(self, *, listing_id: str, requested: dict[str, int]) -> None:
        async with self._get_session() as session:
            for name, quantity in requested.items():
                await session.execute(
                    update(TicketTypeModel)
                    .where(TicketTypeModel.listing_id == listing_id, TicketTypeModel.name == name)
                    .values(
                        tickets_sold=case(
                            (
                                TicketTypeModel.tickets_sold >= quantity,
                                TicketTypeModel.tickets_sold - quantity,
                            ),
                            else_=0,
                        )
                    )
                    .execution_options(synchronize_session=False)
                )

            total = sum(requested.values())
            await session.execute(
                update(ListingModel)
                .where(ListingModel.id == listing_id)
                .values(
                    total_tickets_sold=case(
                        (
                            ListingModel.total_tickets_sold >= total,
                            ListingModel.total_tickets_sold - total,
                        ),
                        else_=0,
                    ),
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )

    @Logger.io
    async def add_revenue(self, *, listing_id: str, amount: float) -> None:
        async with self._get_session() as session:
            await session.execute(
                update(ListingModel)
                .where(ListingModel.id == listing_id)
                .values(
                    total_revenue=ListingModel.total_revenue + amount,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
