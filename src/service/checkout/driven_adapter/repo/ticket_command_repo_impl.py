from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_ticket_command_repo import ITicketCommandRepo
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.driven_adapter.model.ticket_model import TicketModel


class TicketCommandRepoImpl(ITicketCommandRepo):
    def __init__(
        self, session_factory: Callable[..., AsyncContextManager[AsyncSession]] | None = None
    ):
        self.session_factory = session_factory
        self.session: AsyncSession | None = None

    @asynccontextmanager
    async def _get_session(self) -> AsyncIterator[AsyncSession]:
        if self.session is not None:
            yield self.session
        elif self.session_factory is not None:
            async with self.session_factory() as session:
                yield session
        else:
            raise RuntimeError('No session or session_factory available')

    @Logger.io
    async def create_many(self, *, tickets: list[Ticket]) -> None:
        async with self._get_session() as session:
            session.add_all(
                [
                    TicketModel(
                        id=ticket.id,
                        order_id=ticket.order_id,
                        user_id=ticket.user_id,
                        user_name=ticket.user_name,
                        listing_id=ticket.listing_id,
                        ticket_type=ticket.ticket_type,
                        qr_code=ticket.qr_code,
                        status=ticket.status.value,
                        generated_by=ticket.generated_by.value,
                        created_at=ticket.created_at,
                    )
                    for ticket in tickets
                ]
            )
            await session.flush()

    @Logger.io
    async def count_by_order_id(self, *, order_id: str) -> int:
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count()).select_from(TicketModel).where(TicketModel.order_id == order_id)
            )
            return int(result.scalar_one())
