"""
Unit of Work Pattern - one database transaction shared by the checkout repositories

Architecture:
- UoW owns the session lifecycle (opened on enter, closed on exit)
- UoW owns commit/rollback; leaving the block without commit() rolls back
- Repositories get the shared session injected by the UoW
- Write conflicts raised by the database surface as WriteConflictError so
  callers can retry the whole unit
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import get_session_maker, is_write_conflict
from src.platform.exception.exceptions import WriteConflictError
from src.platform.logging.loguru_io import Logger


if TYPE_CHECKING:
    from src.service.checkout.app.interface.i_listing_command_repo import IListingCommandRepo
    from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
    from src.service.checkout.app.interface.i_promocode_repo import IPromocodeRepo
    from src.service.checkout.app.interface.i_ticket_command_repo import ITicketCommandRepo
    from src.service.checkout.app.interface.i_transaction_command_repo import (
        ITransactionCommandRepo,
    )


class AbstractUnitOfWork(abc.ABC):
    """
    Abstract Unit of Work for the Checkout Service

    Usage:
        async with uow:
            listing = await uow.listing_command_repo.get_for_update(listing_id=...)
            await uow.order_command_repo.create(order=...)
            await uow.commit()
    """

    listing_command_repo: IListingCommandRepo
    order_command_repo: IOrderCommandRepo
    transaction_command_repo: ITransactionCommandRepo
    promocode_repo: IPromocodeRepo
    ticket_command_repo: ITicketCommandRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.rollback()

    async def commit(self) -> None:
        """Commit the transaction"""
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    SQLAlchemy implementation of Unit of Work

    Every `async with` opens a fresh session, so one instance may be reused for
    several attempts of the same work.
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None) -> None:
        self._session_factory = session_factory
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> AbstractUnitOfWork:
        from src.service.checkout.driven_adapter.repo.listing_command_repo_impl import (
            ListingCommandRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.order_command_repo_impl import (
            OrderCommandRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.promocode_repo_impl import PromocodeRepoImpl
        from src.service.checkout.driven_adapter.repo.ticket_command_repo_impl import (
            TicketCommandRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.transaction_command_repo_impl import (
            TransactionCommandRepoImpl,
        )

        session_factory = self._session_factory or get_session_maker()
        self.session = session_factory()

        # Create repositories with shared session
        self.listing_command_repo = ListingCommandRepoImpl()
        self.listing_command_repo.session = self.session
        self.order_command_repo = OrderCommandRepoImpl()
        self.order_command_repo.session = self.session
        self.transaction_command_repo = TransactionCommandRepoImpl()
        self.transaction_command_repo.session = self.session
        self.promocode_repo = PromocodeRepoImpl()
        self.promocode_repo.session = self.session
        self.ticket_command_repo = TicketCommandRepoImpl()
        self.ticket_command_repo.session = self.session

        return await super().__aenter__()

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self.session is not None:
                await self.session.close()
                self.session = None

        if exc is not None and is_write_conflict(exc):
            Logger.base.warning(f'⚔️ [UOW] Write conflict, transaction rolled back: {exc}')
            raise WriteConflictError() from exc

    async def _commit(self) -> None:
        if self.session is None:
            raise RuntimeError('Unit of work is not active')
        try:
            await self.session.commit()
        except Exception as e:
            if is_write_conflict(e):
                raise WriteConflictError() from e
            raise

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()
