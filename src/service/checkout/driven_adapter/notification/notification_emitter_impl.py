from typing import AsyncContextManager, Callable

from sqlalchemy.ext.asyncio import AsyncSession
import uuid_utils

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_notification_emitter import INotificationEmitter
from src.service.checkout.domain.entity.notification_entity import Notification
from src.service.checkout.driven_adapter.model.notification_model import NotificationModel


class NotificationEmitterImpl(INotificationEmitter):
    """Writes notifications to the table the admin dashboard reads from."""

    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    async def emit(self, *, notification: Notification) -> None:
        try:
            async with self.session_factory() as session:
                session.add(
                    NotificationModel(
                        id=str(uuid_utils.uuid7()),
                        type=notification.type.value,
                        message=notification.message,
                        link=notification.link,
                        target_roles=list(notification.target_roles),
                        target_users=list(notification.target_users),
                        read_by=list(notification.read_by),
                        created_at=notification.created_at,
                    )
                )
                await session.commit()
        except Exception as e:
            # A lost notification must never fail the checkout
            Logger.base.error(f'🔔 [NOTIFICATION] Failed to add notification: {e}')
