from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.notification_entity import Notification


class INotificationEmitter(ABC):
    """
    Hands a notification to the admin/organizer feed.

    Best effort: implementations log failures and never raise.
    """

    @abstractmethod
    async def emit(self, *, notification: Notification) -> None:
        pass
