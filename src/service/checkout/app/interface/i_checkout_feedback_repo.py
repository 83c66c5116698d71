from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.checkout_feedback_entity import CheckoutFeedback


class ICheckoutFeedbackRepo(ABC):
    @abstractmethod
    async def create(self, *, feedback: CheckoutFeedback) -> None:
        pass
