from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.checkout_dto import UNEXPECTED_ERROR_MESSAGE, FeedbackResult
from src.service.checkout.app.interface.i_checkout_feedback_repo import ICheckoutFeedbackRepo
from src.service.checkout.domain.entity.checkout_feedback_entity import CheckoutFeedback


class LogCheckoutRatingUseCase:
    def __init__(self, *, checkout_feedback_repo: ICheckoutFeedbackRepo) -> None:
        self.checkout_feedback_repo = checkout_feedback_repo

    @classmethod
    @inject
    def depends(
        cls,
        checkout_feedback_repo: ICheckoutFeedbackRepo = Depends(
            Provide[Container.checkout_feedback_repo]
        ),
    ) -> Self:
        return cls(checkout_feedback_repo=checkout_feedback_repo)

    @Logger.io
    async def log_checkout_rating(
        self, *, rating: int, reason: Optional[str], order_id: str, user_id: Optional[str]
    ) -> FeedbackResult:
        try:
            feedback = CheckoutFeedback.create(
                order_id=order_id, rating=rating, user_id=user_id, reason=reason
            )
            await self.checkout_feedback_repo.create(feedback=feedback)
        except DomainError as e:
            return FeedbackResult(success=False, error=e.message)
        except Exception as e:
            Logger.base.error(f'⭐ [FEEDBACK] Failed to log checkout rating for {order_id}: {e}')
            return FeedbackResult(success=False, error=UNEXPECTED_ERROR_MESSAGE)

        Logger.base.info(f'⭐ [FEEDBACK] Order {order_id} rated {rating}/5')
        return FeedbackResult(success=True)
