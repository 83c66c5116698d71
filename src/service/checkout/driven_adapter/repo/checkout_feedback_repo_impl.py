from typing import AsyncContextManager, Callable

from sqlalchemy.ext.asyncio import AsyncSession
import uuid_utils

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_checkout_feedback_repo import ICheckoutFeedbackRepo
from src.service.checkout.domain.entity.checkout_feedback_entity import CheckoutFeedback
from src.service.checkout.driven_adapter.model.checkout_feedback_model import (
    CheckoutFeedbackModel,
)


class CheckoutFeedbackRepoImpl(ICheckoutFeedbackRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @Logger.io
    async def create(self, *, feedback: CheckoutFeedback) -> None:
        async with self.session_factory() as session:
            session.add(
                CheckoutFeedbackModel(
                    id=str(uuid_utils.uuid7()),
                    order_id=feedback.order_id,
                    user_id=feedback.user_id,
                    rating=feedback.rating,
                    reason=feedback.reason,
                    created_at=feedback.created_at,
                )
            )
            await session.commit()
