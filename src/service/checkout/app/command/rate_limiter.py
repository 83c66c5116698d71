from datetime import datetime, timedelta, timezone
from typing import Callable

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.checkout_dto import RateLimitDecision
from src.service.checkout.app.interface.i_rate_limit_repo import IRateLimitRepo
from src.service.checkout.domain.entity.rate_limit_entity import (
    RateLimitRecord,
    is_identifiable_client,
)


RATE_LIMITED_MESSAGE = (
    'You have made too many purchase attempts for this event. '
    'Please wait a few minutes before trying again.'
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """
    Sliding-window throttle keyed by (client IP, listing).

    Every order attempt is recorded, successful or not. A client whose IP is
    unknown is neither limited nor recorded.
    """

    def __init__(
        self,
        *,
        rate_limit_repo: IRateLimitRepo,
        window_seconds: int = 60,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.rate_limit_repo = rate_limit_repo
        self.window_seconds = window_seconds
        self.max_attempts = max_attempts
        self.clock = clock

    @Logger.io
    async def check_rate_limit(self, *, client_key: str, listing_id: str) -> RateLimitDecision:
        """
        Raises:
            Whatever the store raises; an unavailable store blocks the checkout
        """
        if not is_identifiable_client(client_key):
            return RateLimitDecision(allowed=True)

        key = RateLimitRecord.build_key(client_key=client_key, listing_id=listing_id)
        since = self.clock() - timedelta(seconds=self.window_seconds)
        attempts = await self.rate_limit_repo.count_since(key=key, since=since)

        if attempts >= self.max_attempts:
            Logger.base.warning(
                f'🚦 [RATE-LIMIT] {key} blocked: {attempts} attempts in {self.window_seconds}s'
            )
            return RateLimitDecision(allowed=False, error=RATE_LIMITED_MESSAGE)

        return RateLimitDecision(allowed=True)

    @Logger.io
    async def record_rate_limit(self, *, client_key: str, listing_id: str) -> None:
        if not is_identifiable_client(client_key):
            return

        record = RateLimitRecord.attempt(
            client_key=client_key,
            listing_id=listing_id,
            now=self.clock(),
            window_seconds=self.window_seconds,
        )
        try:
            await self.rate_limit_repo.add(record=record)
        except Exception as e:
            Logger.base.error(f'🚦 [RATE-LIMIT] Failed to record attempt for {record.key}: {e}')
