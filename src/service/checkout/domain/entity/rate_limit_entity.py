from datetime import datetime, timedelta
from typing import Optional

import attrs


UNKNOWN_CLIENT = 'unknown'


@attrs.define(frozen=True)
class RateLimitRecord:
    key: str
    created_at: datetime
    expires_at: datetime

    @staticmethod
    def build_key(*, client_key: str, listing_id: str) -> str:
        return f'{client_key}_{listing_id}'

    @classmethod
    def attempt(
        cls, *, client_key: str, listing_id: str, now: datetime, window_seconds: int
    ) -> 'RateLimitRecord':
        return cls(
            key=cls.build_key(client_key=client_key, listing_id=listing_id),
            created_at=now,
            expires_at=now + timedelta(seconds=window_seconds),
        )


def is_identifiable_client(client_key: Optional[str]) -> bool:
    return bool(client_key) and client_key != UNKNOWN_CLIENT
