"""
Transaction status poller.

Samples the status endpoint at a fixed interval until the transaction reaches
a terminal state. Only one request is ever in flight; cancellation of the
awaiting task stops polling immediately.
"""

from typing import Any, Awaitable, Callable, Optional

import anyio
import attrs

from src.platform.logging.loguru_io import Logger
from src.service.checkout.domain.entity.transaction_entity import TransactionStatus


TERMINAL_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED})


@attrs.define(frozen=True)
class PolledStatus:
    status: TransactionStatus
    fail_reason: Optional[str] = None
    retry_count: int = 0


StatusFetcher = Callable[[str], Awaitable[dict[str, Any]]]


class TransactionStatusPoller:
    def __init__(
        self,
        *,
        fetch_status: StatusFetcher,
        interval_seconds: float = 3.0,
        max_polls: Optional[int] = None,
    ) -> None:
        self.fetch_status = fetch_status
        self.interval_seconds = interval_seconds
        self.max_polls = max_polls

    async def poll(self, transaction_id: str) -> Optional[PolledStatus]:
        """
        Return the first terminal status seen for the transaction.

        Returns None only when max_polls is set and exhausted.
        """
        polls = 0
        while self.max_polls is None or polls < self.max_polls:
            polls += 1
            result = await self._sample(transaction_id)
            if result is not None and result.status in TERMINAL_STATUSES:
                Logger.base.info(
                    f'📡 [POLLER] Transaction {transaction_id} reached {result.status}'
                )
                return result
            await anyio.sleep(self.interval_seconds)
        return None

    async def _sample(self, transaction_id: str) -> Optional[PolledStatus]:
        try:
            body = await self.fetch_status(transaction_id)
        except anyio.get_cancelled_exc_class():
            raise
        except Exception as e:
            # Transient: the next tick tries again
            Logger.base.warning(f'⚠️ [POLLER] Status fetch failed for {transaction_id}: {e}')
            return None

        if not body.get('success') or not body.get('status'):
            return None
        try:
            status = TransactionStatus(body['status'])
        except ValueError:
            Logger.base.warning(f'⚠️ [POLLER] Unknown status {body["status"]!r}')
            return None
        return PolledStatus(
            status=status,
            fail_reason=body.get('fail_reason'),
            retry_count=int(body.get('retry_count') or 0),
        )
