"""
Storefront-side payment flow.

State machine:
    idle -> creating_order -> sending_stk -> awaiting_payment -> success | failed
    failed -> creating_order   (retry(), only while retry_count < max_retries)

Each attempt gets a generation number; poll results that arrive for an older
generation are dropped, so a superseded attempt can never flip the state of
the current one.

The flow owns the task group its polls run in, so use it as
``async with PaymentFlow(...) as flow``.
"""

from enum import StrEnum
from types import TracebackType
from typing import Any, Callable, Optional, Self

import anyio
from anyio.abc import TaskGroup

from src.platform.config.core_setting import Settings
from src.platform.logging.loguru_io import Logger
from src.service.checkout.client.checkout_api_client import CheckoutApiClient
from src.service.checkout.client.manual_payment_instructions import ManualPaymentInstructions
from src.service.checkout.client.payment_status_poller import (
    PolledStatus,
    TransactionStatusPoller,
)
from src.service.checkout.domain.entity.transaction_entity import TransactionStatus


class PaymentFlowState(StrEnum):
    IDLE = 'idle'
    CREATING_ORDER = 'creating_order'
    SENDING_STK = 'sending_stk'
    AWAITING_PAYMENT = 'awaiting_payment'
    SUCCESS = 'success'
    FAILED = 'failed'


class InvalidFlowTransition(Exception):
    pass


class PaymentFlow:
    def __init__(
        self,
        *,
        api: CheckoutApiClient,
        poller: TransactionStatusPoller,
        shortcode: str,
        max_retries: int = 2,
        on_change: Optional[Callable[['PaymentFlow'], None]] = None,
    ) -> None:
        self.api = api
        self.poller = poller
        self.shortcode = shortcode
        self.max_retries = max_retries
        self.on_change = on_change

        self.state = PaymentFlowState.IDLE
        self.order_id: Optional[str] = None
        self.transaction_id: Optional[str] = None
        self.total: float = 0.0
        self.retry_count = 0
        self.error: Optional[str] = None
        self.payment_initiated = False

        self._payload: Optional[dict[str, Any]] = None
        self._generation = 0
        self._task_group: Optional[TaskGroup] = None
        self._poll_scope: Optional[anyio.CancelScope] = None
        self._poll_done: Optional[anyio.Event] = None

    async def __aenter__(self) -> Self:
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> Optional[bool]:
        await self.close()
        task_group, self._task_group = self._task_group, None
        if task_group is None:
            return None
        return await task_group.__aexit__(exc_type, exc_val, exc_tb)

    @classmethod
    def from_settings(cls, *, api: CheckoutApiClient, settings: Settings) -> 'PaymentFlow':
        poller = TransactionStatusPoller(
            fetch_status=lambda transaction_id: api.get_transaction_status(
                transaction_id=transaction_id
            ),
            interval_seconds=settings.STATUS_POLL_INTERVAL_SECONDS,
        )
        return cls(
            api=api,
            poller=poller,
            shortcode=settings.MPESA_SHORTCODE,
            max_retries=settings.MAX_PAYMENT_RETRIES,
        )

    @property
    def can_retry(self) -> bool:
        return self.state == PaymentFlowState.FAILED and self.retry_count < self.max_retries

    @property
    def manual_instructions(self) -> Optional[ManualPaymentInstructions]:
        if self.state != PaymentFlowState.FAILED or self.retry_count < self.max_retries:
            return None
        if not self.order_id:
            return None
        return ManualPaymentInstructions.for_order(
            shortcode=self.shortcode, order_id=self.order_id, total=self.total
        )

    async def submit(self, payload: dict[str, Any]) -> PaymentFlowState:
        if self.state != PaymentFlowState.IDLE:
            raise InvalidFlowTransition(f'submit() is not allowed from {self.state}')

        self._payload = payload
        self.total = float(payload.get('total') or 0)
        generation = self._next_generation()
        self._transition(PaymentFlowState.CREATING_ORDER)

        body = await self._call(self.api.create_order(payload=payload))
        return self._after_initiation(body, generation)

    async def retry(self) -> PaymentFlowState:
        if self.state != PaymentFlowState.FAILED:
            raise InvalidFlowTransition(f'retry() is not allowed from {self.state}')
        if not self.can_retry:
            Logger.base.info(
                f'🧾 [PAYMENT-FLOW] Order {self.order_id} exhausted automated attempts, '
                f'showing manual payment instructions'
            )
            return self.state

        await self._cancel_poll()
        generation = self._next_generation()
        self.error = None
        self._transition(PaymentFlowState.CREATING_ORDER)

        if self.order_id and self.transaction_id:
            self.retry_count += 1
            body = await self._call(
                self.api.retry_payment(order_id=self.order_id, transaction_id=self.transaction_id)
            )
        else:
            # The order was never created; start over with the same payload
            body = await self._call(self.api.create_order(payload=self._payload or {}))
        return self._after_initiation(body, generation)

    async def wait(self) -> PaymentFlowState:
        """Wait for the current attempt's poll to finish."""
        if self._poll_done is not None:
            await self._poll_done.wait()
        return self.state

    async def close(self) -> None:
        """Stop polling; server-side order and transaction are left as they are."""
        self._next_generation()
        await self._cancel_poll()
        if not self.payment_initiated:
            Logger.base.info(
                f'🚪 [PAYMENT-FLOW] abandon_checkout order_id={self.order_id} state={self.state}'
            )

    def _after_initiation(self, body: dict[str, Any], generation: int) -> PaymentFlowState:
        if generation != self._generation:
            return self.state

        self.order_id = body.get('order_id') or self.order_id
        self.transaction_id = body.get('transaction_id') or self.transaction_id

        if not body.get('success'):
            self.error = body.get('error') or 'An unexpected server error occurred.'
            self._transition(PaymentFlowState.FAILED)
            return self.state

        self._transition(PaymentFlowState.SENDING_STK)
        self.payment_initiated = True
        self._transition(PaymentFlowState.AWAITING_PAYMENT)
        self._start_poll(generation=generation, transaction_id=self.transaction_id or '')
        return self.state

    def _start_poll(self, *, generation: int, transaction_id: str) -> None:
        if self._task_group is None:
            raise RuntimeError('PaymentFlow must be entered with "async with" before polling')

        scope = anyio.CancelScope()
        done = anyio.Event()
        self._poll_scope, self._poll_done = scope, done
        self._task_group.start_soon(self._poll, generation, transaction_id, scope, done)

    async def _poll(
        self, generation: int, transaction_id: str, scope: anyio.CancelScope, done: anyio.Event
    ) -> None:
        try:
            with scope:
                result = await self.poller.poll(transaction_id)
                self._apply_poll_result(generation=generation, result=result)
        finally:
            done.set()

    def _apply_poll_result(self, *, generation: int, result: Optional[PolledStatus]) -> None:
        if generation != self._generation:
            Logger.base.debug(f'🔕 [PAYMENT-FLOW] Dropping poll result of attempt {generation}')
            return
        if result is None:
            return

        self.retry_count = max(self.retry_count, result.retry_count)
        if result.status == TransactionStatus.COMPLETED:
            self.error = None
            self._transition(PaymentFlowState.SUCCESS)
        elif result.status == TransactionStatus.FAILED:
            self.error = result.fail_reason
            self._transition(PaymentFlowState.FAILED)

    async def _call(self, request: Any) -> dict[str, Any]:
        try:
            return await request
        except anyio.get_cancelled_exc_class():
            raise
        except Exception as e:
            Logger.base.error(f'❌ [PAYMENT-FLOW] Checkout request failed: {e}')
            return {'success': False, 'error': 'An unexpected server error occurred.'}

    async def _cancel_poll(self) -> None:
        scope, done = self._poll_scope, self._poll_done
        self._poll_scope = self._poll_done = None
        if scope is None or done is None:
            return
        scope.cancel()
        await done.wait()

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _transition(self, state: PaymentFlowState) -> None:
        self.state = state
        if self.on_change is not None:
            self.on_change(self)
