from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.command.payment_outcome_applier import (
    AppliedOutcome,
    PaymentOutcomeApplier,
)
from src.service.checkout.app.dto.payment_dto import PaymentOutcome, SweepReport
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.app.interface.i_rate_limit_repo import IRateLimitRepo
from src.service.checkout.domain.entity.order_entity import Order, OrderStatus
from src.service.checkout.domain.entity.transaction_entity import (
    PAYMENT_TIMED_OUT_REASON,
    TransactionStatus,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExpireStaleOrdersUseCase:
    """
    Resolve orders whose payment never settled and give their tickets back.

    Flow per stale order (pending/failed, untouched for longer than the TTL,
    inventory still held):
    1. Pending push with a request id: ask the provider first and settle a
       definitive answer exactly like the callback would
    2. Otherwise: transaction failed (timed out), order failed, ticket counters
       decremented and inventory_released set
    Finally expired rate-limit records are pruned.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        payment_gateway: IPaymentGateway,
        outcome_applier: PaymentOutcomeApplier,
        rate_limit_repo: IRateLimitRepo,
        ttl_seconds: int = 900,
        batch_size: int = 100,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.uow_factory = uow_factory
        self.payment_gateway = payment_gateway
        self.outcome_applier = outcome_applier
        self.rate_limit_repo = rate_limit_repo
        self.ttl_seconds = ttl_seconds
        self.batch_size = batch_size
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self) -> SweepReport:
        with self.tracer.start_as_current_span('use_case.expire_stale_orders') as span:
            now = self.clock()
            cutoff = now - timedelta(seconds=self.ttl_seconds)

            async with self.uow_factory() as uow:
                stale_orders = await uow.order_command_repo.list_stale(
                    updated_before=cutoff, limit=self.batch_size
                )

            expired = 0
            reconciled = 0
            for order in stale_orders:
                try:
                    if await self._reconcile_with_provider(order=order):
                        reconciled += 1
                    elif await self._expire(order_id=order.id, cutoff=cutoff):
                        expired += 1
                except Exception as e:
                    # One broken order must not stall the sweep; it is picked up next round
                    Logger.base.exception(f'💥 [SWEEP] Failed to resolve order {order.id}: {e}')

            pruned = await self.rate_limit_repo.delete_expired(now=now)

            metrics.stale_orders_expired.inc(expired)
            metrics.last_sweep_timestamp.set(now.timestamp())
            span.set_attribute('sweep.expired', expired)
            span.set_attribute('sweep.reconciled', reconciled)

            if stale_orders or pruned:
                Logger.base.info(
                    f'🧹 [SWEEP] {len(stale_orders)} stale orders: {expired} expired, '
                    f'{reconciled} settled by status query, {pruned} rate-limit records pruned'
                )
            return SweepReport(
                expired_orders=expired,
                reconciled_orders=reconciled,
                pruned_rate_limit_records=pruned,
            )

    async def _reconcile_with_provider(self, *, order: Order) -> bool:
        async with self.uow_factory() as uow:
            transaction = await uow.transaction_command_repo.get_by_order_id(order_id=order.id)

        if (
            transaction is None
            or transaction.status != TransactionStatus.PENDING
            or not transaction.mpesa_checkout_request_id
        ):
            return False

        checkout_request_id = transaction.mpesa_checkout_request_id
        status = await self.payment_gateway.query_status(checkout_request_id=checkout_request_id)
        if status.result_code is None:
            return False

        outcome = PaymentOutcome(
            checkout_request_id=checkout_request_id,
            result_code=status.result_code,
            result_desc=status.result_desc,
            raw={
                'source': 'stk_query',
                'ResultCode': status.result_code,
                'ResultDesc': status.result_desc,
            },
        )
        async with self.uow_factory() as uow:
            applied = await self.outcome_applier.apply(
                uow=uow, transaction=transaction, outcome=outcome
            )
            if applied == AppliedOutcome.IGNORED:
                return False
            await uow.commit()

        metrics.stale_orders_reconciled.labels(outcome=applied.value).inc()
        Logger.base.info(
            f'🔎 [SWEEP] Order {order.id} settled by status query: {applied} '
            f'({status.result_code} {status.result_desc})'
        )
        return True

    async def _expire(self, *, order_id: str, cutoff: datetime) -> bool:
        async with self.uow_factory() as uow:
            snapshot: Optional[Order] = await uow.order_command_repo.get_by_id(order_id=order_id)
            if snapshot is None:
                return False

            # Same lock the checkout commit and the payment settlement take
            await uow.listing_command_repo.get_for_update(listing_id=snapshot.listing_id)
            order = await uow.order_command_repo.get_by_id(order_id=order_id)
            transaction = await uow.transaction_command_repo.get_by_order_id(order_id=order_id)

            # Settled or retried since the sweep listed it
            if (
                order is None
                or order.status == OrderStatus.COMPLETED
                or order.inventory_released
                or order.updated_at is None
                or order.updated_at >= cutoff
                or (transaction is not None and transaction.status == TransactionStatus.COMPLETED)
            ):
                return False

            if transaction is not None and transaction.status == TransactionStatus.PENDING:
                await uow.transaction_command_repo.update(
                    transaction=transaction.mark_as_failed(reason=PAYMENT_TIMED_OUT_REASON)
                )

            await uow.listing_command_repo.release_tickets(
                listing_id=order.listing_id, requested=Order.requested_quantities(order.tickets)
            )
            await uow.order_command_repo.update(order=order.mark_inventory_released())
            await uow.commit()

        Logger.base.info(
            f'⌛ [SWEEP] Order {order_id} expired, {order.ticket_count} tickets released'
        )
        return True
