from datetime import datetime, timezone
from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import uuid_utils

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import WriteConflictError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.command.initiate_payment_for_order_use_case import (
    InitiatePaymentForOrderUseCase,
)
from src.service.checkout.app.command.rate_limiter import RateLimiter
from src.service.checkout.app.command.retry_payment_use_case import RetryPaymentUseCase
from src.service.checkout.app.dto.checkout_dto import (
    UNEXPECTED_ERROR_MESSAGE,
    CheckoutResult,
    ClientContext,
    OrderPayload,
)
from src.service.checkout.app.interface.i_notification_emitter import INotificationEmitter
from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.entity.notification_entity import Notification
from src.service.checkout.domain.entity.order_entity import (
    DeviceInfo,
    Order,
    validate_checkout_request,
)
from src.service.checkout.domain.entity.transaction_entity import Transaction
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


class CreateOrderAndInitiatePaymentUseCase:
    """
    Checkout orchestrator

    Flow:
    1. Validate buyer details and ticket lines (no side effects on failure)
    2. Rate limit per (client IP, listing)
    3. One atomic commit scoped to the listing row lock:
       listing -> availability -> promocode -> Order + Transaction -> claim counters
       (retried on write conflicts, never partially visible)
    4. Post-commit side effects: rate-limit record, admin notification, STK push

    Every failure comes back as a CheckoutResult; nothing is raised to the caller.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        rate_limiter: RateLimiter,
        notification_emitter: INotificationEmitter,
        payment_initiator: InitiatePaymentForOrderUseCase,
        retry_payment: RetryPaymentUseCase,
        max_commit_attempts: int = 3,
    ) -> None:
        self.uow_factory = uow_factory
        self.rate_limiter = rate_limiter
        self.notification_emitter = notification_emitter
        self.payment_initiator = payment_initiator
        self.retry_payment = retry_payment
        self.max_commit_attempts = max(1, max_commit_attempts)
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        rate_limiter: RateLimiter = Depends(Provide[Container.rate_limiter]),
        notification_emitter: INotificationEmitter = Depends(
            Provide[Container.notification_emitter]
        ),
        payment_initiator: InitiatePaymentForOrderUseCase = Depends(
            Provide[Container.payment_initiator]
        ),
        retry_payment: RetryPaymentUseCase = Depends(RetryPaymentUseCase.depends),
        settings: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            rate_limiter=rate_limiter,
            notification_emitter=notification_emitter,
            payment_initiator=payment_initiator,
            retry_payment=retry_payment,
            max_commit_attempts=settings.ORDER_COMMIT_MAX_ATTEMPTS,
        )

    @Logger.io
    async def create_order_and_initiate_payment(
        self,
        *,
        payload: OrderPayload,
        client: ClientContext,
        is_retry: bool = False,
        order_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> CheckoutResult:
        if is_retry and order_id and transaction_id:
            return await self.retry_payment.retry(order_id=order_id, transaction_id=transaction_id)

        with self.tracer.start_as_current_span(
            'use_case.create_order_and_initiate_payment',
            attributes={'listing.id': payload.listing_id, 'client.ip': client.ip_address},
        ) as span:
            try:
                result = await self._checkout(payload=payload, client=client)
            except CheckoutError as e:
                Logger.base.warning(
                    f'🛒 [CHECKOUT] Listing {payload.listing_id} rejected [{e.code}]: {e.message}'
                )
                result = CheckoutResult.from_error(e)
            except Exception as e:
                Logger.base.exception(
                    f'💥 [CHECKOUT] Unexpected error for listing {payload.listing_id}: {e}'
                )
                result = CheckoutResult.unexpected()

            span.set_attribute('checkout.success', result.success)
            if result.order_id:
                span.set_attribute('order.id', result.order_id)
            metrics.record_checkout(
                result=result.error_code.value if result.error_code else 'success'
            )
            return result

    async def _checkout(self, *, payload: OrderPayload, client: ClientContext) -> CheckoutResult:
        validate_checkout_request(
            user_name=payload.user_name,
            user_email=payload.user_email,
            user_phone=payload.user_phone,
            tickets=payload.tickets,
        )

        decision = await self.rate_limiter.check_rate_limit(
            client_key=client.ip_address, listing_id=payload.listing_id
        )
        if not decision.allowed:
            raise CheckoutError(
                CheckoutErrorCode.RATE_LIMITED, decision.error or 'Too many purchase attempts.'
            )

        # Attempts count whether or not the commit succeeds
        try:
            order, transaction, listing_name = await self._commit_with_retry(
                payload=payload, client=client
            )
        finally:
            await self.rate_limiter.record_rate_limit(
                client_key=client.ip_address, listing_id=payload.listing_id
            )

        Logger.base.info(
            f'📝 [CHECKOUT] Order {order.id} / transaction {transaction.id} committed '
            f'for listing {order.listing_id} ({order.ticket_count} tickets, Ksh {order.total})'
        )

        try:
            await self.notification_emitter.emit(
                notification=Notification.new_order(
                    order=order, listing_name=listing_name, transaction_id=transaction.id
                )
            )
            return await self.payment_initiator.initiate(order=order, transaction_id=transaction.id)
        except CheckoutError as e:
            return CheckoutResult.from_error(e, order_id=order.id, transaction_id=transaction.id)
        except Exception as e:
            Logger.base.exception(f'💥 [CHECKOUT] Post-commit step failed for order {order.id}: {e}')
            return CheckoutResult.unexpected(order_id=order.id, transaction_id=transaction.id)

    async def _commit_with_retry(
        self, *, payload: OrderPayload, client: ClientContext
    ) -> tuple[Order, Transaction, str]:
        for attempt in range(1, self.max_commit_attempts + 1):
            try:
                with metrics.order_commit_duration.time():
                    return await self._commit_order(payload=payload, client=client)
            except WriteConflictError:
                metrics.order_commit_conflicts.inc()
                Logger.base.warning(
                    f'⚔️ [CHECKOUT] Write conflict on listing {payload.listing_id} '
                    f'(attempt {attempt}/{self.max_commit_attempts})'
                )

        raise CheckoutError(CheckoutErrorCode.UNKNOWN, UNEXPECTED_ERROR_MESSAGE)

    async def _commit_order(
        self, *, payload: OrderPayload, client: ClientContext
    ) -> tuple[Order, Transaction, str]:
        requested = Order.requested_quantities(payload.tickets)

        async with self.uow_factory() as uow:
            listing = await uow.listing_command_repo.get_for_update(listing_id=payload.listing_id)
            if listing is None:
                raise CheckoutError(CheckoutErrorCode.LISTING_NOT_FOUND, 'Listing not found.')

            listing.ensure_can_fulfil(requested)

            promocode_id = await self._resolve_promocode(
                uow=uow, code=payload.promocode, listing_id=listing.id
            )

            order = Order.create(
                id=str(uuid_utils.uuid7()),
                listing_id=listing.id,
                organizer_id=listing.organizer_id,
                listing_type=listing.listing_type,
                payment_type=payload.payment_type,
                user_id=client.user_id,
                user_name=payload.user_name or '',
                user_email=payload.user_email or '',
                user_phone=payload.user_phone or '',
                tickets=payload.tickets,
                subtotal=payload.subtotal,
                discount=payload.discount,
                platform_fee=payload.platform_fee,
                processing_fee=payload.processing_fee,
                total=payload.total,
                channel=payload.channel,
                device_info=DeviceInfo(user_agent=client.user_agent, ip_address=client.ip_address),
                promocode_id=promocode_id,
                tracking_link_id=self._attributed_tracking_link(
                    client=client, promocode_id=promocode_id
                ),
                free_merch=listing.free_merch,
            )
            transaction = Transaction.create(
                id=str(uuid_utils.uuid7()),
                order_id=order.id,
                user_id=client.user_id,
                amount=order.total,
                ip_address=client.ip_address,
            )
            await uow.order_command_repo.create(order=order)
            await uow.transaction_command_repo.create(transaction=transaction)

            sold_out = await uow.listing_command_repo.claim_tickets(
                listing_id=listing.id, requested=requested
            )
            if sold_out is not None:
                ticket_type = listing.find_ticket_type(sold_out)
                raise CheckoutError(
                    CheckoutErrorCode.INSUFFICIENT_INVENTORY,
                    f'Not enough "{sold_out}" tickets left. '
                    f'Only {ticket_type.remaining if ticket_type else 0} remaining.',
                )

            await uow.commit()

        metrics.record_tickets_claimed(listing_id=listing.id, count=order.ticket_count)
        return order, transaction, listing.name

    @staticmethod
    async def _resolve_promocode(
        *, uow: AbstractUnitOfWork, code: Optional[str], listing_id: str
    ) -> Optional[str]:
        if not code or not code.strip():
            return None

        promocode = await uow.promocode_repo.get_by_code(code=code.strip())
        if promocode is None:
            Logger.base.info(f'🏷️ [CHECKOUT] Unknown promocode "{code}", order continues without it')
            return None
        if not promocode.is_applicable(listing_id=listing_id, now=datetime.now(timezone.utc)):
            Logger.base.info(f'🏷️ [CHECKOUT] Promocode "{code}" not applicable to {listing_id}')
            return None
        return promocode.id

    @staticmethod
    def _attributed_tracking_link(
        *, client: ClientContext, promocode_id: Optional[str]
    ) -> Optional[str]:
        """A sale made with a code other than the tracker's own is not credited to the link."""
        if not client.tracker_link_id:
            return None
        if promocode_id is not None and client.tracker_promocode_id != promocode_id:
            return None
        return client.tracker_link_id
