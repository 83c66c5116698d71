from enum import StrEnum
from typing import Optional

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.payment_dto import PaymentOutcome
from src.service.checkout.domain.checkout_error import CheckoutError
from src.service.checkout.domain.entity.listing_entity import Listing, ListingType
from src.service.checkout.domain.entity.order_entity import Order, PaymentType
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.entity.transaction_entity import Transaction, TransactionStatus


class AppliedOutcome(StrEnum):
    IGNORED = 'ignored'
    COMPLETED = 'completed'
    FAILED = 'failed'
    # Paid, but the released tickets were sold to someone else in the meantime
    UNFULFILLED = 'unfulfilled'


class PaymentOutcomeApplier:
    """
    Moves an order and its transaction to their final state for a definitive
    provider answer.

    Runs inside the caller's unit of work and never commits; the callback
    reconciler and the stale-order sweeper share it so both paths settle a
    payment the same way. Applying the same answer twice is a no-op.
    """

    @Logger.io
    async def apply(
        self, *, uow: AbstractUnitOfWork, transaction: Transaction, outcome: PaymentOutcome
    ) -> AppliedOutcome:
        order = await uow.order_command_repo.get_by_id(order_id=transaction.order_id)
        if order is None:
            Logger.base.error(
                f'❓ [RECONCILE] Transaction {transaction.id} points to missing order '
                f'{transaction.order_id}'
            )
            return AppliedOutcome.IGNORED

        # Settlement and expiry of an order are serialized on its listing row
        listing = await uow.listing_command_repo.get_for_update(listing_id=order.listing_id)
        order = await uow.order_command_repo.get_by_id(order_id=order.id) or order
        transaction = (
            await uow.transaction_command_repo.get_by_id(transaction_id=transaction.id)
            or transaction
        )

        if self._already_settled(order=order, transaction=transaction, outcome=outcome):
            Logger.base.info(
                f'🔁 [RECONCILE] Order {order.id} already settled '
                f'(order={order.status}, transaction={transaction.status}), ignoring'
            )
            return AppliedOutcome.IGNORED

        if outcome.is_success:
            return await self._apply_success(
                uow=uow, listing=listing, order=order, transaction=transaction, outcome=outcome
            )
        return await self._apply_failure(
            uow=uow, order=order, transaction=transaction, outcome=outcome
        )

    @staticmethod
    def _already_settled(
        *, order: Order, transaction: Transaction, outcome: PaymentOutcome
    ) -> bool:
        if order.is_completed or transaction.status == TransactionStatus.COMPLETED:
            return True
        if transaction.status == TransactionStatus.FAILED:
            # A late success for an expired order is still honoured
            return not (outcome.is_success and order.inventory_released)
        return False

    async def _apply_success(
        self,
        *,
        uow: AbstractUnitOfWork,
        listing: Optional[Listing],
        order: Order,
        transaction: Transaction,
        outcome: PaymentOutcome,
    ) -> AppliedOutcome:
        transaction = transaction.mark_as_completed(
            callback_data=outcome.raw,
            confirmation_code=outcome.receipt_number,
            transaction_date=outcome.transaction_date,
            payer_phone_number=outcome.phone_number,
        )
        await uow.transaction_command_repo.update(transaction=transaction)

        if order.inventory_released:
            if not await self._reclaim_inventory(uow=uow, listing=listing, order=order):
                Logger.base.error(
                    f'💸 [RECONCILE] Order {order.id} was paid after its tickets were released '
                    f'and they are no longer available. Manual refund required '
                    f'(receipt {outcome.receipt_number}, amount {order.total})'
                )
                return AppliedOutcome.UNFULFILLED
            order = order.mark_inventory_reclaimed()

        order = order.mark_as_completed()
        await uow.order_command_repo.update(order=order)
        await uow.listing_command_repo.add_revenue(listing_id=order.listing_id, amount=order.total)

        if order.payment_type == PaymentType.FULL and order.listing_type == ListingType.EVENT:
            already_issued = await uow.ticket_command_repo.count_by_order_id(order_id=order.id)
            if not already_issued:
                tickets = Ticket.issue_for_order(order)
                await uow.ticket_command_repo.create_many(tickets=tickets)
                Logger.base.info(
                    f'🎫 [RECONCILE] Issued {len(tickets)} tickets for order {order.id}'
                )

        if order.promocode_id:
            await uow.promocode_repo.record_usage(
                promocode_id=order.promocode_id, revenue=order.total
            )

        Logger.base.info(
            f'✅ [RECONCILE] Order {order.id} paid, receipt {outcome.receipt_number}'
        )
        return AppliedOutcome.COMPLETED

    @staticmethod
    async def _reclaim_inventory(
        *, uow: AbstractUnitOfWork, listing: Optional[Listing], order: Order
    ) -> bool:
        if listing is None:
            return False

        requested = Order.requested_quantities(order.tickets)
        try:
            listing.ensure_can_fulfil(requested)
        except CheckoutError:
            return False

        failed_ticket_type = await uow.listing_command_repo.claim_tickets(
            listing_id=order.listing_id, requested=requested
        )
        if failed_ticket_type is not None:
            # Checked under the listing lock above, so the counters cannot have moved
            raise RuntimeError(
                f'Ticket type "{failed_ticket_type}" changed while listing {order.listing_id} '
                f'was locked'
            )
        Logger.base.info(f'♻️ [RECONCILE] Re-claimed released tickets for order {order.id}')
        return True

    @staticmethod
    async def _apply_failure(
        *,
        uow: AbstractUnitOfWork,
        order: Order,
        transaction: Transaction,
        outcome: PaymentOutcome,
    ) -> AppliedOutcome:
        order = order.mark_as_failed()
        await uow.order_command_repo.update(order=order)

        transaction = transaction.mark_as_failed(
            reason=outcome.result_desc, callback_data=outcome.raw
        )
        await uow.transaction_command_repo.update(transaction=transaction)

        Logger.base.info(
            f'❌ [RECONCILE] Payment for order {order.id} failed: '
            f'{outcome.result_code} {outcome.result_desc}'
        )
        return AppliedOutcome.FAILED
