from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional

import attrs


PAYMENT_TIMED_OUT_REASON = 'Payment was not completed in time.'


class TransactionStatus(StrEnum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'


class PaymentMethod(StrEnum):
    MPESA = 'mpesa'
    CARD = 'card'
    MANUAL = 'manual'


@attrs.define
class Transaction:
    id: str
    order_id: str
    user_id: Optional[str]
    amount: float
    status: TransactionStatus = TransactionStatus.PENDING
    method: PaymentMethod = PaymentMethod.MPESA
    mpesa_checkout_request_id: Optional[str] = None
    mpesa_callback_data: Optional[dict[str, Any]] = None
    mpesa_confirmation_code: Optional[str] = None
    mpesa_transaction_date: Optional[str] = None
    mpesa_payer_phone_number: Optional[str] = None
    fail_reason: Optional[str] = None
    retry_count: int = 0
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        id: str,
        order_id: str,
        user_id: Optional[str],
        amount: float,
        ip_address: Optional[str] = None,
    ) -> 'Transaction':
        now = datetime.now(timezone.utc)
        return cls(
            id=id,
            order_id=order_id,
            user_id=user_id,
            amount=amount,
            status=TransactionStatus.PENDING,
            method=PaymentMethod.MPESA,
            retry_count=0,
            ip_address=ip_address,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (TransactionStatus.COMPLETED, TransactionStatus.FAILED)

    def attach_checkout_request(self, *, checkout_request_id: str) -> 'Transaction':
        return attrs.evolve(
            self,
            mpesa_checkout_request_id=checkout_request_id,
            updated_at=datetime.now(timezone.utc),
        )

    def mark_as_completed(
        self,
        *,
        callback_data: Optional[dict[str, Any]],
        confirmation_code: Optional[str],
        transaction_date: Optional[str],
        payer_phone_number: Optional[str],
    ) -> 'Transaction':
        return attrs.evolve(
            self,
            status=TransactionStatus.COMPLETED,
            mpesa_callback_data=callback_data,
            mpesa_confirmation_code=confirmation_code,
            mpesa_transaction_date=transaction_date,
            mpesa_payer_phone_number=payer_phone_number,
            fail_reason=None,
            updated_at=datetime.now(timezone.utc),
        )

    def mark_as_failed(
        self, *, reason: Optional[str], callback_data: Optional[dict[str, Any]] = None
    ) -> 'Transaction':
        return attrs.evolve(
            self,
            status=TransactionStatus.FAILED,
            fail_reason=reason,
            mpesa_callback_data=callback_data
            if callback_data is not None
            else self.mpesa_callback_data,
            updated_at=datetime.now(timezone.utc),
        )

    def reset_for_retry(self) -> 'Transaction':
        """
        Back to pending for a manual retry.

        The previous push keeps its request id until the new push replaces it,
        so a late callback for the old prompt still finds this transaction.
        """
        return attrs.evolve(
            self,
            status=TransactionStatus.PENDING,
            fail_reason=None,
            retry_count=self.retry_count + 1,
            updated_at=datetime.now(timezone.utc),
        )
