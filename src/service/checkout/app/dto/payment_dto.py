"""Payment gateway and reconciliation DTOs."""

from typing import Any, Optional

import attrs


@attrs.define(frozen=True)
class PaymentInitiationResult:
    success: bool
    checkout_request_id: Optional[str] = None
    error: Optional[str] = None


@attrs.define(frozen=True)
class GatewayStatusResult:
    """
    Outcome of asking the provider about a push.

    result_code None means the provider has no definitive answer yet.
    """

    result_code: Optional[int] = None
    result_desc: Optional[str] = None


@attrs.define(frozen=True)
class PaymentOutcome:
    """A definitive provider answer for one STK push, from the callback or a status query."""

    checkout_request_id: str
    result_code: int
    result_desc: Optional[str] = None
    receipt_number: Optional[str] = None
    transaction_date: Optional[str] = None
    phone_number: Optional[str] = None
    raw: Optional[dict[str, Any]] = None

    @property
    def is_success(self) -> bool:
        return self.result_code == 0

    @classmethod
    def from_stk_callback(cls, body: Any) -> Optional['PaymentOutcome']:
        """
        Parse the Daraja STK callback envelope:

            {"Body": {"stkCallback": {"CheckoutRequestID": ..., "ResultCode": 0,
              "ResultDesc": ..., "CallbackMetadata": {"Item": [{"Name": ..., "Value": ...}]}}}}

        Returns None when the envelope is malformed or carries no CheckoutRequestID.
        """
        if not isinstance(body, dict):
            return None
        envelope = body.get('Body')
        if not isinstance(envelope, dict):
            return None
        stk_callback = envelope.get('stkCallback')
        if not isinstance(stk_callback, dict):
            return None
        checkout_request_id = stk_callback.get('CheckoutRequestID')
        if not checkout_request_id:
            return None

        # Anything but an explicit 0 is a failed payment
        try:
            result_code = int(stk_callback.get('ResultCode'))
        except (TypeError, ValueError, OverflowError):
            result_code = 1

        # Failed payments carry no metadata at all
        callback_metadata = stk_callback.get('CallbackMetadata') or {}
        if not isinstance(callback_metadata, dict):
            return None
        items = callback_metadata.get('Item') or []
        if not isinstance(items, list):
            return None

        metadata: dict[str, Any] = {}
        for item in items:
            if isinstance(item, dict) and isinstance(item.get('Name'), str):
                metadata[item['Name']] = item.get('Value')

        def _as_str(value: Any) -> Optional[str]:
            return None if value is None else str(value)

        return cls(
            checkout_request_id=str(checkout_request_id),
            result_code=result_code,
            result_desc=stk_callback.get('ResultDesc'),
            receipt_number=_as_str(metadata.get('MpesaReceiptNumber')),
            transaction_date=_as_str(metadata.get('TransactionDate')),
            phone_number=_as_str(metadata.get('PhoneNumber')),
            raw=body,
        )


@attrs.define(frozen=True)
class CallbackAcknowledgement:
    """Body and status returned to the provider's webhook call."""

    http_status: int
    result_code: int
    result_desc: str

    def to_body(self) -> dict[str, Any]:
        return {'ResultCode': self.result_code, 'ResultDesc': self.result_desc}


@attrs.define(frozen=True)
class SweepReport:
    expired_orders: int = 0
    reconciled_orders: int = 0
    pruned_rate_limit_records: int = 0
