"""
Local development gateway

Accepts every push and hands back a Daraja-shaped CheckoutRequestID. The
result is delivered by posting a callback to /api/mpesa-callback/{secret}
(see script/simulate_mpesa_callback.py); status queries never have an answer,
so unanswered pushes are eventually expired by the sweeper.
"""

from datetime import datetime, timezone

import attrs
import uuid_utils

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.payment_dto import GatewayStatusResult, PaymentInitiationResult
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway


@attrs.define(frozen=True)
class InitiatedPush:
    phone_number: str
    amount: int
    order_id: str
    checkout_request_id: str


class MockPaymentGatewayImpl(IPaymentGateway):
    def __init__(self, *, fail_with: str | None = None) -> None:
        self.fail_with = fail_with
        self.pushes: list[InitiatedPush] = []

    @Logger.io
    async def initiate(
        self, *, phone_number: str, amount: int, order_id: str
    ) -> PaymentInitiationResult:
        if self.fail_with:
            return PaymentInitiationResult(success=False, error=self.fail_with)

        stamp = datetime.now(timezone.utc).strftime('%d%m%Y%H%M%S')
        checkout_request_id = f'ws_CO_{stamp}_{uuid_utils.uuid7().hex[-12:]}'
        self.pushes.append(
            InitiatedPush(
                phone_number=phone_number,
                amount=amount,
                order_id=order_id,
                checkout_request_id=checkout_request_id,
            )
        )
        Logger.base.info(
            f'🧪 [MOCK-MPESA] Pretended STK push for order {order_id} -> {checkout_request_id}'
        )
        return PaymentInitiationResult(success=True, checkout_request_id=checkout_request_id)

    async def query_status(self, *, checkout_request_id: str) -> GatewayStatusResult:
        return GatewayStatusResult()

    async def aclose(self) -> None:
        return None
