import hmac
from typing import Any, Callable, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.command.payment_outcome_applier import (
    AppliedOutcome,
    PaymentOutcomeApplier,
)
from src.service.checkout.app.dto.payment_dto import CallbackAcknowledgement, PaymentOutcome


class ReconcilePaymentCallbackUseCase:
    """
    M-Pesa STK callback webhook

    The provider retries on non-2xx answers, so anything we can never process
    (unknown request id, already settled payment) is acknowledged with 200.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        outcome_applier: PaymentOutcomeApplier,
        callback_secret: str,
    ) -> None:
        self.uow_factory = uow_factory
        self.outcome_applier = outcome_applier
        self.callback_secret = callback_secret
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        outcome_applier: PaymentOutcomeApplier = Depends(
            Provide[Container.payment_outcome_applier]
        ),
        settings: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            outcome_applier=outcome_applier,
            callback_secret=settings.MPESA_CALLBACK_SECRET.get_secret_value(),
        )

    @Logger.io
    async def reconcile(self, *, secret: str, body: Any) -> CallbackAcknowledgement:
        with self.tracer.start_as_current_span('use_case.reconcile_payment_callback') as span:
            if not self.callback_secret or not hmac.compare_digest(
                secret.encode(), self.callback_secret.encode()
            ):
                Logger.base.warning('🔒 [CALLBACK] Rejected callback with invalid secret')
                metrics.record_payment_callback(outcome='forbidden')
                return CallbackAcknowledgement(
                    http_status=403, result_code=1, result_desc='Invalid secret'
                )

            outcome = PaymentOutcome.from_stk_callback(body)
            if outcome is None:
                Logger.base.warning(f'📭 [CALLBACK] Invalid callback data: {body}')
                metrics.record_payment_callback(outcome='invalid')
                return CallbackAcknowledgement(
                    http_status=400, result_code=1, result_desc='Invalid callback data'
                )

            span.set_attribute('mpesa.checkout_request_id', outcome.checkout_request_id)
            span.set_attribute('mpesa.result_code', outcome.result_code)
            Logger.base.info(
                f'📬 [CALLBACK] {outcome.checkout_request_id} -> '
                f'{outcome.result_code} {outcome.result_desc}'
            )

            try:
                applied = await self._apply(outcome=outcome)
            except Exception as e:
                Logger.base.exception(
                    f'💥 [CALLBACK] Failed to process {outcome.checkout_request_id}: {e}'
                )
                metrics.record_payment_callback(outcome='error')
                return CallbackAcknowledgement(
                    http_status=500, result_code=1, result_desc='Internal Server Error'
                )

            metrics.record_payment_callback(outcome=applied)
            return CallbackAcknowledgement(http_status=200, result_code=0, result_desc='Accepted')

    async def _apply(self, *, outcome: PaymentOutcome) -> str:
        async with self.uow_factory() as uow:
            transaction = await uow.transaction_command_repo.get_by_checkout_request_id(
                checkout_request_id=outcome.checkout_request_id
            )
            if transaction is None:
                Logger.base.error(
                    f'❓ [CALLBACK] No transaction for request {outcome.checkout_request_id}, '
                    f'result {outcome.result_code}'
                )
                return 'unknown_request'

            applied = await self.outcome_applier.apply(
                uow=uow, transaction=transaction, outcome=outcome
            )
            if applied != AppliedOutcome.IGNORED:
                await uow.commit()
            return applied.value
