from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace
import orjson

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.command.reconcile_payment_callback_use_case import (
    ReconcilePaymentCallbackUseCase,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('/{secret}')
@Logger.io
async def mpesa_callback(
    secret: str,
    request: Request,
    use_case: ReconcilePaymentCallbackUseCase = Depends(ReconcilePaymentCallbackUseCase.depends),
) -> JSONResponse:
    with tracer.start_as_current_span('controller.mpesa_callback'):
        # Malformed JSON gets the same answer as a body without a request id
        body: Any
        try:
            body = orjson.loads(await request.body())
        except orjson.JSONDecodeError:
            body = None

        acknowledgement = await use_case.reconcile(secret=secret, body=body)
        return JSONResponse(
            status_code=acknowledgement.http_status, content=acknowledgement.to_body()
        )
