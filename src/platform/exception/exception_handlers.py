"""
HTTP error mapping

Every error leaves the service in the same envelope the checkout endpoints use
for their structured results: ``{"success": false, "error": ..., "error_code": ...}``.
"""

from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from src.platform.exception.exceptions import CustomBaseError
from src.platform.logging.loguru_io import Logger

# Type alias for exception handlers (compatible with Starlette's expected signature)
ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


def _failure_body(
    *, error: str, error_code: str | None = None, details: Any = None
) -> dict[str, Any]:
    body: dict[str, Any] = {'success': False, 'error': error}
    if error_code:
        body['error_code'] = error_code
    if details is not None:
        body['details'] = details
    return body


async def custom_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, CustomBaseError) else CustomBaseError(str(exc), 500)
    return JSONResponse(
        status_code=error.status_code,
        content=_failure_body(error=error.message, error_code=getattr(error, 'code', None)),
    )


async def value_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=_failure_body(error=str(exc))
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, RequestValidationError) else RequestValidationError([])
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_failure_body(
            error='Invalid request payload.',
            error_code='invalid-request',
            details=[
                {'loc': list(e.get('loc', ())), 'msg': e.get('msg', '')} for e in error.errors()
            ],
        ),
    )


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    Logger.base.exception(f'💥 [UNHANDLED] {request.method} {request.url.path}: {exc}')
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_failure_body(error='An unknown error occurred.', error_code='unknown'),
    )


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    CustomBaseError: custom_error_handler,
    ValueError: value_error_handler,
    RequestValidationError: validation_error_handler,
    Exception: general_500_exception_handler,  # Catch-all for unhandled exceptions
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
