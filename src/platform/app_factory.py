"""
Checkout App Factory

Builds the FastAPI app shared by production (src/main.py) and tests
(test/test_main.py); the two differ only in their lifespan.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.platform.config.core_setting import settings
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.observability.tracing import TracingConfig
from src.service.checkout.driving_adapter.http_controller.checkout_controller import (
    router as checkout_router,
)
from src.service.checkout.driving_adapter.http_controller.mpesa_callback_controller import (
    router as mpesa_callback_router,
)


# (router, prefix, tag)
ROUTES: tuple[tuple[APIRouter, str, str], ...] = (
    (checkout_router, '/api/checkout', 'checkout'),
    # Safaricom posts here; the path secret is the only authentication
    (mpesa_callback_router, '/api/mpesa-callback', 'mpesa'),
)


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
    service_name: str = 'checkout-service',
) -> FastAPI:
    """
    Args:
        lifespan: startup/shutdown context (sweeper in production, tables only in tests)
        title_suffix: appended to the OpenAPI title, e.g. " (Test)"
        service_name: OpenTelemetry service name
    """
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description='Ticket checkout with M-Pesa STK push payments',
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Instrument before routes are mounted
    TracingConfig(service_name=service_name).instrument_fastapi(app=app)

    # Storefront runs on another origin and sends the session cookie
    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['GET', 'POST'],
        allow_headers=['*'],
    )

    register_exception_handlers(app)

    for router, prefix, tag in ROUTES:
        app.include_router(router, prefix=prefix, tags=[tag])

    _register_ops_endpoints(app, service_name=service_name)

    return app


def _register_ops_endpoints(app: FastAPI, *, service_name: str) -> None:
    @app.get('/health')
    async def health_check() -> dict[str, str]:
        return {
            'status': 'healthy',
            'service': service_name,
            'payment_gateway': settings.PAYMENT_GATEWAY,
        }

    @app.get('/metrics')
    async def get_metrics() -> PlainTextResponse:
        """Prometheus scrape endpoint (checkout counters and histograms)."""
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
