"""
Production FastAPI Application

Checkout endpoints, the M-Pesa callback webhook and the stale-order sweeper.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.orm_db_setting import create_db_and_tables, dispose_engine, get_engine
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Checkout Service] Starting up...')

    tracing = TracingConfig(service_name='checkout-service')
    tracing.setup()
    Logger.base.info('📊 [Checkout Service] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Checkout Service] Dependency injection wired')

    await create_db_and_tables()
    tracing.instrument_sqlalchemy(engine=get_engine())
    Logger.base.info('🗄️  [Checkout Service] Database ready + instrumented')

    Logger.base.info(f'💳 [Checkout Service] Payment gateway: {settings.PAYMENT_GATEWAY}')

    async with anyio.create_task_group() as tg:
        if settings.STALE_ORDER_SWEEP_ENABLED:
            await container.stale_order_sweeper().start(task_group=tg)

        Logger.base.info('✅ [Checkout Service] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Checkout Service] Shutting down...')
        tg.cancel_scope.cancel()

    try:
        await container.payment_gateway().aclose()
        Logger.base.info('💳 [Checkout Service] Payment gateway client closed')
    except Exception as e:
        Logger.base.error(f'❌ [Checkout Service] Failed to close payment gateway: {e}')

    await dispose_engine()
    Logger.base.info('🗄️  [Checkout Service] Database engine disposed')

    tracing.shutdown()
    Logger.base.info('📊 [Checkout Service] Tracing shutdown complete')

    container.unwire()

    Logger.base.info('👋 [Checkout Service] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
