"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings, settings
from src.platform.database.orm_db_setting import Database
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.checkout.app.command.expire_stale_orders_use_case import (
    ExpireStaleOrdersUseCase,
)
from src.service.checkout.app.command.initiate_payment_for_order_use_case import (
    InitiatePaymentForOrderUseCase,
)
from src.service.checkout.app.command.payment_outcome_applier import PaymentOutcomeApplier
from src.service.checkout.app.command.rate_limiter import RateLimiter
from src.service.checkout.driven_adapter.background.stale_order_sweeper import (
    StaleOrderSweeper,
)
from src.service.checkout.driven_adapter.notification.notification_emitter_impl import (
    NotificationEmitterImpl,
)
from src.service.checkout.driven_adapter.payment.mock_payment_gateway_impl import (
    MockPaymentGatewayImpl,
)
from src.service.checkout.driven_adapter.payment.mpesa_daraja_gateway_impl import (
    MpesaDarajaGatewayImpl,
)
from src.service.checkout.driven_adapter.repo.checkout_feedback_repo_impl import (
    CheckoutFeedbackRepoImpl,
)
from src.service.checkout.driven_adapter.repo.order_query_repo_impl import OrderQueryRepoImpl
from src.service.checkout.driven_adapter.repo.rate_limit_repo_impl import RateLimitRepoImpl
from src.service.checkout.driven_adapter.repo.transaction_query_repo_impl import (
    TransactionQueryRepoImpl,
)
from src.service.checkout.driving_adapter.http_controller.auth.session_auth import SessionAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (session factory for repositories used outside a unit of work)
    database = providers.Singleton(Database)

    # Unit of Work: a fresh instance per use case call, shares one session across
    # the listing/order/transaction/promocode/ticket command repositories
    unit_of_work = providers.Factory(SqlAlchemyUnitOfWork)

    # Repositories (stateless - use session_factory per call)
    order_query_repo = providers.Singleton(
        OrderQueryRepoImpl, session_factory=database.provided.session
    )
    transaction_query_repo = providers.Singleton(
        TransactionQueryRepoImpl, session_factory=database.provided.session
    )
    rate_limit_repo = providers.Singleton(
        RateLimitRepoImpl, session_factory=database.provided.session
    )
    checkout_feedback_repo = providers.Singleton(
        CheckoutFeedbackRepoImpl, session_factory=database.provided.session
    )

    # Notifications (admin feed)
    notification_emitter = providers.Singleton(
        NotificationEmitterImpl, session_factory=database.provided.session
    )

    # Payment gateway: PAYMENT_GATEWAY=daraja in production, mock for local/test
    payment_gateway = providers.Selector(
        providers.Callable(lambda: settings.PAYMENT_GATEWAY),
        daraja=providers.Singleton(MpesaDarajaGatewayImpl.from_settings, settings=config_service),
        mock=providers.Singleton(MockPaymentGatewayImpl),
    )

    # Auth service
    session_auth = providers.Singleton(SessionAuth)

    # Checkout building blocks
    rate_limiter = providers.Singleton(
        RateLimiter,
        rate_limit_repo=rate_limit_repo,
        window_seconds=config_service.provided.RATE_LIMIT_WINDOW_SECONDS,
        max_attempts=config_service.provided.RATE_LIMIT_MAX_ATTEMPTS,
    )
    payment_outcome_applier = providers.Singleton(PaymentOutcomeApplier)
    payment_initiator = providers.Factory(
        InitiatePaymentForOrderUseCase,
        uow_factory=unit_of_work.provider,
        payment_gateway=payment_gateway,
    )

    # Stale order sweep (runs in the lifespan task group)
    expire_stale_orders_use_case = providers.Factory(
        ExpireStaleOrdersUseCase,
        uow_factory=unit_of_work.provider,
        payment_gateway=payment_gateway,
        outcome_applier=payment_outcome_applier,
        rate_limit_repo=rate_limit_repo,
        ttl_seconds=config_service.provided.PENDING_ORDER_TTL_SECONDS,
    )
    stale_order_sweeper = providers.Singleton(
        StaleOrderSweeper,
        use_case_factory=expire_stale_orders_use_case.provider,
        interval_seconds=config_service.provided.STALE_ORDER_SWEEP_INTERVAL_SECONDS,
    )


container = Container()
