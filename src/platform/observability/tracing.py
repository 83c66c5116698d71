"""
OpenTelemetry tracing for the checkout service.

- FastAPI and SQLAlchemy auto-instrumentation
- OTLP export when OTEL_EXPORTER_OTLP_ENDPOINT is set (Jaeger/Tempo collector)
- Use cases, gateways and controllers open their own spans via trace.get_tracer(__name__)
"""

import os
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON


class TracingConfig:
    """
    Usage:
        tracing = TracingConfig(service_name='checkout-service')
        tracing.setup()
        ...
        tracing.shutdown()
    """

    def __init__(
        self,
        *,
        service_name: str,
        otlp_endpoint: str | None = None,
        enable_console: bool = False,
    ) -> None:
        self.service_name = service_name
        self.otlp_endpoint = otlp_endpoint or os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
        self.enable_console = (
            enable_console or os.getenv('OTEL_CONSOLE_EXPORT', 'false').lower() == 'true'
        )
        self.deploy_env = os.getenv('DEPLOY_ENV', 'local')

        self._provider: TracerProvider | None = None
        self._instrumented_engines: set[int] = set()

    @property
    def is_exporting(self) -> bool:
        return bool(self.otlp_endpoint) or self.enable_console

    def setup(self) -> None:
        """Install the global tracer provider; call once at startup."""
        resource = Resource(
            attributes={SERVICE_NAME: self.service_name, DEPLOYMENT_ENVIRONMENT: self.deploy_env}
        )

        # Keep everything here; volume control belongs to tail sampling in the collector
        self._provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

        if self.otlp_endpoint:
            self._provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otlp_endpoint))
            )
        if self.enable_console:
            self._provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self._provider)

    def instrument_fastapi(self, *, app: Any, excluded_urls: str = 'health,metrics') -> None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded_urls)

    def instrument_sqlalchemy(self, *, engine: Any) -> None:
        # AsyncEngine is instrumented through its sync_engine
        sync_engine = getattr(engine, 'sync_engine', engine)
        if id(sync_engine) in self._instrumented_engines:
            return
        SQLAlchemyInstrumentor().instrument(engine=sync_engine)
        self._instrumented_engines.add(id(sync_engine))

    def shutdown(self) -> None:
        """Flush pending spans."""
        if self._provider:
            self._provider.shutdown()
            self._provider = None
