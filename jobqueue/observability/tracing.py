"""
Tracing for enqueue, lock and execute steps.

Tracing is opt-in through the tracing_enabled setting. When it is off nothing
is installed and spans come from the OpenTelemetry API's no-op tracer, so the
queue code can open spans unconditionally.
"""

import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Tracer

from jobqueue import __version__
from jobqueue.config import get_settings

logger = logging.getLogger(__name__)

_tracer: Tracer | None = None


def _install_provider() -> None:
    settings = get_settings()
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": __version__,
            }
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)
        )
    )
    trace.set_tracer_provider(provider)
    logger.info(
        "Tracing enabled",
        extra={"endpoint": settings.otel_exporter_otlp_endpoint},
    )


def setup_tracing() -> Tracer:
    """
    Install the OTLP exporter if tracing is enabled and return the queue's tracer.

    Returns:
        Tracer: An exporting tracer, or the no-op tracer when tracing is off.
    """
    global _tracer

    settings = get_settings()
    if settings.tracing_enabled:
        _install_provider()

    _tracer = trace.get_tracer(settings.otel_service_name)
    return _tracer


def instrument_fastapi(app: Any) -> None:
    """Trace admin API requests when tracing is enabled."""
    if get_settings().tracing_enabled:
        FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine: Any) -> None:
    """
    Trace store queries when tracing is enabled.

    Args:
        engine: The async engine; its underlying sync engine is instrumented.
    """
    if get_settings().tracing_enabled:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


def get_tracer() -> Tracer:
    """Tracer used for queue spans; sets tracing up on first use."""
    if _tracer is None:
        return setup_tracing()
    return _tracer
