"""
OpenTelemetry tracing configuration
"""
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from sqlalchemy.engine import Engine
import structlog
import logging

from crowdfund.core.config import Settings

logging.getLogger("opentelemetry").setLevel(logging.WARNING)

logger = structlog.get_logger(__name__)


def init_tracing(app: FastAPI, settings: Settings, engine: Engine) -> bool:
    """Initialize OpenTelemetry tracing with an OTLP exporter; a no-op unless enabled"""
    if not settings.tracing_enabled:
        logger.info("Tracing disabled")
        return False

    try:
        resource = Resource(attributes={
            SERVICE_NAME: settings.service_name
        })
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=settings.otlp_endpoint),
                max_queue_size=2048,
                max_export_batch_size=512,
                schedule_delay_millis=5000
            )
        )
        trace.set_tracer_provider(provider)

        FastAPIInstrumentor.instrument_app(
            app,
            excluded_urls="/health,/metrics,/health/ready"
        )

        try:
            SQLAlchemyInstrumentor().instrument(engine=engine, enable_commenter=True)
        except Exception as db_error:
            logger.warning("Failed to instrument SQLAlchemy", error=str(db_error))

        logger.info(
            "OpenTelemetry tracing initialized successfully",
            service_name=settings.service_name,
            otlp_endpoint=settings.otlp_endpoint
        )
        return True

    except Exception as e:
        # Tracing is optional; the API still serves without it
        logger.error("Failed to initialize tracing", error=str(e), exc_info=True)
        return False
