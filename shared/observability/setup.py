import os
import logging
import structlog

# OpenTelemetry
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

# 1. Structlog Processor: Injects Trace/Span IDs into every log line
def add_otel_ids(logger, log_method, event_dict):
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict

# 2. Configure Structlog for JSON output
def configure_logging(level: str | None = None):
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_otel_ids,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

# 3. Configure OpenTelemetry Tracing
def configure_tracing(service_name: str):
    resource = Resource.create({SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    # Export to a collector only when one is configured; a local desktop
    # database has nothing listening on 4317 by default
    otlp_endpoint = os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)

# --- THE MASTER SETUP FUNCTION ---
def setup_observability(service_name: str):
    """
    Bootstraps Logging and Tracing for the order core.
    Call this once at start-up, before the schema is initialized.
    Metrics need no setup: the prometheus_client counters register on import.
    """
    configure_logging()
    configure_tracing(service_name)
