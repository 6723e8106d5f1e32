from __future__ import annotations

from dataclasses import dataclass
import logging
import os

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from signal_console.core.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"
TRACE_EXCLUDED_URLS = "healthz"
EMPTY_TRACE_ID = "0" * 32
EMPTY_SPAN_ID = "0" * 16

_httpx_instrumentor = HTTPXClientInstrumentor()


@dataclass(slots=True)
class TelemetryRuntime:
    enabled: bool
    provider: TracerProvider | None


class TraceContextRecordFactory:
    """Log record factory stamping the active span ids on every record."""

    def __init__(self, base_factory) -> None:
        self.base_factory = base_factory

    def __call__(self, *args, **kwargs) -> logging.LogRecord:
        record = self.base_factory(*args, **kwargs)
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.trace_id = format(span_context.trace_id, "032x")
            record.span_id = format(span_context.span_id, "016x")
        else:
            record.trace_id = EMPTY_TRACE_ID
            record.span_id = EMPTY_SPAN_ID
        return record


def configure_api_logging() -> None:
    install_log_correlation()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


def install_log_correlation() -> None:
    current = logging.getLogRecordFactory()
    if isinstance(current, TraceContextRecordFactory):
        return
    logging.setLogRecordFactory(TraceContextRecordFactory(current))


def setup_api_telemetry(app: FastAPI, settings: Settings) -> TelemetryRuntime:
    """Instrument the app and outgoing httpx calls with a dedicated tracer provider.

    Spans are exported over OTLP/HTTP only when an endpoint is configured,
    either through settings or the standard ``OTEL_EXPORTER_OTLP_*`` variables.
    """
    if not settings.otel_enabled:
        return TelemetryRuntime(enabled=False, provider=None)

    if settings.otel_log_correlation:
        install_log_correlation()

    resource = Resource.create(
        {
            SERVICE_NAME: settings.otel_service_name,
            DEPLOYMENT_ENVIRONMENT: settings.environment,
        }
    )
    provider = TracerProvider(resource=resource, sampler=TraceIdRatioBased(settings.otel_trace_sample_ratio))

    endpoint = resolve_otlp_endpoint(settings)
    if endpoint:
        headers = parse_otlp_headers(settings.otel_exporter_otlp_headers or os.getenv("OTEL_EXPORTER_OTLP_HEADERS"))
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=headers or None)))
        logger.info("span export enabled service=%s endpoint=%s", settings.otel_service_name, endpoint)
    else:
        logger.info("no OTLP endpoint configured; spans for %s stay in process", settings.otel_service_name)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls=TRACE_EXCLUDED_URLS)
    _httpx_instrumentor.instrument(tracer_provider=provider)
    return TelemetryRuntime(enabled=True, provider=provider)


def shutdown_api_telemetry(app: FastAPI, runtime: TelemetryRuntime) -> None:
    if not runtime.enabled:
        return
    runtime.enabled = False
    FastAPIInstrumentor.uninstrument_app(app)
    _httpx_instrumentor.uninstrument()
    if runtime.provider is not None:
        runtime.provider.force_flush()
        runtime.provider.shutdown()


def resolve_otlp_endpoint(settings: Settings) -> str | None:
    return (
        settings.otel_exporter_otlp_endpoint
        or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        or None
    )


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2``; entries without ``=`` or a key are skipped."""
    pairs = (item.partition("=") for item in (raw or "").split(","))
    return {key.strip(): value.strip() for key, separator, value in pairs if separator and key.strip()}
