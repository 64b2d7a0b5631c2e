"""Request tracing and trace-correlated logging for the hirelane API."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_NAME,
    SERVICE_NAMESPACE,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from hirelane.core.config import Settings

logger = logging.getLogger(__name__)

CORRELATED_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"
PLAIN_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
UNTRACED_PATHS = ("healthz",)
SPAN_ATTRIBUTE_PREFIX = "hirelane."

_ENDPOINT_ENV_VARS = ("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "OTEL_EXPORTER_OTLP_ENDPOINT")


class TraceContextFilter(logging.Filter):
    """Stamps records with the active span ids; zeros outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else "0" * 32
        record.span_id = format(context.span_id, "016x") if context.is_valid else "0" * 16
        return True


@dataclass(slots=True)
class TelemetryRuntime:
    enabled: bool
    provider: TracerProvider | None = None
    exporter_endpoint: str | None = None


def configure_api_logging(settings: Settings | None = None, *, level: int = logging.INFO) -> None:
    """Install a root handler once and make every root handler trace-aware."""
    correlate = settings is None or settings.otel_log_correlation
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(CORRELATED_LOG_FORMAT if correlate else PLAIN_LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(level)
    if not correlate:
        return
    for handler in root.handlers:
        if not any(isinstance(existing, TraceContextFilter) for existing in handler.filters):
            handler.addFilter(TraceContextFilter())


def setup_api_telemetry(app: FastAPI, settings: Settings) -> TelemetryRuntime:
    if not settings.otel_enabled:
        logger.info("tracing disabled service=%s", settings.otel_service_name)
        return TelemetryRuntime(enabled=False)

    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: settings.otel_service_name,
                SERVICE_NAMESPACE: "hirelane",
                SERVICE_VERSION: app.version,
                DEPLOYMENT_ENVIRONMENT: settings.environment,
            }
        ),
        sampler=ParentBased(TraceIdRatioBased(settings.otel_trace_sample_ratio)),
    )
    endpoint = resolve_exporter_endpoint(settings)
    if endpoint:
        exporter = OTLPSpanExporter(endpoint=endpoint, headers=exporter_headers(settings) or None)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls=",".join(UNTRACED_PATHS))
    logger.info(
        "tracing enabled service=%s environment=%s sample_ratio=%s exporter=%s",
        settings.otel_service_name,
        settings.environment,
        settings.otel_trace_sample_ratio,
        endpoint or "none",
    )
    return TelemetryRuntime(enabled=True, provider=provider, exporter_endpoint=endpoint)


def shutdown_api_telemetry(app: FastAPI, runtime: TelemetryRuntime) -> None:
    if not runtime.enabled:
        return
    FastAPIInstrumentor.uninstrument_app(app)
    if runtime.provider is not None:
        runtime.provider.force_flush()
        runtime.provider.shutdown()


def resolve_exporter_endpoint(settings: Settings) -> str | None:
    """Settings win over the standard OTLP environment variables, traces-specific first."""
    if settings.otel_exporter_otlp_endpoint:
        return settings.otel_exporter_otlp_endpoint
    for name in _ENDPOINT_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


def exporter_headers(settings: Settings) -> dict[str, str]:
    """Parse ``key=value,key=value`` OTLP headers; malformed items are skipped."""
    raw = settings.otel_exporter_otlp_headers or os.getenv("OTEL_EXPORTER_OTLP_HEADERS") or ""
    pairs = (item.partition("=") for item in raw.split(","))
    return {key.strip(): value.strip() for key, separator, value in pairs if separator and key.strip()}


def tag_current_span(**attributes: Any) -> None:
    """Attach hirelane attributes to the span serving the current request."""
    span = trace.get_current_span()
    if not span.is_recording():
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(f"{SPAN_ATTRIBUTE_PREFIX}{key}", value)
