from __future__ import annotations

import logging

from fastapi import FastAPI
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from hirelane.core.config import Settings
from hirelane.core.telemetry import (
    TraceContextFilter,
    exporter_headers,
    resolve_exporter_endpoint,
    setup_api_telemetry,
    tag_current_span,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("hirelane.test", logging.INFO, __file__, 1, "hello", None, None)


def test_exporter_endpoint_prefers_settings_then_traces_variable(monkeypatch) -> None:
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4318")
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", raising=False)
    assert resolve_exporter_endpoint(Settings(otel_enabled=False)) == "http://collector:4318"

    monkeypatch.setenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "http://traces:4318/v1/traces")
    assert resolve_exporter_endpoint(Settings(otel_enabled=False)) == "http://traces:4318/v1/traces"

    configured = Settings(otel_enabled=False, otel_exporter_otlp_endpoint="http://explicit:4318")
    assert resolve_exporter_endpoint(configured) == "http://explicit:4318"


def test_exporter_endpoint_is_none_without_configuration(monkeypatch) -> None:
    for name in ("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "OTEL_EXPORTER_OTLP_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    assert resolve_exporter_endpoint(Settings(otel_enabled=False)) is None


def test_exporter_headers_skip_malformed_items(monkeypatch) -> None:
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_HEADERS", raising=False)
    settings = Settings(otel_enabled=False, otel_exporter_otlp_headers=" api-key = abc ,broken,=orphan, tenant=hl")
    assert exporter_headers(settings) == {"api-key": "abc", "tenant": "hl"}
    assert exporter_headers(Settings(otel_enabled=False)) == {}


def test_log_records_carry_zero_ids_outside_a_span() -> None:
    record = _record()
    assert TraceContextFilter().filter(record)
    assert record.trace_id == "0" * 32
    assert record.span_id == "0" * 16


def test_log_records_and_span_attributes_inside_a_span() -> None:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    tracer = provider.get_tracer("hirelane.test")

    with tracer.start_as_current_span("apply") as span:
        record = _record()
        TraceContextFilter().filter(record)
        tag_current_span(actor_id=7, actor_role="candidate", company_id=None)
        expected_trace_id = format(span.get_span_context().trace_id, "032x")

    assert record.trace_id == expected_trace_id
    (finished,) = exporter.get_finished_spans()
    assert dict(finished.attributes) == {"hirelane.actor_id": 7, "hirelane.actor_role": "candidate"}


def test_tagging_without_an_active_span_is_a_no_op() -> None:
    tag_current_span(actor_id=1)


def test_disabled_tracing_leaves_the_app_uninstrumented() -> None:
    runtime = setup_api_telemetry(FastAPI(), Settings(otel_enabled=False))
    assert not runtime.enabled
    assert runtime.provider is None
    assert runtime.exporter_endpoint is None
