"""OpenTelemetry + Prometheus fallback wiring for the log analyzer."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable

from fastapi import FastAPI

from loganalyzer import config

logger = logging.getLogger("loganalyzer.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_parse_counter: Any | None = None
_parse_latency_hist: Any | None = None
_parsed_lines_counter: Any | None = None
_parser_failure_counter: Any | None = None
_task_outcome_counter: Any | None = None

_prom_enabled = False
_prom_parse_counter: Any | None = None
_prom_parse_latency_hist: Any | None = None
_prom_parsed_lines_counter: Any | None = None
_prom_parser_failure_counter: Any | None = None
_prom_task_outcome_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _label(value: str | None) -> str:
    return (value or "").strip() or "unknown"


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _parse_counter, _parse_latency_hist, _parsed_lines_counter
    global _parser_failure_counter, _task_outcome_counter
    global _prom_enabled
    global _prom_parse_counter, _prom_parse_latency_hist, _prom_parsed_lines_counter
    global _prom_parser_failure_counter, _prom_task_outcome_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (LOGANALYZER_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "loganalyzer"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "loganalyzer",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_exporter = OTLPSpanExporter(endpoint=traces_endpoint or None)
    trace_provider.add_span_processor(BatchSpanProcessor(trace_exporter))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("loganalyzer")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("loganalyzer")

    _parse_counter = meter.create_counter(
        "loganalyzer_parses_total",
        unit="1",
        description="Count of log parse operations",
    )
    _parse_latency_hist = meter.create_histogram(
        "loganalyzer_parse_latency_ms",
        unit="ms",
        description="Latency of full log parse operations",
    )
    _parsed_lines_counter = meter.create_counter(
        "loganalyzer_parsed_lines_total",
        unit="1",
        description="Log lines and event notifications seen while parsing",
    )
    _parser_failure_counter = meter.create_counter(
        "loganalyzer_parser_failures_total",
        unit="1",
        description="Count of log lines the parser had to drop",
    )
    _task_outcome_counter = meter.create_counter(
        "loganalyzer_tasks_total",
        unit="1",
        description="Reconstructed tasks by final status",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = tracer
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_enabled = True
            _prom_parse_counter = Counter(
                "loganalyzer_parses_total",
                "Count of log parse operations",
                ["result"],
            )
            _prom_parse_latency_hist = Histogram(
                "loganalyzer_parse_latency_ms",
                "Latency of full log parse operations",
                ["result"],
            )
            _prom_parsed_lines_counter = Counter(
                "loganalyzer_parsed_lines_total",
                "Log lines and event notifications seen while parsing",
                ["kind"],
            )
            _prom_parser_failure_counter = Counter(
                "loganalyzer_parser_failures_total",
                "Count of log lines the parser had to drop",
                ["parser"],
            )
            _prom_task_outcome_counter = Counter(
                "loganalyzer_tasks_total",
                "Reconstructed tasks by final status",
                ["status"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception:
        logger.debug("FastAPI uninstrumentation failed", exc_info=True)
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception:
        logger.debug("Meter provider shutdown failed", exc_info=True)
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception:
        logger.debug("Trace provider shutdown failed", exc_info=True)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_parse(result: str, duration_ms: float, *, lines: int = 0, events: int = 0) -> None:
    labels = {"result": _label(result)}
    latency = max(0.0, float(duration_ms))
    if _enabled and _parse_counter is not None:
        _parse_counter.add(1, labels)
    if _enabled and _parse_latency_hist is not None:
        _parse_latency_hist.record(latency, labels)
    if _enabled and _parsed_lines_counter is not None:
        if lines > 0:
            _parsed_lines_counter.add(lines, {"kind": "line"})
        if events > 0:
            _parsed_lines_counter.add(events, {"kind": "event"})
    if _prom_enabled and _prom_parse_counter is not None:
        _prom_parse_counter.labels(**labels).inc()
    if _prom_enabled and _prom_parse_latency_hist is not None:
        _prom_parse_latency_hist.labels(**labels).observe(latency)
    if _prom_enabled and _prom_parsed_lines_counter is not None:
        if lines > 0:
            _prom_parsed_lines_counter.labels(kind="line").inc(lines)
        if events > 0:
            _prom_parsed_lines_counter.labels(kind="event").inc(events)


def record_parser_failure(parser: str, count: int = 1) -> None:
    safe_count = max(0, int(count))
    if safe_count == 0:
        return
    labels = {"parser": _label(parser)}
    if _enabled and _parser_failure_counter is not None:
        _parser_failure_counter.add(safe_count, labels)
    if _prom_enabled and _prom_parser_failure_counter is not None:
        _prom_parser_failure_counter.labels(**labels).inc(safe_count)


def record_task_outcomes(statuses: Iterable[str]) -> None:
    if not _enabled and not _prom_enabled:
        return
    for status in statuses:
        labels = {"status": _label(status)}
        if _enabled and _task_outcome_counter is not None:
            _task_outcome_counter.add(1, labels)
        if _prom_enabled and _prom_task_outcome_counter is not None:
            _prom_task_outcome_counter.labels(**labels).inc()
