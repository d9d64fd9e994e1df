"""OpenTelemetry and Cloud Trace integration with in-process counters."""

from contextlib import contextmanager
from threading import Lock
from typing import Any, Generator, Optional

from opentelemetry import trace
from opentelemetry.exporter.cloud_trace import CloudTraceSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

TRACER_NAME = "kvshare"

_COUNTERS = (
    "records_written_total",
    "records_read_total",
    "records_deleted_total",
    "access_denied_total",
    "backend_errors_total",
)

_metrics: dict[str, int] = {name: 0 for name in _COUNTERS}
_metrics_lock = Lock()


def get_tracer(name: str = TRACER_NAME) -> Any:
    """Return OpenTelemetry tracer (no-op until a provider is installed)."""
    return trace.get_tracer(name)


def get_trace_context() -> dict[str, str]:
    """Return trace_id and span_id for current span (for log correlation)."""
    current = trace.get_current_span()
    if current is None or not current.is_recording():
        return {}
    ctx = current.get_span_context()
    return {"trace_id": format(ctx.trace_id, "032x"), "span_id": format(ctx.span_id, "016x")}


def init_telemetry(service_name: str = TRACER_NAME, project_id: Optional[str] = None) -> None:
    """Install Cloud Trace exporter when a GCP project is configured."""
    if not project_id:
        return
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    exporter = CloudTraceSpanExporter(project_id=project_id)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def instrument_fastapi(app: Any) -> None:
    """Instrument FastAPI app for automatic tracing."""
    FastAPIInstrumentor.instrument_app(app)


def _inc(name: str) -> None:
    with _metrics_lock:
        _metrics[name] = _metrics.get(name, 0) + 1


def record_written() -> None:
    _inc("records_written_total")


def record_read() -> None:
    _inc("records_read_total")


def record_deleted() -> None:
    _inc("records_deleted_total")


def record_access_denied() -> None:
    """Count 401/403 outcomes."""
    _inc("access_denied_total")


def record_backend_error() -> None:
    _inc("backend_errors_total")


def get_metrics() -> dict[str, int]:
    """Return current metrics snapshot (for /metrics or tests)."""
    with _metrics_lock:
        return dict(_metrics)


def reset_metrics() -> None:
    with _metrics_lock:
        for name in _COUNTERS:
            _metrics[name] = 0


@contextmanager
def span(name: str, attributes: Optional[dict[str, Any]] = None) -> Generator[Any, None, None]:
    """Context manager for a child span."""
    with get_tracer().start_as_current_span(name) as span_obj:
        if attributes:
            for key, val in attributes.items():
                if val is not None:
                    span_obj.set_attribute(key, str(val))
        yield span_obj
