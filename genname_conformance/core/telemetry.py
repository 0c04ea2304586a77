"""OpenTelemetry tracing and in-process conformance metrics."""

from contextlib import contextmanager
from typing import Any, Generator, Optional

from opentelemetry import trace
from opentelemetry.exporter.cloud_trace import CloudTraceSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

TRACER_NAME = "genname-conformance"

# In-memory metrics, reset per process
_metrics: dict[str, list[float] | int] = {
    "scenario_runs_total": 0,
    "scenario_failures_total": 0,
    "check_failures_total": 0,
    "probe_attempts_total": 0,
    "readiness_wait_seconds": [],
}


def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    return trace.get_tracer(name)


def get_trace_context() -> dict[str, str]:
    """Return trace_id and span_id for current span (for log correlation)."""
    current = trace.get_current_span()
    if not current.is_recording():
        return {}
    ctx = current.get_span_context()
    return {"trace_id": format(ctx.trace_id, "032x"), "span_id": format(ctx.span_id, "016x")}


def init_telemetry(service_name: str = TRACER_NAME, project_id: Optional[str] = None) -> None:
    """Install a tracer provider exporting to Cloud Trace when a project is configured."""
    if not project_id:
        return
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(CloudTraceSpanExporter(project_id=project_id)))
    trace.set_tracer_provider(provider)


def instrument_fastapi(app: Any) -> None:
    """Instrument FastAPI app for automatic tracing."""
    FastAPIInstrumentor.instrument_app(app)


def record_scenario_run(passed: bool) -> None:
    _metrics["scenario_runs_total"] = _metrics.get("scenario_runs_total", 0) + 1
    if not passed:
        _metrics["scenario_failures_total"] = _metrics.get("scenario_failures_total", 0) + 1


def record_check_failure() -> None:
    _metrics["check_failures_total"] = _metrics.get("check_failures_total", 0) + 1


def record_probe_attempt() -> None:
    _metrics["probe_attempts_total"] = _metrics.get("probe_attempts_total", 0) + 1


def record_readiness_wait(seconds: float) -> None:
    """Record how long a readiness wait took."""
    _metrics.setdefault("readiness_wait_seconds", []).append(seconds)


def get_metrics() -> dict[str, Any]:
    """Return current metrics snapshot (for /metrics or tests)."""
    out: dict[str, Any] = {}
    for k, v in _metrics.items():
        if isinstance(v, list):
            out[k] = {"count": len(v), "sum": sum(v), "values": list(v)}
        else:
            out[k] = v
    return out


@contextmanager
def span(name: str, attributes: Optional[dict[str, Any]] = None) -> Generator[Any, None, None]:
    """Context manager for a child span."""
    with get_tracer().start_as_current_span(name) as span_obj:
        if attributes:
            for key, val in attributes.items():
                span_obj.set_attribute(key, str(val))
        yield span_obj
