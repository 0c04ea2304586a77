"""Health and metrics endpoints."""

from fastapi import APIRouter

from genname_conformance.core.config import get_settings
from genname_conformance.core.telemetry import get_metrics

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Liveness: minimal check, no cluster access."""
    settings = get_settings()
    return {"status": "ok", "resource_client": settings.resource_client, "namespace": settings.namespace}


def _percentile(values: list[float], p: float) -> float:
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    idx = int((len(sorted_vals) - 1) * p)
    return round(sorted_vals[idx], 2)


@router.get("/metrics")
async def metrics() -> dict:
    """JSON counters for scenario runs, failed checks, probes and readiness waits."""
    snapshot = get_metrics()
    waits = snapshot.get("readiness_wait_seconds", {}).get("values", [])
    return {
        "scenario_runs_total": snapshot.get("scenario_runs_total", 0),
        "scenario_failures_total": snapshot.get("scenario_failures_total", 0),
        "check_failures_total": snapshot.get("check_failures_total", 0),
        "probe_attempts_total": snapshot.get("probe_attempts_total", 0),
        "readiness_wait_seconds": {
            "count": len(waits),
            "p50": _percentile(waits, 0.50),
            "p95": _percentile(waits, 0.95),
            "sum": round(float(sum(waits)), 2),
        },
    }
