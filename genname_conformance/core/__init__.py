"""Core configuration, logging, errors, and telemetry."""

from genname_conformance.core.config import HELLO_WORLD_TEXT, Settings, get_settings
from genname_conformance.core.errors import (
    ConfigurationError,
    ConformanceError,
    CreationFailure,
    EndpointMismatch,
    EndpointUnreachable,
    NameMismatch,
    ReadinessFailure,
    ReadinessTimeout,
    ResourceAPIError,
    ResourceNotFoundError,
    ScenarioTimeout,
    UnknownScenarioError,
)
from genname_conformance.core.logging import configure_logging, structured_log
from genname_conformance.core.telemetry import (
    get_metrics,
    get_trace_context,
    get_tracer,
    init_telemetry,
    instrument_fastapi,
    record_check_failure,
    record_probe_attempt,
    record_readiness_wait,
    record_scenario_run,
    span,
)

__all__ = [
    "HELLO_WORLD_TEXT",
    "Settings",
    "get_settings",
    "ConformanceError",
    "ConfigurationError",
    "CreationFailure",
    "EndpointMismatch",
    "EndpointUnreachable",
    "NameMismatch",
    "ReadinessFailure",
    "ReadinessTimeout",
    "ResourceAPIError",
    "ResourceNotFoundError",
    "ScenarioTimeout",
    "UnknownScenarioError",
    "configure_logging",
    "structured_log",
    "get_metrics",
    "get_trace_context",
    "get_tracer",
    "init_telemetry",
    "instrument_fastapi",
    "record_check_failure",
    "record_probe_attempt",
    "record_readiness_wait",
    "record_scenario_run",
    "span",
]
