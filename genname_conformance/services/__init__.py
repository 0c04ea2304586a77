"""Services: naming, resource clients, readiness, probing, scenarios."""

from genname_conformance.services.client_factory import create_client
from genname_conformance.services.naming import generate_name_prefix, name_pattern, validate_name
from genname_conformance.services.probe import EndpointProbe
from genname_conformance.services.readiness import ReadinessWaiter
from genname_conformance.services.scenarios import (
    ROUTE_AND_CONFIG_SCENARIO,
    SERVICE_SCENARIO,
    ScenarioConfig,
    ScenarioOrchestrator,
    TeardownTracker,
    build_orchestrator,
)

__all__ = [
    "create_client",
    "generate_name_prefix",
    "name_pattern",
    "validate_name",
    "EndpointProbe",
    "ReadinessWaiter",
    "ROUTE_AND_CONFIG_SCENARIO",
    "SERVICE_SCENARIO",
    "ScenarioConfig",
    "ScenarioOrchestrator",
    "TeardownTracker",
    "build_orchestrator",
]
