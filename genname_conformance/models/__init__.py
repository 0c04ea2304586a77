"""Data models: resource entities and verdict schemas."""

from genname_conformance.models.entities import (
    ResourceKind,
    ResourceNames,
    ResourceObject,
    ResourceRef,
)
from genname_conformance.models.schemas import (
    CheckResult,
    ConformanceReport,
    EndpointVerdict,
    ScenarioInfo,
    ScenarioRunRequest,
    ScenarioVerdict,
)

__all__ = [
    "ResourceKind",
    "ResourceNames",
    "ResourceObject",
    "ResourceRef",
    "CheckResult",
    "ConformanceReport",
    "EndpointVerdict",
    "ScenarioInfo",
    "ScenarioRunRequest",
    "ScenarioVerdict",
]
