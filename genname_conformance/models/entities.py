"""In-memory entity models for serving resources."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ResourceKind(str, Enum):
    """Serving resource kinds exercised by the conformance scenarios."""

    SERVICE = "Service"
    CONFIGURATION = "Configuration"
    ROUTE = "Route"
    REVISION = "Revision"

    @property
    def plural(self) -> str:
        return f"{self.value.lower()}s"


@dataclass
class ResourceNames:
    """Names resolved during one scenario; filled in as the platform assigns them."""

    image: str
    service: str = ""
    config: str = ""
    route: str = ""
    revision: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "image": self.image,
            "service": self.service,
            "config": self.config,
            "route": self.route,
            "revision": self.revision,
        }


@dataclass(frozen=True)
class ResourceRef:
    """A created resource owned by a scenario until teardown."""

    kind: ResourceKind
    name: str

    def __str__(self) -> str:
        return f"{self.kind.value}/{self.name}"


@dataclass
class ResourceObject:
    """Snapshot of a serving resource as returned by the platform."""

    kind: ResourceKind
    name: str
    namespace: str
    generate_name: str = ""
    generation: int = 0
    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.kind, self.name)

    @property
    def url(self) -> str:
        return self.status.get("url") or ""

    @property
    def observed_generation(self) -> int:
        return int(self.status.get("observedGeneration") or 0)

    @property
    def latest_created_revision_name(self) -> str:
        return self.status.get("latestCreatedRevisionName") or ""

    @property
    def latest_ready_revision_name(self) -> str:
        return self.status.get("latestReadyRevisionName") or ""

    @property
    def conditions(self) -> list[dict[str, Any]]:
        return list(self.status.get("conditions") or [])

    def condition(self, condition_type: str) -> Optional[dict[str, Any]]:
        for cond in self.conditions:
            if cond.get("type") == condition_type:
                return cond
        return None

    def condition_status(self, condition_type: str) -> str:
        """Return "True", "False" or "Unknown" (missing conditions are Unknown)."""
        cond = self.condition(condition_type)
        return str(cond.get("status", "Unknown")) if cond else "Unknown"

    def is_ready(self) -> bool:
        """Ready condition is True for the generation the client last wrote."""
        return self.generation == self.observed_generation and self.condition_status("Ready") == "True"

    @classmethod
    def from_manifest(cls, d: dict[str, Any]) -> "ResourceObject":
        metadata = d.get("metadata") or {}
        return cls(
            kind=ResourceKind(d.get("kind", "Service")),
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            generate_name=metadata.get("generateName", ""),
            generation=int(metadata.get("generation") or 0),
            spec=d.get("spec") or {},
            status=d.get("status") or {},
            labels=dict(metadata.get("labels") or {}),
        )
