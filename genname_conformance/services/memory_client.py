"""In-memory serving platform (non-persistent) for dry runs and tests."""

from __future__ import annotations

import copy
import secrets
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import httpx

from genname_conformance.core.config import HELLO_WORLD_TEXT, Settings
from genname_conformance.core.errors import ResourceAPIError, ResourceNotFoundError
from genname_conformance.models.entities import ResourceKind, ResourceObject, ResourceRef
from genname_conformance.services.resource_client import BaseResourceClient, register_client

# Kubernetes appends 5 characters from this alphabet to a generateName,
# truncating the prefix so the result fits in a DNS label.
GENERATE_NAME_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
GENERATE_NAME_SUFFIX_LENGTH = 5
MAX_NAME_LENGTH = 63

SERVICE_LABEL = "serving.knative.dev/service"
CONFIGURATION_LABEL = "serving.knative.dev/configuration"


def _condition(condition_type: str, status: str, reason: str = "", message: str = "") -> dict[str, str]:
    cond = {"type": condition_type, "status": status}
    if reason:
        cond["reason"] = reason
    if message:
        cond["message"] = message
    return cond


def revision_name_for(config_name: str, generation: int = 1) -> str:
    return f"{config_name}-{generation:05d}"


@dataclass
class _Record:
    obj: ResourceObject
    reads: int = 0
    owner: Optional[ResourceRef] = None


class MemoryResourceClient(BaseResourceClient):
    """
    Simulates the platform's observable contract: names synthesized from
    generateName, readiness reached after a number of reads, and ready
    routes answering with serving_text.
    """

    def __init__(
        self,
        namespace: str = "serving-tests",
        *,
        serving_text: str = HELLO_WORLD_TEXT,
        serve_status: int = 200,
        domain: str = "example.com",
        ready_after_reads: int = 2,
        never_ready: bool = False,
        suffix_length: int = GENERATE_NAME_SUFFIX_LENGTH,
        fail_create: Iterable[ResourceKind] = (),
    ) -> None:
        super().__init__(namespace)
        self.serving_text = serving_text
        self.serve_status = serve_status
        self.domain = domain
        self.ready_after_reads = ready_after_reads
        self.never_ready = never_ready
        self.suffix_length = suffix_length
        self.fail_create = set(fail_create)
        self.deleted: list[ResourceRef] = []
        self._store: dict[tuple[ResourceKind, str], _Record] = {}

    # --- naming ---

    def _generate(self, kind: ResourceKind, generate_name: str) -> str:
        base = generate_name[: MAX_NAME_LENGTH - self.suffix_length]
        for _ in range(100):
            suffix = "".join(secrets.choice(GENERATE_NAME_ALPHABET) for _ in range(self.suffix_length))
            name = base + suffix
            if (kind, name) not in self._store:
                return name
        raise ResourceAPIError(
            f"{kind.value} {generate_name!r}: unable to generate a unique name",
            status_code=409,
            details={"reason": "AlreadyExists"},
        )

    # --- CRUD ---

    async def create(self, kind: ResourceKind, manifest: dict[str, Any]) -> ResourceObject:
        if kind in self.fail_create:
            raise ResourceAPIError(
                f"admission webhook denied the {kind.value}",
                status_code=500,
                details={"kind": kind.value},
            )
        obj = ResourceObject.from_manifest(copy.deepcopy(manifest))
        obj.namespace = self.namespace
        if obj.name:
            if (kind, obj.name) in self._store:
                raise ResourceAPIError(
                    f'{kind.plural} "{obj.name}" already exists',
                    status_code=409,
                    details={"reason": "AlreadyExists"},
                )
        elif obj.generate_name:
            obj.name = self._generate(kind, obj.generate_name)
        else:
            raise ResourceAPIError(
                "name or generateName is required",
                status_code=422,
                details={"reason": "Invalid"},
            )
        obj.generation = 1
        obj.status = {"conditions": [_condition("Ready", "Unknown")]}
        if kind is ResourceKind.ROUTE:
            obj.status["url"] = self._url_for(obj.name)
        self._store[(kind, obj.name)] = _Record(obj=obj)
        if kind is ResourceKind.SERVICE:
            self._create_children(obj)
        return copy.deepcopy(obj)

    def _create_children(self, service: ResourceObject) -> None:
        owner = service.ref
        labels = {SERVICE_LABEL: service.name}
        config = ResourceObject(
            kind=ResourceKind.CONFIGURATION,
            name=service.name,
            namespace=self.namespace,
            generation=1,
            spec={"template": copy.deepcopy(service.spec.get("template", {}))},
            status={"conditions": [_condition("Ready", "Unknown")]},
            labels=dict(labels),
        )
        route = ResourceObject(
            kind=ResourceKind.ROUTE,
            name=service.name,
            namespace=self.namespace,
            generation=1,
            spec={"traffic": [{"configurationName": service.name, "latestRevision": True, "percent": 100}]},
            status={"url": self._url_for(service.name), "conditions": [_condition("Ready", "Unknown")]},
            labels=dict(labels),
        )
        self._store[(ResourceKind.CONFIGURATION, config.name)] = _Record(obj=config, owner=owner)
        self._store[(ResourceKind.ROUTE, route.name)] = _Record(obj=route, owner=owner)

    async def get(self, kind: ResourceKind, name: str) -> ResourceObject:
        record = self._store.get((kind, name))
        if record is None:
            raise ResourceNotFoundError(kind.value, name)
        record.reads += 1
        self._reconcile(record)
        return copy.deepcopy(record.obj)

    async def delete(self, kind: ResourceKind, name: str) -> None:
        if (kind, name) not in self._store:
            raise ResourceNotFoundError(kind.value, name)
        self._remove(ResourceRef(kind, name))

    async def delete_collection(self, kind: ResourceKind, label_selector: str) -> None:
        wanted = dict(pair.split("=", 1) for pair in label_selector.split(",") if "=" in pair)
        matches = [
            record.obj.ref
            for (k, _), record in self._store.items()
            if k is kind and all(record.obj.labels.get(key) == value for key, value in wanted.items())
        ]
        for ref in matches:
            self._remove(ref)

    def _remove(self, ref: ResourceRef) -> None:
        removed = [ref] + [r.obj.ref for r in self._store.values() if r.owner == ref]
        for item in removed:
            self._store.pop((item.kind, item.name), None)
        self.deleted.append(ref)
        configs = {item.name for item in removed if item.kind is ResourceKind.CONFIGURATION}
        for key, record in list(self._store.items()):
            if key[0] is ResourceKind.REVISION and record.obj.labels.get(CONFIGURATION_LABEL) in configs:
                del self._store[key]

    def names(self, kind: ResourceKind) -> list[str]:
        return sorted(name for (k, name) in self._store if k is kind)

    # --- reconciliation ---

    def _progressed(self, record: _Record, extra_reads: int = 0) -> bool:
        return not self.never_ready and record.reads >= self.ready_after_reads + extra_reads

    def _reconcile(self, record: _Record) -> None:
        kind = record.obj.kind
        if kind is ResourceKind.SERVICE:
            self._reconcile_service(record)
        elif kind is ResourceKind.CONFIGURATION:
            self._reconcile_configuration(record)
        elif kind is ResourceKind.ROUTE:
            self._reconcile_route(record)

    def _revision_failure(self, config_name: str) -> Optional[str]:
        revision = revision_name_for(config_name)
        if len(revision) > MAX_NAME_LENGTH:
            return f"revision name {revision!r} must be no more than {MAX_NAME_LENGTH} characters"
        return None

    def _ensure_revision(self, config: ResourceObject) -> str:
        revision = revision_name_for(config.name)
        key = (ResourceKind.REVISION, revision)
        if key not in self._store:
            obj = ResourceObject(
                kind=ResourceKind.REVISION,
                name=revision,
                namespace=self.namespace,
                generation=1,
                spec=copy.deepcopy(config.spec.get("template", {}).get("spec", {})),
                status={"observedGeneration": 1, "conditions": [_condition("Ready", "True")]},
                labels={CONFIGURATION_LABEL: config.name},
            )
            self._store[key] = _Record(obj=obj)
        return revision

    def _mark_configuration_ready(self, config: ResourceObject) -> None:
        revision = self._ensure_revision(config)
        config.status = {
            "observedGeneration": config.generation,
            "latestCreatedRevisionName": revision,
            "latestReadyRevisionName": revision,
            "conditions": [_condition("Ready", "True")],
        }

    def _fail(self, obj: ResourceObject, reason: str, message: str) -> None:
        obj.status = {
            "observedGeneration": obj.generation,
            "conditions": [_condition("Ready", "False", reason, message)],
        }

    def _reconcile_configuration(self, record: _Record) -> None:
        config = record.obj
        if not self._progressed(record) or config.is_ready():
            return
        failure = self._revision_failure(config.name)
        if failure:
            self._fail(config, "RevisionFailed", failure)
            return
        if not self._progressed(record, extra_reads=1):
            # revision created but not ready yet
            config.status = {
                "observedGeneration": config.generation,
                "latestCreatedRevisionName": revision_name_for(config.name),
                "conditions": [_condition("Ready", "Unknown", "Deploying")],
            }
            return
        self._mark_configuration_ready(config)

    def _url_for(self, name: str) -> str:
        return f"http://{name}.{self.namespace}.{self.domain}"

    def _mark_route_ready(self, route: ResourceObject, revision: str) -> None:
        route.status = {
            "observedGeneration": route.generation,
            "url": self._url_for(route.name),
            "traffic": [{"revisionName": revision, "percent": 100, "latestRevision": True}],
            "conditions": [_condition("AllTrafficAssigned", "True"), _condition("Ready", "True")],
        }

    def _reconcile_route(self, record: _Record) -> None:
        route = record.obj
        if not self._progressed(record) or route.is_ready():
            return
        target = (route.spec.get("traffic") or [{}])[0]
        config_record = self._store.get((ResourceKind.CONFIGURATION, target.get("configurationName", "")))
        if config_record is None:
            self._fail(route, "ConfigurationMissing", "target configuration does not exist")
            return
        revision = config_record.obj.latest_ready_revision_name
        if revision:
            self._mark_route_ready(route, revision)

    def _reconcile_service(self, record: _Record) -> None:
        service = record.obj
        if not self._progressed(record) or service.is_ready():
            return
        failure = self._revision_failure(service.name)
        if failure:
            self._fail(service, "RevisionFailed", failure)
            return
        config = self._store[(ResourceKind.CONFIGURATION, service.name)].obj
        route = self._store[(ResourceKind.ROUTE, service.name)].obj
        self._mark_configuration_ready(config)
        self._mark_route_ready(route, config.latest_ready_revision_name)
        service.status = {
            "observedGeneration": service.generation,
            "url": route.url,
            "latestCreatedRevisionName": config.latest_created_revision_name,
            "latestReadyRevisionName": config.latest_ready_revision_name,
            "conditions": [
                _condition("ConfigurationsReady", "True"),
                _condition("RoutesReady", "True"),
                _condition("Ready", "True"),
            ],
        }

    # --- serving ---

    def _serve(self, request: httpx.Request) -> httpx.Response:
        host = request.headers.get("host", request.url.host).split(":", 1)[0]
        for (kind, _), record in self._store.items():
            route = record.obj
            if kind is ResourceKind.ROUTE and route.url and httpx.URL(route.url).host == host:
                if not route.is_ready():
                    return httpx.Response(503, text="route not ready")
                return httpx.Response(self.serve_status, text=self.serving_text + "\n")
        return httpx.Response(404, text="no route for host")

    def probe_transport(self) -> httpx.AsyncBaseTransport:
        return httpx.MockTransport(self._serve)


def _from_settings(settings: Settings) -> MemoryResourceClient:
    return MemoryResourceClient(settings.namespace, serving_text=settings.expected_text)


register_client("memory", _from_settings)
