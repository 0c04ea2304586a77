"""Resource client interface and backend registry."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import httpx

from genname_conformance.core.config import Settings
from genname_conformance.core.errors import CreationFailure, ResourceAPIError
from genname_conformance.models.entities import ResourceKind, ResourceNames, ResourceObject
from genname_conformance.services.manifests import (
    ResourceOption,
    configuration_manifest,
    route_manifest,
    service_manifest,
)


class BaseResourceClient(ABC):
    """
    Create/get/delete for serving resources in one namespace.
    Scenarios only talk to the platform through this interface.
    """

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    @abstractmethod
    async def create(self, kind: ResourceKind, manifest: dict[str, Any]) -> ResourceObject:
        """Submit a manifest and return the stored object (with its assigned name)."""

    @abstractmethod
    async def get(self, kind: ResourceKind, name: str) -> ResourceObject:
        """Fetch the current snapshot. Raises ResourceNotFoundError if absent."""

    @abstractmethod
    async def delete(self, kind: ResourceKind, name: str) -> None:
        """Request deletion. Raises ResourceNotFoundError if absent."""

    @abstractmethod
    async def delete_collection(self, kind: ResourceKind, label_selector: str) -> None:
        """Delete every resource of kind matching label_selector."""

    def probe_transport(self) -> Optional[httpx.AsyncBaseTransport]:
        """Transport the endpoint probe should use; None means the real network."""
        return None

    async def aclose(self) -> None:
        return None

    async def create_service(self, names: ResourceNames, *options: ResourceOption) -> ResourceObject:
        manifest = service_manifest(names, self.namespace, *options)
        return await self._create_checked(ResourceKind.SERVICE, manifest)

    async def create_configuration(self, names: ResourceNames, *options: ResourceOption) -> ResourceObject:
        manifest = configuration_manifest(names, self.namespace, *options)
        return await self._create_checked(ResourceKind.CONFIGURATION, manifest)

    async def create_route(self, names: ResourceNames, *options: ResourceOption) -> ResourceObject:
        manifest = route_manifest(names, self.namespace, *options)
        return await self._create_checked(ResourceKind.ROUTE, manifest)

    async def _create_checked(self, kind: ResourceKind, manifest: dict[str, Any]) -> ResourceObject:
        metadata = manifest.get("metadata", {})
        requested = metadata.get("generateName") or metadata.get("name", "")
        try:
            return await self.create(kind, manifest)
        except ResourceAPIError as exc:
            raise CreationFailure(kind.value, requested, exc.message) from exc


ClientFactory = Callable[[Settings], BaseResourceClient]

_clients: dict[str, ClientFactory] = {}


def register_client(name: str, factory: ClientFactory) -> None:
    _clients[name.lower()] = factory


def get_client_factory(name: str) -> ClientFactory:
    factory = _clients.get(name.lower())
    if not factory:
        raise ValueError(f"Resource client {name} not found. Available: {list(_clients.keys())}")
    return factory
