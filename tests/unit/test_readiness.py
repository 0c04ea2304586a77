"""Unit tests for the readiness waiter and predicates."""

from typing import Any

import pytest

from genname_conformance.core.errors import ReadinessFailure, ReadinessTimeout, ResourceNotFoundError
from genname_conformance.models.entities import ResourceKind, ResourceNames, ResourceObject
from genname_conformance.services.manifests import with_generate_name
from genname_conformance.services.memory_client import MemoryResourceClient
from genname_conformance.services.readiness import (
    ReadinessWaiter,
    TerminalStatus,
    has_url,
    is_configuration_ready,
    is_route_ready,
)
from genname_conformance.services.resource_client import BaseResourceClient


class ScriptedClient(BaseResourceClient):
    """Returns the given statuses in order, repeating the last one."""

    def __init__(self, statuses: list[dict[str, Any]]) -> None:
        super().__init__("ns")
        self.statuses = statuses
        self.reads = 0

    async def create(self, kind: ResourceKind, manifest: dict[str, Any]) -> ResourceObject:
        raise NotImplementedError

    async def get(self, kind: ResourceKind, name: str) -> ResourceObject:
        status = self.statuses[min(self.reads, len(self.statuses) - 1)]
        self.reads += 1
        return ResourceObject(kind=kind, name=name, namespace="ns", generation=1, status=status)

    async def delete(self, kind: ResourceKind, name: str) -> None:
        return None

    async def delete_collection(self, kind: ResourceKind, label_selector: str) -> None:
        return None


READY = {"observedGeneration": 1, "conditions": [{"type": "Ready", "status": "True"}]}
PENDING = {"observedGeneration": 1, "conditions": [{"type": "Ready", "status": "Unknown"}]}
FAILED = {
    "observedGeneration": 1,
    "conditions": [{"type": "Ready", "status": "False", "reason": "RevisionFailed", "message": "name too long"}],
}


def _waiter(client: BaseResourceClient, timeout: float = 0.2) -> ReadinessWaiter:
    return ReadinessWaiter(client, interval=0.01, timeout=timeout)


@pytest.mark.asyncio
async def test_first_read_is_immediate() -> None:
    client = ScriptedClient([READY])
    obj = await _waiter(client).wait_until(ResourceKind.ROUTE, "r", is_route_ready, "RouteIsReady")
    assert obj.is_ready()
    assert client.reads == 1


@pytest.mark.asyncio
async def test_polls_until_ready() -> None:
    client = ScriptedClient([PENDING, PENDING, READY])
    await _waiter(client).wait_until(ResourceKind.ROUTE, "r", is_route_ready, "RouteIsReady")
    assert client.reads == 3


@pytest.mark.asyncio
async def test_timeout_carries_last_status() -> None:
    client = ScriptedClient([PENDING])
    with pytest.raises(ReadinessTimeout) as exc_info:
        await _waiter(client, timeout=0.05).wait_until(ResourceKind.ROUTE, "r", is_route_ready, "RouteIsReady")
    assert exc_info.value.details["last_status"] == PENDING
    assert exc_info.value.details["description"] == "RouteIsReady"
    assert client.reads >= 2


@pytest.mark.asyncio
async def test_terminal_status_stops_polling() -> None:
    client = ScriptedClient([FAILED])
    with pytest.raises(ReadinessFailure) as exc_info:
        await _waiter(client).wait_until(
            ResourceKind.CONFIGURATION, "cfg", is_configuration_ready, "ConfigurationIsReady"
        )
    assert "RevisionFailed: name too long" in exc_info.value.message
    assert client.reads == 1


@pytest.mark.asyncio
async def test_predicate_raising_terminal_status() -> None:
    def never(_: ResourceObject) -> bool:
        raise TerminalStatus("gave up")

    with pytest.raises(ReadinessFailure):
        await _waiter(ScriptedClient([PENDING])).wait_until(ResourceKind.ROUTE, "r", never, "Never")


@pytest.mark.asyncio
async def test_check_state_reads_once() -> None:
    client = ScriptedClient([{"url": "http://r.ns.example.com"}])
    obj = await _waiter(client).check_state(ResourceKind.ROUTE, "r", has_url, "RouteHasURL")
    assert obj.url == "http://r.ns.example.com"

    empty = ScriptedClient([{}, {"url": "http://late"}])
    with pytest.raises(ReadinessFailure):
        await _waiter(empty).check_state(ResourceKind.ROUTE, "r", has_url, "RouteHasURL")
    assert empty.reads == 1


@pytest.mark.asyncio
async def test_missing_resource_propagates(memory_client: MemoryResourceClient) -> None:
    with pytest.raises(ResourceNotFoundError):
        await _waiter(memory_client).wait_for_service_ready("missing")


@pytest.mark.asyncio
async def test_two_phase_revision_discovery(memory_client: MemoryResourceClient) -> None:
    config = await memory_client.create_configuration(
        ResourceNames(image="img"), with_generate_name("cfg-")
    )
    waiter = _waiter(memory_client, timeout=1.0)
    created = await waiter.wait_for_latest_created_revision(config.name)
    assert created == f"{config.name}-00001"
    snapshot = await memory_client.get(ResourceKind.CONFIGURATION, config.name)
    assert snapshot.latest_ready_revision_name in ("", created)
    assert await waiter.wait_for_revision_ready(config.name, created) == created
