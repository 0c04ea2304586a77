"""Predicate-driven polling of resource status until ready or deadline."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from genname_conformance.core.errors import ReadinessFailure, ReadinessTimeout
from genname_conformance.core.logging import structured_log
from genname_conformance.core.telemetry import record_readiness_wait, span
from genname_conformance.models.entities import ResourceKind, ResourceObject
from genname_conformance.services.resource_client import BaseResourceClient

# Returns True once the snapshot is in the wanted state, False for "not yet".
# Raises TerminalStatus when the snapshot shows the state can never be reached.
Predicate = Callable[[ResourceObject], bool]

# Ready=False with one of these reasons does not recover on its own.
TERMINAL_REASONS = frozenset({"RevisionFailed", "ContainerMissing", "ExceededReadinessChecks"})


class TerminalStatus(Exception):
    """Raised by a predicate to stop polling immediately."""


def _raise_if_failed(obj: ResourceObject) -> None:
    cond = obj.condition("Ready")
    if cond and cond.get("status") == "False" and cond.get("reason") in TERMINAL_REASONS:
        reason, message = cond["reason"], cond.get("message")
        raise TerminalStatus(f"{reason}: {message}" if message else reason)


def is_service_ready(service: ResourceObject) -> bool:
    _raise_if_failed(service)
    return service.is_ready()


def is_configuration_ready(config: ResourceObject) -> bool:
    _raise_if_failed(config)
    return config.is_ready()


def is_route_ready(route: ResourceObject) -> bool:
    return route.is_ready()


def has_url(obj: ResourceObject) -> bool:
    return obj.url != ""


def has_latest_created_revision(config: ResourceObject) -> bool:
    _raise_if_failed(config)
    return config.latest_created_revision_name != ""


def latest_ready_revision_is(revision_name: str) -> Predicate:
    def predicate(config: ResourceObject) -> bool:
        _raise_if_failed(config)
        return config.latest_ready_revision_name == revision_name

    return predicate


class ReadinessWaiter:
    """Polls a resource through the client until a predicate holds.

    The first read happens immediately. Polling stops on a match, on
    TerminalStatus from the predicate (ReadinessFailure), or when timeout
    elapses (ReadinessTimeout carrying the last snapshot). Client errors
    propagate unchanged. Never mutates the resource.
    """

    def __init__(self, client: BaseResourceClient, *, interval: float = 1.0, timeout: float = 600.0) -> None:
        self.client = client
        self.interval = interval
        self.timeout = timeout

    async def wait_until(
        self,
        kind: ResourceKind,
        name: str,
        predicate: Predicate,
        description: str,
        *,
        timeout: Optional[float] = None,
    ) -> ResourceObject:
        timeout = self.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout
        last: Optional[ResourceObject] = None
        with span("readiness.wait", {"kind": kind.value, "name": name, "description": description}):
            while True:
                last = await self.client.get(kind, name)
                try:
                    matched = predicate(last)
                except TerminalStatus as exc:
                    raise ReadinessFailure(kind.value, name, description, str(exc)) from exc
                elapsed = loop.time() - started
                if matched:
                    record_readiness_wait(elapsed)
                    structured_log(
                        "INFO",
                        f"{kind.value} {name} reached {description}",
                        resource=str(last.ref),
                        operation="readiness.wait",
                        duration_ms=elapsed * 1000,
                    )
                    return last
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise ReadinessTimeout(kind.value, name, description, last.status, timeout)
                await asyncio.sleep(min(self.interval, remaining))

    async def check_state(
        self,
        kind: ResourceKind,
        name: str,
        predicate: Predicate,
        description: str,
    ) -> ResourceObject:
        """Like wait_until but reads once; a non-matching state fails immediately."""
        obj = await self.client.get(kind, name)
        try:
            matched = predicate(obj)
        except TerminalStatus as exc:
            raise ReadinessFailure(kind.value, name, description, str(exc)) from exc
        if not matched:
            raise ReadinessFailure(kind.value, name, description, f"not in desired state, got status {obj.status}")
        return obj

    async def wait_for_service_ready(self, name: str) -> ResourceObject:
        return await self.wait_until(ResourceKind.SERVICE, name, is_service_ready, "ServiceIsReady")

    async def wait_for_route_ready(self, name: str) -> ResourceObject:
        return await self.wait_until(ResourceKind.ROUTE, name, is_route_ready, "RouteIsReady")

    async def wait_for_latest_created_revision(self, config_name: str) -> str:
        config = await self.wait_until(
            ResourceKind.CONFIGURATION,
            config_name,
            has_latest_created_revision,
            "ConfigurationUpdatedWithRevision",
        )
        return config.latest_created_revision_name

    async def wait_for_revision_ready(self, config_name: str, revision_name: str) -> str:
        await self.wait_until(
            ResourceKind.CONFIGURATION,
            config_name,
            latest_ready_revision_is(revision_name),
            "ConfigurationReadyWithRevision",
        )
        return revision_name
