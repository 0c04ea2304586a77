"""FastAPI dependencies: per-request orchestrator wired to the configured backend."""

from typing import AsyncIterator

from genname_conformance.core.config import get_settings
from genname_conformance.services.scenarios import ScenarioOrchestrator, build_orchestrator


async def get_orchestrator() -> AsyncIterator[ScenarioOrchestrator]:
    """Build an orchestrator for the request and close its resource client afterwards."""
    orchestrator = build_orchestrator(get_settings())
    try:
        yield orchestrator
    finally:
        await orchestrator.client.aclose()
