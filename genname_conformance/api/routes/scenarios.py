"""Scenario runs: GET /v1/scenarios, POST /v1/scenarios/{scenario}/runs, POST /v1/runs."""

from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends

from genname_conformance.api.dependencies import get_orchestrator
from genname_conformance.models.schemas import (
    ConformanceReport,
    ScenarioInfo,
    ScenarioRunRequest,
    ScenarioVerdict,
)
from genname_conformance.services.scenarios import ScenarioOrchestrator

router = APIRouter(prefix="/v1", tags=["scenarios"])


@router.get("/scenarios", response_model=list[ScenarioInfo])
async def list_scenarios(
    orchestrator: Annotated[ScenarioOrchestrator, Depends(get_orchestrator)],
) -> list[ScenarioInfo]:
    return orchestrator.scenarios()


@router.post("/scenarios/{scenario}/runs", response_model=ScenarioVerdict)
async def run_scenario(
    scenario: str,
    orchestrator: Annotated[ScenarioOrchestrator, Depends(get_orchestrator)],
    body: Annotated[Optional[ScenarioRunRequest], Body()] = None,
) -> ScenarioVerdict:
    """Run one scenario to completion (including teardown) and return its verdict.

    A failed scenario is still a 200: the verdict carries the failures.
    """
    test_name = body.test_name if body else None
    return await orchestrator.run(scenario, test_name)


@router.post("/runs", response_model=ConformanceReport)
async def run_all(
    orchestrator: Annotated[ScenarioOrchestrator, Depends(get_orchestrator)],
) -> ConformanceReport:
    """Run every scenario concurrently."""
    return await orchestrator.run_all()
