"""Pydantic models for scenario verdicts and API payloads."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, computed_field


CheckStatus = Literal["passed", "failed", "skipped"]


class CheckResult(BaseModel):
    """Outcome of one named check within a scenario."""

    name: str
    status: CheckStatus
    error_code: Optional[str] = None
    message: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class EndpointVerdict(BaseModel):
    """Result of probing a resolved URL; failures carry the failing predicate and last response."""

    url: str
    passed: bool
    attempts: int = 0
    status_code: Optional[int] = None
    body: Optional[str] = Field(default=None, description="Last observed body, truncated")
    failing_predicate: Optional[str] = None
    error: Optional[str] = None


class ScenarioVerdict(BaseModel):
    """Aggregate pass/fail for one scenario with a diagnostic per failed check."""

    scenario: str
    generate_name: str = ""
    names: dict[str, str] = Field(default_factory=dict)
    checks: list[CheckResult] = Field(default_factory=list)
    endpoint: Optional[EndpointVerdict] = None
    deleted: list[str] = Field(default_factory=list, description="Resources deleted during teardown")
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        return bool(self.checks) and all(c.status == "passed" for c in self.checks)

    def failures(self) -> list[CheckResult]:
        return [c for c in self.checks if c.status == "failed"]

    def check(self, name: str) -> Optional[CheckResult]:
        for c in self.checks:
            if c.name == name:
                return c
        return None


class ConformanceReport(BaseModel):
    """Verdicts for every scenario in a run."""

    scenarios: list[ScenarioVerdict] = Field(default_factory=list)
    started_at: datetime
    finished_at: Optional[datetime] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        return bool(self.scenarios) and all(s.passed for s in self.scenarios)


class ScenarioInfo(BaseModel):
    """GET /v1/scenarios entry."""

    name: str
    description: str
    steps: list[str]


class ScenarioRunRequest(BaseModel):
    """POST body for scenario runs. test_name seeds the generated prefix."""

    test_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
