"""Unit tests for entity and schema models."""

from datetime import UTC, datetime

from genname_conformance.models.entities import ResourceKind, ResourceObject, ResourceRef
from genname_conformance.models.schemas import CheckResult, ConformanceReport, ScenarioVerdict


def _service(generation: int = 1, observed: int = 1, ready: str = "True") -> ResourceObject:
    return ResourceObject.from_manifest(
        {
            "kind": "Service",
            "metadata": {"name": "svc-abcde", "namespace": "ns", "generateName": "svc-", "generation": generation},
            "status": {
                "observedGeneration": observed,
                "url": "http://svc-abcde.ns.example.com",
                "conditions": [{"type": "Ready", "status": ready}],
            },
        }
    )


def test_resource_kind_plural() -> None:
    assert ResourceKind.CONFIGURATION.plural == "configurations"
    assert ResourceKind.ROUTE.plural == "routes"


def test_resource_ref_str() -> None:
    assert str(ResourceRef(ResourceKind.SERVICE, "svc-abcde")) == "Service/svc-abcde"


def test_from_manifest_fields() -> None:
    svc = _service()
    assert svc.name == "svc-abcde"
    assert svc.generate_name == "svc-"
    assert svc.url == "http://svc-abcde.ns.example.com"


def test_is_ready_requires_observed_generation() -> None:
    assert _service().is_ready()
    assert not _service(generation=2, observed=1).is_ready()
    assert not _service(ready="Unknown").is_ready()


def test_missing_condition_is_unknown() -> None:
    obj = ResourceObject(kind=ResourceKind.ROUTE, name="r", namespace="ns")
    assert obj.condition_status("Ready") == "Unknown"
    assert obj.latest_created_revision_name == ""


def test_verdict_passed_requires_checks() -> None:
    verdict = ScenarioVerdict(scenario="s", started_at=datetime.now(UTC))
    assert verdict.passed is False
    verdict.checks.append(CheckResult(name="a", status="passed"))
    assert verdict.passed is True
    verdict.checks.append(CheckResult(name="b", status="skipped"))
    assert verdict.passed is False
    assert verdict.failures() == []
    assert verdict.check("b").status == "skipped"


def test_report_serializes_passed() -> None:
    verdict = ScenarioVerdict(
        scenario="s",
        started_at=datetime.now(UTC),
        checks=[CheckResult(name="a", status="passed")],
    )
    report = ConformanceReport(scenarios=[verdict], started_at=datetime.now(UTC))
    data = report.model_dump()
    assert data["passed"] is True
    assert data["scenarios"][0]["passed"] is True
