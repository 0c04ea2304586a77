"""Unit tests for custom exceptions."""

from genname_conformance.core.errors import (
    ConfigurationError,
    ConformanceError,
    CreationFailure,
    EndpointMismatch,
    EndpointUnreachable,
    NameMismatch,
    ReadinessFailure,
    ReadinessTimeout,
    ResourceAPIError,
    ResourceNotFoundError,
    ScenarioTimeout,
    UnknownScenarioError,
)


def test_conformance_error_base() -> None:
    e = ConformanceError("msg", status_code=500, error_code="TestError")
    assert str(e) == "msg"
    assert e.error_code == "TestError"
    assert e.fatal is True


def test_error_code_defaults_to_class_name() -> None:
    assert CreationFailure("Service", "svc-", "denied").error_code == "CreationFailure"


def test_creation_failure_details() -> None:
    e = CreationFailure("Route", "route-", "admission webhook denied")
    assert e.details == {"kind": "Route", "generate_name": "route-"}
    assert "admission webhook denied" in e.message


def test_readiness_timeout_carries_last_status() -> None:
    e = ReadinessTimeout("Service", "svc-abc", "ServiceIsReady", {"observedGeneration": 1}, 30)
    assert e.status_code == 504
    assert e.details["last_status"] == {"observedGeneration": 1}
    assert e.details["timeout_seconds"] == 30


def test_readiness_failure_is_fatal() -> None:
    e = ReadinessFailure("Configuration", "cfg", "ConfigurationIsReady", "RevisionFailed")
    assert e.fatal is True
    assert "RevisionFailed" in e.message


def test_name_and_endpoint_errors_are_not_fatal() -> None:
    assert NameMismatch("p-", "p-", "^p\\-[a-zA-Z0-9\\-.]+$").fatal is False
    assert EndpointUnreachable("http://x", "timeout").fatal is False
    assert EndpointMismatch("http://x", "bad status", status_code=500).fatal is False


def test_endpoint_errors_share_detail_keys() -> None:
    unreachable = EndpointUnreachable("http://x", "timeout", predicate="IsStatusOK", attempts=3, last_status_code=503)
    mismatch = EndpointMismatch("http://x", "bad", predicate="IsStatusOK", attempts=1, status_code=500, body="oops")
    assert set(unreachable.details) == set(mismatch.details)
    assert mismatch.details["last_status_code"] == 500
    assert mismatch.details["last_body"] == "oops"


def test_resource_not_found_is_api_error() -> None:
    e = ResourceNotFoundError("Service", "svc-abc")
    assert isinstance(e, ResourceAPIError)
    assert e.status_code == 404


def test_scenario_timeout() -> None:
    e = ScenarioTimeout("service-generate-name", 900)
    assert e.details["timeout_seconds"] == 900


def test_configuration_error_is_400() -> None:
    assert ConfigurationError("no ingress").status_code == 400


def test_unknown_scenario_lists_available() -> None:
    e = UnknownScenarioError("nope", ["a", "b"])
    assert e.status_code == 404
    assert e.details["available"] == ["a", "b"]
