"""Unit tests for manifest builders and options."""

from genname_conformance.models.entities import ResourceNames
from genname_conformance.services.manifests import (
    API_VERSION,
    configuration_manifest,
    route_manifest,
    service_manifest,
    with_generate_name,
    with_labels,
)


def _names() -> ResourceNames:
    return ResourceNames(image="gcr.io/knative-samples/helloworld-go", config="cfg-abcde")


def test_service_manifest_with_generate_name() -> None:
    m = service_manifest(_names(), "serving-tests", with_generate_name("svc-"))
    assert m["apiVersion"] == API_VERSION
    assert m["kind"] == "Service"
    assert m["metadata"] == {"namespace": "serving-tests", "generateName": "svc-"}
    assert m["spec"]["template"]["spec"]["containers"][0]["image"] == "gcr.io/knative-samples/helloworld-go"


def test_generate_name_replaces_explicit_name() -> None:
    names = _names()
    names.service = "fixed"
    m = service_manifest(names, "ns", with_generate_name("svc-"))
    assert "name" not in m["metadata"]
    assert m["metadata"]["generateName"] == "svc-"


def test_explicit_name_without_options() -> None:
    names = _names()
    names.service = "fixed"
    assert service_manifest(names, "ns")["metadata"]["name"] == "fixed"


def test_configuration_manifest() -> None:
    m = configuration_manifest(_names(), "ns", with_generate_name("cfg-"))
    assert m["kind"] == "Configuration"
    assert m["spec"]["template"]["spec"]["containers"] == [{"image": "gcr.io/knative-samples/helloworld-go"}]


def test_route_manifest_targets_configuration() -> None:
    m = route_manifest(_names(), "ns", with_generate_name("route-"))
    assert m["spec"]["traffic"] == [{"configurationName": "cfg-abcde", "latestRevision": True, "percent": 100}]


def test_labels_merge() -> None:
    m = service_manifest(_names(), "ns", with_labels({"a": "1"}), with_labels({"b": "2"}))
    assert m["metadata"]["labels"] == {"a": "1", "b": "2"}
