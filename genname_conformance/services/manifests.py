"""Manifest builders for serving resources, customised through option callables."""

from __future__ import annotations

from typing import Any, Callable

from genname_conformance.models.entities import ResourceKind, ResourceNames

API_VERSION = "serving.knative.dev/v1"
SCENARIO_LABEL = "conformance.genname/scenario"

# Mutates a manifest in place before it is submitted.
ResourceOption = Callable[[dict[str, Any]], None]


def with_generate_name(generate_name: str) -> ResourceOption:
    """Ask the platform to synthesize the name from generate_name."""

    def apply(manifest: dict[str, Any]) -> None:
        metadata = manifest.setdefault("metadata", {})
        metadata.pop("name", None)
        metadata["generateName"] = generate_name

    return apply


def with_labels(labels: dict[str, str]) -> ResourceOption:
    def apply(manifest: dict[str, Any]) -> None:
        manifest.setdefault("metadata", {}).setdefault("labels", {}).update(labels)

    return apply


def _base(kind: ResourceKind, name: str, namespace: str) -> dict[str, Any]:
    metadata: dict[str, Any] = {"namespace": namespace}
    if name:
        metadata["name"] = name
    return {"apiVersion": API_VERSION, "kind": kind.value, "metadata": metadata, "spec": {}}


def _revision_template(image: str) -> dict[str, Any]:
    return {"spec": {"containers": [{"image": image}]}}


def _apply(manifest: dict[str, Any], options: tuple[ResourceOption, ...]) -> dict[str, Any]:
    for option in options:
        option(manifest)
    return manifest


def service_manifest(names: ResourceNames, namespace: str, *options: ResourceOption) -> dict[str, Any]:
    manifest = _base(ResourceKind.SERVICE, names.service, namespace)
    manifest["spec"] = {"template": _revision_template(names.image)}
    return _apply(manifest, options)


def configuration_manifest(names: ResourceNames, namespace: str, *options: ResourceOption) -> dict[str, Any]:
    manifest = _base(ResourceKind.CONFIGURATION, names.config, namespace)
    manifest["spec"] = {"template": _revision_template(names.image)}
    return _apply(manifest, options)


def route_manifest(names: ResourceNames, namespace: str, *options: ResourceOption) -> dict[str, Any]:
    """Route sending all traffic to the latest ready revision of names.config."""
    manifest = _base(ResourceKind.ROUTE, names.route, namespace)
    manifest["spec"] = {
        "traffic": [
            {
                "configurationName": names.config,
                "latestRevision": True,
                "percent": 100,
            }
        ]
    }
    return _apply(manifest, options)
