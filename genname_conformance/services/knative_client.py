"""Kubernetes REST client for serving.knative.dev/v1 resources."""

import asyncio
import ssl
from typing import Any, Optional

import httpx

from genname_conformance.core.config import Settings
from genname_conformance.core.errors import ResourceAPIError, ResourceNotFoundError
from genname_conformance.core.logging import structured_log
from genname_conformance.core.telemetry import span
from genname_conformance.models.entities import ResourceKind, ResourceObject
from genname_conformance.services.resource_client import BaseResourceClient, register_client

SERVING_GROUP_VERSION = "serving.knative.dev/v1"

# The API server has not stored the object for these; resubmitting is safe.
RETRYABLE_CREATE_STATUS = {429, 503}


def _status_message(resp: httpx.Response) -> tuple[str, str]:
    """Return (message, reason) from a Kubernetes Status body, falling back to raw text."""
    try:
        data = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}: {resp.text[:500]}", ""
    if isinstance(data, dict) and data.get("kind") == "Status":
        return data.get("message") or f"HTTP {resp.status_code}", data.get("reason") or ""
    return f"HTTP {resp.status_code}: {resp.text[:500]}", ""


class KnativeServingClient(BaseResourceClient):
    """Talks to the Kubernetes API server with a bearer token."""

    def __init__(
        self,
        api_url: str,
        namespace: str,
        *,
        token: str = "",
        ca_file: str = "",
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(namespace)
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            verify=ssl.create_default_context(cafile=ca_file) if ca_file else True,
            transport=transport,
        )

    def _path(self, kind: ResourceKind, name: Optional[str] = None) -> str:
        path = f"/apis/{SERVING_GROUP_VERSION}/namespaces/{self.namespace}/{kind.plural}"
        return f"{path}/{name}" if name else path

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            raise ResourceAPIError(
                message=f"{method} {path} failed: {exc}",
                details={"path": path, "error_type": type(exc).__name__},
            ) from exc
        return resp

    @staticmethod
    def _error_for(resp: httpx.Response, kind: ResourceKind, name: str = "") -> ResourceAPIError:
        if resp.status_code == 404 and name:
            return ResourceNotFoundError(kind.value, name)
        message, reason = _status_message(resp)
        return ResourceAPIError(
            message=message,
            status_code=resp.status_code,
            details={"kind": kind.value, "name": name, "reason": reason, "status": resp.status_code},
        )

    def _raise_for_status(self, resp: httpx.Response, kind: ResourceKind, name: str = "") -> None:
        if resp.status_code >= 400:
            raise self._error_for(resp, kind, name)

    async def create(self, kind: ResourceKind, manifest: dict[str, Any]) -> ResourceObject:
        """
        POST the manifest. Retries only when the server cannot have stored it:
        throttling/unavailable, or a generateName collision (409 AlreadyExists).
        """
        metadata = manifest.get("metadata", {})
        generate_name = metadata.get("generateName", "")
        with span("knative.create", {"kind": kind.value, "generate_name": generate_name}):
            attempt = 0
            while True:
                resp = await self._request("POST", self._path(kind), json=manifest)
                if resp.status_code < 400:
                    created = ResourceObject.from_manifest(resp.json())
                    structured_log(
                        "INFO",
                        f"Created {kind.value} {created.name}",
                        resource=str(created.ref),
                        operation="knative.create",
                        metadata={"generate_name": generate_name},
                    )
                    return created
                error = self._error_for(resp, kind)
                collision = resp.status_code == 409 and bool(generate_name) and not metadata.get("name")
                retryable = resp.status_code in RETRYABLE_CREATE_STATUS or collision
                if not retryable or attempt >= self.max_retries - 1:
                    raise error
                await asyncio.sleep(self.retry_backoff * 2 ** attempt)
                attempt += 1

    async def get(self, kind: ResourceKind, name: str) -> ResourceObject:
        resp = await self._request("GET", self._path(kind, name))
        self._raise_for_status(resp, kind, name)
        return ResourceObject.from_manifest(resp.json())

    async def delete(self, kind: ResourceKind, name: str) -> None:
        with span("knative.delete", {"kind": kind.value, "name": name}):
            resp = await self._request("DELETE", self._path(kind, name))
            self._raise_for_status(resp, kind, name)

    async def delete_collection(self, kind: ResourceKind, label_selector: str) -> None:
        with span("knative.delete_collection", {"kind": kind.value, "label_selector": label_selector}):
            resp = await self._request("DELETE", self._path(kind), params={"labelSelector": label_selector})
            self._raise_for_status(resp, kind)

    async def aclose(self) -> None:
        await self._client.aclose()


def _from_settings(settings: Settings) -> KnativeServingClient:
    return KnativeServingClient(
        settings.kube_api_url,
        settings.namespace,
        token=settings.kube_token,
        ca_file=settings.kube_ca_file,
        timeout=settings.request_timeout_seconds,
        max_retries=settings.api_max_retries,
    )


register_client("kubernetes", _from_settings)
