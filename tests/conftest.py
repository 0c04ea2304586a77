"""Pytest configuration and shared fixtures."""

import os

import httpx
import pytest

# Simulated platform and fast polling unless the caller overrides them
os.environ.setdefault("LOG_FORMAT", "readable")
os.environ.setdefault("RESOURCE_CLIENT", "memory")
os.environ.setdefault("POLL_INTERVAL_SECONDS", "0.01")
os.environ.setdefault("PROBE_INTERVAL_SECONDS", "0.01")
os.environ.setdefault("POLL_TIMEOUT_SECONDS", "5")
os.environ.setdefault("PROBE_TIMEOUT_SECONDS", "5")
os.environ.setdefault("SCENARIO_TIMEOUT_SECONDS", "30")
os.environ.setdefault("RESOLVABLE_DOMAIN", "true")

from genname_conformance.core.config import HELLO_WORLD_TEXT, get_settings  # noqa: E402
from genname_conformance.services.memory_client import MemoryResourceClient  # noqa: E402
from genname_conformance.services.scenarios import ScenarioConfig, ScenarioOrchestrator  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def scenario_config() -> ScenarioConfig:
    """Config with short intervals so failing waits end quickly."""
    return ScenarioConfig(
        expected_text=HELLO_WORLD_TEXT,
        image="gcr.io/knative-samples/helloworld-go",
        resolvable_domain=True,
        poll_interval_seconds=0.01,
        poll_timeout_seconds=0.5,
        probe_interval_seconds=0.01,
        probe_timeout_seconds=0.5,
        request_timeout_seconds=1.0,
        scenario_timeout_seconds=10.0,
    )


@pytest.fixture
def memory_client() -> MemoryResourceClient:
    return MemoryResourceClient("serving-tests")


@pytest.fixture
def orchestrator(memory_client: MemoryResourceClient, scenario_config: ScenarioConfig) -> ScenarioOrchestrator:
    return ScenarioOrchestrator(memory_client, scenario_config)


def _hello_world_transport(text: str = HELLO_WORLD_TEXT, status_code: int = 200) -> httpx.MockTransport:
    """Transport answering every request with text; records requests on .requests."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, text=text + "\n")

    transport = httpx.MockTransport(handler)
    transport.requests = requests  # type: ignore[attr-defined]
    return transport


@pytest.fixture
def make_transport():
    """Factory for hello-world style transports with a custom body or status."""
    return _hello_world_transport


@pytest.fixture
def client():
    """TestClient against the app wired to the memory backend."""
    from fastapi.testclient import TestClient

    from genname_conformance.main import app

    with TestClient(app) as test_client:
        yield test_client
