"""Generate-name scenarios: create with a prefix, validate the name, wait for readiness, probe."""

from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Awaitable, Callable, Optional

from genname_conformance.core.config import Settings
from genname_conformance.core.errors import (
    ConformanceError,
    EndpointMismatch,
    EndpointUnreachable,
    ResourceAPIError,
    ResourceNotFoundError,
    ScenarioTimeout,
    UnknownScenarioError,
)
from genname_conformance.core.logging import structured_log
from genname_conformance.core.telemetry import get_trace_context, record_check_failure, record_scenario_run, span
from genname_conformance.models.entities import ResourceKind, ResourceNames, ResourceRef
from genname_conformance.models.schemas import (
    CheckResult,
    ConformanceReport,
    EndpointVerdict,
    ScenarioInfo,
    ScenarioVerdict,
)
from genname_conformance.services.client_factory import create_client
from genname_conformance.services.manifests import SCENARIO_LABEL, ResourceOption, with_generate_name, with_labels
from genname_conformance.services.naming import generate_name_prefix, validate_name
from genname_conformance.services.probe import (
    IS_STATUS_OK,
    EndpointProbe,
    matches_all_of,
    matches_body,
    retrying_route_inconsistency,
)
from genname_conformance.services.readiness import ReadinessWaiter, has_url
from genname_conformance.services.resource_client import BaseResourceClient

SERVICE_SCENARIO = "service-generate-name"
ROUTE_AND_CONFIG_SCENARIO = "route-and-config-generate-name"

SERVICE_STEPS = ["create_service", "service_ready", "service_name", "route_url", "serve_requests"]
ROUTE_AND_CONFIG_STEPS = [
    "create_configuration",
    "configuration_ready",
    "revision_discovered",
    "configuration_name",
    "create_route",
    "route_ready",
    "route_name",
    "route_url",
    "serve_requests",
]


@dataclass(frozen=True)
class ScenarioConfig:
    """Everything a scenario needs besides its collaborators."""

    expected_text: str
    image: str
    resolvable_domain: bool = False
    ingress_endpoint: str = ""
    https: bool = False
    root_ca_file: str = ""
    poll_interval_seconds: float = 1.0
    poll_timeout_seconds: float = 600.0
    probe_interval_seconds: float = 1.0
    probe_timeout_seconds: float = 300.0
    request_timeout_seconds: float = 30.0
    scenario_timeout_seconds: float = 900.0
    generate_name_max_length: int = 44

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScenarioConfig":
        return cls(
            expected_text=settings.expected_text,
            image=settings.image,
            resolvable_domain=settings.resolvable_domain,
            ingress_endpoint=settings.ingress_endpoint,
            https=settings.https,
            root_ca_file=settings.root_ca_file,
            poll_interval_seconds=settings.poll_interval_seconds,
            poll_timeout_seconds=settings.poll_timeout_seconds,
            probe_interval_seconds=settings.probe_interval_seconds,
            probe_timeout_seconds=settings.probe_timeout_seconds,
            request_timeout_seconds=settings.request_timeout_seconds,
            scenario_timeout_seconds=settings.scenario_timeout_seconds,
            generate_name_max_length=settings.generate_name_max_length,
        )


class TeardownTracker:
    """
    Owns every resource a scenario creates and deletes them on exit, once.

    expect(kind) is called before a create is issued; if the create never
    reports a name, teardown falls back to deleting by the run label.
    """

    def __init__(self, client: BaseResourceClient, scenario: str) -> None:
        self.client = client
        self.scenario = scenario
        self.run_id = f"{scenario}-{secrets.token_hex(4)}"
        self.deleted: list[str] = []
        self.teardown_count = 0
        self._refs: list[ResourceRef] = []
        self._pending: list[ResourceKind] = []
        self._done = False

    def label_option(self) -> ResourceOption:
        return with_labels({SCENARIO_LABEL: self.run_id})

    def expect(self, kind: ResourceKind) -> None:
        self._pending.append(kind)

    def track(self, ref: ResourceRef) -> None:
        if ref.kind in self._pending:
            self._pending.remove(ref.kind)
        self._refs.append(ref)

    async def __aenter__(self) -> "TeardownTracker":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.teardown()

    async def teardown(self) -> None:
        if self._done:
            return
        self._done = True
        self.teardown_count += 1
        for ref in reversed(self._refs):
            try:
                await self.client.delete(ref.kind, ref.name)
            except ResourceNotFoundError:
                continue
            except ResourceAPIError as exc:
                self._log_failure(str(ref), exc)
                continue
            self.deleted.append(str(ref))
        selector = f"{SCENARIO_LABEL}={self.run_id}"
        for kind in self._pending:
            try:
                await self.client.delete_collection(kind, selector)
            except ResourceAPIError as exc:
                self._log_failure(f"{kind.value}[{selector}]", exc)
                continue
            self.deleted.append(f"{kind.value}[{selector}]")
        structured_log(
            "INFO",
            "Teardown complete",
            scenario=self.scenario,
            operation="scenario.teardown",
            metadata={"deleted": self.deleted},
        )

    def _log_failure(self, target: str, exc: ResourceAPIError) -> None:
        structured_log(
            "WARNING",
            f"Teardown of {target} failed: {exc.message}",
            scenario=self.scenario,
            resource=target,
            operation="scenario.teardown",
            error={"type": exc.error_code, "message": exc.message},
        )


class _ScenarioRun:
    """Accumulates check results for one scenario run."""

    def __init__(self, scenario: str, steps: list[str], generate_name: str, names: ResourceNames) -> None:
        self.scenario = scenario
        self.steps = steps
        self.names = names
        self.current_step = steps[0]
        self.verdict = ScenarioVerdict(
            scenario=scenario,
            generate_name=generate_name,
            started_at=datetime.now(UTC),
        )

    def begin(self, step: str) -> None:
        self.current_step = step

    def passed(self, step: str, **details: object) -> None:
        self.verdict.checks.append(CheckResult(name=step, status="passed", details=dict(details)))

    def failed(self, step: str, exc: ConformanceError) -> None:
        record_check_failure()
        self.verdict.checks.append(
            CheckResult(
                name=step,
                status="failed",
                error_code=exc.error_code,
                message=exc.message,
                details=exc.details,
            )
        )
        structured_log(
            "ERROR" if exc.fatal else "WARNING",
            f"Check {step} failed: {exc.message}",
            scenario=self.scenario,
            operation=f"scenario.{step}",
            metadata={**get_trace_context(), "names": self.names.to_dict()},
            error={"type": exc.error_code, "message": exc.message},
        )

    def finish(self, deleted: list[str]) -> ScenarioVerdict:
        recorded = {c.name for c in self.verdict.checks}
        for step in self.steps:
            if step not in recorded:
                self.verdict.checks.append(CheckResult(name=step, status="skipped"))
        order = {step: i for i, step in enumerate(self.steps)}
        self.verdict.checks.sort(key=lambda c: order.get(c.name, len(order)))
        self.verdict.names = self.names.to_dict()
        self.verdict.deleted = list(deleted)
        self.verdict.finished_at = datetime.now(UTC)
        self.verdict.duration_seconds = round(
            (self.verdict.finished_at - self.verdict.started_at).total_seconds(), 3
        )
        return self.verdict


class ScenarioOrchestrator:
    """Runs the generate-name scenarios against a resource client.

    Each scenario is sequential and owns the resources it creates;
    different scenarios share no mutable state and may run concurrently.
    Creation and readiness failures stop dependent steps. Name and
    endpoint checks are recorded and the run continues.
    """

    def __init__(
        self,
        client: BaseResourceClient,
        config: ScenarioConfig,
        *,
        waiter: Optional[ReadinessWaiter] = None,
        probe: Optional[EndpointProbe] = None,
    ) -> None:
        self.client = client
        self.config = config
        self.waiter = waiter or ReadinessWaiter(
            client,
            interval=config.poll_interval_seconds,
            timeout=config.poll_timeout_seconds,
        )
        self.probe = probe or EndpointProbe(
            resolvable_domain=config.resolvable_domain,
            ingress_endpoint=config.ingress_endpoint,
            https=config.https,
            root_ca_file=config.root_ca_file,
            interval=config.probe_interval_seconds,
            timeout=config.probe_timeout_seconds,
            request_timeout=config.request_timeout_seconds,
            transport=client.probe_transport(),
        )
        self._scenarios: dict[str, tuple[ScenarioInfo, Callable[[Optional[str]], Awaitable[ScenarioVerdict]]]] = {
            SERVICE_SCENARIO: (
                ScenarioInfo(
                    name=SERVICE_SCENARIO,
                    description="A Service created with only generateName gets a generated name, becomes ready and serves",
                    steps=SERVICE_STEPS,
                ),
                self.run_service_generate_name,
            ),
            ROUTE_AND_CONFIG_SCENARIO: (
                ScenarioInfo(
                    name=ROUTE_AND_CONFIG_SCENARIO,
                    description=(
                        "A Configuration and a Route created with generateName get generated names, "
                        "become ready and serve through the configuration's revision"
                    ),
                    steps=ROUTE_AND_CONFIG_STEPS,
                ),
                self.run_route_and_config_generate_name,
            ),
        }

    def scenarios(self) -> list[ScenarioInfo]:
        return [info for info, _ in self._scenarios.values()]

    async def run(self, scenario: str, test_name: Optional[str] = None) -> ScenarioVerdict:
        entry = self._scenarios.get(scenario)
        if entry is None:
            raise UnknownScenarioError(scenario, list(self._scenarios))
        _, runner = entry
        return await runner(test_name)

    async def run_all(self, scenarios: Optional[list[str]] = None) -> ConformanceReport:
        """
        Run scenarios concurrently and collect their verdicts.

        An unexpected error in one scenario cancels the others; each still
        tears down its resources before the first error is re-raised.
        """
        names = scenarios or list(self._scenarios)
        for name in names:
            if name not in self._scenarios:
                raise UnknownScenarioError(name, list(self._scenarios))
        report = ConformanceReport(started_at=datetime.now(UTC))
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self.run(name)) for name in names]
        except BaseExceptionGroup as group:
            raise group.exceptions[0] from group
        report.scenarios = [task.result() for task in tasks]
        report.finished_at = datetime.now(UTC)
        return report

    # --- scenario A ---

    async def run_service_generate_name(self, test_name: Optional[str] = None) -> ScenarioVerdict:
        generate_name = generate_name_prefix(
            test_name or "TestServiceGenerateName", self.config.generate_name_max_length
        )
        run = _ScenarioRun(SERVICE_SCENARIO, SERVICE_STEPS, generate_name, ResourceNames(image=self.config.image))
        return await self._execute(run, generate_name, self._service_steps)

    async def _service_steps(self, run: _ScenarioRun, generate_name: str, tracker: TeardownTracker) -> None:
        names = run.names
        run.begin("create_service")
        tracker.expect(ResourceKind.SERVICE)
        try:
            service = await self.client.create_service(
                names, with_generate_name(generate_name), tracker.label_option()
            )
        except ConformanceError as exc:
            run.failed("create_service", exc)
            return
        tracker.track(service.ref)
        names.service = service.name
        run.passed("create_service", name=service.name)

        run.begin("service_ready")
        try:
            service = await self.waiter.wait_for_service_ready(names.service)
        except ConformanceError as exc:
            run.failed("service_ready", exc)
            return
        # a Service owns a Configuration and a Route with its own name
        names.config = service.name
        names.route = service.name
        names.revision = service.latest_ready_revision_name
        run.passed("service_ready", url=service.url, revision=names.revision)

        self._check_name(run, "service_name", generate_name, names.service)
        await self._check_serving(run, names.route)

    # --- scenario B ---

    async def run_route_and_config_generate_name(self, test_name: Optional[str] = None) -> ScenarioVerdict:
        generate_name = generate_name_prefix(
            test_name or "TestRouteAndConfigGenerateName", self.config.generate_name_max_length
        )
        run = _ScenarioRun(
            ROUTE_AND_CONFIG_SCENARIO,
            ROUTE_AND_CONFIG_STEPS,
            generate_name,
            ResourceNames(image=self.config.image),
        )
        return await self._execute(run, generate_name, self._route_and_config_steps)

    async def _route_and_config_steps(
        self,
        run: _ScenarioRun,
        generate_name: str,
        tracker: TeardownTracker,
    ) -> None:
        names = run.names
        run.begin("create_configuration")
        tracker.expect(ResourceKind.CONFIGURATION)
        try:
            config = await self.client.create_configuration(
                names, with_generate_name(generate_name), tracker.label_option()
            )
        except ConformanceError as exc:
            run.failed("create_configuration", exc)
            return
        tracker.track(config.ref)
        names.config = config.name
        run.passed("create_configuration", name=config.name)

        run.begin("configuration_ready")
        try:
            revision = await self.waiter.wait_for_latest_created_revision(names.config)
        except ConformanceError as exc:
            run.failed("configuration_ready", exc)
            return
        run.passed("configuration_ready", latest_created_revision=revision)

        run.begin("revision_discovered")
        try:
            names.revision = await self.waiter.wait_for_revision_ready(names.config, revision)
        except ConformanceError as exc:
            run.failed("revision_discovered", exc)
            return
        run.passed("revision_discovered", revision=names.revision)

        self._check_name(run, "configuration_name", generate_name, names.config)

        run.begin("create_route")
        tracker.expect(ResourceKind.ROUTE)
        try:
            route = await self.client.create_route(
                names, with_generate_name(generate_name), tracker.label_option()
            )
        except ConformanceError as exc:
            run.failed("create_route", exc)
            return
        tracker.track(route.ref)
        names.route = route.name
        run.passed("create_route", name=route.name)

        run.begin("route_ready")
        try:
            await self.waiter.wait_for_route_ready(names.route)
        except ConformanceError as exc:
            run.failed("route_ready", exc)
            return
        run.passed("route_ready")

        self._check_name(run, "route_name", generate_name, names.route)
        await self._check_serving(run, names.route)

    # --- shared steps ---

    async def _execute(
        self,
        run: _ScenarioRun,
        generate_name: str,
        steps: Callable[[_ScenarioRun, str, TeardownTracker], Awaitable[None]],
    ) -> ScenarioVerdict:
        timeout = self.config.scenario_timeout_seconds
        structured_log(
            "INFO",
            f"Starting scenario with generateName {generate_name}",
            scenario=run.scenario,
            operation="scenario.run",
        )
        with span("scenario.run", {"scenario": run.scenario, "generate_name": generate_name}):
            async with TeardownTracker(self.client, run.scenario) as tracker:
                try:
                    async with asyncio.timeout(timeout):
                        await steps(run, generate_name, tracker)
                except TimeoutError:
                    run.failed(run.current_step, ScenarioTimeout(run.scenario, timeout))
        verdict = run.finish(tracker.deleted)
        record_scenario_run(verdict.passed)
        structured_log(
            "INFO" if verdict.passed else "ERROR",
            f"Scenario {'passed' if verdict.passed else 'failed'}",
            scenario=run.scenario,
            operation="scenario.run",
            duration_ms=(verdict.duration_seconds or 0) * 1000,
            metadata={"failures": [c.name for c in verdict.failures()], "names": verdict.names},
        )
        return verdict

    def _check_name(self, run: _ScenarioRun, step: str, generate_name: str, name: str) -> None:
        run.begin(step)
        try:
            validate_name(generate_name, name)
        except ConformanceError as exc:
            run.failed(step, exc)
            return
        run.passed(step, name=name)

    async def _check_serving(self, run: _ScenarioRun, route_name: str) -> None:
        run.begin("route_url")
        try:
            route = await self.waiter.check_state(ResourceKind.ROUTE, route_name, has_url, "RouteHasURL")
        except ConformanceError as exc:
            run.failed("route_url", exc)
            return
        run.passed("route_url", url=route.url)

        run.begin("serve_requests")
        matcher = retrying_route_inconsistency(
            matches_all_of(IS_STATUS_OK, matches_body(self.config.expected_text))
        )
        try:
            result = await self.probe.probe_until(route.url, matcher, "CheckEndpointToServeText")
        except (EndpointUnreachable, EndpointMismatch) as exc:
            run.failed("serve_requests", exc)
            run.verdict.endpoint = EndpointVerdict(
                url=route.url,
                passed=False,
                attempts=exc.details.get("attempts", 0),
                status_code=exc.details.get("last_status_code"),
                body=exc.details.get("last_body"),
                failing_predicate=exc.details.get("predicate"),
                error=exc.message,
            )
            return
        except ConformanceError as exc:
            run.failed("serve_requests", exc)
            run.verdict.endpoint = EndpointVerdict(url=route.url, passed=False, error=exc.message)
            return
        run.verdict.endpoint = EndpointVerdict(
            url=route.url,
            passed=True,
            attempts=result.attempts,
            status_code=result.response.status_code,
            body=result.response.text[:500],
        )
        run.passed("serve_requests", url=route.url, attempts=result.attempts)


def build_orchestrator(settings: Settings) -> ScenarioOrchestrator:
    """Orchestrator wired to the configured backend; the caller closes orchestrator.client."""
    return ScenarioOrchestrator(create_client(settings), ScenarioConfig.from_settings(settings))
