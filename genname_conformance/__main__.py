"""Run conformance scenarios from the command line.

Usage:
  RESOURCE_CLIENT=memory python -m genname_conformance
  python -m genname_conformance service-generate-name

Prints the report as JSON; exits 1 if any scenario failed.
"""

from __future__ import annotations

import asyncio
import sys

from genname_conformance.core.config import get_settings
from genname_conformance.core.errors import ConformanceError
from genname_conformance.core.logging import configure_logging
from genname_conformance.core.telemetry import init_telemetry
from genname_conformance.models.schemas import ConformanceReport
from genname_conformance.services.scenarios import build_orchestrator


async def run(scenarios: list[str]) -> ConformanceReport:
    orchestrator = build_orchestrator(get_settings())
    try:
        return await orchestrator.run_all(scenarios or None)
    finally:
        await orchestrator.client.aclose()


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    init_telemetry(project_id=settings.gcp_project_id)
    try:
        report = asyncio.run(run(list(sys.argv[1:] if argv is None else argv)))
    except ConformanceError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 2
    print(report.model_dump_json(indent=2))
    return 0 if report.passed else 1


if __name__ == "__main__":
    sys.exit(main())
