#!/usr/bin/env python3
"""Smoke + timing test for a running conformance API.

Usage:
  API_BASE=http://localhost:8080 python3 scripts/conformance_smoke.py

Set RUN_SCENARIOS=0 to only check the public endpoints.
"""

from __future__ import annotations

import json
import os
import time
from dataclasses import asdict, dataclass, field

import requests

API_BASE = os.environ.get("API_BASE", "http://localhost:8080").rstrip("/")
RUN_SCENARIOS = os.environ.get("RUN_SCENARIOS", "1") != "0"
RUN_TIMEOUT_SECONDS = int(os.environ.get("RUN_TIMEOUT_SECONDS", "1800"))


@dataclass
class Result:
    health_ok: bool = False
    metrics_ok: bool = False
    scenarios: list[str] = field(default_factory=list)
    run_status_code: int | None = None
    run_latency_sec: float | None = None
    passed: bool | None = None
    failed_checks: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def main() -> int:
    result = Result()

    # 1) health
    try:
        resp = requests.get(f"{API_BASE}/health", timeout=20)
        result.health_ok = resp.status_code == 200 and resp.json().get("status") == "ok"
        if not result.health_ok:
            result.errors.append(f"health failed: {resp.status_code} {resp.text[:300]}")
    except requests.RequestException as exc:
        result.errors.append(f"health exception: {exc}")

    # 2) metrics
    try:
        resp = requests.get(f"{API_BASE}/metrics", timeout=20)
        result.metrics_ok = resp.status_code == 200
        if not result.metrics_ok:
            result.errors.append(f"metrics failed: {resp.status_code} {resp.text[:300]}")
    except requests.RequestException as exc:
        result.errors.append(f"metrics exception: {exc}")

    # 3) scenario listing
    try:
        resp = requests.get(f"{API_BASE}/v1/scenarios", timeout=20)
        if resp.status_code == 200:
            result.scenarios = [s["name"] for s in resp.json()]
        else:
            result.errors.append(f"list scenarios failed: {resp.status_code} {resp.text[:300]}")
    except requests.RequestException as exc:
        result.errors.append(f"list scenarios exception: {exc}")

    if not RUN_SCENARIOS:
        print(json.dumps(asdict(result), ensure_ascii=False, indent=2))
        return 0 if not result.errors else 1

    # 4) full run
    started = time.perf_counter()
    try:
        resp = requests.post(f"{API_BASE}/v1/runs", timeout=RUN_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        result.errors.append(f"run exception: {exc}")
        print(json.dumps(asdict(result), ensure_ascii=False, indent=2))
        return 1
    result.run_status_code = resp.status_code
    result.run_latency_sec = round(time.perf_counter() - started, 2)
    if resp.status_code != 200:
        result.errors.append(f"run failed: {resp.status_code} {resp.text[:500]}")
    else:
        report = resp.json()
        result.passed = report.get("passed")
        for verdict in report.get("scenarios", []):
            for check in verdict.get("checks", []):
                if check.get("status") == "failed":
                    result.failed_checks.append(f"{verdict['scenario']}/{check['name']}: {check.get('message')}")

    print(json.dumps(asdict(result), ensure_ascii=False, indent=2))
    return 0 if not result.errors and result.passed else 1


if __name__ == "__main__":
    raise SystemExit(main())
