"""Unit tests for structured logging and redaction."""

import json
import logging

import pytest

from genname_conformance.core.logging import structured_log


def test_json_payload_fields(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("LOG_FORMAT", "json")
    with caplog.at_level(logging.INFO):
        structured_log(
            "INFO",
            "Created Service svc-x7k2p",
            scenario="service-generate-name",
            resource="Service/svc-x7k2p",
            operation="knative.create",
            duration_ms=12.345,
            metadata={"generate_name": "svc-"},
        )
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["severity"] == "INFO"
    assert payload["scenario"] == "service-generate-name"
    assert payload["duration_ms"] == 12.35
    assert payload["metadata"] == {"generate_name": "svc-"}


def test_secrets_are_redacted(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("LOG_FORMAT", "json")
    with caplog.at_level(logging.INFO):
        structured_log(
            "WARNING",
            "request failed with Authorization: Bearer abc.def.ghi",
            metadata={"kube_token": "abc", "nested": {"password": "hunter2"}},
        )
    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    payload = json.loads(record.getMessage())
    assert "abc.def.ghi" not in payload["message"]
    assert payload["metadata"]["kube_token"] == "***REDACTED***"
    assert payload["metadata"]["nested"]["password"] == "***REDACTED***"


def test_readable_format(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO):
        structured_log("ERROR", "Check service_ready failed", scenario="s", error={"message": "timeout"})
    message = caplog.records[-1].getMessage()
    assert message.startswith("[ERROR] Check service_ready failed")
    assert "error=timeout" in message
