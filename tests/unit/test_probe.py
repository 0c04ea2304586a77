"""Unit tests for endpoint probing and response matchers."""

import ssl

import httpx
import pytest

from genname_conformance.core.config import HELLO_WORLD_TEXT
from genname_conformance.core.errors import ConfigurationError, EndpointMismatch, EndpointUnreachable
from genname_conformance.services.probe import (
    IS_STATUS_OK,
    EndpointProbe,
    ProbeMismatch,
    is_tls_trust_failure,
    matches_all_of,
    matches_body,
    retrying_route_inconsistency,
)


URL = "http://svc-abcde.serving-tests.example.com"


def _matcher():
    return retrying_route_inconsistency(matches_all_of(IS_STATUS_OK, matches_body(HELLO_WORLD_TEXT)))


def _probe(transport: httpx.AsyncBaseTransport, **kwargs) -> EndpointProbe:
    kwargs.setdefault("resolvable_domain", True)
    return EndpointProbe(interval=0.01, timeout=0.3, transport=transport, **kwargs)


def test_status_ok_matcher() -> None:
    assert IS_STATUS_OK(httpx.Response(200))
    with pytest.raises(ProbeMismatch):
        IS_STATUS_OK(httpx.Response(500))


def test_body_matcher_ignores_trailing_newline() -> None:
    assert matches_body("hello")(httpx.Response(200, text="hello\n"))
    assert not matches_body("hello")(httpx.Response(200, text="goodbye"))


def test_all_of_explains_first_failure() -> None:
    matcher = matches_all_of(IS_STATUS_OK, matches_body("hello"))
    assert matcher.explain(httpx.Response(500, text="hello")) == "IsStatusOK"
    assert matcher.explain(httpx.Response(200, text="nope")).startswith("MatchesBody")


def test_route_inconsistency_retries_404_and_503() -> None:
    matcher = _matcher()
    assert matcher(httpx.Response(404)) is False
    assert matcher(httpx.Response(503)) is False
    with pytest.raises(ProbeMismatch):
        matcher(httpx.Response(500))


@pytest.mark.asyncio
async def test_probe_matches_expected_text(make_transport) -> None:
    transport = make_transport()
    result = await _probe(transport).probe_until(URL, _matcher(), "CheckEndpointToServeText")
    assert result.attempts == 1
    assert result.response.status_code == 200
    assert transport.requests[0].url.host == "svc-abcde.serving-tests.example.com"


@pytest.mark.asyncio
async def test_probe_retries_until_route_converges() -> None:
    responses = iter([httpx.Response(503), httpx.Response(404), httpx.Response(200, text=HELLO_WORLD_TEXT)])
    transport = httpx.MockTransport(lambda request: next(responses))
    result = await _probe(transport).probe_until(URL, _matcher(), "CheckEndpointToServeText")
    assert result.attempts == 3


@pytest.mark.asyncio
async def test_probe_wrong_status_is_definitive(make_transport) -> None:
    transport = make_transport(text="boom", status_code=500)
    with pytest.raises(EndpointMismatch) as exc_info:
        await _probe(transport).probe_until(URL, _matcher(), "CheckEndpointToServeText")
    assert exc_info.value.details["predicate"] == "IsStatusOK"
    assert exc_info.value.details["last_status_code"] == 500
    assert exc_info.value.details["attempts"] == 1


@pytest.mark.asyncio
async def test_probe_wrong_body_times_out(make_transport) -> None:
    transport = make_transport(text="Hello Moon!")
    with pytest.raises(EndpointUnreachable) as exc_info:
        await _probe(transport).probe_until(URL, _matcher(), "CheckEndpointToServeText")
    details = exc_info.value.details
    assert details["predicate"].startswith("MatchesBody")
    assert details["last_body"] == "Hello Moon!\n"
    assert details["attempts"] > 1


@pytest.mark.asyncio
async def test_transport_errors_are_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text=HELLO_WORLD_TEXT)

    result = await _probe(httpx.MockTransport(handler)).probe_until(URL, _matcher(), "CheckEndpointToServeText")
    assert result.attempts == 3


@pytest.mark.asyncio
async def test_tls_trust_failure_is_terminal() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed", request=request)

    with pytest.raises(EndpointUnreachable) as exc_info:
        await _probe(httpx.MockTransport(handler)).probe_until(URL, _matcher(), "CheckEndpointToServeText")
    assert exc_info.value.details["attempts"] == 1


def test_is_tls_trust_failure_follows_cause() -> None:
    try:
        try:
            raise ssl.SSLCertVerificationError("verify failed")
        except ssl.SSLCertVerificationError as inner:
            raise httpx.ConnectError("tls") from inner
    except httpx.ConnectError as outer:
        assert is_tls_trust_failure(outer)
    assert not is_tls_trust_failure(httpx.ConnectError("refused"))


@pytest.mark.asyncio
async def test_unresolvable_domain_uses_ingress_and_host_header(make_transport) -> None:
    transport = make_transport()
    probe = _probe(transport, resolvable_domain=False, ingress_endpoint="10.0.0.5:8080")
    await probe.probe_until(URL, _matcher(), "CheckEndpointToServeText")
    request = transport.requests[0]
    assert request.url.host == "10.0.0.5"
    assert request.url.port == 8080
    assert request.headers["host"] == "svc-abcde.serving-tests.example.com"


def test_https_sets_sni_hostname() -> None:
    probe = EndpointProbe(resolvable_domain=False, ingress_endpoint="10.0.0.5", https=True)
    target, headers, extensions = probe.request_target(URL)
    assert target.scheme == "https"
    assert target.host == "10.0.0.5"
    assert headers == {"Host": "svc-abcde.serving-tests.example.com"}
    assert extensions == {"sni_hostname": "svc-abcde.serving-tests.example.com"}


def test_unresolvable_domain_without_ingress_is_config_error() -> None:
    with pytest.raises(ConfigurationError):
        EndpointProbe(resolvable_domain=False).request_target(URL)
