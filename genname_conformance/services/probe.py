"""Retried HTTP probing of resolved endpoints until a response matcher holds."""

from __future__ import annotations

import asyncio
import ssl
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from genname_conformance.core.errors import ConfigurationError, EndpointMismatch, EndpointUnreachable
from genname_conformance.core.logging import structured_log
from genname_conformance.core.telemetry import record_probe_attempt, span

BODY_EXCERPT_LENGTH = 500


class ProbeMismatch(Exception):
    """Raised by a matcher when the response is definitive and wrong; probing stops."""


class ResponseMatcher:
    """Named check over a response: True = matched, False = retry, ProbeMismatch = give up."""

    def __init__(self, name: str, check: Callable[[httpx.Response], bool]) -> None:
        self.name = name
        self._check = check

    def __call__(self, response: httpx.Response) -> bool:
        return self._check(response)

    def explain(self, response: httpx.Response) -> str:
        """Name of the check responsible for response not matching."""
        return self.name

    def __repr__(self) -> str:
        return f"<ResponseMatcher {self.name}>"


def is_one_of_status_codes(*codes: int, name: Optional[str] = None) -> ResponseMatcher:
    def check(response: httpx.Response) -> bool:
        if response.status_code in codes:
            return True
        raise ProbeMismatch(f"status = {response.status_code}, want one of: {list(codes)}")

    return ResponseMatcher(name or f"IsOneOfStatusCodes{list(codes)}", check)


IS_STATUS_OK = is_one_of_status_codes(200, name="IsStatusOK")


def matches_body(expected: str) -> ResponseMatcher:
    """Body equals expected, ignoring surrounding whitespace (servers append a newline)."""
    want = expected.strip()

    def check(response: httpx.Response) -> bool:
        return response.text.strip() == want

    return ResponseMatcher(f"MatchesBody({expected!r})", check)


class AllOf(ResponseMatcher):
    def __init__(self, *matchers: ResponseMatcher) -> None:
        super().__init__("MatchesAllOf(" + ", ".join(m.name for m in matchers) + ")", self._check_all)
        self.matchers = matchers

    def _check_all(self, response: httpx.Response) -> bool:
        return all(m(response) for m in self.matchers)

    def explain(self, response: httpx.Response) -> str:
        for matcher in self.matchers:
            try:
                if not matcher(response):
                    return matcher.explain(response)
            except ProbeMismatch:
                return matcher.explain(response)
        return self.name


def matches_all_of(*matchers: ResponseMatcher) -> AllOf:
    return AllOf(*matchers)


class RetryingRouteInconsistency(ResponseMatcher):
    """Treat 404 and 503 as "routing not converged yet" before delegating."""

    INCONSISTENT_STATUS = (404, 503)

    def __init__(self, inner: ResponseMatcher) -> None:
        super().__init__(f"RetryingRouteInconsistency({inner.name})", self._check_inner)
        self.inner = inner

    def _check_inner(self, response: httpx.Response) -> bool:
        if response.status_code in self.INCONSISTENT_STATUS:
            return False
        return self.inner(response)

    def explain(self, response: httpx.Response) -> str:
        if response.status_code in self.INCONSISTENT_STATUS:
            return "RetryingRouteInconsistency"
        return self.inner.explain(response)


def retrying_route_inconsistency(inner: ResponseMatcher) -> RetryingRouteInconsistency:
    return RetryingRouteInconsistency(inner)


def is_tls_trust_failure(exc: BaseException) -> bool:
    """True when certificate verification failed anywhere in the exception chain."""
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError) or "CERTIFICATE_VERIFY_FAILED" in str(current):
            return True
        current = current.__cause__ or current.__context__
    return False


@dataclass
class ProbeResult:
    url: str
    response: httpx.Response
    attempts: int


class EndpointProbe:
    """
    Polls a URL until the matcher accepts a response or the timeout elapses.

    Transport errors and non-matching responses are retried. A ProbeMismatch
    from the matcher, or a transport error classified terminal (TLS trust
    failure by default), stops immediately.
    """

    def __init__(
        self,
        *,
        resolvable_domain: bool = True,
        ingress_endpoint: str = "",
        https: bool = False,
        root_ca_file: str = "",
        interval: float = 1.0,
        timeout: float = 300.0,
        request_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        is_terminal: Callable[[BaseException], bool] = is_tls_trust_failure,
    ) -> None:
        self.resolvable_domain = resolvable_domain
        self.ingress_endpoint = ingress_endpoint
        self.https = https
        self.root_ca_file = root_ca_file
        self.interval = interval
        self.timeout = timeout
        self.request_timeout = request_timeout
        self.transport = transport
        self.is_terminal = is_terminal

    def _verify(self) -> ssl.SSLContext | bool:
        if self.https and self.root_ca_file:
            return ssl.create_default_context(cafile=self.root_ca_file)
        return True

    def request_target(self, url: str) -> tuple[httpx.URL, dict[str, str], dict[str, str]]:
        """Return (target URL, headers, extensions) for url under the routing settings.

        With unresolvable domains the request goes to the ingress endpoint and
        the route hostname travels in the Host header (and SNI over https).
        """
        parsed = httpx.URL(url)
        if self.https:
            parsed = parsed.copy_with(scheme="https")
        if self.resolvable_domain:
            return parsed, {}, {}
        if not self.ingress_endpoint:
            raise ConfigurationError(
                "ingress_endpoint is required when generated domains are not resolvable"
            )
        host, _, port = self.ingress_endpoint.partition(":")
        target = parsed.copy_with(host=host, port=int(port) if port else None)
        extensions = {"sni_hostname": parsed.host} if self.https else {}
        return target, {"Host": parsed.host}, extensions

    async def probe_until(
        self,
        url: str,
        matcher: ResponseMatcher,
        description: str,
        *,
        timeout: Optional[float] = None,
    ) -> ProbeResult:
        timeout = self.timeout if timeout is None else timeout
        target, headers, extensions = self.request_target(url)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        attempts = 0
        last_response: Optional[httpx.Response] = None
        last_error: Optional[str] = None

        with span("probe.until", {"url": url, "description": description}):
            async with httpx.AsyncClient(
                timeout=self.request_timeout,
                verify=self._verify(),
                transport=self.transport,
            ) as client:
                while True:
                    attempts += 1
                    record_probe_attempt()
                    try:
                        resp = await client.get(target, headers=headers, extensions=extensions)
                    except httpx.TransportError as exc:
                        last_error = f"{type(exc).__name__}: {exc}"
                        if self.is_terminal(exc):
                            raise EndpointUnreachable(
                                url,
                                f"{description}: {last_error}",
                                predicate=matcher.name,
                                attempts=attempts,
                            ) from exc
                    else:
                        last_response = resp
                        last_error = None
                        try:
                            matched = matcher(resp)
                        except ProbeMismatch as exc:
                            failing = matcher.explain(resp)
                            raise EndpointMismatch(
                                url,
                                f"{failing}: {exc}",
                                predicate=failing,
                                attempts=attempts,
                                status_code=resp.status_code,
                                body=resp.text[:BODY_EXCERPT_LENGTH],
                            ) from exc
                        if matched:
                            structured_log(
                                "INFO",
                                f"{description} matched at {url}",
                                operation="probe.until",
                                metadata={"attempts": attempts, "status_code": resp.status_code},
                            )
                            return ProbeResult(url=url, response=resp, attempts=attempts)

                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    await asyncio.sleep(min(self.interval, remaining))

        failing = matcher.explain(last_response) if last_response is not None else matcher.name
        if last_response is not None and last_error is None:
            reason = f"{failing} not satisfied"
        else:
            reason = last_error or "no response"
        raise EndpointUnreachable(
            url,
            f"{description}: {reason} after {attempts} attempts in {timeout}s",
            predicate=failing,
            attempts=attempts,
            last_status_code=last_response.status_code if last_response is not None else None,
            last_body=last_response.text[:BODY_EXCERPT_LENGTH] if last_response is not None else None,
        )
