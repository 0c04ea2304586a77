"""Exception taxonomy for generate-name conformance checks."""

from typing import Any, Optional


class ConformanceError(Exception):
    """Base exception for conformance failures."""

    #: Fatal errors stop every step that depends on the failed one.
    fatal: bool = True

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class CreationFailure(ConformanceError):
    """Raised when the platform rejects or fails to create a resource."""

    def __init__(self, kind: str, generate_name: str, message: str) -> None:
        super().__init__(
            f"Failed to create {kind} with generateName {generate_name}: {message}",
            status_code=502,
            details={"kind": kind, "generate_name": generate_name},
        )


class ReadinessTimeout(ConformanceError):
    """Raised when a resource never satisfies its readiness predicate before the deadline."""

    def __init__(
        self,
        kind: str,
        name: str,
        description: str,
        last_status: Optional[dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        super().__init__(
            f"Timed out waiting for {kind} {name} to reach state {description}",
            status_code=504,
            details={
                "kind": kind,
                "name": name,
                "description": description,
                "last_status": last_status or {},
                "timeout_seconds": timeout_seconds,
            },
        )


class ReadinessFailure(ConformanceError):
    """Raised when a readiness predicate observes a terminal problem."""

    def __init__(self, kind: str, name: str, description: str, message: str) -> None:
        super().__init__(
            f"{kind} {name} failed while waiting for {description}: {message}",
            status_code=502,
            details={"kind": kind, "name": name, "description": description},
        )


class NameMismatch(ConformanceError):
    """Raised when a generated name is not a legal extension of its prefix."""

    fatal = False

    def __init__(self, generate_name: str, name: str, pattern: str) -> None:
        super().__init__(
            f"generated name = {name!r}, want to match {pattern!r}",
            status_code=422,
            details={"generate_name": generate_name, "name": name, "pattern": pattern},
        )


class EndpointUnreachable(ConformanceError):
    """Raised when the probe deadline elapses without a matching response."""

    fatal = False

    def __init__(
        self,
        url: str,
        message: str,
        *,
        predicate: Optional[str] = None,
        attempts: int = 0,
        last_status_code: Optional[int] = None,
        last_body: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Endpoint {url} unreachable: {message}",
            status_code=504,
            details={
                "url": url,
                "predicate": predicate,
                "attempts": attempts,
                "last_status_code": last_status_code,
                "last_body": last_body,
            },
        )


class EndpointMismatch(ConformanceError):
    """Raised when the endpoint answered with a definitive, non-matching response."""

    fatal = False

    def __init__(
        self,
        url: str,
        message: str,
        *,
        predicate: Optional[str] = None,
        attempts: int = 0,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Endpoint {url} did not serve the expected response: {message}",
            status_code=502,
            details={
                "url": url,
                "predicate": predicate,
                "attempts": attempts,
                "last_status_code": status_code,
                "last_body": body,
            },
        )


class ResourceAPIError(ConformanceError):
    """Raised when the resource API returns an error."""

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, status_code=status_code, details=details or {})


class ResourceNotFoundError(ResourceAPIError):
    """Raised when a resource does not exist."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(
            f"{kind} not found: {name}",
            status_code=404,
            details={"kind": kind, "name": name},
        )


class ScenarioTimeout(ConformanceError):
    """Raised when a scenario exceeds its overall deadline."""

    def __init__(self, scenario: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Scenario {scenario} exceeded its deadline of {timeout_seconds}s",
            status_code=504,
            details={"scenario": scenario, "timeout_seconds": timeout_seconds},
        )


class ConfigurationError(ConformanceError):
    """Raised when the probe or client configuration cannot work."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400)


class UnknownScenarioError(ConformanceError):
    """Raised when a scenario name is not registered."""

    def __init__(self, name: str, available: Optional[list[str]] = None) -> None:
        super().__init__(
            f"Unknown scenario: {name}",
            status_code=404,
            details={"scenario": name, "available": available or []},
        )
