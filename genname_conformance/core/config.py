"""Conformance run settings loaded from environment with validation."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

HELLO_WORLD_TEXT = "Hello World! How about some tasty noodles?"


class Settings(BaseSettings):
    """Conformance settings from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Cluster
    namespace: str = Field(default="serving-tests", min_length=1, description="Namespace test resources are created in")
    kube_api_url: str = Field(
        default="https://kubernetes.default.svc",
        min_length=1,
        description="Kubernetes API server base URL",
    )
    kube_token: str = Field(default="", description="Bearer token for the API server (sm://name resolves via Secret Manager)")
    kube_ca_file: str = Field(default="", description="CA bundle for the API server (empty = system trust)")
    gcp_project_id: str = Field(default="", description="GCP project for Secret Manager references and Cloud Trace")
    resource_client: Literal["kubernetes", "memory"] = Field(
        default="kubernetes",
        description="Resource client backend: kubernetes (live cluster) or memory (simulated platform)",
    )

    # Workload
    image: str = Field(
        default="gcr.io/knative-samples/helloworld-go",
        min_length=1,
        description="Container image serving expected_text",
    )
    expected_text: str = Field(default=HELLO_WORLD_TEXT, min_length=1)

    # Endpoint probing
    resolvable_domain: bool = Field(
        default=False,
        description="Generated hostnames resolve publicly; otherwise requests go through ingress_endpoint",
    )
    ingress_endpoint: str = Field(
        default="",
        description="host[:port] of the ingress gateway used when domains are not resolvable",
    )
    https: bool = Field(default=False, description="Probe over https with root_ca_file trust")
    root_ca_file: str = Field(default="", description="PEM file trusted when probing over https")

    # Polling
    poll_interval_seconds: float = Field(default=1.0, gt=0, le=60)
    poll_timeout_seconds: float = Field(default=600.0, gt=0, le=3600)
    probe_interval_seconds: float = Field(default=1.0, gt=0, le=60)
    probe_timeout_seconds: float = Field(default=300.0, gt=0, le=3600)
    scenario_timeout_seconds: float = Field(
        default=900.0,
        gt=0,
        le=7200,
        description="Overall deadline for one scenario; teardown still runs after expiry",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0, le=300)
    api_max_retries: int = Field(default=3, ge=1, le=10)

    # Naming
    generate_name_max_length: int = Field(
        default=44,
        ge=2,
        le=253,
        description=(
            "Prefixes are truncated to this length. "
            "Longer generateNames can keep dependent resources (revisions) from becoming ready."
        ),
    )

    # Logging
    log_level: LogLevel = Field(default="INFO")
    log_format: Literal["json", "readable"] = Field(default="json")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        u = (v or "INFO").upper()
        if u not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return u

    @field_validator("kube_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def resolve_secrets(self) -> None:
        """Resolve Secret Manager references for sensitive settings."""
        if not self.kube_token.startswith("sm://") or not self.gcp_project_id:
            return
        from google.api_core.exceptions import GoogleAPIError
        from google.cloud import secretmanager

        secret_name = self.kube_token.removeprefix("sm://")
        client = secretmanager.SecretManagerServiceClient()
        secret_path = f"projects/{self.gcp_project_id}/secrets/{secret_name}/versions/latest"
        try:
            response = client.access_secret_version(request={"name": secret_path})
        except GoogleAPIError:
            return
        self.kube_token = response.payload.data.decode("utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    settings = Settings()
    settings.resolve_secrets()
    return settings
