"""Select the resource client backend named by settings."""

from genname_conformance.core.config import Settings
from genname_conformance.services.resource_client import BaseResourceClient, get_client_factory
import genname_conformance.services.knative_client  # noqa: F401  Register backends
import genname_conformance.services.memory_client  # noqa: F401


def create_client(settings: Settings) -> BaseResourceClient:
    return get_client_factory(settings.resource_client)(settings)
