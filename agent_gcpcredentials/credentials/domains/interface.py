"""
Secrets Backend Interface

Defines the capabilities the credential pipeline needs from a secrets
backend. The pipeline only talks to this interface; a concrete adapter
is bound at the boundary (see gcp_client.GCPSecretsBackend).
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from .models import EndpointOverride, Filter, RoleIdentity, SecretListingEntry


class SecretsBackendError(Exception):
    """
    Backend-domain error.

    Raised for listing and role impersonation failures, and for any
    failure of the multi-project fetch. This is the only error type the
    credentials host needs to catch.
    """
    pass


class SecretsBackend(ABC):
    """Abstract base class for secrets backends."""

    backend_type: str = "base"

    @abstractmethod
    def build_client(self, endpoint: Optional[EndpointOverride] = None) -> Any:
        """
        Build a client handle for the primary project.

        Args:
            endpoint: Optional fully-specified endpoint override

        Returns:
            Backend-specific client handle
        """
        pass

    @abstractmethod
    def build_client_for_role(self, role: RoleIdentity, endpoint: Optional[EndpointOverride] = None) -> Any:
        """
        Build a client handle that acts as the given role.

        Args:
            role: Identity to impersonate
            endpoint: Optional fully-specified endpoint override

        Returns:
            Backend-specific client handle
        """
        pass

    @abstractmethod
    def list_secrets(self, client: Any, filters: List[Filter]) -> List[SecretListingEntry]:
        """
        List all secrets visible to the client that match the filters.

        Pagination is handled by the implementation.

        Raises:
            SecretsBackendError: If the backend call fails
        """
        pass
