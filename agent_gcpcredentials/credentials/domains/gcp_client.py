"""GCP Secret Manager client wrapper and backend adapter."""
import logging
from typing import Any, List, Optional

import google.auth
from google.api_core import exceptions as api_exceptions
from google.api_core.gapic_v1.client_info import ClientInfo
from google.auth import exceptions as auth_exceptions
from google.auth import impersonated_credentials
from google.cloud import secretmanager

from .filters import create_filter_expression
from .interface import SecretsBackend, SecretsBackendError
from .models import EndpointOverride, Filter, RoleIdentity, SecretListingEntry, Tag

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# Fixed settings for impersonated (role) sessions
ROLE_SESSION_NAME = "agent-gcpcredentials"
ROLE_SESSION_DURATION_SECONDS = 900

DESCRIPTION_ANNOTATION = "description"

_BACKEND_ERRORS = (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class GCPSecretClient:
    """Wrapper around GCP Secret Manager client, scoped to one project."""

    def __init__(self, project_id: str, credentials=None,
                 endpoint: Optional[EndpointOverride] = None,
                 client_info: Optional[ClientInfo] = None):
        self.project_id = project_id
        self.credentials = credentials
        self.endpoint = endpoint
        self.client_info = client_info
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            kwargs = {}
            if self.credentials is not None:
                kwargs["credentials"] = self.credentials
            if self.endpoint is not None:
                kwargs["client_options"] = {"api_endpoint": self.endpoint.service_endpoint}
            if self.client_info is not None:
                kwargs["client_info"] = self.client_info
            self._client = secretmanager.SecretManagerServiceClient(**kwargs)
        return self._client

    @property
    def parent(self) -> str:
        """Resource that owns the secrets: the project, or its regional location."""
        if self.endpoint is not None:
            return f"projects/{self.project_id}/locations/{self.endpoint.signing_region}"
        return f"projects/{self.project_id}"

    def secret_path(self, name: str) -> str:
        """Resolve a plain secret name or a full resource name."""
        if name.startswith("projects/"):
            return name
        return f"{self.parent}/secrets/{name}"

    def list_secrets(self, filter_expression: Optional[str] = None) -> List[SecretListingEntry]:
        """
        List all secrets under this client's parent.

        Args:
            filter_expression: Optional list filter

        Returns:
            Listing entries for every page of results

        Raises:
            SecretsBackendError: If the backend call fails
        """
        request = {"parent": self.parent}
        if filter_expression:
            request["filter"] = filter_expression

        try:
            # The pager fetches further pages while iterating
            return [_to_entry(secret) for secret in self.client.list_secrets(request=request)]
        except _BACKEND_ERRORS as e:
            raise SecretsBackendError(f"Failed to list secrets in {self.parent}: {e}") from e

    def fetch_secret(self, name: str) -> bytes:
        """
        Fetch the latest version payload of a secret.

        Args:
            name: Plain secret name or full resource name

        Returns:
            Raw payload bytes

        Raises:
            SecretsBackendError: If the backend call fails
        """
        version = f"{self.secret_path(name)}/versions/latest"
        try:
            response = self.client.access_secret_version(request={"name": version})
        except _BACKEND_ERRORS as e:
            raise SecretsBackendError(f"Failed to access {version}: {e}") from e
        return response.payload.data


def _to_entry(secret) -> SecretListingEntry:
    resource_name = secret.name
    annotations = dict(secret.annotations)
    return SecretListingEntry(
        name=resource_name.rsplit("/", 1)[-1],
        arn=resource_name,
        description=annotations.get(DESCRIPTION_ANNOTATION),
        tags=[Tag(key=key, value=value) for key, value in secret.labels.items()],
    )


class GCPSecretsBackend(SecretsBackend):
    """
    Secret Manager backend.

    The primary client uses the configured service account file, or
    application default credentials. Role clients impersonate the role's
    service account, sourcing from the same credentials.
    """

    backend_type = "gcp"

    def __init__(self, project_id: str, service_account_path: Optional[str] = None):
        self.project_id = project_id
        self.service_account_path = service_account_path
        self._source_credentials = None

    def _get_source_credentials(self):
        if self._source_credentials is None:
            try:
                if self.service_account_path:
                    credentials, _ = google.auth.load_credentials_from_file(
                        self.service_account_path, scopes=[CLOUD_PLATFORM_SCOPE]
                    )
                    logger.debug(f"Using service account file: {self.service_account_path}")
                else:
                    credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
                    logger.debug("Using application default credentials")
            except auth_exceptions.GoogleAuthError as e:
                raise SecretsBackendError(f"Failed to load GCP credentials: {e}") from e
            self._source_credentials = credentials
        return self._source_credentials

    def build_client(self, endpoint: Optional[EndpointOverride] = None) -> GCPSecretClient:
        return GCPSecretClient(
            self.project_id,
            credentials=self._get_source_credentials(),
            endpoint=endpoint,
        )

    def build_client_for_role(self, role: RoleIdentity,
                              endpoint: Optional[EndpointOverride] = None) -> GCPSecretClient:
        credentials = impersonated_credentials.Credentials(
            source_credentials=self._get_source_credentials(),
            target_principal=role.service_account,
            target_scopes=[CLOUD_PLATFORM_SCOPE],
            lifetime=ROLE_SESSION_DURATION_SECONDS,
        )
        logger.debug(f"Impersonating {role.service_account} for project {role.project_id}")
        return GCPSecretClient(
            role.project_id,
            credentials=credentials,
            endpoint=endpoint,
            client_info=ClientInfo(user_agent=ROLE_SESSION_NAME),
        )

    def list_secrets(self, client: Any, filters: List[Filter]) -> List[SecretListingEntry]:
        try:
            expression = create_filter_expression(filters)
        except ValueError as e:
            raise SecretsBackendError(f"Invalid list filter: {e}") from e
        return client.list_secrets(expression)
