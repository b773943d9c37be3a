"""Shared fixtures: an in-memory secrets backend and listing helpers."""
import threading

import pytest

from agent_gcpcredentials.credentials.domains.interface import SecretsBackend
from agent_gcpcredentials.credentials.domains.models import (
    CredentialsConfiguration,
    RoleIdentity,
    SecretListingEntry,
    Tag,
)


class FakeClient:
    """Client handle for one project, optionally acting as a role."""

    def __init__(self, project_id, role=None, endpoint=None, secrets=None):
        self.project_id = project_id
        self.role = role
        self.endpoint = endpoint
        self.secrets = secrets or {}

    @property
    def key(self):
        return self.role.arn if self.role else "primary"

    def fetch_secret(self, name):
        return self.secrets[name]


class FakeBackend(SecretsBackend):
    """
    Backend serving canned listings per account.

    `listings` maps "primary" or a role arn to a list of entries, or to an
    exception to raise from list_secrets.
    """

    backend_type = "fake"

    def __init__(self, project_id="main-project", listings=None, secrets=None):
        self.project_id = project_id
        self.listings = listings or {}
        self.secrets = secrets or {}
        self.built = []
        self.listed = []
        self._lock = threading.Lock()

    def build_client(self, endpoint=None):
        client = FakeClient(self.project_id, endpoint=endpoint, secrets=self.secrets)
        self.built.append(client)
        return client

    def build_client_for_role(self, role, endpoint=None):
        client = FakeClient(role.project_id, role=role, endpoint=endpoint, secrets=self.secrets)
        self.built.append(client)
        return client

    def list_secrets(self, client, filters):
        with self._lock:
            self.listed.append((client.key, list(filters)))
        listing = self.listings.get(client.key, [])
        if isinstance(listing, BaseException):
            raise listing
        return listing


def make_entry(name, project="main-project", credential_type="string", description=None, **labels):
    tags = []
    if credential_type is not None:
        tags.append(Tag("credentials-type", credential_type))
    tags.extend(Tag(key.replace("_", "-"), value) for key, value in labels.items())
    return SecretListingEntry(
        name=name,
        arn=f"projects/{project}/secrets/{name}",
        description=description,
        tags=tags,
    )


ROLE_A = "projects/team-a/serviceAccounts/reader@team-a.iam.gserviceaccount.com"
ROLE_B = "reader@team-b.iam.gserviceaccount.com"


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def single_account_config():
    return CredentialsConfiguration(project_id="main-project")


@pytest.fixture
def two_role_config():
    return CredentialsConfiguration(
        project_id="main-project",
        roles=[RoleIdentity.parse(ROLE_A), RoleIdentity.parse(ROLE_B)],
    )
