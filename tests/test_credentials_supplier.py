"""Tests for the multi-project credentials pipeline."""
import threading
import time
from unittest import mock

import pytest

from agent_gcpcredentials.credentials.domains.credential_types import (
    StringCredential,
    UsernamePasswordCredential,
)
from agent_gcpcredentials.credentials.domains.interface import SecretsBackendError
from agent_gcpcredentials.credentials.domains.models import (
    CredentialsConfiguration,
    EndpointOverride,
    Filter,
    RoleIdentity,
    SecretListingEntry,
    Tag,
    select_arn,
    select_name,
)
from agent_gcpcredentials.credentials.workflows import credentials_supplier, parallel
from agent_gcpcredentials.credentials.workflows.account_fetcher import fetch
from agent_gcpcredentials.credentials.workflows.credentials_supplier import CredentialsSupplier, supply

from conftest import ROLE_A, ROLE_B, FakeBackend, make_entry


def _ids(credentials):
    return sorted(c.id for c in credentials)


class TestSingleAccount:
    """Zero roles configured."""

    def test_only_primary_task_runs(self, fake_backend, single_account_config):
        fake_backend.listings["primary"] = [make_entry("alpha"), make_entry("beta")]

        result = supply(single_account_config, fake_backend)

        assert _ids(result) == ["alpha", "beta"]
        assert len(fake_backend.built) == 1
        assert [key for key, _ in fake_backend.listed] == ["primary"]

    def test_same_as_fetching_directly(self, single_account_config):
        entries = [
            make_entry("alpha"),
            make_entry("beta", credential_type="username-password", credentials_username="ci"),
            make_entry("gamma", credential_type=None),
        ]
        direct_backend = FakeBackend(listings={"primary": entries})
        supplied_backend = FakeBackend(listings={"primary": entries})

        direct = fetch(direct_backend.build_client(), select_name, [], direct_backend)
        supplied = supply(single_account_config, supplied_backend)

        assert [(c.id, c.type_name, c.description) for c in supplied] == \
            [(c.id, c.type_name, c.description) for c in direct]

    def test_empty_project(self, fake_backend, single_account_config):
        assert supply(single_account_config, fake_backend) == []

    def test_single_task_runs_in_calling_thread(self, fake_backend, single_account_config):
        seen = []

        def list_secrets(client, filters):
            seen.append(threading.current_thread())
            return []

        fake_backend.list_secrets = list_secrets
        supply(single_account_config, fake_backend)

        assert seen == [threading.current_thread()]


class TestMultiAccount:
    """Primary project plus impersonated roles."""

    def test_union_of_all_accounts(self, fake_backend, two_role_config):
        fake_backend.listings = {
            "primary": [make_entry("alpha")],
            ROLE_A: [make_entry("beta", project="team-a")],
            ROLE_B: [make_entry("gamma", project="team-b")],
        }

        result = supply(two_role_config, fake_backend)

        assert _ids(result) == [
            "alpha",
            "projects/team-a/secrets/beta",
            "projects/team-b/secrets/gamma",
        ]

    def test_primary_uses_name_and_roles_use_resource_name(self, fake_backend):
        config = CredentialsConfiguration(project_id="main-project", roles=[RoleIdentity.parse(ROLE_A)])
        fake_backend.listings = {
            "primary": [make_entry("deploy-token")],
            ROLE_A: [make_entry("deploy-token", project="team-a")],
        }

        result = supply(config, fake_backend)

        assert _ids(result) == ["deploy-token", "projects/team-a/secrets/deploy-token"]

    def test_duplicate_id_later_account_wins(self, fake_backend):
        config = CredentialsConfiguration(project_id="main-project", roles=[RoleIdentity.parse(ROLE_A)])
        primary_dup = SecretListingEntry(
            name="dup", arn="projects/main-project/secrets/x", description="primary",
            tags=[Tag("credentials-type", "string")],
        )
        role_dup = SecretListingEntry(
            name="ignored", arn="dup", description="role",
            tags=[Tag("credentials-type", "string")],
        )
        fake_backend.listings = {"primary": [primary_dup], ROLE_A: [role_dup]}

        result = supply(config, fake_backend)

        assert len(result) == 1
        assert result[0].id == "dup"
        assert result[0].description == "role"

    def test_tie_break_ignores_completion_order(self, fake_backend):
        config = CredentialsConfiguration(project_id="main-project", roles=[RoleIdentity.parse(ROLE_A)])
        original = fake_backend.list_secrets

        def slow_role_listing(client, filters):
            # The role account finishes first; it must still win the tie
            if client.key == "primary":
                time.sleep(0.05)
            return original(client, filters)

        fake_backend.list_secrets = slow_role_listing
        fake_backend.listings = {
            "primary": [SecretListingEntry("dup", "p", "primary", [Tag("credentials-type", "string")])],
            ROLE_A: [SecretListingEntry("x", "dup", "role", [Tag("credentials-type", "string")])],
        }

        result = supply(config, fake_backend)

        assert [c.description for c in result] == ["role"]

    def test_clients_built_in_configured_order(self, fake_backend, two_role_config):
        supply(two_role_config, fake_backend)

        assert [c.key for c in fake_backend.built] == ["primary", ROLE_A, ROLE_B]
        assert [c.project_id for c in fake_backend.built] == ["main-project", "team-a", "team-b"]

    def test_filters_passed_to_every_account(self, fake_backend, two_role_config):
        two_role_config.filters = [Filter("name", ["ci-"])]

        supply(two_role_config, fake_backend)

        assert len(fake_backend.listed) == 3
        assert all(filters == [Filter("name", ["ci-"])] for _, filters in fake_backend.listed)

    def test_endpoint_override_passed_to_every_client(self, fake_backend, two_role_config):
        endpoint = EndpointOverride("secretmanager.europe-west1.rep.googleapis.com", "europe-west1")
        two_role_config.endpoint = endpoint

        supply(two_role_config, fake_backend)

        assert all(c.endpoint == endpoint for c in fake_backend.built)

    def test_credentials_read_through_their_own_client(self, fake_backend):
        config = CredentialsConfiguration(project_id="main-project", roles=[RoleIdentity.parse(ROLE_A)])
        fake_backend.listings = {
            "primary": [make_entry("alpha")],
            ROLE_A: [make_entry("beta", project="team-a",
                                credential_type="username-password", credentials_username="svc")],
        }

        result = {c.id: c for c in supply(config, fake_backend)}

        role_credential = result["projects/team-a/secrets/beta"]
        assert isinstance(role_credential, UsernamePasswordCredential)
        assert role_credential.secret.client.role.arn == ROLE_A
        assert isinstance(result["alpha"], StringCredential)
        assert result["alpha"].secret.client.role is None


class TestFailures:
    """Any failing account fails the whole call."""

    def test_middle_task_failure_raises_backend_error(self, fake_backend, two_role_config):
        fake_backend.listings = {
            "primary": [make_entry("alpha")],
            ROLE_A: SecretsBackendError("permission denied on team-a"),
            ROLE_B: [make_entry("gamma", project="team-b")],
        }

        with pytest.raises(SecretsBackendError) as exc_info:
            supply(two_role_config, fake_backend)

        assert "permission denied on team-a" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, SecretsBackendError)

    def test_all_tasks_finish_before_error_surfaces(self, fake_backend, two_role_config):
        finished = []
        original = fake_backend.list_secrets

        def listing(client, filters):
            if client.key == ROLE_B:
                time.sleep(0.05)
                finished.append(client.key)
            return original(client, filters)

        fake_backend.list_secrets = listing
        fake_backend.listings[ROLE_A] = SecretsBackendError("boom")

        with pytest.raises(SecretsBackendError):
            supply(two_role_config, fake_backend)

        assert finished == [ROLE_B]

    def test_unexpected_error_translated_to_backend_error(self, fake_backend, single_account_config):
        fake_backend.listings["primary"] = RuntimeError("connection reset")

        with pytest.raises(SecretsBackendError) as exc_info:
            supply(single_account_config, fake_backend)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_first_failure_in_task_order_is_reported(self, fake_backend, two_role_config):
        fake_backend.listings = {
            ROLE_A: SecretsBackendError("team-a failed"),
            ROLE_B: SecretsBackendError("team-b failed"),
        }

        with pytest.raises(SecretsBackendError) as exc_info:
            supply(two_role_config, fake_backend)

        assert "team-a failed" in str(exc_info.value)

    def test_client_build_failure_propagates(self, fake_backend, two_role_config):
        with mock.patch.object(fake_backend, "build_client_for_role",
                               side_effect=SecretsBackendError("no source credentials")):
            with pytest.raises(SecretsBackendError):
                supply(two_role_config, fake_backend)

    def test_executor_failure_is_backend_error(self, fake_backend, two_role_config):
        with mock.patch.object(parallel.ThreadPoolExecutor, "submit",
                               side_effect=RuntimeError("can't start new thread")):
            with pytest.raises(SecretsBackendError) as exc_info:
                supply(two_role_config, fake_backend)

        assert "can't start new thread" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestConfigurationSource:

    def test_loads_configuration_when_none_given(self, fake_backend):
        config = CredentialsConfiguration(project_id="from-file")
        with mock.patch.object(credentials_supplier, "load_configuration", return_value=config) as load:
            CredentialsSupplier(backend=fake_backend).supply()
        load.assert_called_once_with()

    def test_configuration_reloaded_on_every_call(self, fake_backend):
        config = CredentialsConfiguration(project_id="from-file")
        supplier = CredentialsSupplier(backend=fake_backend)
        with mock.patch.object(credentials_supplier, "load_configuration", return_value=config) as load:
            supplier.supply()
            supplier.supply()
        assert load.call_count == 2

    def test_default_backend_is_gcp(self):
        config = CredentialsConfiguration(project_id="p", service_account_path="/sa.json")
        with mock.patch.object(credentials_supplier, "GCPSecretsBackend") as backend_cls:
            backend_cls.return_value = FakeBackend()
            supply(config)
        backend_cls.assert_called_once_with("p", "/sa.json")


class TestNameSelectors:

    def test_select_name_and_arn(self):
        entry = make_entry("token", project="p1")
        assert select_name(entry) == "token"
        assert select_arn(entry) == "projects/p1/secrets/token"
