"""Workflow: collect credentials from the primary project and every configured role."""
import logging
from typing import List, Optional

from ..domains.config_loader import load_configuration
from ..domains.credential_types import SecretCredential
from ..domains.gcp_client import GCPSecretsBackend
from ..domains.interface import SecretsBackend, SecretsBackendError
from ..domains.models import AccountIdentity, CredentialsConfiguration
from .account_fetcher import FetchTask
from .merge import merge
from .parallel import AggregationError, run_parallel

logger = logging.getLogger(__name__)


class CredentialsSupplier:
    """
    Single-pass pipeline: build one fetch task per account, run them in
    parallel, merge the results.

    Nothing is kept between supply() calls.
    """

    def __init__(self, config: Optional[CredentialsConfiguration] = None,
                 backend: Optional[SecretsBackend] = None):
        self._config = config
        self._backend = backend

    def _get_config(self) -> CredentialsConfiguration:
        if self._config is not None:
            return self._config
        return load_configuration()

    def build_tasks(self, config: CredentialsConfiguration, backend: SecretsBackend) -> List[FetchTask]:
        """Primary project first, then roles in configured order."""
        primary = AccountIdentity()
        tasks = [
            FetchTask(
                client=backend.build_client(config.endpoint),
                name_selector=primary.name_selector,
                filters=config.filters,
                backend=backend,
                account=primary,
            )
        ]

        for role in config.roles:
            account = AccountIdentity(role=role)
            tasks.append(FetchTask(
                client=backend.build_client_for_role(role, config.endpoint),
                name_selector=account.name_selector,
                filters=config.filters,
                backend=backend,
                account=account,
            ))
        return tasks

    def supply(self) -> List[SecretCredential]:
        """
        Retrieve credentials from every configured account.

        Returns:
            Credentials merged by id; a later account wins over an earlier one

        Raises:
            SecretsBackendError: If any account could not be read
        """
        logger.debug("Retrieving credentials from GCP Secret Manager")

        config = self._get_config()
        backend = self._backend or GCPSecretsBackend(config.project_id, config.service_account_path)

        tasks = self.build_tasks(config, backend)
        logger.debug(f"Fetching from {len(tasks)} account(s)")

        try:
            results = run_parallel(tasks)
        except AggregationError as e:
            cause = e.__cause__ or e
            if e.index is None:
                logger.debug(f"Parallel fetch could not run: {cause}")
            else:
                logger.debug(f"Fetch failed for account {tasks[e.index].account}: {cause}")
            raise SecretsBackendError(str(cause)) from cause

        credentials = merge(results)
        logger.debug(f"Supplying {len(credentials)} credential(s)")
        return credentials


def supply(config: Optional[CredentialsConfiguration] = None,
           backend: Optional[SecretsBackend] = None) -> List[SecretCredential]:
    """Convenience wrapper around CredentialsSupplier(config, backend).supply()."""
    return CredentialsSupplier(config, backend).supply()
