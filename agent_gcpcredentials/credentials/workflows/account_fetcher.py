"""Fetch and classify the credentials of a single project."""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from ..domains.credential_types import SecretCredential
from ..domains.credentials_factory import create_credential
from ..domains.interface import SecretsBackend
from ..domains.models import AccountIdentity, Filter, SecretListingEntry, Tag

logger = logging.getLogger(__name__)


def tags_to_dict(tags: List[Tag]) -> Dict[str, str]:
    """Convert a tag list to a mapping. On duplicate keys the last tag wins."""
    return {tag.key: tag.value for tag in tags}


def fetch(client: Any, name_selector: Callable[[SecretListingEntry], str],
          filters: List[Filter], backend: SecretsBackend) -> List[SecretCredential]:
    """
    List a project's secrets and convert them to credentials.

    Secrets that are not a supported credential are dropped.

    Raises:
        SecretsBackendError: If listing fails
    """
    entries = backend.list_secrets(client, filters)

    credentials = []
    for entry in entries:
        name = name_selector(entry)
        description = entry.description if entry.description is not None else ""
        credential = create_credential(name, description, tags_to_dict(entry.tags), client)
        if credential is not None:
            credentials.append(credential)

    logger.debug(f"Converted {len(credentials)} of {len(entries)} secrets to credentials")
    return credentials


@dataclass
class FetchTask:
    """
    Deferred fetch of one project's credentials.

    Built eagerly per account; the backend is only called when the task runs.
    """
    client: Any
    name_selector: Callable[[SecretListingEntry], str]
    filters: List[Filter]
    backend: SecretsBackend
    account: AccountIdentity = field(default_factory=AccountIdentity)

    def __call__(self) -> List[SecretCredential]:
        logger.debug(f"Fetching credentials for account: {self.account}")
        return fetch(self.client, self.name_selector, self.filters, self.backend)
