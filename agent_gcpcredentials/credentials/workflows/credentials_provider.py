"""Credentials provider: the host-facing entry point with optional caching."""
import logging
import threading
import time
from typing import Callable, List, Optional

from ..domains.credential_types import SecretCredential
from ..domains.interface import SecretsBackendError
from ..domains.models import CredentialsConfiguration
from .credentials_supplier import CredentialsSupplier

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300


class CredentialsProvider:
    """
    Serves credentials to callers.

    Backend failures are logged and reported as an empty collection.
    Successful results are memoized for `cache_ttl_seconds` when caching
    is enabled; failures are never cached.
    """

    def __init__(self, supplier: Callable[[], List[SecretCredential]],
                 cache: bool = True,
                 cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self._supplier = supplier
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[List[SecretCredential]] = None
        self._expires_at = 0.0

    @classmethod
    def from_config(cls, config: CredentialsConfiguration, backend=None) -> "CredentialsProvider":
        supplier = CredentialsSupplier(config, backend)
        return cls(supplier.supply, cache=config.cache)

    def _load(self) -> List[SecretCredential]:
        if not self.cache:
            return self._supplier()

        with self._lock:
            now = self._clock()
            if self._cached is None or now >= self._expires_at:
                self._cached = self._supplier()
                self._expires_at = now + self.cache_ttl_seconds
            return self._cached

    def get_credentials(self) -> List[SecretCredential]:
        try:
            return list(self._load())
        except SecretsBackendError as e:
            logger.warning(f"Could not list credentials in GCP Secret Manager: {e}")
            return []

    def get_credential(self, credential_id: str) -> Optional[SecretCredential]:
        for credential in self.get_credentials():
            if credential.id == credential_id:
                return credential
        return None

    def invalidate(self) -> None:
        """Drop the cached collection so the next call hits the backend."""
        with self._lock:
            self._cached = None
            self._expires_at = 0.0
