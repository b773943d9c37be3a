"""Classify secrets into credential types by their labels."""
import logging
from typing import Any, Dict, Optional

from .credential_types import (
    CertificateCredential,
    FileCredential,
    SecretCredential,
    SecretSupplier,
    SshUserPrivateKeyCredential,
    StringCredential,
    UsernamePasswordCredential,
)

logger = logging.getLogger(__name__)

# Label keys (GCP labels allow only lowercase letters, digits, '_' and '-')
TYPE_LABEL = "credentials-type"
USERNAME_LABEL = "credentials-username"
FILENAME_LABEL = "credentials-filename"


def create_credential(name: str, description: str, tags: Dict[str, str], client: Any) -> Optional[SecretCredential]:
    """
    Build a credential from a listed secret.

    Args:
        name: Credential id (plain secret name or full resource name)
        description: Secret description, never None
        tags: Secret labels
        client: Client handle used later to read the secret payload

    Returns:
        The credential, or None if the secret is not a supported credential
    """
    credential_type = tags.get(TYPE_LABEL)
    secret = SecretSupplier(client, name)

    if credential_type == StringCredential.type_name:
        return StringCredential(name, description, secret)

    if credential_type == UsernamePasswordCredential.type_name:
        username = tags.get(USERNAME_LABEL)
        if not username:
            logger.debug(f"Skipping {name}: missing '{USERNAME_LABEL}' label")
            return None
        return UsernamePasswordCredential(name, description, secret, username=username)

    if credential_type == SshUserPrivateKeyCredential.type_name:
        username = tags.get(USERNAME_LABEL)
        if not username:
            logger.debug(f"Skipping {name}: missing '{USERNAME_LABEL}' label")
            return None
        return SshUserPrivateKeyCredential(name, description, secret, username=username)

    if credential_type == CertificateCredential.type_name:
        return CertificateCredential(name, description, secret)

    if credential_type == FileCredential.type_name:
        # Last path segment of a resource name
        filename = tags.get(FILENAME_LABEL) or name.rsplit("/", 1)[-1]
        return FileCredential(name, description, secret, filename=filename)

    logger.debug(f"Skipping {name}: unsupported credential type {credential_type!r}")
    return None
