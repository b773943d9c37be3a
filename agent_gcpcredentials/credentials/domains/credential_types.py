"""Credential types produced from Secret Manager secrets."""
from dataclasses import dataclass
from typing import Any


class SecretSupplier:
    """Reads the latest secret payload through the owning client, on every call."""

    def __init__(self, client: Any, name: str):
        self.client = client
        self.name = name

    def get_bytes(self) -> bytes:
        return self.client.fetch_secret(self.name)

    def get_string(self) -> str:
        return self.get_bytes().decode("UTF-8")

    def __repr__(self) -> str:
        return f"SecretSupplier(name={self.name!r})"


@dataclass
class SecretCredential:
    """Base credential. `id` is the key used to merge across projects."""
    id: str
    description: str
    secret: SecretSupplier

    type_name = "secret"

    @property
    def secret_value(self) -> str:
        return self.secret.get_string()


@dataclass
class StringCredential(SecretCredential):
    type_name = "string"


@dataclass
class UsernamePasswordCredential(SecretCredential):
    username: str = ""

    type_name = "username-password"

    @property
    def password(self) -> str:
        return self.secret.get_string()


@dataclass
class SshUserPrivateKeyCredential(SecretCredential):
    username: str = ""

    type_name = "ssh-user-private-key"

    @property
    def private_key(self) -> str:
        return self.secret.get_string()


@dataclass
class CertificateCredential(SecretCredential):
    """PKCS#12 keystore stored as a binary secret."""

    type_name = "certificate"

    @property
    def keystore(self) -> bytes:
        return self.secret.get_bytes()


@dataclass
class FileCredential(SecretCredential):
    filename: str = ""

    type_name = "file"

    @property
    def content(self) -> bytes:
        return self.secret.get_bytes()
