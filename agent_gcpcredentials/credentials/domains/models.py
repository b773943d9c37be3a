"""Domain models for multi-project credential retrieval."""
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

# projects/{project}/serviceAccounts/{email}
_ROLE_RESOURCE_PATTERN = re.compile(r'^projects/([^/]+)/serviceAccounts/([^/]+@[^/]+)$')
# {name}@{project}.iam.gserviceaccount.com
_ROLE_EMAIL_PATTERN = re.compile(r'^[^@/]+@([a-z0-9-]+)\.iam\.gserviceaccount\.com$')


@dataclass(frozen=True)
class Tag:
    """A single secret label."""
    key: str
    value: str


@dataclass(frozen=True)
class SecretListingEntry:
    """Raw secret listing entry as returned by one listing call."""
    name: str
    arn: str  # full resource name, unique across projects
    description: Optional[str] = None
    tags: List[Tag] = field(default_factory=list)


@dataclass(frozen=True)
class Filter:
    """One configured listing filter. Values are OR-ed together."""
    key: str
    values: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EndpointOverride:
    """Regional endpoint override for the Secret Manager client."""
    service_endpoint: str
    signing_region: str

    @classmethod
    def create(cls, service_endpoint: Optional[str], signing_region: Optional[str]) -> Optional["EndpointOverride"]:
        """
        Build an override only when it is fully specified.

        A partial override (one of the two fields missing) means
        "use the default endpoint" and yields None.
        """
        if not service_endpoint or not signing_region:
            return None
        return cls(service_endpoint=service_endpoint, signing_region=signing_region)


@dataclass(frozen=True)
class RoleIdentity:
    """
    A delegated identity to impersonate.

    Accepts either a service account resource name
    (projects/{project}/serviceAccounts/{email}) or a bare service account
    email whose domain names the project.
    """
    arn: str
    service_account: str
    project_id: str

    @classmethod
    def parse(cls, value: str) -> "RoleIdentity":
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Invalid role identity: {value!r}")

        value = value.strip()
        match = _ROLE_RESOURCE_PATTERN.match(value)
        if match:
            project_id, service_account = match.group(1), match.group(2)
            if project_id == "-":
                # Wildcard project: the email domain names the project
                email_match = _ROLE_EMAIL_PATTERN.match(service_account)
                if not email_match:
                    raise ValueError(
                        f"Invalid role identity: {value!r}\n"
                        f"A '-' project requires a '<name>@<project>.iam.gserviceaccount.com' email"
                    )
                project_id = email_match.group(1)
            return cls(arn=value, service_account=service_account, project_id=project_id)

        match = _ROLE_EMAIL_PATTERN.match(value)
        if match:
            return cls(arn=value, service_account=value, project_id=match.group(1))

        raise ValueError(
            f"Invalid role identity: {value!r}\n"
            f"Expected 'projects/<project>/serviceAccounts/<email>' "
            f"or '<name>@<project>.iam.gserviceaccount.com'"
        )


def select_name(entry: SecretListingEntry) -> str:
    """Name selector for the primary project: the plain secret name."""
    return entry.name


def select_arn(entry: SecretListingEntry) -> str:
    """Name selector for impersonated projects: the full resource name."""
    return entry.arn


@dataclass(frozen=True)
class AccountIdentity:
    """Primary project (no role) or an impersonated role."""
    role: Optional[RoleIdentity] = None

    @property
    def is_primary(self) -> bool:
        return self.role is None

    @property
    def name_selector(self) -> Callable[[SecretListingEntry], str]:
        return select_name if self.is_primary else select_arn

    def __str__(self) -> str:
        return "primary" if self.is_primary else self.role.arn


@dataclass
class CredentialsConfiguration:
    """Validated configuration for one supply() invocation."""
    project_id: str
    endpoint: Optional[EndpointOverride] = None
    filters: List[Filter] = field(default_factory=list)
    roles: List[RoleIdentity] = field(default_factory=list)
    cache: bool = True
    service_account_path: Optional[str] = None
