"""Input validation for CLI arguments."""
import re
import sys


def validate_credential_id(credential_id: str) -> None:
    """
    Validate a credential id.

    Ids are either plain secret names ([a-zA-Z0-9_-]) or full resource
    names (projects/<project>/secrets/<name>, optionally with a
    locations/<location> segment).

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not credential_id:
        print("Error: Credential id cannot be empty", file=sys.stderr)
        sys.exit(2)

    plain = r'^[a-zA-Z0-9_-]+$'
    resource = r'^projects/[^/\s]+/(locations/[^/\s]+/)?secrets/[a-zA-Z0-9_-]+$'

    if not (re.match(plain, credential_id) or re.match(resource, credential_id)):
        print(f"Error: Invalid credential id '{credential_id}'", file=sys.stderr)
        print("\nExpected a secret name or a full secret resource name:", file=sys.stderr)
        print("  ✓ deploy-token", file=sys.stderr)
        print("  ✓ projects/other-project/secrets/deploy-token", file=sys.stderr)
        sys.exit(2)
