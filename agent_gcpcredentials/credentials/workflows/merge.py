"""Merge per-project credential collections into one."""
from typing import Dict, Iterable, List

from ..domains.credential_types import SecretCredential


def merge(collections: Iterable[Iterable[SecretCredential]]) -> List[SecretCredential]:
    """
    Flatten collections in the given order, keyed by credential id.

    When two collections hold the same id, the one given later wins.
    Output order is not significant.
    """
    by_id: Dict[str, SecretCredential] = {}
    for collection in collections:
        for credential in collection:
            by_id[credential.id] = credential
    return list(by_id.values())
