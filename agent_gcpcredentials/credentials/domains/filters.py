"""Translate configured filters into a Secret Manager list filter expression."""
import logging
import re
from typing import List, Optional

from .models import Filter

logger = logging.getLogger(__name__)

# Values made only of these characters can be used unquoted
_BARE_VALUE = re.compile(r'^[A-Za-z0-9_./*-]+$')

SUPPORTED_KEYS = ("name", "tag-key", "tag-value", "all")


def _quote(value: str) -> str:
    if _BARE_VALUE.match(value):
        return value
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def _term(key: str, value: str) -> str:
    if key == "name":
        return f"name:{_quote(value)}"
    if key == "tag-key":
        return f"labels.{value}:*"
    if key == "tag-value":
        if "=" not in value:
            raise ValueError(f"Filter 'tag-value' expects 'key=value', got: {value!r}")
        label_key, label_value = value.split("=", 1)
        return f"labels.{label_key}={_quote(label_value)}"
    if key.startswith("labels."):
        return f"{key}={_quote(value)}"
    if key == "all":
        return _quote(value)
    raise ValueError(
        f"Unsupported filter key: {key!r}\n"
        f"Supported keys: {', '.join(SUPPORTED_KEYS)}, labels.<key>"
    )


def create_filter_expression(filters: List[Filter]) -> Optional[str]:
    """
    Build a list filter expression.

    Values within one filter are OR-ed, separate filters are AND-ed.
    Filters without values are ignored.

    Args:
        filters: Configured filters

    Returns:
        Filter expression, or None when nothing should be filtered

    Raises:
        ValueError: If a filter key is not supported
    """
    clauses = []
    for f in filters:
        terms = [_term(f.key, value) for value in f.values]
        if not terms:
            continue
        if len(terms) == 1:
            clauses.append(terms[0])
        else:
            clauses.append("(" + " OR ".join(terms) + ")")

    if not clauses:
        return None

    expression = " AND ".join(clauses)
    logger.debug(f"Using list filter: {expression}")
    return expression
