"""
Query-string helpers for GED resource URIs.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional, Union

SEARCH_DATE_FORMAT = "%Y%m%d"


def append_token(resource_uri: str, token: str) -> str:
    """Append the session token as the ``token`` query parameter."""
    separator = "&" if "?" in resource_uri else "?"
    return f"{resource_uri}{separator}token={token}"


def _clause(key: str, value: Any) -> str:
    return f'{key} eq "{value}"'


def build_metadata_query(filters: Optional[Mapping[str, Any]]) -> str:
    """
    Build the ``q`` expression for a document tree query.

    List values are OR-joined for their key, distinct keys are AND-joined:

        {"STATUS": ["A", "B"]}        -> STATUS eq "A" or STATUS eq "B"
        {"STATUS": "A", "TYPE": "B"}  -> STATUS eq "A" and TYPE eq "B"

    The GED query grammar only supports one boolean operator per query, so
    several multi-valued filters combined in one call do not compose
    (``A or A and B or B`` is evaluated by the service, not grouped).

    Returns:
        The expression, or an empty string when there is nothing to filter on
    """
    if not filters:
        return ""

    clauses = []
    for key, value in filters.items():
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            clauses.append(" or ".join(_clause(key, v) for v in value))
        else:
            clauses.append(_clause(key, value))

    return " and ".join(clauses)


def format_search_date(value: Union[date, datetime, str]) -> str:
    """Format a date for the ``date_modification`` search parameters."""
    if isinstance(value, (date, datetime)):
        return value.strftime(SEARCH_DATE_FORMAT)
    # Accept ISO strings as well as already-compact ones
    return value.replace("-", "")
