"""
GED API Client.

Provides:
- Lazy API-key handshake with a cached session token
- One token-authenticated request pipeline (soft failures logged, not raised)
- Doctype/metadata lookup
- User and profile management
- Document upload, tree listing, search, download, deletion and archiving
"""

from .client import (
    DEFAULT_IDENTITY,
    DOCUMENT_STATUS_ACTIVE,
    DOCUMENT_STATUS_DRAFT,
    DOCUMENT_STATUS_INACTIVE,
    NOTICE,
    GedAuthenticationError,
    GedClient,
    GedConnectionError,
    GedError,
    GedMissingFilenameError,
    GedNotFoundError,
)
from .decoding import decode_json_body, parse_content_disposition, repair_body
from .query import build_metadata_query, format_search_date
from .results import GedResult, ResultKind

__all__ = [
    "DEFAULT_IDENTITY",
    "DOCUMENT_STATUS_ACTIVE",
    "DOCUMENT_STATUS_DRAFT",
    "DOCUMENT_STATUS_INACTIVE",
    "NOTICE",
    "GedAuthenticationError",
    "GedClient",
    "GedConnectionError",
    "GedError",
    "GedMissingFilenameError",
    "GedNotFoundError",
    "GedResult",
    "ResultKind",
    "build_metadata_query",
    "decode_json_body",
    "format_search_date",
    "parse_content_disposition",
    "repair_body",
]
