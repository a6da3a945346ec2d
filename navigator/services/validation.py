# This project was developed with assistance from AI tools.
"""Free-text query validation (type and length only)."""

from typing import Any

MSG_QUERY_REQUIRED = "Query is required"
MSG_QUERY_EMPTY = "Bo'sh xabar yuborib bo'lmaydi"
MSG_QUERY_TOO_LONG = "Xabar juda uzun (maksimal {max_length} belgi)"


class QueryValidationError(ValueError):
    """Raised when a query is missing, not a string, blank or too long."""


def validate_query(raw: Any, max_length: int = 500) -> str:
    """Return the trimmed query or raise QueryValidationError.

    Length is measured after trimming.
    """
    if not raw or not isinstance(raw, str):
        raise QueryValidationError(MSG_QUERY_REQUIRED)

    query = raw.strip()
    if not query:
        raise QueryValidationError(MSG_QUERY_EMPTY)
    if len(query) > max_length:
        raise QueryValidationError(MSG_QUERY_TOO_LONG.format(max_length=max_length))
    return query
