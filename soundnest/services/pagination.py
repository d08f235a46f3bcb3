"""
Query Helpers
Pagination bounds and store error inspection shared by the services
"""

from typing import Tuple

from sqlalchemy.exc import IntegrityError

from soundnest.errors import ValidationError

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def page_bounds(page: int = 1, limit: int = DEFAULT_LIMIT) -> Tuple[int, int, int]:
    """
    Validate page/limit and convert them to an offset.

    Returns:
        (page, limit, offset)
    """
    try:
        page = int(page)
        limit = int(limit)
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")

    if page < 1:
        raise ValidationError("page must be 1 or greater")
    if limit < 1 or limit > MAX_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")
    return page, limit, (page - 1) * limit


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the store rejected a row because of a unique constraint"""
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig)


def like_pattern(text: str) -> str:
    """Case-insensitive substring pattern with LIKE wildcards escaped"""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
