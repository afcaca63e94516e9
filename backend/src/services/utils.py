"""Shared utility functions for service layer."""
import math

# Escape character used with every LIKE/ILIKE built from user input
LIKE_ESCAPE_CHAR = "\\"


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally. Pair it with
    `escape=LIKE_ESCAPE_CHAR`, since SQLite has no default escape character.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed to show `total` rows `limit` at a time."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
