"""
Input sanitization for user-supplied strings and query parameters.

Search terms are only ever used as literal substrings: they are trimmed,
bounded in length and have LIKE wildcards escaped before reaching a query,
so attacker-supplied metacharacters cannot change the match semantics or
blow up evaluation cost.
"""

import re

CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x1F\x7F]")
LIKE_ESCAPE_CHAR = "\\"

DEFAULT_SEARCH_MAX_LENGTH = 100
DEFAULT_MAX_PAGE = 10_000


def strip_control_chars(value: str) -> str:
    return CONTROL_CHARS_PATTERN.sub("", value)


def sanitize_search_input(
    search_term: str | None, max_length: int = DEFAULT_SEARCH_MAX_LENGTH
) -> str | None:
    """
    Normalize a free-text search term.

    Returns None when nothing searchable is left, so callers can skip the
    search clause entirely.
    """
    if not search_term:
        return None
    sanitized = strip_control_chars(search_term)[:max_length].strip()
    return sanitized or None


def escape_like(term: str, escape_char: str = LIKE_ESCAPE_CHAR) -> str:
    """Escape LIKE wildcards so ``term`` only matches itself."""
    return (
        term.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )


def contains_pattern(term: str) -> str:
    """LIKE pattern matching ``term`` as a literal substring."""
    return f"%{escape_like(term)}%"


def clamp_pagination(
    page: int, limit: int, max_limit: int = 100, max_page: int = DEFAULT_MAX_PAGE
) -> tuple[int, int]:
    """Clamp ``page`` into [1, max_page] and ``limit`` into [1, max_limit]."""
    return min(max(1, page), max_page), min(max(1, limit), max_limit)
