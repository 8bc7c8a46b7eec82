"""
Common utilities package for the Taskboard application.

Authentication, logging, input sanitization, security audit logging, rate
limiting and the in-memory TTL store backing them.

Only the configuration-independent helpers are re-exported here; ``auth``,
``security_logger`` and ``rate_limit`` read ``taskboard.config`` at import
time and must be imported from their own modules.
"""

from taskboard.utils.logger import setup_logger
from taskboard.utils.object_id import generate_object_id, is_object_id
from taskboard.utils.sanitize import (
    clamp_pagination,
    contains_pattern,
    escape_like,
    sanitize_search_input,
)
from taskboard.utils.ttl_store import TTLStore

__all__ = [
    # Identifiers
    "generate_object_id",
    "is_object_id",
    # Sanitization
    "clamp_pagination",
    "contains_pattern",
    "escape_like",
    "sanitize_search_input",
    # Logging utilities
    "setup_logger",
    "TTLStore",
]
