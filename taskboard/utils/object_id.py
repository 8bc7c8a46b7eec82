"""Helpers for the 24-hex-character identifiers used by every record."""

import re
import secrets

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def generate_object_id() -> str:
    return secrets.token_hex(12)


def is_object_id(value: object) -> bool:
    """Return True if ``value`` is a 24-character hexadecimal string."""
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))
