"""Opaque record identifiers."""

import re
import uuid

from taskapi.errors import ValidationError

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_id() -> str:
    """Generate a new 32-character hex identifier."""
    return uuid.uuid4().hex


def is_valid_id(value: object) -> bool:
    return isinstance(value, str) and bool(_ID_PATTERN.match(value.lower()))


def parse_id(value: str, entity: str) -> str:
    """Normalize an identifier from a request, rejecting malformed values.

    Args:
        value: Raw identifier (path parameter or request field).
        entity: Entity name used in the error message, e.g. "task".

    Raises:
        ValidationError: If the value is not a 32-character hex string.
    """
    if not is_valid_id(value):
        raise ValidationError(f"Invalid {entity} ID format")
    return value.lower()


__all__ = ["new_id", "is_valid_id", "parse_id"]
