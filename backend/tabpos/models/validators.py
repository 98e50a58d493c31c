"""Model-level validation utilities for data integrity.

Reusable validators that enforce business rules at the ORM level, so
invalid data is rejected regardless of which service writes it.
"""

from decimal import Decimal


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v < 0:
            raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    """Validate that a numeric value is > 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v <= 0:
            raise ValueError(f"{key} must be positive, got {value}")
    return value


def validate_list(key: str, value):
    """Validate that a JSON column value is a list (or None)."""
    if value is not None and not isinstance(value, list):
        raise ValueError(f"{key} must be a list, got {type(value).__name__}")
    return value


def paper_size(key: str, value):
    """Receipt paper width in millimetres: 58 or 80."""
    if value is not None and str(value) not in ("58", "80"):
        raise ValueError(f"{key} must be '58' or '80', got {value}")
    return str(value) if value is not None else value
