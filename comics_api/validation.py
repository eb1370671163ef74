"""Field rules applied to comics before they reach a store."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Mapping

from comics_api.errors import ValidationError

MIN_YEAR = 1900
MIN_PRICE = 0
MAX_PRICE = 1000

REQUIRED_FIELDS = ("title", "author", "publisher")


def current_year() -> int:
    return datetime.now(UTC).year


def max_year() -> int:
    """Latest accepted publication year (next year, for pre-orders)."""
    return current_year() + 1


def validate_new_comic(fields: Mapping[str, Any]) -> None:
    """Reject a create payload that is missing required text or out of range."""
    if any(_is_blank(fields.get(name)) for name in REQUIRED_FIELDS):
        raise ValidationError("Title, author, and publisher are required fields")
    _check_ranges(fields)


def validate_comic_changes(changes: Mapping[str, Any]) -> None:
    """Check only the fields present in a partial update."""
    if not changes:
        raise ValidationError("At least one field must be provided")
    for name, value in changes.items():
        if value is None:
            raise ValidationError(f"{name} must not be null")
        if name in REQUIRED_FIELDS and _is_blank(value):
            raise ValidationError(f"{name} must not be empty")
    _check_ranges(changes)


def _check_ranges(fields: Mapping[str, Any]) -> None:
    year = fields.get("year")
    if year is not None:
        upper = max_year()
        if not MIN_YEAR <= year <= upper:
            raise ValidationError(f"Year must be between {MIN_YEAR} and {upper}")

    price = fields.get("price")
    if price is not None and not MIN_PRICE <= price <= MAX_PRICE:
        raise ValidationError(f"Price must be between {MIN_PRICE} and {MAX_PRICE}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


__all__ = [
    "MAX_PRICE",
    "MIN_PRICE",
    "MIN_YEAR",
    "current_year",
    "max_year",
    "validate_comic_changes",
    "validate_new_comic",
]
