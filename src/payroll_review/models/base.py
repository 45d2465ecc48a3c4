"""Parsing helpers shared by the backend payload models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from payroll_review.errors import ValidationError

E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: Any, field_name: str) -> E:
    """Parse a backend string into an enum member, case-insensitively."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Missing or invalid {field_name}: {value!r}")
    try:
        return enum_cls(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown {field_name}: {value!r}") from None


def parse_decimal(value: Any) -> Decimal:
    """Parse an opaque backend amount. Missing amounts read as zero."""
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}") from None


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, tolerating a trailing ``Z``."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
