from __future__ import annotations

from enum import Enum
from typing import Optional, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_positive_id(value, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if number <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return number


def require_in_range(value: int, field_name: str, low: int, high: int) -> int:
    if value is None or not (low <= int(value) <= high):
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return int(value)


def require_enum(enum_cls: type[E], value, field_name: str) -> E:
    """Coerce ``value`` (member or raw value) into ``enum_cls``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def clean_note(value: Optional[str]) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValidationError("Notes must be text")
    note = (value or "").strip()
    return note or None
