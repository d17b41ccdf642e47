"""
Input-shape validation shared by module commands.

Commands call these from ``__post_init__`` and raise a single
``InputValidationError`` listing every bad field, before any state is read.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from haymarket_kernel.exceptions import InputValidationError


class FieldErrors:
    """Collects per-field problems for one command."""

    def __init__(self) -> None:
        self._errors: list[dict[str, str]] = []

    def add(self, field: str, message: str) -> None:
        self._errors.append({"field": field, "message": message})

    def check(self, ok: bool, field: str, message: str) -> None:
        if not ok:
            self.add(field, message)

    def raise_if_any(self) -> None:
        if self._errors:
            raise InputValidationError(list(self._errors))


def as_decimal(
    errors: FieldErrors,
    field: str,
    value: Any,
    *,
    optional: bool = False,
    positive: bool = False,
    minimum: Decimal | int | None = None,
    maximum: Decimal | int | None = None,
) -> Decimal | None:
    """Coerce ``value`` to Decimal and check its bounds.  Floats are refused."""
    if value is None:
        if not optional:
            errors.add(field, "Required")
        return None
    if isinstance(value, bool) or isinstance(value, float):
        errors.add(field, "Expected a decimal number")
        return None
    try:
        result = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        errors.add(field, "Expected a decimal number")
        return None
    if not result.is_finite():
        errors.add(field, "Expected a finite number")
        return None
    if positive and result <= 0:
        errors.add(field, "Must be greater than 0")
    if minimum is not None and result < minimum:
        errors.add(field, f"Must be at least {minimum}")
    if maximum is not None and result > maximum:
        errors.add(field, f"Must be at most {maximum}")
    return result


def as_int(
    errors: FieldErrors,
    field: str,
    value: Any,
    *,
    optional: bool = False,
    minimum: int | None = None,
) -> int | None:
    if value is None:
        if not optional:
            errors.add(field, "Required")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        errors.add(field, "Expected an integer")
        return None
    if minimum is not None and value < minimum:
        errors.add(field, f"Must be at least {minimum}")
    return value


def as_text(
    errors: FieldErrors,
    field: str,
    value: Any,
    *,
    optional: bool = True,
    min_length: int | None = None,
    max_length: int | None = None,
) -> str | None:
    if value is None:
        if not optional:
            errors.add(field, "Required")
        return None
    if not isinstance(value, str):
        errors.add(field, "Expected a string")
        return None
    if min_length is not None and len(value.strip()) < min_length:
        errors.add(field, f"Must be at least {min_length} characters")
    if max_length is not None and len(value) > max_length:
        errors.add(field, f"Must be at most {max_length} characters")
    return value


def as_date(errors: FieldErrors, field: str, value: Any) -> date | None:
    """Accept a date, a datetime (date part) or an ISO string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    errors.add(field, "Expected an ISO date")
    return None


def validate_page(errors: FieldErrors, page: Any, limit: Any, max_limit: int = 100) -> None:
    as_int(errors, "page", page, minimum=1)
    checked = as_int(errors, "limit", limit, minimum=1)
    if checked is not None and checked > max_limit:
        errors.add("limit", f"Must be at most {max_limit}")
