"""
validation.py — Boundary coercion of caller-supplied amounts, rates and dates.

Every public ledger operation passes raw inputs through these helpers before
touching the database.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Union

from capital_ledger.allocation import quantize
from capital_ledger.errors import ValidationError

AmountLike = Union[Decimal, int, float, str]
DateLike = Union[date, datetime, str]


def to_decimal(value: AmountLike, name: str = "amount") -> Decimal:
    """Convert ``value`` to Decimal without passing through binary floats."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{name} must be numeric, got {value!r}") from None
    if not result.is_finite():
        raise ValidationError(f"{name} must be finite, got {value!r}")
    return result


def positive_amount(value: AmountLike, name: str = "amount") -> Decimal:
    amount = to_decimal(value, name)
    if amount <= 0:
        raise ValidationError(f"{name} must be positive, got {amount}")
    return amount


def check_places(amount: Decimal, places: int, name: str = "amount") -> Decimal:
    """Reject amounts finer than the currency's smallest unit."""
    if amount != quantize(amount, places):
        raise ValidationError(f"{name} {amount} has more than {places} decimal places")
    return amount


def money_amount(value: AmountLike, places: int, name: str = "amount") -> Decimal:
    """A positive amount expressible in ``places`` decimals."""
    return check_places(positive_amount(value, name), places, name)


def to_rate(value: AmountLike, name: str = "rate") -> Decimal:
    """A fraction in the closed interval [0, 1]."""
    rate = to_decimal(value, name)
    if not Decimal("0") <= rate <= Decimal("1"):
        raise ValidationError(f"{name} must be within [0, 1], got {rate}")
    return rate


def to_date(value: DateLike, name: str = "date") -> date:
    """Accept a date, a datetime (date part kept) or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            pass
    raise ValidationError(f"{name} must be an ISO date, got {value!r}")


def ordered_dates(
    start: DateLike,
    end: DateLike,
    start_name: str,
    end_name: str,
) -> tuple[date, date]:
    """Coerce both dates and require ``end`` not to precede ``start``."""
    first = to_date(start, start_name)
    second = to_date(end, end_name)
    if second < first:
        raise ValidationError(f"{end_name} {second} is before {start_name} {first}")
    return first, second
