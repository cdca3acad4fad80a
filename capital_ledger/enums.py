"""
enums.py — Closed status and type vocabularies for the ledger.

Values match the strings stored in the database. Use ``coerce`` at the
boundary to turn caller-supplied strings into members.
"""
from __future__ import annotations

from enum import Enum
from typing import Type, TypeVar, Union

from capital_ledger.errors import ValidationError

E = TypeVar("E", bound=Enum)


class FundStatus(str, Enum):
    FUNDRAISING = "fundraising"
    INVESTING = "investing"
    HARVESTING = "harvesting"
    LIQUIDATED = "liquidated"


class InvestorType(str, Enum):
    INSTITUTIONAL = "institutional"
    CORPORATE = "corporate"
    FAMILY_OFFICE = "familyOffice"
    HNWI = "hnwi"
    FUND_OF_FUNDS = "fundOfFunds"


class InvestorStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CallStatus(str, Enum):
    SENT = "sent"
    COMPLETE = "complete"


class DistributionStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETE = "complete"


class DetailStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class DistributionType(str, Enum):
    INCOME = "income"
    CAPITAL_GAIN = "capitalGain"
    RETURN_OF_CAPITAL = "returnOfCapital"

    @property
    def reduces_nav(self) -> bool:
        """Income is paid out of earnings; the other types return invested value."""
        return self is not DistributionType.INCOME


class EntryType(str, Enum):
    CONTRIBUTION = "contribution"
    DISTRIBUTION = "distribution"


def coerce(enum_cls: Type[E], value: Union[E, str]) -> E:
    """
    Convert ``value`` to a member of ``enum_cls``.

    Raises
    ------
    ValidationError
        If ``value`` is not one of the enum's values.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {enum_cls.__name__} {value!r}; expected one of: {allowed}"
        ) from None
