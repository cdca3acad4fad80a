"""
allocation.py — Pure proportional-allocation arithmetic.

No database access and no imports from the persistence layer. All amounts
are Decimal; nothing here goes through binary floating point.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Hashable, Sequence

from capital_ledger.errors import InvalidAllocation, ValidationError


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------

def quantum(places: int) -> Decimal:
    """Smallest currency unit for ``places`` decimals (2 → Decimal('0.01'))."""
    if places < 0:
        raise ValidationError("Currency precision must be non-negative")
    return Decimal(1).scaleb(-places)


def quantize(amount: Decimal, places: int) -> Decimal:
    """Round half-up to ``places`` decimals."""
    return amount.quantize(quantum(places), rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Pro-rata allocation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AllocationClaim:
    """
    One participant in a proportional split.

    ``weight`` drives the share; the remaining fields only decide who
    absorbs the rounding residual.
    """

    key: Hashable
    weight: Decimal
    commitment_amount: Decimal
    commitment_date: date
    investor_id: str


def residual_recipient(claims: Sequence[AllocationClaim]) -> AllocationClaim:
    """
    Claim that absorbs the rounding residual.

    Largest commitment first; ties go to the earliest commitment date,
    then to the lowest investor id.
    """
    if not claims:
        raise InvalidAllocation("Cannot pick a residual recipient from no claims")
    return min(
        claims,
        key=lambda c: (-c.commitment_amount, c.commitment_date, c.investor_id),
    )


def allocate_pro_rata(
    total: Decimal,
    claims: Sequence[AllocationClaim],
    places: int = 2,
) -> dict[Hashable, Decimal]:
    """
    Split ``total`` across ``claims`` in proportion to their weights.

    Each share is rounded to ``places`` decimals and the difference between
    ``total`` and the sum of rounded shares is added to the residual
    recipient, so the returned amounts always sum to ``total`` exactly.

    Parameters
    ----------
    total:
        Amount to split. Must already be expressible at ``places`` decimals.
    claims:
        Participants. Weights need not sum to one; they are normalised.
    places:
        Currency precision.

    Returns
    -------
    dict
        Mapping of claim key → allocated amount, in claim order.
    """
    if not claims:
        raise InvalidAllocation("Nothing to allocate against: no claims")
    if quantize(total, places) != total:
        raise ValidationError(f"Amount {total} has more than {places} decimal places")
    if any(c.weight < 0 for c in claims):
        raise InvalidAllocation("Allocation weights must be non-negative")

    weight_sum = sum((c.weight for c in claims), Decimal("0"))
    if weight_sum <= 0:
        raise InvalidAllocation("Allocation weights sum to zero")

    shares: dict[Hashable, Decimal] = {
        c.key: quantize(total * c.weight / weight_sum, places) for c in claims
    }

    residual = total - sum(shares.values(), Decimal("0"))
    if residual:
        recipient = residual_recipient(claims)
        shares[recipient.key] += residual
        if shares[recipient.key] < 0:
            raise InvalidAllocation(
                f"Rounding residual {residual} drives share of "
                f"{recipient.investor_id!r} negative"
            )

    return shares


# ---------------------------------------------------------------------------
# Withholding
# ---------------------------------------------------------------------------

def withholding_split(
    gross: Decimal,
    rate: Decimal,
    places: int = 2,
) -> tuple[Decimal, Decimal]:
    """
    Split a gross payment into (withholding tax, net amount).

    Tax is rounded to currency precision; net = gross − tax, so the two
    always add back to ``gross``.
    """
    if not Decimal("0") <= rate <= Decimal("1"):
        raise ValidationError(f"Withholding rate must be within [0, 1], got {rate}")
    tax = quantize(gross * rate, places)
    net = gross - tax
    if net < 0:
        raise InvalidAllocation(f"Net amount {net} is negative for gross {gross}")
    return tax, net
