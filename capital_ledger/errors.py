"""
errors.py — Typed failures surfaced by the ledger to its callers.

The ledger never retries; callers decide what to do with each error.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base class for every error raised by capital_ledger."""


class NotFound(LedgerError, LookupError):
    """A fund, investor, commitment, call, distribution or detail id is unknown."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier!r} not found")


class ValidationError(LedgerError, ValueError):
    """Malformed input: non-positive amounts, bad dates, out-of-range rates."""


class DuplicateCommitment(LedgerError):
    """The investor already holds a commitment to the fund."""

    def __init__(self, fund_id: str, investor_id: str) -> None:
        self.fund_id = fund_id
        self.investor_id = investor_id
        super().__init__(
            f"Investor {investor_id!r} already has a commitment to fund {fund_id!r}"
        )


class OverCommitmentExceeded(LedgerError):
    """A call would take an investor past their remaining uncalled commitment."""

    def __init__(
        self,
        investor_id: str,
        requested: Decimal,
        headroom: Decimal,
    ) -> None:
        self.investor_id = investor_id
        self.requested = requested
        self.headroom = headroom
        super().__init__(
            f"Call share {requested} for investor {investor_id!r} exceeds "
            f"remaining commitment {headroom}"
        )


class InvalidAllocation(LedgerError):
    """Computed allocation cannot be honoured (e.g. exceeds distributable value)."""


class ImmutableRecord(LedgerError):
    """Attempt to mutate a record whose parent reached a terminal state."""


class ConcurrencyConflict(LedgerError):
    """The per-fund write lock could not be acquired in time."""

    def __init__(self, fund_id: str, timeout: Optional[float]) -> None:
        self.fund_id = fund_id
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout}s waiting for the write lock on fund {fund_id!r}"
        )
