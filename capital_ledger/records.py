"""
records.py — Immutable snapshots handed back to ledger callers.

ORM objects never leave a session; every public operation converts them
to one of these dataclasses first.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from capital_ledger import models
from capital_ledger.enums import (
    CallStatus,
    DetailStatus,
    DistributionStatus,
    DistributionType,
    FundStatus,
    InvestorStatus,
    InvestorType,
)


@dataclass(frozen=True)
class FundRecord:
    id: str
    name: str
    currency: str
    total_size: Decimal
    vintage_year: Optional[int]
    inception_date: Optional[date]
    term_months: Optional[int]
    extension_months: Optional[int]
    status: FundStatus
    management_fee_rate: Optional[Decimal]
    performance_fee_rate: Optional[Decimal]
    hurdle_rate: Optional[Decimal]

    @classmethod
    def from_model(cls, fund: models.Fund) -> "FundRecord":
        return cls(
            id=fund.id,
            name=fund.name,
            currency=fund.currency,
            total_size=fund.total_size,
            vintage_year=fund.vintage_year,
            inception_date=fund.inception_date,
            term_months=fund.term_months,
            extension_months=fund.extension_months,
            status=fund.status,
            management_fee_rate=fund.management_fee_rate,
            performance_fee_rate=fund.performance_fee_rate,
            hurdle_rate=fund.hurdle_rate,
        )


@dataclass(frozen=True)
class InvestorRecord:
    id: str
    name: str
    investor_type: InvestorType
    domicile: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    status: InvestorStatus

    @classmethod
    def from_model(cls, investor: models.Investor) -> "InvestorRecord":
        return cls(
            id=investor.id,
            name=investor.name,
            investor_type=investor.investor_type,
            domicile=investor.domicile,
            email=investor.email,
            phone=investor.phone,
            status=investor.status,
        )


@dataclass(frozen=True)
class CommitmentRecord:
    """An investor's commitment to a fund with its capital-account totals."""

    id: str
    fund_id: str
    investor_id: str
    commitment_amount: Decimal
    commitment_date: date
    called_amount: Decimal
    distributed_amount: Decimal
    nav_amount: Decimal
    ownership_percentage: Decimal

    @property
    def unfunded_amount(self) -> Decimal:
        return self.commitment_amount - self.called_amount

    @classmethod
    def from_model(cls, commitment: models.Commitment) -> "CommitmentRecord":
        return cls(
            id=commitment.id,
            fund_id=commitment.fund_id,
            investor_id=commitment.investor_id,
            commitment_amount=commitment.commitment_amount,
            commitment_date=commitment.commitment_date,
            called_amount=commitment.called_amount,
            distributed_amount=commitment.distributed_amount,
            nav_amount=commitment.nav_amount,
            ownership_percentage=commitment.ownership_percentage,
        )


@dataclass(frozen=True)
class CallDetailRecord:
    id: str
    capital_call_id: str
    commitment_id: str
    investor_id: str
    called_amount: Decimal
    received_amount: Decimal
    received_date: Optional[date]
    payment_reference: Optional[str]
    status: DetailStatus

    @classmethod
    def from_model(cls, detail: models.CapitalCallDetail) -> "CallDetailRecord":
        return cls(
            id=detail.id,
            capital_call_id=detail.capital_call_id,
            commitment_id=detail.commitment_id,
            investor_id=detail.investor_id,
            called_amount=detail.called_amount,
            received_amount=detail.received_amount,
            received_date=detail.received_date,
            payment_reference=detail.payment_reference,
            status=detail.status,
        )


@dataclass(frozen=True)
class CapitalCallRecord:
    id: str
    fund_id: str
    call_number: int
    call_date: date
    due_date: date
    purpose: Optional[str]
    total_amount: Decimal
    received_amount: Decimal
    status: CallStatus
    details: tuple[CallDetailRecord, ...]

    def detail_for(self, investor_id: str) -> CallDetailRecord:
        for detail in self.details:
            if detail.investor_id == investor_id:
                return detail
        raise KeyError(investor_id)

    @classmethod
    def from_model(cls, call: models.CapitalCall) -> "CapitalCallRecord":
        return cls(
            id=call.id,
            fund_id=call.fund_id,
            call_number=call.call_number,
            call_date=call.call_date,
            due_date=call.due_date,
            purpose=call.purpose,
            total_amount=call.total_amount,
            received_amount=call.received_amount,
            status=call.status,
            details=tuple(CallDetailRecord.from_model(d) for d in call.details),
        )


@dataclass(frozen=True)
class DistributionDetailRecord:
    id: str
    distribution_id: str
    commitment_id: str
    investor_id: str
    distribution_amount: Decimal
    withholding_rate: Decimal
    withholding_tax: Decimal
    paid_amount: Decimal
    net_amount: Decimal
    payment_date: Optional[date]
    status: DetailStatus

    @classmethod
    def from_model(cls, detail: models.DistributionDetail) -> "DistributionDetailRecord":
        return cls(
            id=detail.id,
            distribution_id=detail.distribution_id,
            commitment_id=detail.commitment_id,
            investor_id=detail.investor_id,
            distribution_amount=detail.distribution_amount,
            withholding_rate=detail.withholding_rate,
            withholding_tax=detail.withholding_tax,
            paid_amount=detail.paid_amount,
            net_amount=detail.net_amount,
            payment_date=detail.payment_date,
            status=detail.status,
        )


@dataclass(frozen=True)
class DistributionRecord:
    id: str
    fund_id: str
    distribution_number: int
    distribution_date: date
    payment_date: date
    distribution_type: DistributionType
    total_amount: Decimal
    paid_amount: Decimal
    status: DistributionStatus
    details: tuple[DistributionDetailRecord, ...]

    def detail_for(self, investor_id: str) -> DistributionDetailRecord:
        for detail in self.details:
            if detail.investor_id == investor_id:
                return detail
        raise KeyError(investor_id)

    @classmethod
    def from_model(cls, distribution: models.Distribution) -> "DistributionRecord":
        return cls(
            id=distribution.id,
            fund_id=distribution.fund_id,
            distribution_number=distribution.distribution_number,
            distribution_date=distribution.distribution_date,
            payment_date=distribution.payment_date,
            distribution_type=distribution.distribution_type,
            total_amount=distribution.total_amount,
            paid_amount=distribution.paid_amount,
            status=distribution.status,
            details=tuple(
                DistributionDetailRecord.from_model(d) for d in distribution.details
            ),
        )


@dataclass(frozen=True)
class FundSummary:
    """Fund-level roll-up of every commitment's capital account."""

    fund_id: str
    total_committed: Decimal
    total_called: Decimal
    total_distributed: Decimal
    net_nav: Decimal

    @property
    def total_unfunded(self) -> Decimal:
        return self.total_committed - self.total_called

    def as_dict(self) -> dict[str, Decimal]:
        return {
            "total_committed": self.total_committed,
            "total_called": self.total_called,
            "total_distributed": self.total_distributed,
            "net_nav": self.net_nav,
        }
