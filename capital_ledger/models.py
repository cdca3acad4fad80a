"""
models.py — Relational schema for funds, investors and capital accounts.

Money is stored at scale 2 and ownership at scale 12, and both come back
as Decimal. Backends with a NUMERIC type store them natively. SQLite has
none and binds floats, so there the values are kept as fixed-scale text.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

from capital_ledger.enums import (
    CallStatus,
    DetailStatus,
    DistributionStatus,
    DistributionType,
    EntryType,
    FundStatus,
    InvestorStatus,
    InvestorType,
)

Base = declarative_base()

ZERO = Decimal("0")


def new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FixedDecimal(TypeDecorator):
    """Exact decimal column with a fixed number of places."""

    impl = Numeric
    cache_ok = True

    def __init__(self, digits: int, places: int) -> None:
        super().__init__(digits, places, asdecimal=True)
        self.digits = digits
        self.places = places
        self.quantum = Decimal(1).scaleb(-places)

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            # sign, point and digits
            return dialect.type_descriptor(String(self.digits + 2))
        return dialect.type_descriptor(Numeric(self.digits, self.places, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        value = value.quantize(self.quantum, rounding=ROUND_HALF_UP)
        if dialect.name == "sqlite":
            return format(value, "f")
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(self.quantum)


def _money(**kwargs) -> Column:
    return Column(FixedDecimal(20, 2), **kwargs)


def _enum_column(enum_cls, **kwargs) -> Column:
    """String column restricted to the values of ``enum_cls``."""
    return Column(
        Enum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            validate_strings=True,
            length=32,
        ),
        **kwargs,
    )


class Fund(Base):
    """Fund model"""

    __tablename__ = "funds"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    total_size = _money(nullable=False)
    vintage_year = Column(Integer)
    inception_date = Column(Date)
    term_months = Column(Integer)
    extension_months = Column(Integer)
    status = _enum_column(FundStatus, nullable=False, default=FundStatus.FUNDRAISING)
    management_fee_rate = Column(FixedDecimal(8, 6))
    performance_fee_rate = Column(FixedDecimal(8, 6))
    hurdle_rate = Column(FixedDecimal(8, 6))
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    commitments = relationship("Commitment", back_populates="fund")
    capital_calls = relationship("CapitalCall", back_populates="fund")
    distributions = relationship("Distribution", back_populates="fund")


class Investor(Base):
    """Investor model"""

    __tablename__ = "investors"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    investor_type = _enum_column(InvestorType, nullable=False)
    domicile = Column(String(100))
    email = Column(String(255))
    phone = Column(String(50))
    status = _enum_column(InvestorStatus, nullable=False, default=InvestorStatus.ACTIVE)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    commitments = relationship("Commitment", back_populates="investor")


class Commitment(Base):
    """An investor's commitment to a fund and its running capital account."""

    __tablename__ = "commitments"
    __table_args__ = (
        UniqueConstraint("fund_id", "investor_id", name="uq_commitment_fund_investor"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    fund_id = Column(String(36), ForeignKey("funds.id"), nullable=False, index=True)
    investor_id = Column(String(36), ForeignKey("investors.id"), nullable=False, index=True)
    commitment_amount = _money(nullable=False)
    commitment_date = Column(Date, nullable=False)
    called_amount = _money(nullable=False, default=ZERO)
    distributed_amount = _money(nullable=False, default=ZERO)
    nav_amount = _money(nullable=False, default=ZERO)
    ownership_percentage = Column(FixedDecimal(20, 12), nullable=False, default=ZERO)

    fund = relationship("Fund", back_populates="commitments")
    investor = relationship("Investor", back_populates="commitments")
    entries = relationship("LedgerEntry", back_populates="commitment")


class CapitalCall(Base):
    """Fund-level capital call"""

    __tablename__ = "capital_calls"
    __table_args__ = (
        UniqueConstraint("fund_id", "call_number", name="uq_capital_call_number"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    fund_id = Column(String(36), ForeignKey("funds.id"), nullable=False, index=True)
    call_number = Column(Integer, nullable=False)
    call_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    purpose = Column(String(255))
    total_amount = _money(nullable=False)
    received_amount = _money(nullable=False, default=ZERO)
    status = _enum_column(CallStatus, nullable=False, default=CallStatus.SENT)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    fund = relationship("Fund", back_populates="capital_calls")
    details = relationship(
        "CapitalCallDetail",
        back_populates="capital_call",
        cascade="all, delete-orphan",
        order_by="CapitalCallDetail.investor_id",
    )


class CapitalCallDetail(Base):
    """One investor's portion of a capital call"""

    __tablename__ = "capital_call_details"

    id = Column(String(36), primary_key=True, default=new_id)
    capital_call_id = Column(
        String(36), ForeignKey("capital_calls.id"), nullable=False, index=True
    )
    commitment_id = Column(String(36), ForeignKey("commitments.id"), nullable=False)
    investor_id = Column(String(36), ForeignKey("investors.id"), nullable=False)
    called_amount = _money(nullable=False)
    received_amount = _money(nullable=False, default=ZERO)
    received_date = Column(Date)
    payment_reference = Column(String(100))
    status = _enum_column(DetailStatus, nullable=False, default=DetailStatus.PENDING)

    capital_call = relationship("CapitalCall", back_populates="details")
    commitment = relationship("Commitment")


class Distribution(Base):
    """Fund-level distribution"""

    __tablename__ = "distributions"
    __table_args__ = (
        UniqueConstraint("fund_id", "distribution_number", name="uq_distribution_number"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    fund_id = Column(String(36), ForeignKey("funds.id"), nullable=False, index=True)
    distribution_number = Column(Integer, nullable=False)
    distribution_date = Column(Date, nullable=False)
    payment_date = Column(Date, nullable=False)
    distribution_type = _enum_column(DistributionType, nullable=False)
    total_amount = _money(nullable=False)
    paid_amount = _money(nullable=False, default=ZERO)
    status = _enum_column(
        DistributionStatus, nullable=False, default=DistributionStatus.PROCESSING
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    fund = relationship("Fund", back_populates="distributions")
    details = relationship(
        "DistributionDetail",
        back_populates="distribution",
        cascade="all, delete-orphan",
        order_by="DistributionDetail.investor_id",
    )


class DistributionDetail(Base):
    """One investor's portion of a distribution"""

    __tablename__ = "distribution_details"

    id = Column(String(36), primary_key=True, default=new_id)
    distribution_id = Column(
        String(36), ForeignKey("distributions.id"), nullable=False, index=True
    )
    commitment_id = Column(String(36), ForeignKey("commitments.id"), nullable=False)
    investor_id = Column(String(36), ForeignKey("investors.id"), nullable=False)
    distribution_amount = _money(nullable=False)
    withholding_rate = Column(FixedDecimal(8, 6), nullable=False, default=ZERO)
    withholding_tax = _money(nullable=False, default=ZERO)
    paid_amount = _money(nullable=False)
    net_amount = _money(nullable=False)
    payment_date = Column(Date)
    status = _enum_column(DetailStatus, nullable=False, default=DetailStatus.PENDING)

    distribution = relationship("Distribution", back_populates="details")
    commitment = relationship("Commitment")


class LedgerEntry(Base):
    """
    Booked movement on a capital account.

    At most one entry per (entry_type, source_detail_id); that uniqueness is
    what makes settlement idempotent.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("entry_type", "source_detail_id", name="uq_ledger_entry_source"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    commitment_id = Column(String(36), ForeignKey("commitments.id"), nullable=False, index=True)
    entry_type = _enum_column(EntryType, nullable=False)
    source_detail_id = Column(String(36), nullable=False)
    entry_date = Column(Date, nullable=False)
    amount = _money(nullable=False)
    nav_change = _money(nullable=False, default=ZERO)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    commitment = relationship("Commitment", back_populates="entries")
