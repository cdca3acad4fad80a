"""
directory.py — Fund and investor records the ledger reads from.

The ledger never changes fund terms; it only needs funds and investors to
exist. Status changes are driven from outside.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from capital_ledger import models
from capital_ledger.config import LedgerSettings
from capital_ledger.db import Database
from capital_ledger.enums import FundStatus, InvestorStatus, InvestorType, coerce
from capital_ledger.errors import NotFound, ValidationError
from capital_ledger.records import FundRecord, InvestorRecord
from capital_ledger.validation import AmountLike, DateLike, money_amount, to_date, to_rate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session-level lookups shared by the ledger components
# ---------------------------------------------------------------------------

def load_fund(session: Session, fund_id: str) -> models.Fund:
    fund = session.get(models.Fund, fund_id)
    if fund is None:
        raise NotFound("Fund", fund_id)
    return fund


def load_investor(session: Session, investor_id: str) -> models.Investor:
    investor = session.get(models.Investor, investor_id)
    if investor is None:
        raise NotFound("Investor", investor_id)
    return investor


def require_fund(db: Database, fund_id: str) -> None:
    """
    Raise NotFound for an unknown fund.

    Writers call this before taking the fund's lock, so the lock registry
    only ever holds locks for funds that exist. Funds are never deleted.
    """
    with db.session_scope() as session:
        load_fund(session, fund_id)


def _optional_rate(value: Optional[AmountLike], name: str) -> Optional[Decimal]:
    return None if value is None else to_rate(value, name)


class FundDirectory:
    """Create and look up funds and investors."""

    def __init__(self, db: Database, settings: LedgerSettings) -> None:
        self.db = db
        self.settings = settings

    # ------------------------------------------------------------------
    # Funds
    # ------------------------------------------------------------------

    def create_fund(
        self,
        name: str,
        total_size: AmountLike,
        currency: str = "USD",
        vintage_year: Optional[int] = None,
        inception_date: Optional[DateLike] = None,
        term_months: Optional[int] = None,
        extension_months: Optional[int] = None,
        status: Union[FundStatus, str] = FundStatus.FUNDRAISING,
        management_fee_rate: Optional[AmountLike] = None,
        performance_fee_rate: Optional[AmountLike] = None,
        hurdle_rate: Optional[AmountLike] = None,
        fund_id: Optional[str] = None,
    ) -> FundRecord:
        if not name or not name.strip():
            raise ValidationError("Fund name is required")
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError(f"Currency must be a 3-letter ISO code, got {currency!r}")
        for label, months in (("term_months", term_months), ("extension_months", extension_months)):
            if months is not None and months < 0:
                raise ValidationError(f"{label} must be non-negative")

        fund = models.Fund(
            name=name.strip(),
            total_size=money_amount(total_size, self.settings.precision_for(currency), "total_size"),
            currency=currency.upper(),
            vintage_year=vintage_year,
            inception_date=None if inception_date is None else to_date(inception_date, "inception_date"),
            term_months=term_months,
            extension_months=extension_months,
            status=coerce(FundStatus, status),
            management_fee_rate=_optional_rate(management_fee_rate, "management_fee_rate"),
            performance_fee_rate=_optional_rate(performance_fee_rate, "performance_fee_rate"),
            hurdle_rate=_optional_rate(hurdle_rate, "hurdle_rate"),
        )
        if fund_id is not None:
            fund.id = fund_id

        with self.db.session_scope() as session:
            if fund_id is not None and session.get(models.Fund, fund_id) is not None:
                raise ValidationError(f"Fund id {fund_id!r} already exists")
            session.add(fund)
            session.flush()
            record = FundRecord.from_model(fund)

        logger.info("Created fund %s (%s, %s %s)", record.id, record.name, record.currency, record.total_size)
        return record

    def get_fund(self, fund_id: str) -> FundRecord:
        with self.db.session_scope() as session:
            return FundRecord.from_model(load_fund(session, fund_id))

    def list_funds(self, status: Optional[Union[FundStatus, str]] = None) -> list[FundRecord]:
        stmt = select(models.Fund).order_by(models.Fund.created_at, models.Fund.id)
        if status is not None:
            stmt = stmt.where(models.Fund.status == coerce(FundStatus, status))
        with self.db.session_scope() as session:
            return [FundRecord.from_model(f) for f in session.scalars(stmt)]

    def update_fund_status(self, fund_id: str, status: Union[FundStatus, str]) -> FundRecord:
        """
        Move a fund to a new lifecycle status.

        A liquidated fund stays liquidated.
        """
        new_status = coerce(FundStatus, status)
        with self.db.session_scope() as session:
            fund = load_fund(session, fund_id)
            if fund.status is FundStatus.LIQUIDATED and new_status is not FundStatus.LIQUIDATED:
                raise ValidationError(f"Fund {fund_id!r} is liquidated and cannot be reopened")
            old_status = fund.status
            fund.status = new_status
            session.flush()
            record = FundRecord.from_model(fund)

        logger.info("Fund %s status %s -> %s", fund_id, old_status.value, new_status.value)
        return record

    # ------------------------------------------------------------------
    # Investors
    # ------------------------------------------------------------------

    def create_investor(
        self,
        name: str,
        investor_type: Union[InvestorType, str],
        domicile: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        status: Union[InvestorStatus, str] = InvestorStatus.ACTIVE,
        investor_id: Optional[str] = None,
    ) -> InvestorRecord:
        if not name or not name.strip():
            raise ValidationError("Investor name is required")
        investor = models.Investor(
            name=name.strip(),
            investor_type=coerce(InvestorType, investor_type),
            domicile=domicile,
            email=email,
            phone=phone,
            status=coerce(InvestorStatus, status),
        )
        if investor_id is not None:
            investor.id = investor_id

        with self.db.session_scope() as session:
            if investor_id is not None and session.get(models.Investor, investor_id) is not None:
                raise ValidationError(f"Investor id {investor_id!r} already exists")
            session.add(investor)
            session.flush()
            record = InvestorRecord.from_model(investor)

        logger.info("Created investor %s (%s)", record.id, record.name)
        return record

    def get_investor(self, investor_id: str) -> InvestorRecord:
        with self.db.session_scope() as session:
            return InvestorRecord.from_model(load_investor(session, investor_id))

    def list_investors(self) -> list[InvestorRecord]:
        stmt = select(models.Investor).order_by(models.Investor.name, models.Investor.id)
        with self.db.session_scope() as session:
            return [InvestorRecord.from_model(i) for i in session.scalars(stmt)]
