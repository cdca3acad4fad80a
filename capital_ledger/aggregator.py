"""
aggregator.py — Running capital-account totals per investor and per fund.

Depends on: calls.py, distributions.py, registry.py
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import numpy as np
import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from capital_ledger import models
from capital_ledger.db import Database
from capital_ledger.directory import load_fund
from capital_ledger.enums import DetailStatus, EntryType
from capital_ledger.errors import NotFound, OverCommitmentExceeded
from capital_ledger.locks import FundLockRegistry
from capital_ledger.records import FundSummary
from capital_ledger.registry import fund_commitments

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

POSITION_COLUMNS = [
    "investor_id",
    "investor_name",
    "commitment_date",
    "commitment_amount",
    "ownership_percentage",
    "called_amount",
    "unfunded_amount",
    "distributed_amount",
    "nav_amount",
]

STATEMENT_COLUMNS = [
    "entry_date",
    "investor_id",
    "entry_type",
    "contribution",
    "distribution",
    "nav_change",
    "cumulative_called",
    "cumulative_distributed",
    "nav",
]


def _booked_sources(session: Session, entry_type: EntryType, detail_ids: list[str]) -> set[str]:
    if not detail_ids:
        return set()
    stmt = select(models.LedgerEntry.source_detail_id).where(
        models.LedgerEntry.entry_type == entry_type,
        models.LedgerEntry.source_detail_id.in_(detail_ids),
    )
    return set(session.scalars(stmt))


class LedgerAggregator:
    """
    Books settled calls and paid distributions onto capital accounts.

    Each paid detail is booked at most once, through a ``LedgerEntry`` keyed
    on the detail id, so repeated settlement notifications are harmless.
    """

    def __init__(self, db: Database, locks: FundLockRegistry) -> None:
        self.db = db
        self.locks = locks

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def on_call_settled(self, capital_call_id: str) -> int:
        """
        Book every paid, not yet booked detail of a capital call.

        Increments the commitment's called amount by the called amount and
        its NAV estimate by the cash received.

        Returns
        -------
        int
            Number of details booked by this invocation (0 on a repeat).
        """
        with self.db.session_scope() as session:
            call = session.get(models.CapitalCall, capital_call_id)
            if call is None:
                raise NotFound("CapitalCall", capital_call_id)
            fund_id = call.fund_id

        booked = 0
        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                call = session.get(models.CapitalCall, capital_call_id)
                already = _booked_sources(
                    session, EntryType.CONTRIBUTION, [d.id for d in call.details]
                )
                for detail in call.details:
                    if detail.status is not DetailStatus.PAID or detail.id in already:
                        continue
                    commitment = detail.commitment
                    called = commitment.called_amount + detail.called_amount
                    if called > commitment.commitment_amount:
                        raise OverCommitmentExceeded(
                            commitment.investor_id,
                            detail.called_amount,
                            commitment.commitment_amount - commitment.called_amount,
                        )
                    commitment.called_amount = called
                    commitment.nav_amount = commitment.nav_amount + detail.received_amount
                    session.add(
                        models.LedgerEntry(
                            commitment_id=commitment.id,
                            entry_type=EntryType.CONTRIBUTION,
                            source_detail_id=detail.id,
                            entry_date=detail.received_date or call.call_date,
                            amount=detail.called_amount,
                            nav_change=detail.received_amount,
                        )
                    )
                    booked += 1

        if booked:
            logger.info("Settled %d detail(s) of capital call %s", booked, capital_call_id)
        else:
            logger.debug("Capital call %s had nothing new to settle", capital_call_id)
        return booked

    def on_distribution_paid(self, distribution_id: str) -> int:
        """
        Book every paid, not yet booked detail of a distribution.

        Increments the distributed amount by the gross amount. Return of
        capital and capital gains also reduce the NAV estimate by the gross
        amount (never below zero); income leaves NAV untouched.

        Returns
        -------
        int
            Number of details booked by this invocation (0 on a repeat).
        """
        with self.db.session_scope() as session:
            distribution = session.get(models.Distribution, distribution_id)
            if distribution is None:
                raise NotFound("Distribution", distribution_id)
            fund_id = distribution.fund_id

        booked = 0
        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                distribution = session.get(models.Distribution, distribution_id)
                reduces_nav = distribution.distribution_type.reduces_nav
                already = _booked_sources(
                    session, EntryType.DISTRIBUTION, [d.id for d in distribution.details]
                )
                for detail in distribution.details:
                    if detail.status is not DetailStatus.PAID or detail.id in already:
                        continue
                    commitment = detail.commitment
                    gross = detail.distribution_amount
                    nav_change = ZERO
                    if reduces_nav:
                        nav_change = -min(gross, commitment.nav_amount)
                        if -nav_change < gross:
                            logger.warning(
                                "NAV of investor %s in fund %s floored at zero "
                                "(distribution %s exceeds NAV %s)",
                                commitment.investor_id,
                                fund_id,
                                gross,
                                commitment.nav_amount,
                            )
                    commitment.distributed_amount = commitment.distributed_amount + gross
                    commitment.nav_amount = commitment.nav_amount + nav_change
                    session.add(
                        models.LedgerEntry(
                            commitment_id=commitment.id,
                            entry_type=EntryType.DISTRIBUTION,
                            source_detail_id=detail.id,
                            entry_date=detail.payment_date or distribution.payment_date,
                            amount=gross,
                            nav_change=nav_change,
                        )
                    )
                    booked += 1

        if booked:
            logger.info("Booked %d detail(s) of distribution %s", booked, distribution_id)
        else:
            logger.debug("Distribution %s had nothing new to book", distribution_id)
        return booked

    # ------------------------------------------------------------------
    # Read-side roll-ups
    # ------------------------------------------------------------------

    def fund_summary(self, fund_id: str) -> FundSummary:
        """Sum of every commitment's capital-account fields in the fund."""
        with self.db.session_scope() as session:
            load_fund(session, fund_id)
            commitments = fund_commitments(session, fund_id)
            return FundSummary(
                fund_id=fund_id,
                total_committed=sum((c.commitment_amount for c in commitments), ZERO),
                total_called=sum((c.called_amount for c in commitments), ZERO),
                total_distributed=sum((c.distributed_amount for c in commitments), ZERO),
                net_nav=sum((c.nav_amount for c in commitments), ZERO),
            )

    def investor_positions(self, fund_id: str) -> pd.DataFrame:
        """
        One row per commitment in the fund.

        Columns:
            investor_id, investor_name, commitment_date, commitment_amount,
            ownership_percentage, called_amount, unfunded_amount,
            distributed_amount, nav_amount
        """
        with self.db.session_scope() as session:
            load_fund(session, fund_id)
            rows = [
                {
                    "investor_id": c.investor_id,
                    "investor_name": c.investor.name,
                    "commitment_date": c.commitment_date,
                    "commitment_amount": float(c.commitment_amount),
                    "ownership_percentage": float(c.ownership_percentage),
                    "called_amount": float(c.called_amount),
                    "unfunded_amount": float(c.commitment_amount - c.called_amount),
                    "distributed_amount": float(c.distributed_amount),
                    "nav_amount": float(c.nav_amount),
                }
                for c in fund_commitments(session, fund_id)
            ]
        return pd.DataFrame(rows, columns=POSITION_COLUMNS)

    def capital_account_statement(
        self,
        fund_id: str,
        investor_id: Optional[str] = None,
    ) -> pd.DataFrame:
        """
        Booked capital-account movements in date order.

        Cumulative columns run per investor.

        Columns:
            entry_date, investor_id, entry_type, contribution, distribution,
            nav_change, cumulative_called, cumulative_distributed, nav
        """
        stmt = (
            select(models.LedgerEntry, models.Commitment.investor_id)
            .join(models.Commitment)
            .where(models.Commitment.fund_id == fund_id)
            .order_by(models.LedgerEntry.entry_date, models.LedgerEntry.created_at, models.LedgerEntry.id)
        )
        if investor_id is not None:
            stmt = stmt.where(models.Commitment.investor_id == investor_id)

        with self.db.session_scope() as session:
            load_fund(session, fund_id)
            rows = [
                {
                    "entry_date": entry.entry_date,
                    "investor_id": owner,
                    "entry_type": entry.entry_type.value,
                    "amount": float(entry.amount),
                    "nav_change": float(entry.nav_change),
                }
                for entry, owner in session.execute(stmt)
            ]

        if not rows:
            return pd.DataFrame(columns=STATEMENT_COLUMNS)

        df = pd.DataFrame(rows)
        is_contribution = df["entry_type"].to_numpy() == EntryType.CONTRIBUTION.value
        df["contribution"] = np.where(is_contribution, df["amount"], 0.0)
        df["distribution"] = np.where(is_contribution, 0.0, df["amount"])

        grouped = df.groupby("investor_id", sort=False)
        df["cumulative_called"] = grouped["contribution"].cumsum()
        df["cumulative_distributed"] = grouped["distribution"].cumsum()
        df["nav"] = grouped["nav_change"].cumsum()

        return df[STATEMENT_COLUMNS].reset_index(drop=True)
