"""
registry.py — Investor commitments to funds and their ownership shares.

Depends on: db.py, directory.py, locks.py
"""
from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from capital_ledger import models
from capital_ledger.config import LedgerSettings
from capital_ledger.db import Database
from capital_ledger.directory import load_fund, load_investor, require_fund
from capital_ledger.enums import FundStatus
from capital_ledger.errors import DuplicateCommitment, ImmutableRecord, NotFound, ValidationError
from capital_ledger.locks import FundLockRegistry
from capital_ledger.records import CommitmentRecord
from capital_ledger.validation import AmountLike, DateLike, check_places, positive_amount, to_date

logger = logging.getLogger(__name__)

OWNERSHIP_QUANTUM = Decimal("1e-12")


# ---------------------------------------------------------------------------
# Session-level helpers shared by the allocators and the aggregator
# ---------------------------------------------------------------------------

def fund_commitments(session: Session, fund_id: str) -> list[models.Commitment]:
    """Commitments of a fund ordered by commitment date, then id."""
    stmt = (
        select(models.Commitment)
        .where(models.Commitment.fund_id == fund_id)
        .order_by(models.Commitment.commitment_date, models.Commitment.id)
    )
    return list(session.scalars(stmt))


def renormalize_ownership(commitments: list[models.Commitment]) -> Decimal:
    """
    Set every commitment's ownership to its share of the fund total.

    Returns the total committed.
    """
    total = sum((c.commitment_amount for c in commitments), Decimal("0"))
    for commitment in commitments:
        if total > 0:
            commitment.ownership_percentage = (commitment.commitment_amount / total).quantize(
                OWNERSHIP_QUANTUM
            )
        else:
            commitment.ownership_percentage = Decimal("0")
    return total


def _is_referenced(session: Session, commitment_id: str) -> bool:
    call_ref = select(
        exists().where(models.CapitalCallDetail.commitment_id == commitment_id)
    )
    dist_ref = select(
        exists().where(models.DistributionDetail.commitment_id == commitment_id)
    )
    return bool(session.scalar(call_ref)) or bool(session.scalar(dist_ref))


class CommitmentRegistry:
    """
    Tracks each investor's commitment to a fund.

    Commitment amounts are fixed once recorded. Adding or removing a
    commitment rescales the ownership percentage of every other investor in
    the same fund.
    """

    def __init__(self, db: Database, locks: FundLockRegistry, settings: LedgerSettings) -> None:
        self.db = db
        self.locks = locks
        self.settings = settings

    def add_commitment(
        self,
        fund_id: str,
        investor_id: str,
        amount: AmountLike,
        commitment_date: DateLike,
    ) -> CommitmentRecord:
        """
        Record a new commitment and recompute ownership across the fund.

        Raises
        ------
        NotFound
            Unknown fund or investor.
        ValidationError
            Non-positive amount, more decimals than the fund currency has,
            malformed date or liquidated fund.
        DuplicateCommitment
            The investor already committed to this fund.
        """
        commitment_amount = positive_amount(amount, "commitment amount")
        committed_on = to_date(commitment_date, "commitment_date")
        require_fund(self.db, fund_id)

        with self.locks.hold(fund_id):
            try:
                with self.db.session_scope() as session:
                    fund = load_fund(session, fund_id)
                    load_investor(session, investor_id)
                    if fund.status is FundStatus.LIQUIDATED:
                        raise ValidationError(f"Fund {fund_id!r} is liquidated")
                    check_places(
                        commitment_amount,
                        self.settings.precision_for(fund.currency),
                        "commitment amount",
                    )

                    existing = session.scalar(
                        select(models.Commitment).where(
                            models.Commitment.fund_id == fund_id,
                            models.Commitment.investor_id == investor_id,
                        )
                    )
                    if existing is not None:
                        raise DuplicateCommitment(fund_id, investor_id)

                    commitment = models.Commitment(
                        fund_id=fund_id,
                        investor_id=investor_id,
                        commitment_amount=commitment_amount,
                        commitment_date=committed_on,
                        called_amount=Decimal("0"),
                        distributed_amount=Decimal("0"),
                        nav_amount=Decimal("0"),
                        ownership_percentage=Decimal("0"),
                    )
                    session.add(commitment)
                    session.flush()

                    commitments = fund_commitments(session, fund_id)
                    total = renormalize_ownership(commitments)
                    session.flush()
                    record = CommitmentRecord.from_model(commitment)
            except IntegrityError as exc:
                # Lost a race with a writer outside this process
                raise DuplicateCommitment(fund_id, investor_id) from exc

        logger.info(
            "Investor %s committed %s to fund %s (fund total %s, ownership %s)",
            investor_id,
            commitment_amount,
            fund_id,
            total,
            record.ownership_percentage,
        )
        return record

    def remove_commitment(self, fund_id: str, investor_id: str) -> None:
        """
        Delete a commitment that no call or distribution refers to.

        Raises
        ------
        ImmutableRecord
            A capital call or distribution detail references the commitment.
        """
        require_fund(self.db, fund_id)
        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                commitment = self._load(session, fund_id, investor_id)
                if _is_referenced(session, commitment.id):
                    raise ImmutableRecord(
                        f"Commitment of {investor_id!r} to fund {fund_id!r} has "
                        "capital call or distribution history"
                    )
                session.delete(commitment)
                session.flush()
                renormalize_ownership(fund_commitments(session, fund_id))

        logger.info("Removed commitment of investor %s from fund %s", investor_id, fund_id)

    def get_commitments(self, fund_id: str) -> list[CommitmentRecord]:
        """Commitments of the fund, ordered by commitment date then id."""
        with self.db.session_scope() as session:
            load_fund(session, fund_id)
            return [CommitmentRecord.from_model(c) for c in fund_commitments(session, fund_id)]

    def get_commitment(self, fund_id: str, investor_id: str) -> CommitmentRecord:
        with self.db.session_scope() as session:
            return CommitmentRecord.from_model(self._load(session, fund_id, investor_id))

    def total_committed(self, fund_id: str) -> Decimal:
        """Sum of all commitment amounts in the fund."""
        with self.db.session_scope() as session:
            load_fund(session, fund_id)
            return sum(
                (c.commitment_amount for c in fund_commitments(session, fund_id)),
                Decimal("0"),
            )

    def investor_commitments(self, investor_id: str) -> list[CommitmentRecord]:
        """Every fund commitment held by one investor."""
        stmt = (
            select(models.Commitment)
            .where(models.Commitment.investor_id == investor_id)
            .order_by(models.Commitment.commitment_date, models.Commitment.id)
        )
        with self.db.session_scope() as session:
            load_investor(session, investor_id)
            return [CommitmentRecord.from_model(c) for c in session.scalars(stmt)]

    @staticmethod
    def _load(session: Session, fund_id: str, investor_id: str) -> models.Commitment:
        commitment = session.scalar(
            select(models.Commitment).where(
                models.Commitment.fund_id == fund_id,
                models.Commitment.investor_id == investor_id,
            )
        )
        if commitment is None:
            raise NotFound("Commitment", f"{fund_id}/{investor_id}")
        return commitment
