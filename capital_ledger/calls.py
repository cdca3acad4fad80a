"""
calls.py — Capital calls allocated across a fund's commitments.

Depends on: allocation.py, registry.py, directory.py
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from capital_ledger import models
from capital_ledger.allocation import AllocationClaim, allocate_pro_rata
from capital_ledger.config import LedgerSettings
from capital_ledger.db import Database
from capital_ledger.directory import load_fund, require_fund
from capital_ledger.enums import CallStatus, DetailStatus, FundStatus
from capital_ledger.errors import (
    ImmutableRecord,
    NotFound,
    OverCommitmentExceeded,
    ValidationError,
)
from capital_ledger.locks import FundLockRegistry
from capital_ledger.records import CapitalCallRecord, CallDetailRecord
from capital_ledger.registry import fund_commitments
from capital_ledger.validation import (
    AmountLike,
    DateLike,
    check_places,
    ordered_dates,
    positive_amount,
    to_date,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class PlannedCallShare:
    """One investor's share of a call that has been validated but not written."""

    commitment_id: str
    investor_id: str
    commitment_amount: Decimal
    prior_called: Decimal
    called_amount: Decimal

    @property
    def headroom(self) -> Decimal:
        return self.commitment_amount - self.prior_called


def issued_call_totals(session: Session, fund_id: str) -> dict[str, Decimal]:
    """Sum of called amounts per commitment over every call issued by the fund."""
    rows = session.execute(
        select(models.CapitalCallDetail.commitment_id, models.CapitalCallDetail.called_amount)
        .join(models.CapitalCall)
        .where(models.CapitalCall.fund_id == fund_id)
    )
    totals: dict[str, Decimal] = {}
    for commitment_id, called in rows:
        totals[commitment_id] = totals.get(commitment_id, ZERO) + called
    return totals


def _build_call_detail(share: PlannedCallShare) -> models.CapitalCallDetail:
    return models.CapitalCallDetail(
        commitment_id=share.commitment_id,
        investor_id=share.investor_id,
        called_amount=share.called_amount,
        received_amount=ZERO,
        status=DetailStatus.PENDING,
    )


class CallAllocator:
    """
    Splits a fund-level capital call across its investors by commitment share.

    Every share is checked against the investor's uncalled commitment before
    anything is written; the call and all of its details are then persisted
    in one transaction while the fund's write lock is held.
    """

    def __init__(
        self,
        db: Database,
        locks: FundLockRegistry,
        settings: LedgerSettings,
    ) -> None:
        self.db = db
        self.locks = locks
        self.settings = settings

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def _plan(
        self,
        session: Session,
        fund: models.Fund,
        total: Decimal,
    ) -> list[PlannedCallShare]:
        commitments = fund_commitments(session, fund.id)
        if not commitments:
            raise ValidationError(f"Fund {fund.id!r} has no commitments to call against")

        claims = [
            AllocationClaim(
                key=c.id,
                weight=c.commitment_amount,
                commitment_amount=c.commitment_amount,
                commitment_date=c.commitment_date,
                investor_id=c.investor_id,
            )
            for c in commitments
        ]
        places = self.settings.precision_for(fund.currency)
        amounts = allocate_pro_rata(total, claims, places)
        issued = issued_call_totals(session, fund.id)

        plan = []
        for c in commitments:
            prior = max(issued.get(c.id, ZERO), c.called_amount)
            share = PlannedCallShare(
                commitment_id=c.id,
                investor_id=c.investor_id,
                commitment_amount=c.commitment_amount,
                prior_called=prior,
                called_amount=amounts[c.id],
            )
            if share.called_amount > share.headroom:
                raise OverCommitmentExceeded(
                    share.investor_id, share.called_amount, share.headroom
                )
            logger.debug(
                "Call share for %s: %s (prior %s, commitment %s)",
                share.investor_id,
                share.called_amount,
                share.prior_called,
                share.commitment_amount,
            )
            plan.append(share)
        return plan

    def plan_call(self, fund_id: str, total_amount: AmountLike) -> list[PlannedCallShare]:
        """
        Compute and validate per-investor shares without writing anything.

        Raises
        ------
        OverCommitmentExceeded
            Some investor's share exceeds their remaining commitment.
        """
        total = positive_amount(total_amount, "call amount")
        with self.db.session_scope() as session:
            fund = load_fund(session, fund_id)
            return self._plan(session, fund, total)

    def create_call(
        self,
        fund_id: str,
        total_amount: AmountLike,
        call_date: DateLike,
        due_date: DateLike,
        purpose: Optional[str] = None,
    ) -> CapitalCallRecord:
        """
        Issue a capital call and one detail per committed investor.

        Either the call and every detail are stored, or nothing is.

        Raises
        ------
        ValidationError
            Non-positive amount, malformed dates, due date before call date,
            liquidated fund or a fund without commitments.
        OverCommitmentExceeded
            Some investor's share exceeds their remaining commitment.
        """
        total = positive_amount(total_amount, "call amount")
        called_on, due_on = ordered_dates(call_date, due_date, "call_date", "due_date")
        require_fund(self.db, fund_id)

        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                fund = load_fund(session, fund_id)
                if fund.status is FundStatus.LIQUIDATED:
                    raise ValidationError(f"Fund {fund_id!r} is liquidated")

                plan = self._plan(session, fund, total)
                last_number = session.scalar(
                    select(func.max(models.CapitalCall.call_number)).where(
                        models.CapitalCall.fund_id == fund_id
                    )
                )
                call = models.CapitalCall(
                    fund_id=fund_id,
                    call_number=(last_number or 0) + 1,
                    call_date=called_on,
                    due_date=due_on,
                    purpose=purpose,
                    total_amount=total,
                    received_amount=ZERO,
                    status=CallStatus.SENT,
                )
                session.add(call)
                session.flush()

                for share in sorted(plan, key=lambda s: s.investor_id):
                    call.details.append(_build_call_detail(share))
                    session.flush()

                record = CapitalCallRecord.from_model(call)

        logger.info(
            "Capital call #%d on fund %s for %s across %d investors (due %s)",
            record.call_number,
            fund_id,
            record.total_amount,
            len(record.details),
            record.due_date,
        )
        return record

    # ------------------------------------------------------------------
    # Payments and status
    # ------------------------------------------------------------------

    def _fund_of_detail(self, detail_id: str) -> str:
        with self.db.session_scope() as session:
            fund_id = session.scalar(
                select(models.CapitalCall.fund_id)
                .join(models.CapitalCallDetail)
                .where(models.CapitalCallDetail.id == detail_id)
            )
        if fund_id is None:
            raise NotFound("CapitalCallDetail", detail_id)
        return fund_id

    def _fund_of_call(self, call_id: str) -> str:
        with self.db.session_scope() as session:
            return self._load_call(session, call_id).fund_id

    def record_payment(
        self,
        detail_id: str,
        received_amount: Optional[AmountLike] = None,
        received_date: Optional[DateLike] = None,
        payment_reference: Optional[str] = None,
    ) -> CallDetailRecord:
        """
        Record money received against one investor's call detail.

        ``received_amount`` defaults to the outstanding balance. Partial
        receipts accumulate; the detail turns ``paid`` once the full called
        amount has arrived.

        Raises
        ------
        ImmutableRecord
            The call is complete or the detail is already paid.
        ValidationError
            The receipt would exceed the called amount, or has more
            decimals than the fund currency.
        """
        fund_id = self._fund_of_detail(detail_id)
        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                detail = session.get(models.CapitalCallDetail, detail_id)
                if detail is None:
                    raise NotFound("CapitalCallDetail", detail_id)
                call = detail.capital_call
                if call.status is CallStatus.COMPLETE:
                    raise ImmutableRecord(f"Capital call {call.id!r} is complete")
                if detail.status is DetailStatus.PAID:
                    raise ImmutableRecord(f"Capital call detail {detail_id!r} is already paid")

                outstanding = detail.called_amount - detail.received_amount
                amount = (
                    outstanding
                    if received_amount is None
                    else check_places(
                        positive_amount(received_amount, "received amount"),
                        self.settings.precision_for(call.fund.currency),
                        "received amount",
                    )
                )
                if amount > outstanding:
                    raise ValidationError(
                        f"Receipt {amount} exceeds outstanding balance {outstanding}"
                    )

                detail.received_amount = detail.received_amount + amount
                detail.received_date = (
                    date.today() if received_date is None else to_date(received_date, "received_date")
                )
                if payment_reference is not None:
                    detail.payment_reference = payment_reference
                if detail.received_amount == detail.called_amount:
                    detail.status = DetailStatus.PAID
                call.received_amount = sum((d.received_amount for d in call.details), ZERO)
                session.flush()
                record = CallDetailRecord.from_model(detail)

        logger.info(
            "Received %s from investor %s on call detail %s (%s)",
            amount,
            record.investor_id,
            detail_id,
            record.status.value,
        )
        return record

    def complete_call(self, call_id: str, force: bool = False) -> CapitalCallRecord:
        """
        Move a call from ``sent`` to ``complete``.

        Without ``force`` every detail must be paid first.
        """
        fund_id = self._fund_of_call(call_id)
        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                call = self._load_call(session, call_id)
                if call.status is CallStatus.COMPLETE:
                    raise ImmutableRecord(f"Capital call {call_id!r} is already complete")
                unpaid = [d for d in call.details if d.status is not DetailStatus.PAID]
                if unpaid and not force:
                    raise ValidationError(
                        f"Capital call {call_id!r} has {len(unpaid)} unpaid detail(s)"
                    )
                call.status = CallStatus.COMPLETE
                session.flush()
                record = CapitalCallRecord.from_model(call)

        if unpaid:
            logger.warning("Capital call %s force-completed with %d unpaid details", call_id, len(unpaid))
        else:
            logger.info("Capital call %s complete", call_id)
        return record

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _load_call(session: Session, call_id: str) -> models.CapitalCall:
        call = session.get(models.CapitalCall, call_id)
        if call is None:
            raise NotFound("CapitalCall", call_id)
        return call

    def get_call(self, call_id: str) -> CapitalCallRecord:
        with self.db.session_scope() as session:
            return CapitalCallRecord.from_model(self._load_call(session, call_id))

    def list_calls(self, fund_id: str) -> list[CapitalCallRecord]:
        """Calls of a fund in call-number order."""
        stmt = (
            select(models.CapitalCall)
            .where(models.CapitalCall.fund_id == fund_id)
            .order_by(models.CapitalCall.call_number)
        )
        with self.db.session_scope() as session:
            load_fund(session, fund_id)
            return [CapitalCallRecord.from_model(c) for c in session.scalars(stmt)]
