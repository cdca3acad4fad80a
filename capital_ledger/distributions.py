"""
distributions.py — Distributions allocated by current ownership.

Depends on: allocation.py, registry.py, directory.py
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from capital_ledger import models
from capital_ledger.allocation import AllocationClaim, allocate_pro_rata, withholding_split
from capital_ledger.config import LedgerSettings
from capital_ledger.db import Database
from capital_ledger.directory import load_fund, require_fund
from capital_ledger.enums import (
    DetailStatus,
    DistributionStatus,
    DistributionType,
    FundStatus,
    coerce,
)
from capital_ledger.errors import ImmutableRecord, InvalidAllocation, NotFound, ValidationError
from capital_ledger.locks import FundLockRegistry
from capital_ledger.records import DistributionDetailRecord, DistributionRecord
from capital_ledger.registry import fund_commitments
from capital_ledger.validation import (
    AmountLike,
    DateLike,
    check_places,
    ordered_dates,
    positive_amount,
    to_date,
    to_decimal,
    to_rate,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class PlannedDistributionShare:
    """One investor's validated, not yet written, share of a distribution."""

    commitment_id: str
    investor_id: str
    ownership_percentage: Decimal
    distribution_amount: Decimal
    withholding_rate: Decimal
    withholding_tax: Decimal

    @property
    def net_amount(self) -> Decimal:
        return self.distribution_amount - self.withholding_tax


def _build_distribution_detail(share: PlannedDistributionShare) -> models.DistributionDetail:
    return models.DistributionDetail(
        commitment_id=share.commitment_id,
        investor_id=share.investor_id,
        distribution_amount=share.distribution_amount,
        withholding_rate=share.withholding_rate,
        withholding_tax=share.withholding_tax,
        paid_amount=share.distribution_amount,
        net_amount=share.net_amount,
        status=DetailStatus.PENDING,
    )


class DistributionAllocator:
    """
    Splits a fund-level distribution across investors by current ownership.

    Withholding tax is applied per investor: a default rate for everyone,
    optionally overridden per investor id for differing tax treaties.
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

    def _rates(
        self,
        withholding_rate: Optional[AmountLike],
        overrides: Optional[Mapping[str, AmountLike]],
    ) -> tuple[Decimal, dict[str, Decimal]]:
        default = (
            self.settings.default_withholding_rate
            if withholding_rate is None
            else to_rate(withholding_rate, "withholding_rate")
        )
        parsed = {
            investor_id: to_rate(rate, f"withholding rate for {investor_id}")
            for investor_id, rate in (overrides or {}).items()
        }
        return default, parsed

    def _plan(
        self,
        session: Session,
        fund: models.Fund,
        total: Decimal,
        default_rate: Decimal,
        overrides: dict[str, Decimal],
        distributable_value: Optional[Decimal],
    ) -> list[PlannedDistributionShare]:
        commitments = fund_commitments(session, fund.id)
        if not commitments:
            raise ValidationError(f"Fund {fund.id!r} has no investors to distribute to")

        unknown = set(overrides) - {c.investor_id for c in commitments}
        if unknown:
            raise ValidationError(
                f"Withholding overrides for investors without a commitment: {sorted(unknown)}"
            )

        claims = [
            AllocationClaim(
                key=c.id,
                weight=c.ownership_percentage,
                commitment_amount=c.commitment_amount,
                commitment_date=c.commitment_date,
                investor_id=c.investor_id,
            )
            for c in commitments
        ]
        places = self.settings.precision_for(fund.currency)
        if distributable_value is not None:
            check_places(distributable_value, places, "distributable_value")
        amounts = allocate_pro_rata(total, claims, places)

        allocated = sum(amounts.values(), ZERO)
        if distributable_value is not None and allocated > distributable_value:
            raise InvalidAllocation(
                f"Allocated {allocated} exceeds distributable value {distributable_value} "
                f"of fund {fund.id!r}"
            )

        plan = []
        for c in commitments:
            rate = overrides.get(c.investor_id, default_rate)
            gross = amounts[c.id]
            tax, _ = withholding_split(gross, rate, places)
            plan.append(
                PlannedDistributionShare(
                    commitment_id=c.id,
                    investor_id=c.investor_id,
                    ownership_percentage=c.ownership_percentage,
                    distribution_amount=gross,
                    withholding_rate=rate,
                    withholding_tax=tax,
                )
            )
        return plan

    def plan_distribution(
        self,
        fund_id: str,
        total_amount: AmountLike,
        withholding_rate: Optional[AmountLike] = None,
        withholding_overrides: Optional[Mapping[str, AmountLike]] = None,
        distributable_value: Optional[AmountLike] = None,
    ) -> list[PlannedDistributionShare]:
        """Compute and validate per-investor shares without writing anything."""
        total = positive_amount(total_amount, "distribution amount")
        default_rate, overrides = self._rates(withholding_rate, withholding_overrides)
        cap = None if distributable_value is None else to_decimal(distributable_value, "distributable_value")
        with self.db.session_scope() as session:
            fund = load_fund(session, fund_id)
            return self._plan(session, fund, total, default_rate, overrides, cap)

    def create_distribution(
        self,
        fund_id: str,
        total_amount: AmountLike,
        distribution_date: DateLike,
        payment_date: DateLike,
        distribution_type: Union[DistributionType, str],
        withholding_rate: Optional[AmountLike] = None,
        withholding_overrides: Optional[Mapping[str, AmountLike]] = None,
        distributable_value: Optional[AmountLike] = None,
    ) -> DistributionRecord:
        """
        Create a distribution and one detail per investor in the fund.

        Parameters
        ----------
        withholding_rate:
            Default withholding rate in [0, 1]; falls back to the configured
            default when omitted.
        withholding_overrides:
            Mapping of investor id → withholding rate.
        distributable_value:
            Value currently available for distribution. When given, an
            allocation above it is rejected.

        Raises
        ------
        ValidationError
            Bad amount, dates, type or rates, or a liquidated fund.
        InvalidAllocation
            Allocation exceeds ``distributable_value``.
        """
        total = positive_amount(total_amount, "distribution amount")
        distributed_on, paid_on = ordered_dates(
            distribution_date, payment_date, "distribution_date", "payment_date"
        )
        kind = coerce(DistributionType, distribution_type)
        default_rate, overrides = self._rates(withholding_rate, withholding_overrides)
        cap = None if distributable_value is None else to_decimal(distributable_value, "distributable_value")
        require_fund(self.db, fund_id)

        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                fund = load_fund(session, fund_id)
                if fund.status is FundStatus.LIQUIDATED:
                    raise ValidationError(f"Fund {fund_id!r} is liquidated")

                plan = self._plan(session, fund, total, default_rate, overrides, cap)
                last_number = session.scalar(
                    select(func.max(models.Distribution.distribution_number)).where(
                        models.Distribution.fund_id == fund_id
                    )
                )
                distribution = models.Distribution(
                    fund_id=fund_id,
                    distribution_number=(last_number or 0) + 1,
                    distribution_date=distributed_on,
                    payment_date=paid_on,
                    distribution_type=kind,
                    total_amount=total,
                    paid_amount=ZERO,
                    status=DistributionStatus.PROCESSING,
                )
                session.add(distribution)
                session.flush()

                for share in sorted(plan, key=lambda s: s.investor_id):
                    distribution.details.append(_build_distribution_detail(share))
                    session.flush()

                record = DistributionRecord.from_model(distribution)

        logger.info(
            "Distribution #%d (%s) on fund %s for %s across %d investors",
            record.distribution_number,
            kind.value,
            fund_id,
            record.total_amount,
            len(record.details),
        )
        return record

    # ------------------------------------------------------------------
    # Payments and status
    # ------------------------------------------------------------------

    def _fund_of_detail(self, detail_id: str) -> str:
        with self.db.session_scope() as session:
            fund_id = session.scalar(
                select(models.Distribution.fund_id)
                .join(models.DistributionDetail)
                .where(models.DistributionDetail.id == detail_id)
            )
        if fund_id is None:
            raise NotFound("DistributionDetail", detail_id)
        return fund_id

    def _fund_of_distribution(self, distribution_id: str) -> str:
        with self.db.session_scope() as session:
            return self._load_distribution(session, distribution_id).fund_id

    def record_payment(
        self,
        detail_id: str,
        payment_date: Optional[DateLike] = None,
    ) -> DistributionDetailRecord:
        """
        Mark one investor's distribution detail as paid.

        Raises
        ------
        ImmutableRecord
            The distribution is complete or the detail is already paid.
        """
        fund_id = self._fund_of_detail(detail_id)
        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                detail = session.get(models.DistributionDetail, detail_id)
                if detail is None:
                    raise NotFound("DistributionDetail", detail_id)
                distribution = detail.distribution
                if distribution.status is DistributionStatus.COMPLETE:
                    raise ImmutableRecord(f"Distribution {distribution.id!r} is complete")
                if detail.status is DetailStatus.PAID:
                    raise ImmutableRecord(f"Distribution detail {detail_id!r} is already paid")

                detail.status = DetailStatus.PAID
                detail.payment_date = (
                    date.today() if payment_date is None else to_date(payment_date, "payment_date")
                )
                distribution.paid_amount = sum(
                    (d.paid_amount for d in distribution.details if d.status is DetailStatus.PAID),
                    ZERO,
                )
                session.flush()
                record = DistributionDetailRecord.from_model(detail)

        logger.info(
            "Paid %s (net %s) to investor %s on distribution detail %s",
            record.paid_amount,
            record.net_amount,
            record.investor_id,
            detail_id,
        )
        return record

    def complete_distribution(self, distribution_id: str, force: bool = False) -> DistributionRecord:
        """
        Move a distribution from ``processing`` to ``complete``.

        Without ``force`` every detail must be paid first.
        """
        fund_id = self._fund_of_distribution(distribution_id)
        with self.locks.hold(fund_id):
            with self.db.session_scope() as session:
                distribution = self._load_distribution(session, distribution_id)
                if distribution.status is DistributionStatus.COMPLETE:
                    raise ImmutableRecord(f"Distribution {distribution_id!r} is already complete")
                unpaid = [d for d in distribution.details if d.status is not DetailStatus.PAID]
                if unpaid and not force:
                    raise ValidationError(
                        f"Distribution {distribution_id!r} has {len(unpaid)} unpaid detail(s)"
                    )
                distribution.status = DistributionStatus.COMPLETE
                session.flush()
                record = DistributionRecord.from_model(distribution)

        if unpaid:
            logger.warning(
                "Distribution %s force-completed with %d unpaid details", distribution_id, len(unpaid)
            )
        else:
            logger.info("Distribution %s complete", distribution_id)
        return record

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _load_distribution(session: Session, distribution_id: str) -> models.Distribution:
        distribution = session.get(models.Distribution, distribution_id)
        if distribution is None:
            raise NotFound("Distribution", distribution_id)
        return distribution

    def get_distribution(self, distribution_id: str) -> DistributionRecord:
        with self.db.session_scope() as session:
            return DistributionRecord.from_model(self._load_distribution(session, distribution_id))

    def list_distributions(self, fund_id: str) -> list[DistributionRecord]:
        """Distributions of a fund in distribution-number order."""
        stmt = (
            select(models.Distribution)
            .where(models.Distribution.fund_id == fund_id)
            .order_by(models.Distribution.distribution_number)
        )
        with self.db.session_scope() as session:
            load_fund(session, fund_id)
            return [DistributionRecord.from_model(d) for d in session.scalars(stmt)]
