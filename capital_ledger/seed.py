"""
seed.py — Deterministic demo data for a fresh ledger.

Builds two funds, five investors, their commitments, and a short history of
calls and distributions. Every amount and date is fixed, so the resulting
balances are the same on every run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from capital_ledger.enums import DistributionType, FundStatus, InvestorType
from capital_ledger.ledger import CapitalLedger

logger = logging.getLogger(__name__)


DEMO_FUNDS = [
    {
        "fund_id": "fund-growth-i",
        "name": "Harbor Growth Fund I",
        "total_size": 200_000_000,
        "currency": "USD",
        "vintage_year": 2021,
        "inception_date": date(2021, 3, 1),
        "term_months": 120,
        "extension_months": 24,
        "status": FundStatus.INVESTING,
        "management_fee_rate": "0.02",
        "performance_fee_rate": "0.20",
        "hurdle_rate": "0.08",
    },
    {
        "fund_id": "fund-early-ii",
        "name": "Harbor Early Stage Fund II",
        "total_size": 80_000_000,
        "currency": "EUR",
        "vintage_year": 2023,
        "inception_date": date(2023, 6, 1),
        "term_months": 120,
        "extension_months": 12,
        "status": FundStatus.FUNDRAISING,
        "management_fee_rate": "0.025",
        "performance_fee_rate": "0.20",
        "hurdle_rate": "0.08",
    },
]

DEMO_INVESTORS = [
    ("inv-01", "Northwind Pension Plan", InvestorType.INSTITUTIONAL, "US"),
    ("inv-02", "Contoso Holdings", InvestorType.CORPORATE, "DE"),
    ("inv-03", "Lindqvist Family Office", InvestorType.FAMILY_OFFICE, "SE"),
    ("inv-04", "A. Moreau", InvestorType.HNWI, "FR"),
    ("inv-05", "Meridian Fund of Funds", InvestorType.FUND_OF_FUNDS, "LU"),
]

# (fund_id, investor_id, amount, commitment date)
DEMO_COMMITMENTS = [
    ("fund-growth-i", "inv-01", 60_000_000, date(2021, 3, 1)),
    ("fund-growth-i", "inv-02", 40_000_000, date(2021, 3, 1)),
    ("fund-growth-i", "inv-03", 25_000_000, date(2021, 4, 15)),
    ("fund-growth-i", "inv-05", 50_000_000, date(2021, 6, 30)),
    ("fund-early-ii", "inv-03", 10_000_000, date(2023, 6, 1)),
    ("fund-early-ii", "inv-04", 2_500_000, date(2023, 6, 1)),
    ("fund-early-ii", "inv-05", 20_000_000, date(2023, 7, 1)),
]


@dataclass
class SeedResult:
    fund_ids: list[str] = field(default_factory=list)
    investor_ids: list[str] = field(default_factory=list)
    call_ids: list[str] = field(default_factory=list)
    distribution_ids: list[str] = field(default_factory=list)


def seed_demo_ledger(ledger: CapitalLedger) -> SeedResult:
    """Populate ``ledger`` with the demo funds and their history."""
    result = SeedResult()

    for terms in DEMO_FUNDS:
        fund = ledger.directory.create_fund(**terms)
        result.fund_ids.append(fund.id)

    for investor_id, name, investor_type, domicile in DEMO_INVESTORS:
        investor = ledger.directory.create_investor(
            name, investor_type, domicile=domicile, investor_id=investor_id
        )
        result.investor_ids.append(investor.id)

    for fund_id, investor_id, amount, committed_on in DEMO_COMMITMENTS:
        ledger.registry.add_commitment(fund_id, investor_id, amount, committed_on)

    # Growth fund: two calls, both fully paid and settled
    for amount, called_on, due_on in (
        (35_000_000, date(2021, 7, 15), date(2021, 8, 15)),
        (26_250_000, date(2022, 2, 1), date(2022, 3, 1)),
    ):
        call = ledger.calls.create_call(
            "fund-growth-i", amount, called_on, due_on, purpose="New investments and fees"
        )
        for detail in call.details:
            ledger.calls.record_payment(detail.id, received_date=due_on)
        ledger.calls.complete_call(call.id)
        ledger.aggregator.on_call_settled(call.id)
        result.call_ids.append(call.id)

    # Growth fund: a partial exit returned as capital gain, 10% default withholding
    distribution = ledger.distributions.create_distribution(
        "fund-growth-i",
        12_000_000,
        date(2023, 9, 30),
        date(2023, 10, 15),
        DistributionType.CAPITAL_GAIN,
        withholding_rate="0.10",
        withholding_overrides={"inv-01": "0", "inv-05": "0.15"},
    )
    for detail in distribution.details:
        ledger.distributions.record_payment(detail.id, payment_date=date(2023, 10, 15))
    ledger.distributions.complete_distribution(distribution.id)
    ledger.aggregator.on_distribution_paid(distribution.id)
    result.distribution_ids.append(distribution.id)

    # Early-stage fund: first call issued, one investor has paid so far
    call = ledger.calls.create_call(
        "fund-early-ii", 3_250_000, date(2023, 9, 1), date(2023, 9, 30), purpose="Initial closing"
    )
    paid = call.detail_for("inv-05")
    ledger.calls.record_payment(paid.id, received_date=date(2023, 9, 20))
    ledger.aggregator.on_call_settled(call.id)
    result.call_ids.append(call.id)

    logger.info(
        "Seeded %d funds, %d investors, %d calls, %d distributions",
        len(result.fund_ids),
        len(result.investor_ids),
        len(result.call_ids),
        len(result.distribution_ids),
    )
    return result
