"""
conftest.py — Shared pytest fixtures for the capital_ledger test suite.
"""
from __future__ import annotations

from datetime import date

import pytest

from capital_ledger import CapitalLedger, LedgerSettings
from capital_ledger.records import FundRecord


@pytest.fixture
def settings(tmp_path) -> LedgerSettings:
    """File-backed SQLite so separate sessions and threads see committed data only."""
    return LedgerSettings(
        database_url=f"sqlite:///{tmp_path / 'ledger.db'}",
        lock_timeout=10.0,
    )


@pytest.fixture
def ledger(settings: LedgerSettings) -> CapitalLedger:
    ledger = CapitalLedger(settings)
    yield ledger
    ledger.close()


@pytest.fixture
def make_fund(ledger: CapitalLedger):
    """
    Factory: create a fund with investors committed on the given dates.

    ``commitments`` is a list of (investor_id, amount) or
    (investor_id, amount, commitment_date) tuples.
    """
    counter = {"n": 0}

    def _make(commitments, currency: str = "USD", fund_id: str | None = None) -> FundRecord:
        counter["n"] += 1
        fund = ledger.directory.create_fund(
            name=f"Test Fund {counter['n']}",
            total_size=10_000_000,
            currency=currency,
            vintage_year=2024,
            fund_id=fund_id,
        )
        known = {i.id for i in ledger.directory.list_investors()}
        for entry in commitments:
            investor_id, amount = entry[0], entry[1]
            committed_on = entry[2] if len(entry) > 2 else date(2024, 1, 1)
            if investor_id not in known:
                ledger.directory.create_investor(
                    f"Investor {investor_id}", "institutional", investor_id=investor_id
                )
                known.add(investor_id)
            ledger.registry.add_commitment(fund.id, investor_id, amount, committed_on)
        return fund

    return _make


@pytest.fixture
def three_equal_fund(make_fund) -> FundRecord:
    """Three investors with identical commitments on the same date."""
    return make_fund([("inv-a", 1_000), ("inv-b", 1_000), ("inv-c", 1_000)])


@pytest.fixture
def settle_call(ledger: CapitalLedger):
    """Pay every detail of a call in full, then book the settlement."""

    def _settle(call, received_date=date(2024, 3, 31)) -> None:
        for detail in call.details:
            ledger.calls.record_payment(detail.id, received_date=received_date)
        ledger.aggregator.on_call_settled(call.id)

    return _settle


@pytest.fixture
def pay_distribution(ledger: CapitalLedger):
    """Mark every detail of a distribution paid, then book it."""

    def _pay(distribution, payment_date=date(2024, 6, 30)) -> None:
        for detail in distribution.details:
            ledger.distributions.record_payment(detail.id, payment_date=payment_date)
        ledger.aggregator.on_distribution_paid(distribution.id)

    return _pay
