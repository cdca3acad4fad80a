"""Tests for capital_ledger.aggregator: settlement booking and roll-ups."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from capital_ledger import CapitalLedger
from capital_ledger.aggregator import POSITION_COLUMNS, STATEMENT_COLUMNS
from capital_ledger.errors import NotFound

CALL_DATE = date(2024, 3, 1)
DUE_DATE = date(2024, 3, 31)
DIST_DATE = date(2024, 6, 15)
PAY_DATE = date(2024, 6, 30)


def accounts(ledger: CapitalLedger, fund_id: str) -> dict[str, tuple[Decimal, Decimal, Decimal]]:
    return {
        c.investor_id: (c.called_amount, c.distributed_amount, c.nav_amount)
        for c in ledger.registry.get_commitments(fund_id)
    }


# ---------------------------------------------------------------------------
# Call settlement
# ---------------------------------------------------------------------------

class TestCallSettlement:
    def test_settlement_increments_called_and_nav(self, ledger: CapitalLedger, three_equal_fund, settle_call):
        call = ledger.calls.create_call(three_equal_fund.id, 300, CALL_DATE, DUE_DATE)
        settle_call(call)
        assert accounts(ledger, three_equal_fund.id) == {
            "inv-a": (Decimal("100"), Decimal("0"), Decimal("100")),
            "inv-b": (Decimal("100"), Decimal("0"), Decimal("100")),
            "inv-c": (Decimal("100"), Decimal("0"), Decimal("100")),
        }

    def test_settling_twice_changes_nothing(self, ledger: CapitalLedger, three_equal_fund, settle_call):
        call = ledger.calls.create_call(three_equal_fund.id, 300, CALL_DATE, DUE_DATE)
        settle_call(call)
        before = accounts(ledger, three_equal_fund.id)

        assert ledger.aggregator.on_call_settled(call.id) == 0
        assert accounts(ledger, three_equal_fund.id) == before
        assert len(ledger.aggregator.capital_account_statement(three_equal_fund.id)) == 3

    def test_only_paid_details_are_booked(self, ledger: CapitalLedger, three_equal_fund):
        call = ledger.calls.create_call(three_equal_fund.id, 300, CALL_DATE, DUE_DATE)
        ledger.calls.record_payment(call.detail_for("inv-a").id, received_date=DUE_DATE)
        ledger.calls.record_payment(call.detail_for("inv-b").id, received_amount=50)

        assert ledger.aggregator.on_call_settled(call.id) == 1
        assert ledger.aggregator.fund_summary(three_equal_fund.id).total_called == Decimal("100")

        ledger.calls.record_payment(call.detail_for("inv-b").id, received_amount=50)
        assert ledger.aggregator.on_call_settled(call.id) == 1
        assert ledger.aggregator.fund_summary(three_equal_fund.id).total_called == Decimal("200")

    def test_settlement_allowed_after_completion(self, ledger: CapitalLedger, three_equal_fund):
        call = ledger.calls.create_call(three_equal_fund.id, 300, CALL_DATE, DUE_DATE)
        for detail in call.details:
            ledger.calls.record_payment(detail.id)
        ledger.calls.complete_call(call.id)
        assert ledger.aggregator.on_call_settled(call.id) == 3

    def test_unknown_call_raises(self, ledger: CapitalLedger):
        with pytest.raises(NotFound):
            ledger.aggregator.on_call_settled("missing")


# ---------------------------------------------------------------------------
# Distribution booking
# ---------------------------------------------------------------------------

class TestDistributionBooking:
    @pytest.fixture
    def funded(self, ledger: CapitalLedger, three_equal_fund, settle_call):
        settle_call(ledger.calls.create_call(three_equal_fund.id, 300, CALL_DATE, DUE_DATE))
        return three_equal_fund

    def test_income_leaves_nav_untouched(self, ledger: CapitalLedger, funded, pay_distribution):
        distribution = ledger.distributions.create_distribution(funded.id, 30, DIST_DATE, PAY_DATE, "income")
        pay_distribution(distribution)
        assert accounts(ledger, funded.id)["inv-a"] == (Decimal("100"), Decimal("10"), Decimal("100"))

    @pytest.mark.parametrize("distribution_type", ["capitalGain", "returnOfCapital"])
    def test_capital_distributions_reduce_nav(
        self, ledger: CapitalLedger, funded, pay_distribution, distribution_type
    ):
        distribution = ledger.distributions.create_distribution(
            funded.id, 30, DIST_DATE, PAY_DATE, distribution_type
        )
        pay_distribution(distribution)
        assert accounts(ledger, funded.id)["inv-b"] == (Decimal("100"), Decimal("10"), Decimal("90"))

    def test_distributed_amount_is_gross_of_withholding(self, ledger: CapitalLedger, funded, pay_distribution):
        distribution = ledger.distributions.create_distribution(
            funded.id, 30, DIST_DATE, PAY_DATE, "income", withholding_rate="0.5"
        )
        pay_distribution(distribution)
        assert ledger.aggregator.fund_summary(funded.id).total_distributed == Decimal("30")

    def test_booking_twice_changes_nothing(self, ledger: CapitalLedger, funded, pay_distribution):
        distribution = ledger.distributions.create_distribution(funded.id, 30, DIST_DATE, PAY_DATE, "capitalGain")
        pay_distribution(distribution)
        before = accounts(ledger, funded.id)
        assert ledger.aggregator.on_distribution_paid(distribution.id) == 0
        assert accounts(ledger, funded.id) == before

    def test_unpaid_details_are_not_booked(self, ledger: CapitalLedger, funded):
        distribution = ledger.distributions.create_distribution(funded.id, 30, DIST_DATE, PAY_DATE, "income")
        assert ledger.aggregator.on_distribution_paid(distribution.id) == 0
        assert ledger.aggregator.fund_summary(funded.id).total_distributed == 0

    def test_nav_floors_at_zero(self, ledger: CapitalLedger, make_fund, settle_call, pay_distribution, caplog):
        fund = make_fund([("A", 100)])
        settle_call(ledger.calls.create_call(fund.id, 10, CALL_DATE, DUE_DATE))
        distribution = ledger.distributions.create_distribution(fund.id, 50, DIST_DATE, PAY_DATE, "returnOfCapital")

        with caplog.at_level(logging.WARNING, logger="capital_ledger.aggregator"):
            pay_distribution(distribution)

        assert accounts(ledger, fund.id)["A"] == (Decimal("10"), Decimal("50"), Decimal("0"))
        assert "floored at zero" in caplog.text

    def test_unknown_distribution_raises(self, ledger: CapitalLedger):
        with pytest.raises(NotFound):
            ledger.aggregator.on_distribution_paid("missing")


# ---------------------------------------------------------------------------
# Roll-ups
# ---------------------------------------------------------------------------

class TestFundSummary:
    def test_summary_matches_commitment_fields(
        self, ledger: CapitalLedger, make_fund, settle_call, pay_distribution
    ):
        fund = make_fund([("A", 600), ("B", 400)])
        settle_call(ledger.calls.create_call(fund.id, 500, CALL_DATE, DUE_DATE))
        pay_distribution(
            ledger.distributions.create_distribution(fund.id, 100, DIST_DATE, PAY_DATE, "capitalGain")
        )

        commitments = ledger.registry.get_commitments(fund.id)
        summary = ledger.aggregator.fund_summary(fund.id)
        assert summary.total_committed == sum(c.commitment_amount for c in commitments) == Decimal("1000")
        assert summary.total_called == sum(c.called_amount for c in commitments) == Decimal("500")
        assert summary.total_distributed == sum(c.distributed_amount for c in commitments) == Decimal("100")
        assert summary.net_nav == sum(c.nav_amount for c in commitments) == Decimal("400")
        assert summary.total_unfunded == Decimal("500")

    def test_empty_fund(self, ledger: CapitalLedger, make_fund):
        summary = ledger.aggregator.fund_summary(make_fund([]).id)
        assert summary.as_dict() == {
            "total_committed": 0,
            "total_called": 0,
            "total_distributed": 0,
            "net_nav": 0,
        }

    def test_unknown_fund_raises(self, ledger: CapitalLedger):
        with pytest.raises(NotFound):
            ledger.aggregator.fund_summary("missing")


class TestInvestorPositions:
    def test_columns_and_values(self, ledger: CapitalLedger, make_fund, settle_call):
        fund = make_fund([("A", 750), ("B", 250)])
        settle_call(ledger.calls.create_call(fund.id, 100, CALL_DATE, DUE_DATE))

        positions = ledger.aggregator.investor_positions(fund.id)
        assert list(positions.columns) == POSITION_COLUMNS
        row = positions.set_index("investor_id").loc["A"]
        assert row["investor_name"] == "Investor A"
        assert row["ownership_percentage"] == pytest.approx(0.75)
        assert row["called_amount"] == pytest.approx(75.0)
        assert row["unfunded_amount"] == pytest.approx(675.0)
        assert positions["ownership_percentage"].sum() == pytest.approx(1.0)

    def test_empty_fund_has_columns(self, ledger: CapitalLedger, make_fund):
        positions = ledger.aggregator.investor_positions(make_fund([]).id)
        assert positions.empty
        assert list(positions.columns) == POSITION_COLUMNS


class TestCapitalAccountStatement:
    def test_cumulative_columns(self, ledger: CapitalLedger, make_fund, settle_call, pay_distribution):
        fund = make_fund([("A", 100)])
        settle_call(ledger.calls.create_call(fund.id, 40, CALL_DATE, DUE_DATE))
        pay_distribution(
            ledger.distributions.create_distribution(fund.id, 10, DIST_DATE, PAY_DATE, "capitalGain")
        )

        statement = ledger.aggregator.capital_account_statement(fund.id)
        assert list(statement.columns) == STATEMENT_COLUMNS
        assert list(statement["entry_type"]) == ["contribution", "distribution"]
        assert list(statement["entry_date"]) == [DUE_DATE, PAY_DATE]
        assert list(statement["cumulative_called"]) == [40.0, 40.0]
        assert list(statement["cumulative_distributed"]) == [0.0, 10.0]
        assert list(statement["nav"]) == [40.0, 30.0]

    def test_cumulative_runs_per_investor(self, ledger: CapitalLedger, make_fund, settle_call):
        fund = make_fund([("A", 500), ("B", 500)])
        settle_call(ledger.calls.create_call(fund.id, 100, CALL_DATE, DUE_DATE))
        settle_call(ledger.calls.create_call(fund.id, 100, date(2024, 4, 1), date(2024, 4, 30)),
                    received_date=date(2024, 4, 30))

        statement = ledger.aggregator.capital_account_statement(fund.id)
        final = statement.groupby("investor_id")["cumulative_called"].last()
        assert final.to_dict() == {"A": 100.0, "B": 100.0}

        only_b = ledger.aggregator.capital_account_statement(fund.id, investor_id="B")
        assert set(only_b["investor_id"]) == {"B"}
        assert list(only_b["cumulative_called"]) == [50.0, 100.0]

    def test_statement_matches_summary(self, ledger: CapitalLedger, make_fund, settle_call, pay_distribution):
        fund = make_fund([("A", 300), ("B", 200)])
        settle_call(ledger.calls.create_call(fund.id, 250, CALL_DATE, DUE_DATE))
        pay_distribution(
            ledger.distributions.create_distribution(fund.id, 50, DIST_DATE, PAY_DATE, "returnOfCapital")
        )

        statement = ledger.aggregator.capital_account_statement(fund.id)
        summary = ledger.aggregator.fund_summary(fund.id)
        assert statement["contribution"].sum() == pytest.approx(float(summary.total_called))
        assert statement["distribution"].sum() == pytest.approx(float(summary.total_distributed))
        assert statement["nav_change"].sum() == pytest.approx(float(summary.net_nav))

    def test_no_entries(self, ledger: CapitalLedger, three_equal_fund):
        statement = ledger.aggregator.capital_account_statement(three_equal_fund.id)
        assert isinstance(statement, pd.DataFrame)
        assert statement.empty
        assert list(statement.columns) == STATEMENT_COLUMNS
