"""Tests for capital_ledger.directory: funds and investors."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from capital_ledger import CapitalLedger, FundStatus, InvestorStatus, InvestorType
from capital_ledger.errors import NotFound, ValidationError


class TestFunds:
    def test_create_and_get(self, ledger: CapitalLedger):
        created = ledger.directory.create_fund(
            "Fund I",
            "50000000",
            currency="eur",
            vintage_year=2024,
            inception_date="2024-02-01",
            term_months=120,
            management_fee_rate="0.02",
        )
        fund = ledger.directory.get_fund(created.id)
        assert fund.name == "Fund I"
        assert fund.currency == "EUR"
        assert fund.total_size == Decimal("50000000")
        assert fund.inception_date == date(2024, 2, 1)
        assert fund.status is FundStatus.FUNDRAISING
        assert fund.management_fee_rate == Decimal("0.02")
        assert fund.hurdle_rate is None

    def test_caller_supplied_id(self, ledger: CapitalLedger):
        fund = ledger.directory.create_fund("Fund II", 1_000, fund_id="fund-ii")
        assert fund.id == "fund-ii"
        with pytest.raises(ValidationError):
            ledger.directory.create_fund("Fund II again", 1_000, fund_id="fund-ii")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": " "},
            {"total_size": 0},
            {"total_size": "1000.001"},
            {"total_size": "1000.5", "currency": "JPY"},
            {"currency": "EURO"},
            {"status": "closed"},
            {"management_fee_rate": "1.5"},
            {"term_months": -1},
        ],
    )
    def test_invalid_fund_raises(self, ledger: CapitalLedger, kwargs):
        args = dict(name="Fund", total_size=1_000)
        args.update(kwargs)
        with pytest.raises(ValidationError):
            ledger.directory.create_fund(**args)

    def test_list_by_status(self, ledger: CapitalLedger):
        ledger.directory.create_fund("Raising", 1_000, fund_id="a")
        ledger.directory.create_fund("Investing", 1_000, status="investing", fund_id="b")
        assert [f.id for f in ledger.directory.list_funds()] == ["a", "b"]
        assert [f.id for f in ledger.directory.list_funds(status=FundStatus.INVESTING)] == ["b"]

    def test_liquidated_fund_cannot_reopen(self, ledger: CapitalLedger):
        fund = ledger.directory.create_fund("Old Fund", 1_000)
        ledger.directory.update_fund_status(fund.id, "harvesting")
        closed = ledger.directory.update_fund_status(fund.id, FundStatus.LIQUIDATED)
        assert closed.status is FundStatus.LIQUIDATED
        with pytest.raises(ValidationError):
            ledger.directory.update_fund_status(fund.id, "investing")

    def test_unknown_fund(self, ledger: CapitalLedger):
        with pytest.raises(NotFound) as excinfo:
            ledger.directory.get_fund("missing")
        assert excinfo.value.kind == "Fund"
        # Also catchable as a plain lookup failure
        assert isinstance(excinfo.value, LookupError)


class TestInvestors:
    def test_create_and_get(self, ledger: CapitalLedger):
        created = ledger.directory.create_investor(
            "Northwind Pension", "institutional", domicile="US", email="ops@northwind.example"
        )
        investor = ledger.directory.get_investor(created.id)
        assert investor.investor_type is InvestorType.INSTITUTIONAL
        assert investor.status is InvestorStatus.ACTIVE
        assert investor.domicile == "US"

    def test_list_sorted_by_name(self, ledger: CapitalLedger):
        ledger.directory.create_investor("Zeta Holdings", "corporate")
        ledger.directory.create_investor("Alpha Family", InvestorType.FAMILY_OFFICE)
        assert [i.name for i in ledger.directory.list_investors()] == ["Alpha Family", "Zeta Holdings"]

    def test_unknown_type_raises(self, ledger: CapitalLedger):
        with pytest.raises(ValidationError):
            ledger.directory.create_investor("Someone", "sovereign")

    def test_duplicate_id_raises(self, ledger: CapitalLedger):
        ledger.directory.create_investor("First", "hnwi", investor_id="inv-1")
        with pytest.raises(ValidationError):
            ledger.directory.create_investor("Second", "hnwi", investor_id="inv-1")

    def test_unknown_investor(self, ledger: CapitalLedger):
        with pytest.raises(NotFound):
            ledger.directory.get_investor("missing")
