"""Tests for capital_ledger.seed: the demo ledger."""
from __future__ import annotations

from decimal import Decimal

import pytest

from capital_ledger import CallStatus, CapitalLedger, DetailStatus, LedgerSettings
from capital_ledger.seed import seed_demo_ledger


@pytest.fixture
def seeded(ledger: CapitalLedger):
    return ledger, seed_demo_ledger(ledger)


class TestSeedDemoLedger:
    def test_counts(self, seeded):
        ledger, result = seeded
        assert result.fund_ids == ["fund-growth-i", "fund-early-ii"]
        assert len(result.investor_ids) == 5
        assert len(result.call_ids) == 3
        assert len(result.distribution_ids) == 1
        assert len(ledger.registry.investor_commitments("inv-05")) == 2

    def test_growth_fund_summary(self, seeded):
        ledger, _ = seeded
        summary = ledger.aggregator.fund_summary("fund-growth-i")
        assert summary.total_committed == Decimal("175000000")
        assert summary.total_called == Decimal("61250000")
        assert summary.total_distributed == Decimal("12000000")
        assert summary.net_nav == Decimal("49250000")

    def test_early_fund_summary(self, seeded):
        ledger, _ = seeded
        summary = ledger.aggregator.fund_summary("fund-early-ii")
        assert summary.total_committed == Decimal("32500000")
        assert summary.total_called == Decimal("2000000")
        assert summary.total_distributed == 0
        assert summary.net_nav == Decimal("2000000")

    def test_early_fund_call_is_open(self, seeded):
        ledger, result = seeded
        call = ledger.calls.get_call(result.call_ids[-1])
        assert call.status is CallStatus.SENT
        assert call.detail_for("inv-05").status is DetailStatus.PAID
        assert call.detail_for("inv-03").status is DetailStatus.PENDING

    def test_withholding_overrides_applied(self, seeded):
        ledger, result = seeded
        distribution = ledger.distributions.get_distribution(result.distribution_ids[0])
        assert distribution.detail_for("inv-01").withholding_tax == 0
        assert distribution.detail_for("inv-05").withholding_rate == Decimal("0.15")
        assert sum(d.distribution_amount for d in distribution.details) == Decimal("12000000")

    def test_deterministic(self, seeded, tmp_path):
        ledger, _ = seeded
        other = CapitalLedger(LedgerSettings(database_url=f"sqlite:///{tmp_path / 'other.db'}"))
        try:
            seed_demo_ledger(other)
            for fund_id in ("fund-growth-i", "fund-early-ii"):
                assert other.aggregator.fund_summary(fund_id) == ledger.aggregator.fund_summary(fund_id)
                assert other.aggregator.investor_positions(fund_id).equals(
                    ledger.aggregator.investor_positions(fund_id)
                )
        finally:
            other.close()
