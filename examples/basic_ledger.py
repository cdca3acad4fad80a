"""
basic_ledger.py — Demonstrates commitments, a capital call and a distribution.

Run:
    python examples/basic_ledger.py

Uses a throwaway SQLite file unless CAPITAL_LEDGER_DATABASE_URL is set.
"""
from __future__ import annotations

import os
import tempfile
from datetime import date

from capital_ledger import CapitalLedger, LedgerSettings, configure_logging
from capital_ledger import visualization as viz


def main() -> None:
    configure_logging("INFO")

    settings = LedgerSettings.from_env()
    if "CAPITAL_LEDGER_DATABASE_URL" not in os.environ:
        workdir = tempfile.mkdtemp(prefix="capital-ledger-")
        settings.database_url = f"sqlite:///{os.path.join(workdir, 'demo.db')}"

    with CapitalLedger(settings) as ledger:
        # -------------------------------------------------------------------
        # 1. Fund and limited partners
        # -------------------------------------------------------------------
        fund = ledger.directory.create_fund(
            "Acme Ventures Fund I",
            100_000_000,
            vintage_year=2024,
            inception_date=date(2024, 1, 15),
            term_months=120,
            management_fee_rate="0.02",
            performance_fee_rate="0.20",
            hurdle_rate="0.08",
        )
        lps = [
            ("Northwind Pension Plan", "institutional", 50_000_000),
            ("Contoso Holdings", "corporate", 30_000_000),
            ("Lindqvist Family Office", "familyOffice", 20_000_000),
        ]
        for name, investor_type, amount in lps:
            investor = ledger.directory.create_investor(name, investor_type)
            ledger.registry.add_commitment(fund.id, investor.id, amount, date(2024, 1, 15))

        # -------------------------------------------------------------------
        # 2. First capital call, paid and settled
        # -------------------------------------------------------------------
        call = ledger.calls.create_call(
            fund.id, 15_000_000, date(2024, 3, 1), date(2024, 3, 31), purpose="Seed investments"
        )
        for detail in call.details:
            ledger.calls.record_payment(detail.id, received_date=date(2024, 3, 28))
        ledger.calls.complete_call(call.id)
        ledger.aggregator.on_call_settled(call.id)

        # -------------------------------------------------------------------
        # 3. Early exit proceeds, 15% withholding for the corporate LP only
        # -------------------------------------------------------------------
        corporate = next(i for i in ledger.directory.list_investors() if i.name == "Contoso Holdings")
        distribution = ledger.distributions.create_distribution(
            fund.id,
            4_000_000,
            date(2025, 6, 30),
            date(2025, 7, 15),
            "capitalGain",
            withholding_overrides={corporate.id: "0.15"},
        )
        for detail in distribution.details:
            ledger.distributions.record_payment(detail.id, payment_date=date(2025, 7, 15))
        ledger.distributions.complete_distribution(distribution.id)
        ledger.aggregator.on_distribution_paid(distribution.id)

        # -------------------------------------------------------------------
        # 4. Print summary
        # -------------------------------------------------------------------
        summary = ledger.aggregator.fund_summary(fund.id)

        print("=" * 60)
        print(f"  {fund.name}: Capital Account Summary")
        print("=" * 60)
        print(f"  Committed:          ${summary.total_committed:>15,.2f}")
        print(f"  Called:             ${summary.total_called:>15,.2f}")
        print(f"  Unfunded:           ${summary.total_unfunded:>15,.2f}")
        print(f"  Distributed:        ${summary.total_distributed:>15,.2f}")
        print(f"  Net NAV:            ${summary.net_nav:>15,.2f}")
        print("=" * 60)

        # -------------------------------------------------------------------
        # 5. Per-investor positions and statement
        # -------------------------------------------------------------------
        positions = ledger.aggregator.investor_positions(fund.id)
        print("\nInvestor Positions:")
        print(
            positions[
                ["investor_name", "ownership_percentage", "called_amount", "distributed_amount", "nav_amount"]
            ].to_string(index=False)
        )

        statement = ledger.aggregator.capital_account_statement(fund.id)
        print("\nCapital Account Statement:")
        print(statement.to_string(index=False))

        print("\nWithholding on the distribution:")
        for detail in ledger.distributions.get_distribution(distribution.id).details:
            print(
                f"  {detail.investor_id[:8]}  gross {detail.distribution_amount:>14,.2f}"
                f"  tax {detail.withholding_tax:>12,.2f}  net {detail.net_amount:>14,.2f}"
            )

        # -------------------------------------------------------------------
        # 6. Visualize
        # -------------------------------------------------------------------
        print("\nOpening capital account chart...")
        viz.plot_capital_accounts(positions).show()

        print("\nOpening ownership chart...")
        viz.plot_ownership(positions).show()


if __name__ == "__main__":
    main()
