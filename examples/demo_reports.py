"""
demo_reports.py — Seeds the demo ledger and prints its capital-account reports.

Run:
    python examples/demo_reports.py
"""
from __future__ import annotations

import os
import tempfile

from capital_ledger import CapitalLedger, LedgerSettings, configure_logging
from capital_ledger import visualization as viz
from capital_ledger.seed import seed_demo_ledger


def main() -> None:
    configure_logging("WARNING")

    workdir = tempfile.mkdtemp(prefix="capital-ledger-demo-")
    settings = LedgerSettings(database_url=f"sqlite:///{os.path.join(workdir, 'demo.db')}")

    with CapitalLedger(settings) as ledger:
        # -------------------------------------------------------------------
        # 1. Seed two funds with a short history
        # -------------------------------------------------------------------
        result = seed_demo_ledger(ledger)

        # -------------------------------------------------------------------
        # 2. Fund summaries
        # -------------------------------------------------------------------
        print("=" * 72)
        print(f"  {'Fund':<28}{'Committed':>11}{'Called':>11}{'Distributed':>12}{'NAV':>10}")
        print("=" * 72)
        for fund_id in result.fund_ids:
            fund = ledger.directory.get_fund(fund_id)
            summary = ledger.aggregator.fund_summary(fund_id)
            print(
                f"  {fund.name[:26]:<28}"
                f"{float(summary.total_committed) / 1e6:>10,.2f}M"
                f"{float(summary.total_called) / 1e6:>10,.2f}M"
                f"{float(summary.total_distributed) / 1e6:>11,.2f}M"
                f"{float(summary.net_nav) / 1e6:>9,.2f}M"
            )
        print("=" * 72)

        # -------------------------------------------------------------------
        # 3. Statement of the investor present in both funds
        # -------------------------------------------------------------------
        for fund_id in result.fund_ids:
            statement = ledger.aggregator.capital_account_statement(fund_id, investor_id="inv-05")
            print(f"\nCapital account of inv-05 in {fund_id}:")
            print(statement.drop(columns=["investor_id"]).to_string(index=False))

        # -------------------------------------------------------------------
        # 4. Visualize the growth fund
        # -------------------------------------------------------------------
        positions = ledger.aggregator.investor_positions("fund-growth-i")
        statement = ledger.aggregator.capital_account_statement("fund-growth-i")

        print("\nOpening capital account chart...")
        viz.plot_capital_accounts(positions).show()

        print("\nOpening account timeline...")
        viz.plot_account_timeline(statement).show()


if __name__ == "__main__":
    main()
