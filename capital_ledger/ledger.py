"""
ledger.py — Facade wiring settings, storage, locks and ledger components.
"""
from __future__ import annotations

import logging
from typing import Optional

from capital_ledger.aggregator import LedgerAggregator
from capital_ledger.calls import CallAllocator
from capital_ledger.config import LedgerSettings
from capital_ledger.db import Database
from capital_ledger.directory import FundDirectory
from capital_ledger.distributions import DistributionAllocator
from capital_ledger.locks import FundLockRegistry
from capital_ledger.registry import CommitmentRegistry

logger = logging.getLogger(__name__)


class CapitalLedger:
    """
    Entry point for callers of the ledger.

    Components share one database and one set of per-fund locks:

        ledger = CapitalLedger(LedgerSettings(database_url="sqlite:///fund.db"))
        fund = ledger.directory.create_fund("Fund I", 50_000_000)
        investor = ledger.directory.create_investor("Pension Plan", "institutional")
        ledger.registry.add_commitment(fund.id, investor.id, 10_000_000, "2024-01-15")
        call = ledger.calls.create_call(fund.id, 2_000_000, "2024-03-01", "2024-03-31")
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        create_tables: bool = True,
    ) -> None:
        self.settings = settings or LedgerSettings.from_env()
        self.db = Database(self.settings)
        if create_tables:
            self.db.create_all()
        self.locks = FundLockRegistry(timeout=self.settings.lock_timeout)

        self.directory = FundDirectory(self.db, self.settings)
        self.registry = CommitmentRegistry(self.db, self.locks, self.settings)
        self.calls = CallAllocator(self.db, self.locks, self.settings)
        self.distributions = DistributionAllocator(self.db, self.locks, self.settings)
        self.aggregator = LedgerAggregator(self.db, self.locks)
        logger.debug("Capital ledger ready on %s", self.db.engine.url)

    def close(self) -> None:
        self.db.dispose()

    def __enter__(self) -> "CapitalLedger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CapitalLedger(database={self.db.engine.url!r})"
