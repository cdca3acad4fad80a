"""
capital_ledger — Capital account ledger for private equity and venture funds.

Public API surface:

    from capital_ledger import CapitalLedger, LedgerSettings
    from capital_ledger import CommitmentRegistry, CallAllocator
    from capital_ledger import DistributionAllocator, LedgerAggregator
    from capital_ledger import allocation
    from capital_ledger import visualization as viz
"""
from __future__ import annotations

# Components and facade
from capital_ledger.aggregator import LedgerAggregator
from capital_ledger.calls import CallAllocator, PlannedCallShare
from capital_ledger.config import LedgerSettings, configure_logging
from capital_ledger.directory import FundDirectory
from capital_ledger.distributions import DistributionAllocator, PlannedDistributionShare
from capital_ledger.ledger import CapitalLedger
from capital_ledger.registry import CommitmentRegistry

# Vocabulary
from capital_ledger.enums import (
    CallStatus,
    DetailStatus,
    DistributionStatus,
    DistributionType,
    EntryType,
    FundStatus,
    InvestorStatus,
    InvestorType,
)
from capital_ledger.errors import (
    ConcurrencyConflict,
    DuplicateCommitment,
    ImmutableRecord,
    InvalidAllocation,
    LedgerError,
    NotFound,
    OverCommitmentExceeded,
    ValidationError,
)
from capital_ledger.records import (
    CallDetailRecord,
    CapitalCallRecord,
    CommitmentRecord,
    DistributionDetailRecord,
    DistributionRecord,
    FundRecord,
    FundSummary,
    InvestorRecord,
)

# Submodules available for direct import
from capital_ledger import allocation
from capital_ledger import visualization

__version__ = "0.1.0"

__all__ = [
    # Facade and components
    "CapitalLedger",
    "LedgerSettings",
    "configure_logging",
    "FundDirectory",
    "CommitmentRegistry",
    "CallAllocator",
    "PlannedCallShare",
    "DistributionAllocator",
    "PlannedDistributionShare",
    "LedgerAggregator",
    # Enums
    "CallStatus",
    "DetailStatus",
    "DistributionStatus",
    "DistributionType",
    "EntryType",
    "FundStatus",
    "InvestorStatus",
    "InvestorType",
    # Errors
    "LedgerError",
    "NotFound",
    "ValidationError",
    "DuplicateCommitment",
    "OverCommitmentExceeded",
    "InvalidAllocation",
    "ImmutableRecord",
    "ConcurrencyConflict",
    # Records
    "FundRecord",
    "InvestorRecord",
    "CommitmentRecord",
    "CapitalCallRecord",
    "CallDetailRecord",
    "DistributionRecord",
    "DistributionDetailRecord",
    "FundSummary",
    # Submodules
    "allocation",
    "visualization",
    # Version
    "__version__",
]
