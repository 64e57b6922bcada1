"""Data models for reconciliation."""

from .transaction import (
    ColumnDetection,
    ColumnHints,
    ColumnType,
    LedgerAccount,
    LedgerTransaction,
    MatchType,
    StatementTransaction,
    TransactionMatch,
)
from .report import (
    Discrepancy,
    DiscrepancyType,
    ReconciliationReport,
    ReconciliationStatus,
    ReconciliationSummary,
)

__all__ = [
    "ColumnDetection",
    "ColumnHints",
    "ColumnType",
    "LedgerAccount",
    "LedgerTransaction",
    "MatchType",
    "StatementTransaction",
    "TransactionMatch",
    "Discrepancy",
    "DiscrepancyType",
    "ReconciliationReport",
    "ReconciliationStatus",
    "ReconciliationSummary",
]
