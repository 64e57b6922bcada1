"""Data models for reconciliation reports."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .transaction import MatchType, TransactionMatch

REPORT_NOTE = (
    "All amounts are in currency units. This reconciliation compares ledger "
    "transactions with bank statement data to identify discrepancies and "
    "missing transactions."
)


class DiscrepancyType(Enum):
    """Kind of reconciliation discrepancy."""

    MISSING_LEDGER = "missing_ledger"  # On the statement, not in the ledger
    MISSING_STATEMENT = "missing_statement"  # In the ledger, not on the statement
    AMOUNT_MISMATCH = "amount_mismatch"


class ReconciliationStatus(Enum):
    """Overall verdict of a reconciliation run."""

    BALANCED = "balanced"
    NEEDS_REVIEW = "needs_review"
    UNBALANCED = "unbalanced"


@dataclass
class Discrepancy:
    """A single problem found while reconciling."""

    type: DiscrepancyType
    description: str
    amount: Optional[Decimal] = None
    transaction_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type.value,
            "description": self.description,
        }
        if self.amount is not None:
            result["amount"] = float(self.amount)
        if self.transaction_id is not None:
            result["transaction_id"] = self.transaction_id
        return result


@dataclass
class ReconciliationSummary:
    """Verdict, confidence and recommendations for a run."""

    status: ReconciliationStatus
    confidence_score: float
    total_discrepancies: int
    largest_discrepancy: Decimal
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reconciliation_status": self.status.value,
            "confidence_score": round(self.confidence_score, 4),
            "total_discrepancies": self.total_discrepancies,
            "largest_discrepancy": float(self.largest_discrepancy),
            "recommendations": list(self.recommendations),
        }


@dataclass
class ReconciliationReport:
    """Top-level result of reconciling one account against one statement."""

    # Account identity
    account_id: str
    account_name: str

    # Balances in currency units
    statement_balance: Decimal
    ledger_balance: Decimal

    statement_date: date
    reconciliation_date: date
    tolerance: Decimal

    total_ledger_transactions: int
    total_statement_transactions: int

    matches: list[TransactionMatch]
    discrepancies: list[Discrepancy]
    summary: ReconciliationSummary
    note: str = REPORT_NOTE

    @property
    def balance_difference(self) -> Decimal:
        """Ledger balance minus statement balance."""
        return self.ledger_balance - self.statement_balance

    @property
    def exact_matches(self) -> int:
        return sum(1 for m in self.matches if m.match_type == MatchType.EXACT)

    @property
    def fuzzy_matches(self) -> int:
        return sum(1 for m in self.matches if m.match_type == MatchType.FUZZY)

    @property
    def unmatched_ledger(self) -> int:
        return sum(1 for m in self.matches if m.is_unmatched_ledger)

    @property
    def unmatched_statement(self) -> int:
        return sum(1 for m in self.matches if m.is_unmatched_statement)

    def discrepancies_of(self, discrepancy_type: DiscrepancyType) -> list[Discrepancy]:
        return [d for d in self.discrepancies if d.type == discrepancy_type]

    def to_dict(self) -> dict[str, Any]:
        """Machine-readable form of the report."""
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "statement_balance": float(self.statement_balance),
            "ledger_balance": float(self.ledger_balance),
            "balance_difference": float(self.balance_difference),
            "statement_date": self.statement_date.isoformat(),
            "reconciliation_date": self.reconciliation_date.isoformat(),
            "tolerance": float(self.tolerance),
            "total_ledger_transactions": self.total_ledger_transactions,
            "total_statement_transactions": self.total_statement_transactions,
            "exact_matches": self.exact_matches,
            "fuzzy_matches": self.fuzzy_matches,
            "unmatched_ledger": self.unmatched_ledger,
            "unmatched_statement": self.unmatched_statement,
            "matches": [m.to_dict() for m in self.matches],
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "summary": self.summary.to_dict(),
            "note": self.note,
        }
