"""Data models for statement and ledger transactions and their matches."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ..utils.currency import milliunits_to_amount


class ColumnType(Enum):
    """Inferred role of a statement column."""

    DATE = "date"
    AMOUNT = "amount"
    DESCRIPTION = "description"
    UNKNOWN = "unknown"


class MatchType(Enum):
    """How a ledger/statement pair was (or was not) matched."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class StatementTransaction:
    """
    A transaction parsed out of a bank statement export.

    Identity is the position in the list the normalizer returned; two rows
    with the same values are still two transactions.
    """

    date: date
    description: str

    # Signed amount in currency units, positive = credit
    amount: Decimal

    # Original statement line for diagnostics
    raw_line: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": float(self.amount),
            "raw_line": self.raw_line,
        }


@dataclass
class ColumnDetection:
    """Result of classifying one statement column."""

    column_name: str
    type: ColumnType
    confidence: float
    sample_values: list[str] = field(default_factory=list)


@dataclass
class ColumnHints:
    """Caller-supplied header names for the three required columns."""

    date_column: Optional[str] = None
    description_column: Optional[str] = None
    amount_column: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.date_column or self.description_column or self.amount_column)


@dataclass(frozen=True)
class LedgerTransaction:
    """A transaction owned by the budgeting ledger. Read-only for the matcher."""

    id: str
    date: date

    # Signed amount in milliunits (-5000 == -$5.00)
    amount: int

    payee_name: str = ""
    memo: str = ""
    deleted: bool = False

    @property
    def amount_value(self) -> Decimal:
        """Amount in currency units."""
        return milliunits_to_amount(self.amount)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LedgerTransaction":
        """Build from a YNAB API transaction payload."""
        return cls(
            id=data["id"],
            date=date.fromisoformat(data["date"]),
            amount=int(data["amount"]),
            payee_name=data.get("payee_name") or "",
            memo=data.get("memo") or "",
            deleted=bool(data.get("deleted", False)),
        )


@dataclass(frozen=True)
class LedgerAccount:
    """A ledger account with its current balance."""

    id: str
    name: str

    # Balance in milliunits
    balance: int
    type: str = ""
    on_budget: bool = True
    closed: bool = False
    deleted: bool = False

    @property
    def balance_value(self) -> Decimal:
        return milliunits_to_amount(self.balance)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LedgerAccount":
        """Build from a YNAB API account payload."""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            balance=int(data.get("balance", 0)),
            type=data.get("type") or "",
            on_budget=bool(data.get("on_budget", True)),
            closed=bool(data.get("closed", False)),
            deleted=bool(data.get("deleted", False)),
        )


@dataclass
class TransactionMatch:
    """
    One entry of the matcher's output partition.

    Matched entries carry both sides; unmatched entries carry exactly one.
    """

    match_type: MatchType
    confidence: float
    ledger_transaction: Optional[LedgerTransaction] = None
    statement_transaction: Optional[StatementTransaction] = None

    # Absolute amount difference, set on fuzzy matches
    discrepancy: Optional[Decimal] = None

    # Name of the matching pass that produced this entry
    match_tier: Optional[str] = None

    @property
    def is_matched(self) -> bool:
        return self.match_type != MatchType.UNMATCHED

    @property
    def is_unmatched_ledger(self) -> bool:
        return self.match_type == MatchType.UNMATCHED and self.ledger_transaction is not None

    @property
    def is_unmatched_statement(self) -> bool:
        return self.match_type == MatchType.UNMATCHED and self.ledger_transaction is None

    @property
    def ledger_transaction_id(self) -> Optional[str]:
        return self.ledger_transaction.id if self.ledger_transaction else None

    def to_dict(self) -> dict[str, Any]:
        ledger = self.ledger_transaction
        statement = self.statement_transaction
        result: dict[str, Any] = {
            "ledger_transaction_id": ledger.id if ledger else None,
            "ledger_date": ledger.date.isoformat() if ledger else None,
            "ledger_amount": float(ledger.amount_value) if ledger else None,
            "ledger_payee": (ledger.payee_name or "Unknown") if ledger else None,
            "ledger_memo": ledger.memo if ledger else None,
            "statement_date": statement.date.isoformat() if statement else None,
            "statement_amount": float(statement.amount) if statement else None,
            "statement_description": statement.description if statement else None,
            "match_type": self.match_type.value,
            "match_tier": self.match_tier,
            "confidence": round(self.confidence, 4),
        }
        if self.discrepancy is not None:
            result["discrepancy"] = float(self.discrepancy)
        return result
