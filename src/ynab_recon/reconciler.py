"""
Account reconciliation orchestrator.

Fetches the target account and its recent ledger transactions, normalizes
the statement, runs the matcher and assembles the report.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal, Optional
import logging

import pandas as pd
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .config import ReconConfig
from .ledger.client import YNABClient
from .matching.engine import TransactionMatcher
from .models.report import ReconciliationReport
from .models.transaction import ColumnHints, LedgerAccount
from .parsers.statement_parser import StatementNormalizer
from .reports.discrepancies import DiscrepancyAnalyzer
from .reports.formatter import ReportFormatter
from .utils.exceptions import (
    AccountNotFoundError,
    InvalidInputError,
    ReconciliationError,
    StatementParseError,
)

logger = logging.getLogger(__name__)


class ReconcileRequest(BaseModel):
    """Inputs of one reconciliation run."""

    budget_id: Optional[str] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    statement_data: str
    statement_balance: Decimal
    statement_date: date
    tolerance: Decimal = Field(default=Decimal("0.01"), ge=0)
    column_hints: ColumnHints = Field(default_factory=ColumnHints)
    response_format: Literal["json", "markdown"] = "markdown"
    lookback_months: Optional[int] = Field(default=None, ge=0)

    @field_validator("statement_data")
    @classmethod
    def statement_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("statement data is empty")
        return value

    @model_validator(mode="after")
    def account_given(self) -> "ReconcileRequest":
        if not self.account_id and not self.account_name:
            raise ValueError("either account_id or account_name is required")
        return self

    @classmethod
    def parse(cls, **data) -> "ReconcileRequest":
        """
        Validate request fields.

        Raises:
            InvalidInputError: If required fields are missing or invalid
        """
        try:
            return cls(**data)
        except ValidationError as e:
            missing = [
                ".".join(str(p) for p in err["loc"])
                for err in e.errors()
                if err["type"] == "missing"
            ]
            if missing:
                raise InvalidInputError(
                    f"Missing required parameters: {', '.join(missing)}"
                ) from e
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidInputError(f"Invalid request: {problems}") from e


@dataclass
class ToolResponse:
    """Labeled text result of a reconciliation run."""

    text: str
    is_error: bool = False


def find_account(
    accounts: list[LedgerAccount],
    account_id: Optional[str] = None,
    account_name: Optional[str] = None,
) -> LedgerAccount:
    """
    Pick the account to reconcile among open accounts.

    An id must match exactly. A name is matched case-insensitively, first as
    the whole name and then as a substring.

    Raises:
        AccountNotFoundError: If nothing matches
    """
    open_accounts = [a for a in accounts if not a.deleted and not a.closed]

    target = None
    if account_id:
        target = next((a for a in open_accounts if a.id == account_id), None)
    elif account_name:
        wanted = account_name.lower()
        target = next((a for a in open_accounts if a.name.lower() == wanted), None)
        if target is None:
            target = next((a for a in open_accounts if wanted in a.name.lower()), None)

    if target is None:
        raise AccountNotFoundError(
            "Account not found. Please provide a valid account id or account name. "
            "Use the accounts command to see available accounts."
        )
    return target


def lookback_start(statement_date: date, months: int) -> date:
    """First date of the ledger window, calendar months before the statement date."""
    return (pd.Timestamp(statement_date) - pd.DateOffset(months=months)).date()


class AccountReconciler:
    """Reconciles one ledger account against one bank statement."""

    def __init__(
        self,
        client: YNABClient,
        config: Optional[ReconConfig] = None,
        default_budget_id: Optional[str] = None,
    ):
        """
        Args:
            client: Open ledger client
            config: Application configuration
            default_budget_id: Budget used when the request names none
        """
        self.client = client
        self.config = config or ReconConfig()
        self.default_budget_id = default_budget_id
        self.normalizer = StatementNormalizer(self.config.statement)
        self.matcher = TransactionMatcher(self.config.matching)
        self.formatter = ReportFormatter(self.config.report)

    async def reconcile(self, request: ReconcileRequest) -> ReconciliationReport:
        """
        Run a reconciliation and return the full report.

        Raises:
            InvalidInputError: No budget id available
            AccountNotFoundError: Target account not found
            StatementParseError: Statement could not be normalized
            LedgerAPIError: Ledger API failure
        """
        budget_id = request.budget_id or self.default_budget_id
        if not budget_id:
            raise InvalidInputError(
                "No budget ID provided. Pass a budget id or set YNAB_BUDGET_ID."
            )

        accounts = await self.client.get_accounts(budget_id)
        account = find_account(accounts, request.account_id, request.account_name)
        logger.info(f"Reconciling account: {account.name} ({account.id})")

        normalized = self.normalizer.normalize(request.statement_data, request.column_hints)

        months = request.lookback_months
        if months is None:
            months = self.config.ledger.lookback_months
        since = lookback_start(request.statement_date, months)
        ledger_transactions = await self.client.get_account_transactions(
            budget_id, account.id, since
        )

        tolerance = request.tolerance
        matches = self.matcher.match(ledger_transactions, normalized.transactions, tolerance)

        analyzer = DiscrepancyAnalyzer(tolerance, self.config.report.currency_symbol)
        discrepancies = analyzer.analyze(matches)
        balance_difference = account.balance_value - request.statement_balance
        summary = analyzer.build_summary(matches, discrepancies, balance_difference)

        return ReconciliationReport(
            account_id=account.id,
            account_name=account.name,
            statement_balance=request.statement_balance,
            ledger_balance=account.balance_value,
            statement_date=request.statement_date,
            reconciliation_date=date.today(),
            tolerance=tolerance,
            total_ledger_transactions=len(ledger_transactions),
            total_statement_transactions=len(normalized.transactions),
            matches=matches,
            discrepancies=discrepancies,
            summary=summary,
        )

    async def run(self, request: ReconcileRequest) -> ToolResponse:
        """Reconcile and render, turning failures into an error response."""
        try:
            report = await self.reconcile(request)
        except StatementParseError as e:
            logger.warning(f"Statement normalization failed: {e}")
            return ToolResponse(f"Error reconciling account: {e.diagnostic()}", is_error=True)
        except ReconciliationError as e:
            logger.error(f"Reconciliation failed: {e}")
            return ToolResponse(f"Error reconciling account: {e}", is_error=True)

        return ToolResponse(self.formatter.render(report, request.response_format))
