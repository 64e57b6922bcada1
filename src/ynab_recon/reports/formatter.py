"""
Text renderers for reconciliation reports (JSON and markdown).
"""

from decimal import Decimal
from typing import Optional
import json

from ..config import ReportConfig
from ..models.report import DiscrepancyType, ReconciliationReport, ReconciliationStatus
from ..models.transaction import MatchType
from ..utils.currency import format_currency, truncate_response

STATUS_SYMBOLS = {
    ReconciliationStatus.BALANCED: "✅",
    ReconciliationStatus.NEEDS_REVIEW: "⚠️",
    ReconciliationStatus.UNBALANCED: "❌",
}

DISCREPANCY_SECTIONS = [
    (DiscrepancyType.MISSING_LEDGER, "Missing in Ledger (found in statement)"),
    (DiscrepancyType.MISSING_STATEMENT, "Missing in Statement (found in ledger)"),
    (DiscrepancyType.AMOUNT_MISMATCH, "Amount Mismatches"),
]


class ReportFormatter:
    """Renders a ReconciliationReport for machines (JSON) or people (markdown)."""

    def __init__(self, config: Optional[ReportConfig] = None):
        self.config = config or ReportConfig()

    def render(self, report: ReconciliationReport, response_format: str = "markdown") -> str:
        """
        Render a report and apply the character budget.

        Args:
            report: Report to render
            response_format: "json" or "markdown"

        Returns:
            Rendered text, truncated with a marker if over budget
        """
        if response_format == "json":
            text = self.to_json(report)
        else:
            text = self.to_markdown(report)

        text, _ = truncate_response(text, self.config.character_limit)
        return text

    def to_json(self, report: ReconciliationReport) -> str:
        return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)

    def _money(self, amount: Decimal) -> str:
        return format_currency(amount, self.config.currency_symbol)

    def _balance_symbol(self, report: ReconciliationReport) -> str:
        difference = abs(report.balance_difference)
        if difference == 0:
            return "✅"
        if difference <= report.tolerance:
            return "⚠️"
        return "❌"

    def to_markdown(self, report: ReconciliationReport) -> str:
        """Sectioned human-readable report."""
        summary = report.summary
        lines: list[str] = ["# Account Reconciliation Report", ""]

        lines += [
            "## Account Information",
            f"- **Account**: {report.account_name}",
            f"- **Statement Date**: {report.statement_date.isoformat()}",
            f"- **Reconciliation Date**: {report.reconciliation_date.isoformat()}",
            "",
        ]

        lines += [
            "## Balance Summary",
            f"- **Statement Balance**: {self._money(report.statement_balance)}",
            f"- **Ledger Balance**: {self._money(report.ledger_balance)}",
            f"- **Balance Difference**: {self._money(report.balance_difference)} "
            f"{self._balance_symbol(report)}",
            "",
        ]

        lines += [
            "## Transaction Matching",
            f"- **Total Ledger Transactions**: {report.total_ledger_transactions}",
            f"- **Total Statement Transactions**: {report.total_statement_transactions}",
            f"- **Exact Matches**: {report.exact_matches} ✓",
            f"- **Fuzzy Matches**: {report.fuzzy_matches} ~",
            f"- **Unmatched Ledger**: {report.unmatched_ledger} ⚠️",
            f"- **Unmatched Statement**: {report.unmatched_statement} ⚠️",
            "",
        ]

        lines += [
            "## Reconciliation Status",
            f"- **Status**: {summary.status.value.upper()} {STATUS_SYMBOLS[summary.status]}",
            f"- **Confidence Score**: {summary.confidence_score * 100:.1f}%",
            f"- **Total Discrepancies**: {summary.total_discrepancies}",
            f"- **Largest Discrepancy**: {self._money(summary.largest_discrepancy)}",
            "",
        ]

        if summary.recommendations:
            lines += ["## Recommendations", ""]
            lines += [f"- {r}" for r in summary.recommendations]
            lines.append("")

        if report.discrepancies:
            lines += ["## Discrepancies", ""]
            for discrepancy_type, title in DISCREPANCY_SECTIONS:
                group = report.discrepancies_of(discrepancy_type)
                if not group:
                    continue
                lines += [f"### {title}", ""]
                lines += [f"- {d.description}" for d in group]
                lines.append("")

        sample_size = self.config.sample_matches
        exact = [m for m in report.matches if m.match_type == MatchType.EXACT][:sample_size]
        if exact:
            lines += [
                "## Matched Transactions (Sample)",
                "",
                f"### Exact Matches (showing first {sample_size})",
                "",
            ]
            for match in exact:
                ledger = match.ledger_transaction
                lines.append(
                    f"- **{ledger.payee_name or 'Unknown'}** - "
                    f"{self._money(ledger.amount_value)} on {ledger.date.isoformat()}"
                )
            lines.append("")

        lines += ["## Note", report.note, ""]

        return "\n".join(lines)
