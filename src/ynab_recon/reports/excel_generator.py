"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models.report import DiscrepancyType, ReconciliationReport
from ..models.transaction import MatchType, TransactionMatch
from ..utils.currency import format_currency
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
VARIANCE_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

SHEET_NAMES = [
    "Summary",
    "Matched",
    "Missing in Ledger",
    "Missing in Statement",
    "Discrepancies",
]


class ExcelReportGenerator:
    """Writes a ReconciliationReport to a multi-sheet workbook."""

    def __init__(self, currency_symbol: str = "$"):
        self.currency_symbol = currency_symbol

    def generate_report(self, report: ReconciliationReport, output_path: Path) -> Path:
        """
        Generate the complete reconciliation workbook.

        Args:
            report: Reconciliation report
            output_path: Path for output file

        Returns:
            Path to generated workbook

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        self._create_summary_sheet(wb, report)
        self._create_matched_sheet(wb, [m for m in report.matches if m.is_matched])
        self._create_missing_ledger_sheet(
            wb, [m for m in report.matches if m.is_unmatched_statement]
        )
        self._create_missing_statement_sheet(
            wb, [m for m in report.matches if m.is_unmatched_ledger]
        )
        self._create_discrepancy_sheet(wb, report)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Could not write {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _money(self, amount) -> str:
        return format_currency(amount, self.currency_symbol)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _create_summary_sheet(self, wb: Workbook, report: ReconciliationReport) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(SHEET_NAMES[0])
        summary = report.summary

        # Title
        ws["A1"] = "Account Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        ws["A3"] = "Account Information"
        ws["A3"].font = Font(bold=True)

        account_info = [
            ("Account:", report.account_name),
            ("Account ID:", report.account_id),
            ("Statement Date:", report.statement_date.isoformat()),
            ("Reconciliation Date:", report.reconciliation_date.isoformat()),
            ("Generated At:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
        ]

        row = 4
        for label, value in account_info:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = str(value)
            row += 1

        row += 1
        ws[f"A{row}"] = "Balances"
        ws[f"A{row}"].font = Font(bold=True)
        row += 1

        balance_data = [
            ("Statement Balance:", self._money(report.statement_balance)),
            ("Ledger Balance:", self._money(report.ledger_balance)),
            ("Balance Difference:", self._money(report.balance_difference)),
            ("Tolerance:", self._money(report.tolerance)),
        ]

        for label, value in balance_data:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            row += 1

        row += 1
        ws[f"A{row}"] = "Transaction Counts"
        ws[f"A{row}"].font = Font(bold=True)
        row += 1

        count_data = [
            ("Total Ledger Transactions:", report.total_ledger_transactions),
            ("Total Statement Transactions:", report.total_statement_transactions),
            ("Exact Matches:", report.exact_matches),
            ("Fuzzy Matches:", report.fuzzy_matches),
            ("Unmatched Ledger:", report.unmatched_ledger),
            ("Unmatched Statement:", report.unmatched_statement),
        ]

        for label, value in count_data:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            row += 1

        row += 1
        ws[f"A{row}"] = "Verdict"
        ws[f"A{row}"].font = Font(bold=True)
        row += 1

        verdict_data = [
            ("Status:", summary.status.value.upper()),
            ("Confidence Score:", f"{summary.confidence_score * 100:.1f}%"),
            ("Total Discrepancies:", summary.total_discrepancies),
            ("Largest Discrepancy:", self._money(summary.largest_discrepancy)),
        ]

        for label, value in verdict_data:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            row += 1

        if summary.recommendations:
            row += 1
            ws[f"A{row}"] = "Recommendations"
            ws[f"A{row}"].font = Font(bold=True)
            row += 1
            for recommendation in summary.recommendations:
                ws[f"A{row}"] = recommendation
                row += 1

        # Adjust column widths
        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_matched_sheet(self, wb: Workbook, matches: list[TransactionMatch]) -> None:
        """Create the matched pairs sheet."""
        ws = wb.create_sheet(SHEET_NAMES[1])

        self._write_headers(
            ws,
            [
                "Ledger Date",
                "Ledger Payee",
                "Ledger Amount",
                "Statement Date",
                "Statement Description",
                "Statement Amount",
                "Match Type",
                "Match Pass",
                "Confidence",
                "Amount Difference",
                "Ledger ID",
            ],
        )

        for row_num, match in enumerate(matches, start=2):
            ledger = match.ledger_transaction
            stmt = match.statement_transaction

            row_data = [
                ledger.date,
                ledger.payee_name or "Unknown",
                float(ledger.amount_value),
                stmt.date,
                stmt.description,
                float(stmt.amount),
                match.match_type.value,
                match.match_tier or "",
                f"{match.confidence:.2f}",
                float(match.discrepancy) if match.discrepancy else "",
                ledger.id,
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER

                # Highlight amount differences
                if match.discrepancy and col == 10:
                    cell.fill = VARIANCE_FILL
                elif match.match_type == MatchType.EXACT:
                    cell.fill = MATCH_FILL

        self._auto_fit_columns(ws)

    def _create_missing_ledger_sheet(
        self, wb: Workbook, unmatched: list[TransactionMatch]
    ) -> None:
        """Statement rows with no ledger counterpart."""
        ws = wb.create_sheet(SHEET_NAMES[2])
        self._write_headers(ws, ["Date", "Description", "Amount", "Raw Line"])

        for row_num, match in enumerate(unmatched, start=2):
            stmt = match.statement_transaction
            row_data = [stmt.date, stmt.description, float(stmt.amount), stmt.raw_line]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = UNMATCHED_FILL

        self._auto_fit_columns(ws)

    def _create_missing_statement_sheet(
        self, wb: Workbook, unmatched: list[TransactionMatch]
    ) -> None:
        """Ledger transactions with no statement counterpart."""
        ws = wb.create_sheet(SHEET_NAMES[3])
        self._write_headers(ws, ["Date", "Payee", "Amount", "Memo", "Ledger ID"])

        for row_num, match in enumerate(unmatched, start=2):
            ledger = match.ledger_transaction
            row_data = [
                ledger.date,
                ledger.payee_name or "Unknown",
                float(ledger.amount_value),
                ledger.memo,
                ledger.id,
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = UNMATCHED_FILL

        self._auto_fit_columns(ws)

    def _create_discrepancy_sheet(self, wb: Workbook, report: ReconciliationReport) -> None:
        """Create the discrepancies sheet."""
        ws = wb.create_sheet(SHEET_NAMES[4])
        self._write_headers(ws, ["Type", "Description", "Amount", "Transaction ID"])

        for row_num, discrepancy in enumerate(report.discrepancies, start=2):
            row_data = [
                discrepancy.type.value,
                discrepancy.description,
                float(discrepancy.amount) if discrepancy.amount is not None else "",
                discrepancy.transaction_id or "",
            ]

            fill = (
                VARIANCE_FILL
                if discrepancy.type == DiscrepancyType.AMOUNT_MISMATCH
                else UNMATCHED_FILL
            )
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = fill

        self._auto_fit_columns(ws)

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            adjusted_width = min(max_length + 2, 50)
            ws.column_dimensions[column].width = adjusted_width
