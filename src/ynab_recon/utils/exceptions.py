"""Custom exceptions for the reconciliation application."""

from typing import Optional

# Row errors shown in a normalization diagnostic before the overflow line
MAX_DIAGNOSTIC_ERRORS = 5


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class InvalidInputError(ReconciliationError):
    """Missing or invalid reconciliation request fields."""

    pass


class AccountNotFoundError(ReconciliationError):
    """No ledger account matches the requested id or name."""

    pass


class StatementParseError(ReconciliationError):
    """
    Bank statement could not be normalized.

    Carries the per-column detection report and the row errors so the
    caller can retry with column hints.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[list[str]] = None,
        column_analysis: Optional[list] = None,
    ):
        super().__init__(message)
        self.errors = list(errors or [])
        self.column_analysis = list(column_analysis or [])

    def diagnostic(self) -> str:
        """Render a human-readable message with the hint template."""
        text = "Unable to automatically parse bank statement CSV.\n\n"

        if self.column_analysis:
            text += "Detected structure:\n"
            for detection in self.column_analysis:
                if detection.confidence > 0:
                    label = (
                        f" ({detection.type.value.upper()} - confidence "
                        f"{round(detection.confidence * 100)}%)"
                    )
                else:
                    label = " (unknown type)"
                text += f'- Column: "{detection.column_name}"{label}\n'
            text += "\n"

        errors = [str(self)] + self.errors
        text += "Parse errors:\n"
        for err in errors[:MAX_DIAGNOSTIC_ERRORS]:
            text += f"- {err}\n"
        if len(errors) > MAX_DIAGNOSTIC_ERRORS:
            text += f"- ... and {len(errors) - MAX_DIAGNOSTIC_ERRORS} more errors\n"
        text += "\n"

        text += "Please provide column hints:\n"
        text += "{\n"
        text += '  "columnHints": {\n'
        text += '    "dateColumn": "<name of date column>",\n'
        text += '    "descriptionColumn": "<name of description column>",\n'
        text += '    "amountColumn": "<name of amount column>"\n'
        text += "  }\n"
        text += "}\n"

        return text


class MalformedStatementError(StatementParseError):
    """Statement has too few lines or columns to be a transaction export."""

    pass


class ColumnResolutionError(StatementParseError):
    """Date, description or amount column could not be identified."""

    pass


class LowParseYieldError(StatementParseError):
    """Too many statement rows were rejected."""

    pass


class LedgerAPIError(ReconciliationError):
    """Error returned by the ledger API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LedgerAuthError(LedgerAPIError):
    """Ledger API rejected the access token."""

    pass


class UpstreamUnavailableError(LedgerAPIError):
    """Ledger API still failing after the retry budget was spent."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating a report."""

    pass
