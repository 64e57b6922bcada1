"""Utility modules."""

from .currency import (
    CHARACTER_LIMIT,
    format_currency,
    milliunits_to_amount,
    truncate_response,
)
from .exceptions import (
    ReconciliationError,
    InvalidInputError,
    AccountNotFoundError,
    StatementParseError,
    MalformedStatementError,
    ColumnResolutionError,
    LowParseYieldError,
    LedgerAPIError,
    LedgerAuthError,
    UpstreamUnavailableError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import configure_logging, setup_logging

__all__ = [
    "CHARACTER_LIMIT",
    "format_currency",
    "milliunits_to_amount",
    "truncate_response",
    "ReconciliationError",
    "InvalidInputError",
    "AccountNotFoundError",
    "StatementParseError",
    "MalformedStatementError",
    "ColumnResolutionError",
    "LowParseYieldError",
    "LedgerAPIError",
    "LedgerAuthError",
    "UpstreamUnavailableError",
    "ConfigurationError",
    "ReportGenerationError",
    "configure_logging",
    "setup_logging",
]
