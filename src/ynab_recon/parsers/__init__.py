"""Parsers for bank statement exports."""

from .column_detection import detect_column_type, parse_amount, parse_date
from .statement_parser import NormalizationResult, StatementNormalizer, tokenize_line

__all__ = [
    "NormalizationResult",
    "StatementNormalizer",
    "detect_column_type",
    "parse_amount",
    "parse_date",
    "tokenize_line",
]
