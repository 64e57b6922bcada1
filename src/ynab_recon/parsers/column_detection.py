"""
Column type detection for schema-unknown bank statement exports.

Everything here is a pure function of a column's header and sample values,
so classification can be tested without running the row parser.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional
import re
import warnings

import pandas as pd

from ..config import StatementConfig
from ..models.transaction import ColumnDetection, ColumnType

# (pattern, field order) for the accepted fixed date layouts
DATE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), "ymd"),  # YYYY-MM-DD
    (re.compile(r"^(\d{2})/(\d{2})/(\d{4})$"), "mdy"),  # MM/DD/YYYY
    (re.compile(r"^(\d{2})-(\d{2})-(\d{4})$"), "mdy"),  # MM-DD-YYYY
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), "mdy"),  # M/D/YYYY
]

# Currency symbols, thousands separators and whitespace
_AMOUNT_NOISE = re.compile(r"[$€£¥,\s]")
_HAS_DIGIT = re.compile(r"\d")
_HAS_LETTER = re.compile(r"[a-zA-Z]")

SAMPLE_VALUES_KEPT = 3


def clean_amount(value: str) -> str:
    """
    Strip currency noise from an amount and normalize its sign.

    "($1,234.50)" -> "-1234.50", "−5.00" -> "-5.00"
    """
    cleaned = _AMOUNT_NOISE.sub("", value.replace("−", "-"))
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]
    return cleaned


def parse_amount(value: str) -> Optional[Decimal]:
    """Parse a statement amount, returning None if it is not a number."""
    cleaned = clean_amount(value)
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_date(value: str) -> Optional[date]:
    """
    Parse a statement date.

    Tries the fixed layouts first, then falls back to pandas' generic
    parser for anything that contains a digit and is not a bare number.
    """
    value = value.strip()
    if not value:
        return None

    for pattern, order in DATE_PATTERNS:
        match = pattern.match(value)
        if not match:
            continue
        first, second, third = (int(g) for g in match.groups())
        try:
            if order == "ymd":
                return date(first, second, third)
            return date(third, first, second)
        except ValueError:
            continue

    if not _HAS_DIGIT.search(value) or parse_amount(value) is not None:
        return None

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return None

    if pd.isna(parsed):
        return None
    return parsed.date()


def date_confidence(values: list[str]) -> float:
    """Fraction of values that parse as dates."""
    if not values:
        return 0.0
    return sum(1 for v in values if parse_date(v) is not None) / len(values)


def amount_confidence(values: list[str]) -> float:
    """Fraction of values that look like signed or decimal amounts."""
    if not values:
        return 0.0

    valid = 0
    for value in values:
        cleaned = clean_amount(value)
        if parse_amount(value) is not None and ("." in cleaned or "-" in cleaned):
            valid += 1
    return valid / len(values)


def description_confidence(values: list[str]) -> float:
    """Fraction of values that are longer than 5 characters and contain a letter."""
    if not values:
        return 0.0
    return sum(1 for v in values if len(v) > 5 and _HAS_LETTER.search(v)) / len(values)


def detect_column_type(
    column_name: str,
    sample_values: list[str],
    config: Optional[StatementConfig] = None,
) -> ColumnDetection:
    """
    Classify a statement column from its header and sample values.

    Args:
        column_name: Header text of the column
        sample_values: Non-empty values from the first data rows
        config: Keywords and thresholds (defaults if omitted)

    Returns:
        ColumnDetection with the inferred type and confidence
    """
    config = config or StatementConfig()
    name = column_name.lower()
    samples = sample_values[:SAMPLE_VALUES_KEPT]

    def detection(column_type: ColumnType, confidence: float) -> ColumnDetection:
        return ColumnDetection(column_name, column_type, confidence, list(samples))

    if any(k in name for k in config.date_keywords):
        confidence = date_confidence(sample_values)
        if confidence > config.named_threshold:
            return detection(ColumnType.DATE, confidence)

    if any(k in name for k in config.amount_keywords):
        confidence = amount_confidence(sample_values)
        if confidence > config.named_threshold:
            return detection(ColumnType.AMOUNT, confidence)

    if any(k in name for k in config.description_keywords):
        return detection(ColumnType.DESCRIPTION, description_confidence(sample_values))

    # No usable header signal, classify by content
    confidence = date_confidence(sample_values)
    if confidence > config.content_threshold:
        return detection(ColumnType.DATE, confidence)

    confidence = amount_confidence(sample_values)
    if confidence > config.content_threshold:
        return detection(ColumnType.AMOUNT, confidence)

    if sample_values:
        average_length = sum(len(v) for v in sample_values) / len(sample_values)
        if average_length > config.description_min_avg_length:
            return detection(ColumnType.DESCRIPTION, config.description_fallback_confidence)

    return detection(ColumnType.UNKNOWN, 0.0)
