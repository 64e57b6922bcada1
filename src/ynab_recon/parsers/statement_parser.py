"""
Bank statement normalizer.
Turns an arbitrary delimited statement export into StatementTransactions.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

from ..config import StatementConfig
from ..models.transaction import (
    ColumnDetection,
    ColumnHints,
    ColumnType,
    StatementTransaction,
)
from ..utils.exceptions import (
    ColumnResolutionError,
    LowParseYieldError,
    MalformedStatementError,
)
from .column_detection import detect_column_type, parse_amount, parse_date

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = [",", ";", "\t", "|"]

REQUIRED_COLUMNS = [ColumnType.DATE, ColumnType.DESCRIPTION, ColumnType.AMOUNT]


def tokenize_line(line: str, delimiter: str = ",") -> list[str]:
    """
    Split a delimited line into stripped fields.

    A double quote toggles the in-quotes state; delimiters inside quotes
    are kept as text. Quote characters themselves are dropped.
    """
    parts: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    parts.append("".join(current).strip())
    return parts


def detect_delimiter(header_line: str) -> str:
    """Pick the candidate delimiter that occurs most often outside quotes."""
    counts = {d: 0 for d in CANDIDATE_DELIMITERS}
    in_quotes = False
    for char in header_line:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and char in counts:
            counts[char] += 1

    best = max(CANDIDATE_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > 0 else ","


@dataclass
class NormalizationResult:
    """Accepted statement rows plus the diagnostics gathered on the way."""

    transactions: list[StatementTransaction]
    column_analysis: list[ColumnDetection]
    column_indexes: dict[ColumnType, int]
    total_rows: int
    errors: list[str] = field(default_factory=list)

    @property
    def parsed_rows(self) -> int:
        return len(self.transactions)

    @property
    def success_rate(self) -> float:
        if self.total_rows == 0:
            return 0.0
        return self.parsed_rows / self.total_rows


class StatementNormalizer:
    """
    Normalizer for schema-unknown bank statement exports.

    Infers which columns hold the date, description and amount (or takes
    them from caller hints) and parses each data row.
    """

    def __init__(self, config: Optional[StatementConfig] = None):
        """
        Initialize the normalizer.

        Args:
            config: Statement parsing configuration
        """
        self.config = config or StatementConfig()

    def parse_file(
        self, file_path: Path, hints: Optional[ColumnHints] = None
    ) -> NormalizationResult:
        """Read a statement export from disk and normalize it."""
        logger.info(f"Parsing statement file: {file_path}")
        return self.normalize(self.read_statement(file_path), hints)

    def read_statement(self, file_path: Path) -> str:
        """
        Read statement text using the configured encoding.

        Raises:
            MalformedStatementError: If the file is not valid in that encoding
        """
        encoding = self.config.encoding
        try:
            return file_path.read_text(encoding=encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise MalformedStatementError(
                f"Could not decode {file_path} as {encoding}: {e}. "
                "Set statement.encoding in the config file (e.g. cp1252)"
            ) from e

    def normalize(
        self, text: str, hints: Optional[ColumnHints] = None
    ) -> NormalizationResult:
        """
        Normalize raw statement text.

        Args:
            text: Delimited statement text with a header row
            hints: Optional header names for the required columns

        Returns:
            NormalizationResult with accepted transactions and row errors

        Raises:
            MalformedStatementError: Fewer than 2 lines or 3 header fields
            ColumnResolutionError: A required column could not be identified
            LowParseYieldError: Fewer than the configured share of rows parsed
        """
        lines = text.strip().splitlines()
        if len(lines) < 2:
            raise MalformedStatementError(
                "CSV must have at least a header row and one data row"
            )

        delimiter = self.config.delimiter or detect_delimiter(lines[0])
        headers = tokenize_line(lines[0], delimiter)
        if len(headers) < 3:
            raise MalformedStatementError("CSV must have at least 3 columns")

        # (line number, text) with the header as line 1
        data_lines = [
            (number, line.strip())
            for number, line in enumerate(lines[1:], start=2)
            if line.strip()
        ]

        analysis = self.analyze_columns(headers, [line for _, line in data_lines], delimiter)
        indexes = self.resolve_columns(headers, analysis, hints)

        transactions: list[StatementTransaction] = []
        errors: list[str] = []
        for number, line in data_lines:
            txn = self._parse_row(line, number, indexes, delimiter, errors)
            if txn:
                transactions.append(txn)

        result = NormalizationResult(
            transactions=transactions,
            column_analysis=analysis,
            column_indexes=indexes,
            total_rows=len(data_lines),
            errors=errors,
        )

        logger.info(
            f"Parsed {result.parsed_rows}/{result.total_rows} statement rows "
            f"({result.success_rate:.1%})"
        )

        if result.success_rate < self.config.min_success_rate:
            raise LowParseYieldError(
                f"Only {result.success_rate * 100:.1f}% of rows parsed successfully "
                f"({result.parsed_rows}/{result.total_rows})",
                errors=errors,
                column_analysis=analysis,
            )

        return result

    def analyze_columns(
        self, headers: list[str], data_lines: list[str], delimiter: str = ","
    ) -> list[ColumnDetection]:
        """
        Classify every column from the first sample rows.

        Args:
            headers: Header fields
            data_lines: Data rows (unparsed)
            delimiter: Field delimiter

        Returns:
            One ColumnDetection per header, in header order
        """
        sample_rows = [
            tokenize_line(line, delimiter) for line in data_lines[: self.config.sample_rows]
        ]

        analysis: list[ColumnDetection] = []
        for i, column_name in enumerate(headers):
            values = [row[i] for row in sample_rows if i < len(row) and row[i]]
            detection = detect_column_type(column_name, values, self.config)
            logger.debug(
                f"Column {column_name!r}: {detection.type.value} "
                f"(confidence {detection.confidence:.2f})"
            )
            analysis.append(detection)

        return analysis

    def resolve_columns(
        self,
        headers: list[str],
        analysis: list[ColumnDetection],
        hints: Optional[ColumnHints] = None,
    ) -> dict[ColumnType, int]:
        """
        Decide which column holds each required field.

        Hinted fields use the first header containing the hint
        (case-insensitive). Other fields use the most confident detection
        above the selection threshold, leftmost on ties.

        Raises:
            ColumnResolutionError: If any required field is unresolved
        """
        if hints and not hints.is_empty():
            logger.info(f"Using column hints: {hints}")

        hint_values = {
            ColumnType.DATE: hints.date_column if hints else None,
            ColumnType.DESCRIPTION: hints.description_column if hints else None,
            ColumnType.AMOUNT: hints.amount_column if hints else None,
        }

        indexes: dict[ColumnType, int] = {}
        problems: list[str] = []

        for column_type in REQUIRED_COLUMNS:
            hint = hint_values[column_type]
            if hint:
                index = next(
                    (i for i, h in enumerate(headers) if hint.lower() in h.lower()), None
                )
                if index is None:
                    problems.append(
                        f"Column hint {hint!r} for {column_type.value} matches no header"
                    )
                    continue
            else:
                index = self._best_detection(analysis, column_type)
                if index is None:
                    problems.append(f"No {column_type.value} column detected")
                    continue
            indexes[column_type] = index

        if problems:
            raise ColumnResolutionError(
                "Could not identify required columns (date, description, amount)",
                errors=problems,
                column_analysis=analysis,
            )

        return indexes

    def _best_detection(
        self, analysis: list[ColumnDetection], column_type: ColumnType
    ) -> Optional[int]:
        best_index: Optional[int] = None
        best_confidence = self.config.selection_threshold
        for i, detection in enumerate(analysis):
            if detection.type == column_type and detection.confidence > best_confidence:
                best_index = i
                best_confidence = detection.confidence
        return best_index

    def _parse_row(
        self,
        line: str,
        number: int,
        indexes: dict[ColumnType, int],
        delimiter: str,
        errors: list[str],
    ) -> Optional[StatementTransaction]:
        """Parse one data row, recording a row error on rejection."""
        parts = tokenize_line(line, delimiter)

        if len(parts) <= max(indexes.values()):
            errors.append(f"Row {number}: Insufficient columns")
            logger.debug(f"Row {number}: insufficient columns, skipping")
            return None

        raw_date = parts[indexes[ColumnType.DATE]]
        description = parts[indexes[ColumnType.DESCRIPTION]]
        raw_amount = parts[indexes[ColumnType.AMOUNT]]

        txn_date = parse_date(raw_date)
        amount = parse_amount(raw_amount)

        if txn_date is None or amount is None or not description:
            errors.append(
                f"Row {number}: Invalid data - date: {raw_date!r}, "
                f"amount: {raw_amount!r}, description: {description!r}"
            )
            logger.debug(f"Row {number}: invalid data, skipping")
            return None

        return StatementTransaction(
            date=txn_date,
            description=description,
            amount=amount,
            raw_line=line,
        )
