"""
Base CSV Parser Module

Abstract base class for CSV exports (card programs, crypto cards). Handles
header mapping, required-column checks and status filtering; subclasses only
map one row to a transaction.
"""

import csv
import logging
import re
from abc import abstractmethod
from typing import Iterable

from .base import BaseParser, Currency, ParsedTransaction, ParserResult

logger = logging.getLogger(__name__)


class CSVRow:
    """One data row addressed by normalized header name."""

    def __init__(self, header: dict[str, int], cells: list[str], line: str, line_number: int):
        self.header = header
        self.cells = cells
        self.line = line
        self.line_number = line_number

    def get(self, name: str) -> str:
        """Cell value for column ``name``; empty string when absent."""
        index = self.header.get(name)
        if index is None:
            index = next((i for column, i in self.header.items() if name in column), None)
        if index is None or index >= len(self.cells):
            return ""
        return self.cells[index].strip()


class CSVStatementParser(BaseParser):
    """Abstract base class for provider CSV exports."""

    INPUT_TYPE = "csv"

    # Columns that must appear in the first line for can_parse
    DETECTION_HEADERS: tuple[str, ...] = ()
    # Columns without which no row can be mapped
    REQUIRED_HEADERS: tuple[str, ...] = ()
    STATUS_COLUMN = "status"
    DEFAULT_ACCEPTED_STATUSES = ("approved", "cleared")

    def __init__(
        self,
        accepted_statuses: Iterable[str] | None = None,
        supported_currencies: Iterable[Currency] | None = None,
        delimiter: str = ",",
    ):
        """Initialize the parser.

        Args:
            accepted_statuses: Settled statuses to import (case-insensitive)
            supported_currencies: Currencies kept as-is; others become the default
            delimiter: CSV delimiter
        """
        statuses = accepted_statuses if accepted_statuses is not None else self.DEFAULT_ACCEPTED_STATUSES
        self.accepted_statuses = frozenset(status.strip().lower() for status in statuses)
        self.supported_currencies = frozenset(supported_currencies or Currency)
        self.delimiter = delimiter

    @staticmethod
    def normalize_header(name: str) -> str:
        return re.sub(r"\s+", " ", name.strip().lower())

    def can_parse(self, content: str) -> bool:
        if not content:
            return False
        first_line = self._preprocess_content(content).lstrip("\n").split("\n", 1)[0].lower()
        return all(header in first_line for header in self.DETECTION_HEADERS)

    def _preprocess_content(self, content: str) -> str:
        """Strip BOM and normalize line endings."""
        if content.startswith("\ufeff"):
            content = content[1:]
        return content.replace("\r\n", "\n").replace("\r", "\n")

    def _split_row(self, line: str) -> list[str]:
        return next(csv.reader([line], delimiter=self.delimiter), [])

    def _parse(self, content: str, default_currency: Currency, result: ParserResult) -> None:
        lines = [line for line in self._preprocess_content(content).split("\n") if line.strip()]
        if len(lines) < 2:
            result.errors.append("No data rows found")
            return

        header_cells = self._split_row(lines[0])
        header = {self.normalize_header(name): index for index, name in enumerate(header_cells)}

        missing = [name for name in self.REQUIRED_HEADERS if not any(name in column for column in header)]
        if missing:
            result.errors.append(f"Missing required columns: {', '.join(missing)}")
            return

        skipped = 0
        for line_number, line in enumerate(lines[1:], start=2):
            cells = self._split_row(line)
            if len(cells) < len(header_cells):
                result.errors.append(
                    f"Line {line_number}: expected {len(header_cells)} fields, got {len(cells)}"
                )
                continue

            row = CSVRow(header, cells, line, line_number)
            if not self._is_settled(row):
                skipped += 1
                continue

            try:
                transaction = self._parse_row(row, default_currency, result.errors)
                if transaction:
                    result.transactions.append(transaction)
            except ValueError as e:
                result.errors.append(f"Line {line_number}: {e}")

        if skipped:
            logger.debug(f"{self.PROVIDER.value}: skipped {skipped} unsettled rows")

    def _is_settled(self, row: CSVRow) -> bool:
        status = row.get(self.STATUS_COLUMN).lower()
        return not status or status in self.accepted_statuses

    def _currency(self, code: str, default_currency: Currency) -> Currency:
        currency = Currency.coerce(code, default_currency)
        return currency if currency in self.supported_currencies else default_currency

    @abstractmethod
    def _parse_row(
        self, row: CSVRow, default_currency: Currency, errors: list[str]
    ) -> ParsedTransaction | None:
        """Map a settled row to a transaction.

        Raises:
            ValueError: When a field cannot be interpreted
        """
