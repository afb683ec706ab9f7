"""
Base PDF Statement Parser Module

Template for statements whose transactions sit in a positioned table. A
provider subclass supplies the header detection, section markers, how a row's
items fill a RawTransaction, and how a RawTransaction becomes a canonical
transaction; this class drives pages, rows and the section state machine.
"""

import logging
import re
from abc import abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Sequence

from ...primitives import StatementPeriod, parse_signed_amount
from ..base import BaseParser, Currency, ParsedTransaction, ParserResult, RawTransaction
from .geometry import ColumnLayout, PageRows, Row, TextItem, group_rows, read_pdf_pages, row_text

logger = logging.getLogger(__name__)


class SectionState(Enum):
    """Where the row cursor is relative to the transaction table."""

    BEFORE = "before"
    INSIDE = "inside"
    AFTER = "after"


class PdfStatementParser(BaseParser):
    """Abstract base class for geometric PDF statement parsers."""

    INPUT_TYPE = "pdf"

    DATE_COLUMN = "date"
    DATE_TOKEN_RE: re.Pattern = re.compile(r"^\d{2}/\d{2}/\d{4}$")

    SECTION_START: tuple[str, ...] = ()
    SECTION_END: tuple[str, ...] = ()
    SECTION_RESUME: tuple[str, ...] = ()

    # Layout used when a page has no header and no earlier page had one
    FALLBACK_LAYOUT: ColumnLayout | None = None

    REQUIRES_PERIOD = False
    PERIOD_ERROR = "Could not determine statement period"

    def can_parse(self, content) -> bool:
        if isinstance(content, str):
            return False
        return bytes(content[:1024]).lstrip().startswith(b"%PDF-")

    def _parse(self, content: bytes, default_currency: Currency, result: ParserResult) -> None:
        try:
            pages, page_errors = read_pdf_pages(content)
        except Exception as e:
            logger.error(f"{self.PROVIDER.value}: could not read PDF: {e}")
            result.errors.append(f"PDF parsing error: {e}")
            return

        parsed = self.parse_pages(pages, default_currency)
        result.errors.extend(page_errors)
        result.errors.extend(parsed.errors)
        result.transactions.extend(parsed.transactions)

    def parse_pages(
        self, pages: Sequence[Sequence[TextItem]], default_currency: Currency = Currency.EUR
    ) -> ParserResult:
        """Parse already-extracted page items.

        Args:
            pages: Text items of each page, in page order
            default_currency: Currency for providers whose statements do not state one

        Returns:
            ParserResult; a missing statement period rejects the whole document
        """
        result = ParserResult()
        pages = [self.prepare_items(items) for items in pages]

        period = self.find_statement_period(pages)
        if period is None and self.REQUIRES_PERIOD:
            logger.warning(f"{self.PROVIDER.value}: {self.PERIOD_ERROR}")
            result.errors.append(self.PERIOD_ERROR)
            return result

        state = SectionState.BEFORE
        last_layout: ColumnLayout | None = None

        for number, items in enumerate(pages, start=1):
            if not items:
                continue

            layout = self.find_layout(items)
            if layout is not None:
                last_layout = layout
            else:
                layout = last_layout or self.FALLBACK_LAYOUT
            if layout is None:
                result.errors.append(f"Could not find column headers on page {number}")
                continue

            raws, state = self.extract_transactions(group_rows(items), layout, state)
            logger.debug(f"{self.PROVIDER.value}: page {number}: {len(raws)} rows, section {state.value}")

            for raw in raws:
                transaction = self.build_transaction(raw, period, default_currency, result.errors)
                if transaction:
                    result.transactions.append(transaction)

        if not result.transactions and not result.errors:
            result.errors.append("No transactions found")
        return result

    def extract_transactions(
        self, rows: PageRows, layout: ColumnLayout, state: SectionState
    ) -> tuple[list[RawTransaction], SectionState]:
        """Walk the rows of one page and assemble raw transactions."""
        finished: list[RawTransaction] = []
        current: RawTransaction | None = None

        for row in rows:
            text = row_text(row)

            next_state = self.advance_section(text, state)
            if next_state is not None:
                if next_state is SectionState.AFTER and current is not None:
                    finished.append(current)
                    current = None
                state = next_state
                continue

            if state is not SectionState.INSIDE or self.is_noise_row(text, row):
                continue

            date_item = self.find_date_item(row, layout)
            if date_item is not None:
                if current is not None:
                    finished.append(current)
                current = RawTransaction(date=date_item.stripped, original_lines=[text])
                self.fill_row(current, row, layout, date_item)
            elif current is not None:
                current = self.continue_row(current, row, layout, finished)
                current.original_lines.append(text)

        if current is not None:
            finished.append(current)
        return finished, state

    def advance_section(self, text: str, state: SectionState) -> SectionState | None:
        """New section state when ``text`` is a section marker, else None."""
        if any(marker in text for marker in self.SECTION_START):
            return SectionState.INSIDE
        if any(marker in text for marker in self.SECTION_END):
            return SectionState.AFTER
        if any(marker in text for marker in self.SECTION_RESUME):
            return SectionState.INSIDE
        return None

    def find_date_item(self, row: Row, layout: ColumnLayout) -> TextItem | None:
        return next(
            (
                item for item in row
                if layout.contains(self.DATE_COLUMN, item.x) and self.DATE_TOKEN_RE.match(item.stripped)
            ),
            None,
        )

    def continue_row(
        self,
        current: RawTransaction,
        row: Row,
        layout: ColumnLayout,
        finished: list[RawTransaction],
    ) -> RawTransaction:
        """Apply a row without a date; returns the transaction that stays open."""
        self.fill_row(current, row, layout, None)
        return current

    def prepare_items(self, items: Sequence[TextItem]) -> tuple[TextItem, ...]:
        return tuple(items)

    def find_statement_period(self, pages: Sequence[Sequence[TextItem]]) -> StatementPeriod | None:
        return None

    @staticmethod
    def amount_of(text: str) -> Decimal | None:
        return parse_signed_amount(text)

    @abstractmethod
    def find_layout(self, items: Sequence[TextItem]) -> ColumnLayout | None:
        """Column layout from this page's header row, or None."""

    @abstractmethod
    def is_noise_row(self, text: str, row: Row) -> bool:
        """True for header repeats, account lines and other non-transaction rows."""

    @abstractmethod
    def fill_row(
        self, raw: RawTransaction, row: Row, layout: ColumnLayout, date_item: TextItem | None
    ) -> None:
        """Distribute a row's items over ``raw``'s fields by column."""

    @abstractmethod
    def build_transaction(
        self,
        raw: RawTransaction,
        period: StatementPeriod | None,
        default_currency: Currency,
        errors: list[str],
    ) -> ParsedTransaction | None:
        """Canonical transaction from an assembled row group."""
