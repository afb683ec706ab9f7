"""
BPI PDF Statement Parser

Banco BPI account statements (Portuguese). The movements table has the
columns DATA (MOV / VAL sub-headers), DESCRIÇÃO, VALOR and SALDO; dates are
printed as DD/MM and placed in a year with the statement period. Amounts are
signed: negative values are debits.
"""

import logging
import re
from datetime import date, timedelta
from typing import Sequence

from ...merchant import extract_merchant_name
from ...primitives import StatementPeriod
from ...transaction_factory import create_transaction
from ..base import BankProvider, Currency, ParsedTransaction, RawTransaction
from .base import PdfStatementParser
from .geometry import ColumnLayout, ColumnRange, Row, TextItem, find_header_row, page_text

logger = logging.getLogger(__name__)


# Sub-headers (MOV / VAL) sit at most this far below the DATA header
SUBHEADER_Y_DISTANCE = 25

SHORT_DATE_RE = re.compile(r"^(\d{2})/(\d{2})$")


class BPIParser(PdfStatementParser):
    """Parser for BPI PDF statements."""

    PROVIDER = BankProvider.BPI

    DATE_TOKEN_RE = SHORT_DATE_RE
    SECTION_START = ("SALDO ANTERIOR",)
    SECTION_END = ("SALDO ACTUAL", "TOTAL DEP")

    REQUIRES_PERIOD = True
    PERIOD_ERROR = "Could not determine statement period (Período De ... a ...)"

    PERIOD_RE = re.compile(
        r"(?:Per[ií]odo\s+)?De\s+(\d{2})/(\d{2})/(\d{4})\s+a\s+(\d{2})/(\d{2})/(\d{4})",
        re.IGNORECASE,
    )
    STATEMENT_MONTH_RE = re.compile(r"Extracto\s+(\d{2})/(\d{4})", re.IGNORECASE)

    def find_statement_period(self, pages: Sequence[Sequence[TextItem]]) -> StatementPeriod | None:
        text = page_text(pages)

        match = self.PERIOD_RE.search(text)
        if match:
            d1, m1, y1, d2, m2, y2 = (int(value) for value in match.groups())
            try:
                return StatementPeriod(start=date(y1, m1, d1), end=date(y2, m2, d2))
            except ValueError:
                logger.warning(f"Invalid statement period: {match.group(0)}")

        # Older layouts only print the statement month
        match = self.STATEMENT_MONTH_RE.search(text)
        if match:
            month, year = int(match.group(1)), int(match.group(2))
            try:
                end = date(year, month, 28)
            except ValueError:
                return None
            start = (end.replace(day=1) - timedelta(days=1)).replace(day=1)
            return StatementPeriod(start=start, end=end)

        return None

    def find_layout(self, items: Sequence[TextItem]) -> ColumnLayout | None:
        header = find_header_row(
            items,
            anchor=lambda text: text.upper() == "DATA",
            others={
                "valor": lambda text: text.upper().startswith("VALOR"),
                "saldo": lambda text: text.upper().startswith("SALDO"),
            },
        )
        if header is None:
            return None

        data, valor, saldo = header["anchor"], header["valor"], header["saldo"]

        def below_header(predicate):
            return next(
                (
                    item for item in items
                    if 0 < item.y - data.y < SUBHEADER_Y_DISTANCE and predicate(item.stripped.upper())
                ),
                None,
            )

        mov = below_header(lambda text: text == "MOV" or text.startswith("MOV."))
        val = below_header(lambda text: text == "VAL" or text.startswith("VAL."))
        description = next(
            (
                item for item in items
                if -SUBHEADER_Y_DISTANCE < item.y - data.y < SUBHEADER_Y_DISTANCE
                and (item.stripped.upper().startswith("DESCRI") or "MOVIMENTO" in item.stripped.upper())
            ),
            None,
        )

        date_x = min(data.x, mov.x) if mov else data.x
        value_date_x = val.x if val else date_x + 40
        description_x = description.x if description else value_date_x + 40

        return ColumnLayout({
            "date": ColumnRange(date_x - 10, date_x + 40),
            "value_date": ColumnRange(value_date_x - 10, description_x - 5),
            "description": ColumnRange(description_x - 10, valor.x - 20),
            "amount": ColumnRange(valor.x - 80, valor.right + 15),
            "balance": ColumnRange(saldo.x - 80, saldo.right + 15),
        })

    def is_noise_row(self, text: str, row: Row) -> bool:
        tokens = [item.stripped.upper() for item in row]
        if any(t.startswith("DATA") for t in tokens) and any(t.startswith("DESCRI") for t in tokens):
            return True
        if "MOV" in tokens and "VAL" in tokens:
            return True
        if text.upper().startswith(("CONTA", "NIB", "IBAN")):
            return True
        return "EUR" in tokens and len(row) <= 2

    def _row_amount(self, row: Row, layout: ColumnLayout):
        for item in row:
            if layout.contains("amount", item.x):
                amount = self.amount_of(item.stripped)
                if amount:
                    return amount
        return None

    def continue_row(
        self,
        current: RawTransaction,
        row: Row,
        layout: ColumnLayout,
        finished: list[RawTransaction],
    ) -> RawTransaction:
        # Several movements can share one printed date: a dateless row carrying
        # its own amount is a new transaction on the same day
        if current.has_amount and self._row_amount(row, layout) is not None:
            finished.append(current)
            current = RawTransaction(date=current.date)
        self.fill_row(current, row, layout, None)
        return current

    def fill_row(
        self, raw: RawTransaction, row: Row, layout: ColumnLayout, date_item: TextItem | None
    ) -> None:
        for item in row:
            text = item.stripped
            if not text or item is date_item:
                continue

            if layout.contains("value_date", item.x) and SHORT_DATE_RE.match(text):
                raw.value_date = text
                continue

            if layout.contains("amount", item.x) and not raw.has_amount:
                amount = self.amount_of(text)
                if amount:
                    if amount < 0:
                        raw.debit = -amount
                    else:
                        raw.credit = amount
                    continue

            if layout.contains("balance", item.x) and self.amount_of(text) is not None:
                continue

            if layout.contains("description", item.x):
                raw.description.append(text)

    def build_transaction(
        self,
        raw: RawTransaction,
        period: StatementPeriod | None,
        default_currency: Currency,
        errors: list[str],
    ) -> ParsedTransaction | None:
        description = raw.text
        if not raw.has_amount:
            errors.append(f"No amount found: {description[:50]}...")
            return None

        match = SHORT_DATE_RE.match(raw.date)
        transaction_date = period.resolve(int(match.group(1)), int(match.group(2))) if match and period else None
        if transaction_date is None:
            errors.append(f"Invalid date: {raw.date}")
            return None

        return create_transaction(
            date=transaction_date,
            description=description,
            amount=raw.credit or raw.debit,
            currency=Currency.EUR,
            merchant_name=extract_merchant_name(description, self.PROVIDER),
            is_credit=bool(raw.credit),
            original_line="\n".join(raw.original_lines),
            provider=self.PROVIDER,
            errors=errors,
        )
