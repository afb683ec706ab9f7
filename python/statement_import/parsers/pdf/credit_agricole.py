"""
Crédit Agricole PDF Statement Parser

Crédit Agricole account statements: columns "Date opé.", "Date valeur",
"Libellé des opérations", "Débit" and "Crédit". Dates are DD.MM and are
placed in a year using the opening/closing balance dates. The PDF font maps
some spaces to stray glyphs (þ, ¨) which are removed before parsing.
"""

import logging
import re
from datetime import date
from typing import Sequence

from ...merchant import extract_card_last_four, extract_merchant_name
from ...primitives import StatementPeriod, french_month_to_number
from ...transaction_factory import create_transaction
from ..base import BankProvider, Currency, ParsedTransaction, RawTransaction
from .base import PdfStatementParser
from .geometry import ColumnLayout, ColumnRange, Row, TextItem, find_header_row, page_text

logger = logging.getLogger(__name__)


DATE_RE = re.compile(r"^(\d{2})\.(\d{2})$")
STRAY_GLYPHS_RE = re.compile(r"[þ¨]")
PAGE_MARK_RE = re.compile(r"^Page \d+|^\d+/\d+$")
THOUSANDS_PREFIX_RE = re.compile(r"^\d{1,3}$")

# Header labels of the table sit within this distance of the Débit/Crédit labels
HEADER_ROW_DISTANCE = 15
# Max horizontal gap between a thousands prefix and the rest of a split amount
SPLIT_AMOUNT_GAP = 15


class CreditAgricoleParser(PdfStatementParser):
    """Parser for Crédit Agricole PDF statements."""

    PROVIDER = BankProvider.CREDIT_AGRICOLE

    DATE_TOKEN_RE = DATE_RE
    SECTION_START = ("Ancien solde",)
    SECTION_END = ("Nouveau solde", "Total des op")
    SECTION_RESUME = ("(suite)",)

    REQUIRES_PERIOD = True
    PERIOD_ERROR = "Could not determine statement period (Ancien solde ... / Nouveau solde ...)"

    OPENING_RE = re.compile(
        r"Ancien solde\s+(?:cr[ée]diteur|d[ée]biteur)\s+au\s+(\d{2})\.(\d{2})\.(\d{4})", re.IGNORECASE
    )
    CLOSING_RE = re.compile(
        r"Nouveau solde\s+(?:cr[ée]diteur|d[ée]biteur)\s+au\s+(\d{2})\.(\d{2})\.(\d{4})", re.IGNORECASE
    )
    CLOSING_DATE_RE = re.compile(r"Date d['’]arr[êée]t[ée]\s*:\s*(\d{1,2})\s+(\w+)\s+(\d{4})", re.IGNORECASE)

    def prepare_items(self, items: Sequence[TextItem]) -> tuple[TextItem, ...]:
        cleaned = []
        for item in items:
            text = STRAY_GLYPHS_RE.sub("", item.text)
            if text.strip():
                cleaned.append(TextItem(text=text, x=item.x, y=item.y, width=item.width))
        return tuple(cleaned)

    def find_statement_period(self, pages: Sequence[Sequence[TextItem]]) -> StatementPeriod | None:
        text = page_text(pages)

        start = end = None
        match = self.OPENING_RE.search(text)
        if match:
            start = self._date(match.group(3), match.group(2), match.group(1))

        match = self.CLOSING_RE.search(text)
        if match:
            end = self._date(match.group(3), match.group(2), match.group(1))
        else:
            match = self.CLOSING_DATE_RE.search(text)
            if match:
                month = french_month_to_number(match.group(2))
                if month is not None:
                    end = self._date(match.group(3), month, match.group(1))

        if start is None or end is None:
            return None
        return StatementPeriod(start=start, end=end)

    @staticmethod
    def _date(year, month, day) -> date | None:
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            return None

    def find_layout(self, items: Sequence[TextItem]) -> ColumnLayout | None:
        header = find_header_row(
            items,
            anchor=lambda text: text.startswith(("Débit", "Debit")),
            others={"credit": lambda text: text.startswith(("Crédit", "Credit"))},
        )
        if header is None:
            return None

        debit, credit = header["anchor"], header["credit"]
        if credit.x <= debit.x:
            return None

        near_header = [item for item in items if abs(item.y - debit.y) < HEADER_ROW_DISTANCE]
        date_label = next((i for i in near_header if i.stripped.startswith("Date opé")), None)
        libelle_label = next(
            (i for i in near_header if i.stripped.startswith("Libellé") or "opérations" in i.stripped),
            None,
        )

        date_x = date_label.x if date_label else 20
        libelle_x = libelle_label.x if libelle_label else 120

        return ColumnLayout({
            "date": ColumnRange(date_x - 10, date_x + 50),
            "value_date": ColumnRange(date_x + 30, libelle_x - 5),
            "description": ColumnRange(libelle_x - 10, debit.x - 5),
            "debit": ColumnRange(debit.x - 60, debit.right + 10),
            "credit": ColumnRange(credit.x - 60, credit.right + 10),
        })

    def is_noise_row(self, text: str, row: Row) -> bool:
        if any(marker in text for marker in ("Date opé", "Date valeur", "Libellé des")):
            return True
        return "Débit" in text and "Crédit" in text

    def fill_row(
        self, raw: RawTransaction, row: Row, layout: ColumnLayout, date_item: TextItem | None
    ) -> None:
        continuation = date_item is None
        last_description: TextItem | None = None

        for item in row:
            text = item.stripped
            if not text or item is date_item:
                continue

            if not continuation:
                if layout.contains("value_date", item.x) and DATE_RE.match(text):
                    raw.value_date = text
                    continue
            elif PAGE_MARK_RE.match(text):
                continue

            # Debit and credit zones overlap the end of the description column
            if self._take_amount(raw, item, layout, "debit", continuation, last_description):
                continue
            if self._take_amount(raw, item, layout, "credit", continuation, last_description):
                continue

            if layout.contains("description", item.x):
                raw.description.append(text)
                last_description = item

    def _take_amount(
        self,
        raw: RawTransaction,
        item: TextItem,
        layout: ColumnLayout,
        column: str,
        continuation: bool,
        last_description: TextItem | None,
    ) -> bool:
        if not layout.contains(column, item.x):
            return False
        amount = self.amount_of(item.stripped)
        if amount is None:
            return False

        # "1 000,00" may come out as "1" (read as description) and "000,00"
        split_prefix = (
            last_description is not None
            and raw.description
            and THOUSANDS_PREFIX_RE.match(last_description.stripped)
            and item.x - last_description.right <= SPLIT_AMOUNT_GAP
        )
        if split_prefix:
            joined = self.amount_of(last_description.stripped + item.stripped.replace(" ", ""))
            if joined:
                raw.description.pop()
                amount = joined

        if not amount or (continuation and getattr(raw, column)):
            return False
        setattr(raw, column, abs(amount))
        return True

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

        match = DATE_RE.match(raw.date)
        transaction_date = period.resolve(int(match.group(1)), int(match.group(2))) if match and period else None
        if transaction_date is None:
            errors.append(f"Invalid date: {raw.date}")
            return None

        is_credit = not raw.debit and bool(raw.credit)
        return create_transaction(
            date=transaction_date,
            description=description,
            amount=raw.credit if is_credit else raw.debit,
            currency=default_currency,
            merchant_name=extract_merchant_name(description, self.PROVIDER),
            card_last_four=extract_card_last_four(description),
            is_credit=is_credit,
            original_line="\n".join(raw.original_lines),
            provider=self.PROVIDER,
            errors=errors,
        )
