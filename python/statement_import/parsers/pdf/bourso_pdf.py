"""
Boursorama PDF Statement Parser

Monthly Boursorama statements: columns Date, Libellé, Valeur, Débit and
Crédit under the "MOUVEMENTS EN EUR" heading. Dates are printed in full
(DD/MM/YYYY), so no statement period is needed.
"""

import logging
import re
from typing import Sequence

from ...merchant import extract_card_last_four, extract_merchant_name
from ...primitives import parse_ddmmyyyy
from ...transaction_factory import create_transaction
from ..base import BankProvider, Currency, ParsedTransaction, RawTransaction
from .base import PdfStatementParser
from .geometry import ColumnLayout, ColumnRange, Row, TextItem, find_header_row, find_item

logger = logging.getLogger(__name__)


DATE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")


class BoursoPdfParser(PdfStatementParser):
    """Parser for Boursorama PDF statements."""

    PROVIDER = BankProvider.BOURSO

    DATE_TOKEN_RE = DATE_RE
    SECTION_START = ("MOUVEMENTS EN EUR",)
    SECTION_END = ("Nouveau solde", "A réception")

    # Column positions of the standard statement template
    FALLBACK_LAYOUT = ColumnLayout({
        "date": ColumnRange(20, 75),
        "description": ColumnRange(75, 380),
        "value_date": ColumnRange(380, 470),
        "debit": ColumnRange(470, 540),
        "credit": ColumnRange(540, 620),
    })

    def find_layout(self, items: Sequence[TextItem]) -> ColumnLayout | None:
        header = find_header_row(
            items,
            anchor=lambda text: text.startswith("Débit"),
            others={"credit": lambda text: text.startswith("Crédit")},
        )
        if header is None:
            return None

        debit, credit = header["anchor"], header["credit"]

        def on_header_row(label: str) -> TextItem | None:
            return find_item(
                [item for item in items if abs(item.y - debit.y) < 10],
                lambda text: text.startswith(label),
            )

        valeur = on_header_row("Valeur")
        libelle = on_header_row("Libellé")
        date_label = on_header_row("Date")

        valeur_x = valeur.x if valeur else debit.x - 80
        libelle_x = libelle.x if libelle else 75
        date_x = date_label.x if date_label else 20

        return ColumnLayout({
            "date": ColumnRange(date_x - 10, libelle_x - 5),
            "description": ColumnRange(libelle_x - 5, valeur_x - 5),
            "value_date": ColumnRange(valeur_x - 5, debit.x - 5),
            "debit": ColumnRange(debit.x - 30, credit.x - 10),
            "credit": ColumnRange(credit.x - 30, credit.x + 100),
        })

    def is_noise_row(self, text: str, row: Row) -> bool:
        if "Date" in text and "Libellé" in text:
            return True
        return any(marker in text for marker in ("opération", "SOLDE AU", "Montant frais"))

    def fill_row(
        self, raw: RawTransaction, row: Row, layout: ColumnLayout, date_item: TextItem | None
    ) -> None:
        continuation = date_item is None
        for item in row:
            text = item.stripped
            if not text or item is date_item:
                continue

            if layout.contains("description", item.x):
                raw.description.append(text)
            elif layout.contains("value_date", item.x):
                if DATE_RE.match(text):
                    raw.value_date = text
            elif layout.contains("debit", item.x):
                amount = self.amount_of(text)
                if amount and not (continuation and raw.debit):
                    raw.debit = abs(amount)
            elif layout.contains("credit", item.x):
                amount = self.amount_of(text)
                if amount and not (continuation and raw.credit):
                    raw.credit = abs(amount)

    def build_transaction(
        self,
        raw: RawTransaction,
        period,
        default_currency: Currency,
        errors: list[str],
    ) -> ParsedTransaction | None:
        description = raw.text
        if not raw.has_amount:
            errors.append(f"No amount found: {description[:50]}...")
            return None

        transaction_date = parse_ddmmyyyy(raw.date)
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
