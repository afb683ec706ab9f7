"""
Etherfi Cash CSV Parser

Card activity exported from the Etherfi Cash app. Amounts are settled in
USD; the merchant's own amount and currency are present for foreign spends.
"""

import logging

from ..primitives import last_four_digits, parse_decimal, parse_iso_date
from ..transaction_factory import create_transaction
from .base import BankProvider, Currency, ParsedTransaction
from .csv_base import CSVRow, CSVStatementParser

logger = logging.getLogger(__name__)


class EtherfiParser(CSVStatementParser):
    """Parser for Etherfi Cash CSV exports."""

    PROVIDER = BankProvider.ETHERFI

    DETECTION_HEADERS = ("timestamp", "type", "description", "status", "amount usd", "card holder")
    REQUIRED_HEADERS = ("timestamp", "type", "description", "status", "amount usd")
    SPEND_TYPE = "card_spend"

    def _parse_row(
        self, row: CSVRow, default_currency: Currency, errors: list[str]
    ) -> ParsedTransaction | None:
        transaction_date = parse_iso_date(row.get("timestamp"))
        if transaction_date is None:
            raise ValueError(f"invalid timestamp {row.get('timestamp')!r}")

        original_amount = row.get("original amount")
        original_currency = row.get("original currency")
        if original_amount and original_currency:
            raw_amount = original_amount
            currency = self._currency(original_currency, default_currency)
        else:
            raw_amount = row.get("amount usd")
            currency = self._currency(Currency.USD.value, default_currency)

        amount = parse_decimal(raw_amount)
        if amount is None:
            raise ValueError(f"invalid amount {raw_amount!r}")

        description = row.get("description")
        return create_transaction(
            date=transaction_date,
            description=description,
            amount=amount,
            currency=currency,
            merchant_name=description,
            card_last_four=last_four_digits(row.get("card")),
            is_credit=row.get("type").lower() != self.SPEND_TYPE,
            original_line=row.line,
            provider=self.PROVIDER,
            errors=errors,
        )
