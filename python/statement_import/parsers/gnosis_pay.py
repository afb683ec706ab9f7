"""
Gnosis Pay CSV Parser

Card transactions exported from the Gnosis Pay dashboard.
"""

import logging

from ..primitives import last_four_digits, parse_decimal, parse_iso_date
from ..transaction_factory import create_transaction
from .base import BankProvider, Currency, ParsedTransaction
from .csv_base import CSVRow, CSVStatementParser

logger = logging.getLogger(__name__)


class GnosisPayParser(CSVStatementParser):
    """Parser for Gnosis Pay CSV exports.

    Expected columns:
    - date: ISO timestamp of the authorization
    - merchant_name
    - transaction_amount / transaction_currency: amount charged by the merchant
    - billing_amount / billing_currency: amount debited from the card (optional)
    - kind: Payment, Refund, Reversal...
    - status: Approved, Declined...
    """

    PROVIDER = BankProvider.GNOSIS_PAY

    DETECTION_HEADERS = (
        "date",
        "merchant_name",
        "transaction_amount",
        "transaction_currency",
        "clearing_date",
    )
    REQUIRED_HEADERS = ("date", "merchant_name", "transaction_amount", "transaction_currency")

    def _parse_row(
        self, row: CSVRow, default_currency: Currency, errors: list[str]
    ) -> ParsedTransaction | None:
        transaction_date = parse_iso_date(row.get("date"))
        if transaction_date is None:
            raise ValueError(f"invalid date {row.get('date')!r}")

        # The billed pair is what actually left the card
        raw_amount = row.get("billing_amount")
        raw_currency = row.get("billing_currency")
        if not raw_amount:
            raw_amount = row.get("transaction_amount")
            raw_currency = row.get("transaction_currency")
        elif not raw_currency:
            raw_currency = row.get("transaction_currency")

        amount = parse_decimal(raw_amount)
        if amount is None:
            raise ValueError(f"invalid amount {raw_amount!r}")

        kind = row.get("kind").lower() or "payment"
        merchant = row.get("merchant_name")

        return create_transaction(
            date=transaction_date,
            description=merchant,
            amount=amount,
            currency=self._currency(raw_currency, default_currency),
            merchant_name=merchant,
            card_last_four=last_four_digits(row.get("card_last_four")),
            is_credit=kind != "payment" and "purchase" not in kind,
            original_line=row.line,
            provider=self.PROVIDER,
            errors=errors,
        )
