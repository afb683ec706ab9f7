"""
Deblock Statement Parser

Deblock statements are copied out of the app as one text blob where the
line structure is unreliable. Each transaction is the sequence

    <day> <month> <year><day> <month> <year><operation>["merchant"]<amount>

(operation date immediately followed by value date), so a single regex sweep
recovers them regardless of line breaks.
"""

import logging
import re

from ..merchant import extract_merchant_name
from ..primitives import FRENCH_MONTHS_PATTERN, collapse_whitespace, parse_amount, parse_french_date
from ..transaction_factory import create_transaction
from .base import BankProvider, BaseParser, Currency, ParserResult

logger = logging.getLogger(__name__)


class DeblockParser(BaseParser):
    """Parser for pasted Deblock statement text."""

    PROVIDER = BankProvider.DEBLOCK

    DETECTION_KEYWORDS = ("Prélèvement", "Paiement Carte", "Cashback", "Virement")

    TRANSACTION_RE = re.compile(
        rf"(\d{{1,2}})\s+({FRENCH_MONTHS_PATTERN})\s+(\d{{4}})"
        rf"(\d{{1,2}})\s+({FRENCH_MONTHS_PATTERN})\s+(\d{{4}})"
        r"((?:Prélèvement automatique|Paiement Carte|Cashback|Virement)"
        r'[^0-9"]*(?:"[^"]*")?[^0-9]*)'
        r"(\d{1,3}(?:[ \u00a0\u202f]\d{3})+,\d{2}|\d+,\d{2})",
        re.IGNORECASE,
    )
    MONTH_RE = re.compile(rf"\b({FRENCH_MONTHS_PATTERN})\b", re.IGNORECASE)

    def can_parse(self, content: str) -> bool:
        if not content:
            return False
        if not self.MONTH_RE.search(content):
            return False
        lowered = content.lower()
        return any(keyword.lower() in lowered for keyword in self.DETECTION_KEYWORDS)

    def _parse(self, content: str, default_currency: Currency, result: ParserResult) -> None:
        for match in self.TRANSACTION_RE.finditer(content):
            day, month, year = match.group(1), match.group(2), match.group(3)
            operation = collapse_whitespace(match.group(7))
            raw_amount = match.group(8)

            transaction_date = parse_french_date(day, month, year)
            if transaction_date is None:
                result.errors.append(f"Invalid date: {day} {month} {year}")
                continue

            transaction = create_transaction(
                date=transaction_date,
                description=operation.replace('"', ""),
                amount=parse_amount(raw_amount),
                currency=default_currency,
                merchant_name=extract_merchant_name(operation, self.PROVIDER),
                is_credit=self.is_credit(operation),
                original_line=match.group(0),
                provider=self.PROVIDER,
                errors=result.errors,
            )
            if transaction:
                result.transactions.append(transaction)

    @staticmethod
    def is_credit(operation: str) -> bool:
        """Direction of a Deblock operation.

        Cashback is always money in. A ``Virement`` with no quoted counterparty
        is assumed to be incoming; this is a heuristic and can misclassify an
        outgoing transfer whose beneficiary was not quoted.
        """
        lowered = operation.lower()
        if "cashback" in lowered:
            return True
        return "virement" in lowered and '"' not in operation
