"""
Base Statement Parser Module

Canonical transaction types and the abstract base class every provider
parser derives from.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Currency(str, Enum):
    """Currencies a transaction may be recorded in. No conversion is done."""

    EUR = "EUR"
    USD = "USD"

    @classmethod
    def coerce(cls, value: Any, default: "Currency") -> "Currency":
        """Map a raw currency code onto the enum, falling back to ``default``."""
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return default


class BankProvider(str, Enum):
    """Closed set of institutions/exports the importer understands."""

    DEBLOCK = "deblock"
    BOURSO = "bourso"
    GNOSIS_PAY = "gnosis_pay"
    ETHERFI = "etherfi"
    BPI = "bpi"
    CREDIT_AGRICOLE = "credit_agricole"
    MANUAL = "manual"
    INVOICE = "invoice"

    @property
    def display_name(self) -> str:
        return PROVIDER_DISPLAY_NAMES[self]

    @property
    def input_type(self) -> str:
        """``csv``, ``pdf`` or ``text``: how statements from this provider arrive."""
        return PROVIDER_INPUT_TYPES.get(self, "text")


PROVIDER_DISPLAY_NAMES = {
    BankProvider.DEBLOCK: "Deblock",
    BankProvider.BOURSO: "Boursorama",
    BankProvider.GNOSIS_PAY: "Gnosis Pay",
    BankProvider.ETHERFI: "Etherfi",
    BankProvider.BPI: "BPI",
    BankProvider.CREDIT_AGRICOLE: "Crédit Agricole",
    BankProvider.MANUAL: "Manual",
    BankProvider.INVOICE: "Invoice",
}

PROVIDER_INPUT_TYPES = {
    BankProvider.GNOSIS_PAY: "csv",
    BankProvider.ETHERFI: "csv",
    BankProvider.BOURSO: "pdf",
    BankProvider.BPI: "pdf",
    BankProvider.CREDIT_AGRICOLE: "pdf",
}


@dataclass(frozen=True)
class ParsedTransaction:
    """A canonical transaction ready for the ledger.

    ``amount`` is always a positive magnitude; direction lives in ``is_credit``.
    """

    date: str  # ISO YYYY-MM-DD
    description: str
    amount: Decimal
    currency: Currency
    merchant_name: str | None = None
    card_last_four: str | None = None
    is_credit: bool = False
    original_line: str | None = None
    provider: BankProvider | None = None

    def to_dict(self) -> dict:
        data = {
            "date": self.date,
            "description": self.description,
            "amount": float(self.amount),
            "currency": self.currency.value,
            "merchantName": self.merchant_name,
            "cardLastFour": self.card_last_four,
            "isCredit": self.is_credit,
            "originalLine": self.original_line,
        }
        if self.provider is not None:
            data["provider"] = self.provider.value
        return data


@dataclass
class ParserResult:
    """Outcome of one parse call. Errors may coexist with transactions."""

    transactions: list[ParsedTransaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, *errors: str) -> "ParserResult":
        return cls(errors=list(errors))

    @property
    def success(self) -> bool:
        return len(self.transactions) > 0

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)


@dataclass
class RawTransaction:
    """A transaction still being assembled from lines or table rows."""

    date: str
    description: list[str] = field(default_factory=list)
    debit: Decimal | None = None
    credit: Decimal | None = None
    value_date: str | None = None
    original_lines: list[str] = field(default_factory=list)

    @property
    def has_amount(self) -> bool:
        return bool(self.debit) or bool(self.credit)

    @property
    def text(self) -> str:
        return " ".join(part for part in self.description if part)

    def extended(self, line: str) -> "RawTransaction":
        """Copy with ``line`` appended to the description and raw lines."""
        return replace(
            self,
            description=[*self.description, line],
            original_lines=[*self.original_lines, line],
        )

    def with_amount(self, amount: Decimal, is_credit: bool, line: str | None = None) -> "RawTransaction":
        lines = [*self.original_lines, line] if line else list(self.original_lines)
        if is_credit:
            return replace(self, credit=amount, original_lines=lines)
        return replace(self, debit=amount, original_lines=lines)


class BaseParser(ABC):
    """Abstract base class for provider statement parsers."""

    PROVIDER: BankProvider
    INPUT_TYPE: str = "text"

    @property
    def provider(self) -> BankProvider:
        return self.PROVIDER

    @abstractmethod
    def can_parse(self, content) -> bool:
        """Cheap, low false-positive check that ``content`` belongs to this provider."""

    def parse(self, content, default_currency: Currency = Currency.EUR) -> ParserResult:
        """Parse statement content into canonical transactions.

        Args:
            content: Statement text (or bytes for PDF parsers)
            default_currency: Currency used when the statement does not state a supported one

        Returns:
            ParserResult; never raises on malformed content
        """
        result = ParserResult()

        if not content or not content.strip():
            result.errors.append("Empty input")
            return result

        try:
            self._parse(content, default_currency, result)
        except Exception as e:
            logger.exception(f"{self.PROVIDER.value}: parser failed")
            # A document-level failure keeps no partial transactions
            result.transactions.clear()
            result.errors.append(f"Parsing failed: {e}")

        if not result.transactions and not result.errors:
            result.errors.append("No transactions found")

        logger.info(
            f"{self.PROVIDER.value}: parsed {result.transaction_count} transactions "
            f"({len(result.errors)} errors)"
        )
        return result

    @abstractmethod
    def _parse(self, content, default_currency: Currency, result: ParserResult) -> None:
        """Fill ``result`` with transactions and error messages."""
