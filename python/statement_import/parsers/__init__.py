"""Provider statement parsers."""

from .base import BankProvider, BaseParser, Currency, ParsedTransaction, ParserResult, RawTransaction

__all__ = [
    "BankProvider",
    "BaseParser",
    "Currency",
    "ParsedTransaction",
    "ParserResult",
    "RawTransaction",
]
