"""
Statement Import Package

Turns bank and card statement exports (pasted text, CSV, PDF) into canonical
transactions and deduplicates them against a ledger.
"""

from .category_lookup import CategoryLookup
from .config import ImportSettings
from .duplicate_detector import DeduplicationResult, DuplicateDetector, fingerprint
from .exceptions import StatementImportError, UnknownProviderError
from .importer import BundleImportResult, ImportResult, StatementImporter
from .ledger import InMemoryLedger, Ledger, LedgerEntry
from .merchant import extract_merchant_name
from .parsers.base import BankProvider, Currency, ParsedTransaction, ParserResult
from .registry import ProviderRegistry, default_registry
from .transaction_factory import create_transaction

__all__ = [
    "BankProvider",
    "BundleImportResult",
    "CategoryLookup",
    "Currency",
    "DeduplicationResult",
    "DuplicateDetector",
    "ImportResult",
    "ImportSettings",
    "InMemoryLedger",
    "Ledger",
    "LedgerEntry",
    "ParsedTransaction",
    "ParserResult",
    "ProviderRegistry",
    "StatementImportError",
    "StatementImporter",
    "UnknownProviderError",
    "create_transaction",
    "default_registry",
    "extract_merchant_name",
    "fingerprint",
]
