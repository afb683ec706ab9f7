"""
Statement Importer Module

Ties parsing, deduplication and the ledger together:

    content -> provider -> parser -> dedup against ledger snapshot -> ledger.append

Single inputs (pasted text, CSV, one PDF) and PDF bundles (a list of files or
a zip archive) are supported. Bundles are processed one file at a time and a
failing file never stops the others.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .config import ImportSettings
from .duplicate_detector import DuplicateDetector
from .ledger import CategoryMapper, Ledger, LedgerEntry
from .parsers.base import BankProvider, ParsedTransaction, ParserResult
from .registry import ProviderRegistry, default_registry

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Outcome of importing one input."""

    source: str
    provider: BankProvider | None = None
    parsed: list[ParsedTransaction] = field(default_factory=list)
    unique: list[ParsedTransaction] = field(default_factory=list)
    duplicates: list[ParsedTransaction] = field(default_factory=list)
    appended: list[LedgerEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.parsed) > 0

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "provider": self.provider.value if self.provider else None,
            "success": self.success,
            "parsed": len(self.parsed),
            "unique": [t.to_dict() for t in self.unique],
            "duplicates": [t.to_dict() for t in self.duplicates],
            "appended": [entry.to_dict() for entry in self.appended],
            "errors": list(self.errors),
        }


@dataclass
class BundleImportResult:
    """Outcome of a multi-file PDF import."""

    results: list[ImportResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def imported(self) -> int:
        return sum(len(result.appended) for result in self.results)

    @property
    def duplicates(self) -> int:
        return sum(len(result.duplicates) for result in self.results)

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "imported": self.imported,
            "duplicates": self.duplicates,
            "files": [result.to_dict() for result in self.results],
        }


class StatementImporter:
    """Imports statements into a ledger."""

    def __init__(
        self,
        ledger: Ledger,
        registry: ProviderRegistry | None = None,
        settings: ImportSettings | None = None,
        category_mapper: CategoryMapper | None = None,
    ):
        """Initialize the importer.

        Args:
            ledger: Store to read existing transactions from and append to
            registry: Parsers to use; all built-in parsers by default
            settings: Import settings; defaults when omitted
            category_mapper: Merchant -> category function passed to the ledger
        """
        self.ledger = ledger
        self.settings = settings or ImportSettings()
        self.registry = registry or default_registry(
            accepted_statuses=self.settings.accepted_statuses,
            supported_currencies=self.settings.supported_currencies,
        )
        self.category_mapper = category_mapper
        self.detector = DuplicateDetector(include_provider=self.settings.dedupe_by_provider)

    def import_content(
        self,
        content: str,
        provider: BankProvider | str | None = None,
        source: str = "paste",
    ) -> ImportResult:
        """Import pasted text or CSV content.

        Args:
            content: Statement text
            provider: Provider; detected when None
            source: Label stored with the ledger entries

        Returns:
            ImportResult
        """
        if provider is None:
            provider = self.registry.detect(content)
        parse_result = self.registry.parse(content, provider, self.settings.default_currency)
        return self._finish(parse_result, provider, source)

    def import_pdf(self, data: bytes, provider: BankProvider | str, source: str = "pdf") -> ImportResult:
        parse_result = self.registry.parse_pdf(data, provider, self.settings.default_currency)
        return self._finish(parse_result, provider, source)

    def import_pdf_bundle(
        self,
        files: Iterable[tuple[str, bytes]],
        provider: BankProvider | str,
    ) -> BundleImportResult:
        """Import several PDF statements of one provider.

        Each file is deduplicated against the ledger as it stands after the
        previous files were appended.

        Args:
            files: (file name, PDF bytes) pairs
            provider: Provider of every file

        Returns:
            BundleImportResult with one ImportResult per file
        """
        bundle = BundleImportResult()
        for name, data in files:
            try:
                result = self.import_pdf(data, provider, source=name)
            except Exception as e:
                logger.exception(f"Import of {name} failed")
                result = ImportResult(source=name, errors=[f"{name}: {e}"])
            bundle.results.append(result)

        logger.info(
            f"Bundle import: {bundle.succeeded} files imported, {bundle.failed} failed, "
            f"{bundle.imported} new transactions"
        )
        return bundle

    def import_pdf_archive(self, archive: Path | str, provider: BankProvider | str) -> BundleImportResult:
        """Import every PDF inside a zip archive.

        Raises:
            zipfile.BadZipFile: When the archive itself is corrupt
            OSError: When the archive cannot be read
        """
        with zipfile.ZipFile(archive) as bundle:
            names = sorted(
                info.filename for info in bundle.infolist()
                if not info.is_dir() and info.filename.lower().endswith(".pdf")
                and not Path(info.filename).name.startswith(".")
            )
            logger.info(f"Archive {archive}: {len(names)} PDF files")
            return self.import_pdf_bundle(((name, bundle.read(name)) for name in names), provider)

    def _finish(
        self,
        parse_result: ParserResult,
        provider: BankProvider | str | None,
        source: str,
    ) -> ImportResult:
        provider = self._provider(provider)
        result = ImportResult(
            source=source,
            provider=provider,
            parsed=list(parse_result.transactions),
            errors=list(parse_result.errors),
        )
        if not parse_result.success:
            logger.warning(f"Nothing parsed from {source}: {'; '.join(parse_result.errors)}")
            return result

        candidates = parse_result.transactions
        if self.settings.exclude_credits:
            candidates = [t for t in candidates if not t.is_credit]
            if not candidates:
                result.errors.append("No debit transactions found (credits are excluded)")
                return result

        dedup = self.detector.dedupe(candidates, self.ledger.snapshot())
        result.unique = dedup.unique
        result.duplicates = dedup.duplicates

        if dedup.unique:
            result.appended = self.ledger.append(dedup.unique, source, provider, self.category_mapper)
        return result

    @staticmethod
    def _provider(provider: BankProvider | str | None) -> BankProvider | None:
        if provider is None or isinstance(provider, BankProvider):
            return provider
        try:
            return BankProvider(str(provider).strip().lower())
        except ValueError:
            return None
