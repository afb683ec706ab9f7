"""
Duplicate Transaction Detector Module

Filters out transactions already present in the ledger, or repeated within
the batch being imported, using a normalized fingerprint:

    date | normalized merchant (or description) | amount [| provider]
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable

from .parsers.base import ParsedTransaction
from .primitives import normalize_label, parse_decimal, quantize_amount

logger = logging.getLogger(__name__)


@dataclass
class DeduplicationResult:
    """Result of deduplication check."""

    unique: list[ParsedTransaction] = field(default_factory=list)
    duplicates: list[ParsedTransaction] = field(default_factory=list)
    stats: dict = field(default_factory=dict)


def _field(record: Any, *names: str) -> Any:
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name)
        else:
            value = getattr(record, name, None)
        if value not in (None, ""):
            return value
    return None


def fingerprint(record: Any, include_provider: bool = False) -> str:
    """Composite duplicate key of a transaction.

    Args:
        record: ParsedTransaction, ledger entry or mapping with date, amount
            and merchant_name/description (camelCase keys accepted)
        include_provider: Also key on the originating provider, so identical
            movements seen on two institutions are kept apart

    Returns:
        Fingerprint string
    """
    raw_date = _field(record, "date")
    if isinstance(raw_date, datetime):
        raw_date = raw_date.date()
    key_date = raw_date.isoformat() if isinstance(raw_date, date) else str(raw_date or "").strip()

    label = normalize_label(str(_field(record, "merchant_name", "merchantName", "description") or ""))

    amount = _field(record, "amount")
    if isinstance(amount, str):
        amount = parse_decimal(amount)
    quantized = quantize_amount(amount) if amount is not None else None
    key_amount = str(quantized) if quantized is not None else ""

    parts = [key_date, label, key_amount]
    if include_provider:
        provider = _field(record, "provider", "source_provider", "sourceProvider")
        parts.append(provider.value if isinstance(provider, Enum) else str(provider or ""))
    return "|".join(parts)


class DuplicateDetector:
    """Detects duplicate transactions by exact fingerprint match."""

    def __init__(self, include_provider: bool = False):
        """Initialize the duplicate detector.

        Args:
            include_provider: Add the provider to every fingerprint
        """
        self.include_provider = include_provider

    def fingerprint(self, record: Any) -> str:
        return fingerprint(record, self.include_provider)

    def dedupe(
        self,
        candidates: Iterable[ParsedTransaction],
        existing: Iterable[Any] | None = None,
    ) -> DeduplicationResult:
        """Split a batch into new and already-known transactions.

        A candidate is a duplicate when its fingerprint matches an existing
        ledger record or an earlier candidate of the same batch.

        Args:
            candidates: Newly parsed transactions
            existing: Ledger records to compare against

        Returns:
            DeduplicationResult with unique and duplicate transactions
        """
        result = DeduplicationResult()
        seen = {self.fingerprint(record) for record in existing or ()}
        known = len(seen)

        for transaction in candidates:
            key = self.fingerprint(transaction)
            if key in seen:
                result.duplicates.append(transaction)
                continue
            seen.add(key)
            result.unique.append(transaction)

        total = len(result.unique) + len(result.duplicates)
        result.stats = {
            "total_checked": total,
            "existing_fingerprints": known,
            "unique": len(result.unique),
            "duplicates": len(result.duplicates),
            "duplicate_rate": len(result.duplicates) / total if total > 0 else 0,
        }

        logger.info(f"Dedup: {len(result.unique)} unique, {len(result.duplicates)} duplicates")
        return result
