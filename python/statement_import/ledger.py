"""
Ledger Module

Boundary between the importer and whatever stores the user's transactions.
The importer only reads a snapshot and appends; InMemoryLedger is the
reference implementation used by the CLI and the tests.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Protocol, Sequence

from .parsers.base import BankProvider, ParsedTransaction

logger = logging.getLogger(__name__)

CategoryMapper = Callable[[str], str | None]


@dataclass
class LedgerEntry:
    """A transaction as stored in the ledger."""

    date: str
    description: str
    amount: Decimal
    currency: str
    is_credit: bool = False
    merchant_name: str | None = None
    card_last_four: str | None = None
    category: str | None = None
    source: str | None = None
    provider: str | None = None
    original_line: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def type(self) -> str:
        return "income" if self.is_credit else "expense"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "amount": float(self.amount),
            "currency": self.currency,
            "type": self.type,
            "merchantName": self.merchant_name,
            "cardLastFour": self.card_last_four,
            "category": self.category,
            "source": self.source,
            "provider": self.provider,
            "originalLine": self.original_line,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerEntry":
        """Build an entry from its JSON form (camelCase or snake_case keys)."""
        def pick(*names, default=None):
            for name in names:
                if data.get(name) is not None:
                    return data[name]
            return default

        kind = pick("type")
        entry = cls(
            date=str(pick("date", default="")),
            description=str(pick("description", default="")),
            amount=abs(Decimal(str(pick("amount", default="0")))),
            currency=str(pick("currency", default="EUR")),
            is_credit=bool(pick("is_credit", "isCredit", default=kind == "income")),
            merchant_name=pick("merchant_name", "merchantName"),
            card_last_four=pick("card_last_four", "cardLastFour"),
            category=pick("category"),
            source=pick("source"),
            provider=pick("provider", "sourceProvider"),
            original_line=pick("original_line", "originalLine"),
        )
        if pick("id"):
            entry.id = str(pick("id"))
        if pick("created_at", "createdAt"):
            entry.created_at = str(pick("created_at", "createdAt"))
        return entry


class Ledger(Protocol):
    """What the importer needs from a transaction store."""

    def snapshot(self) -> Sequence[LedgerEntry]:
        """Current records, read once per import batch."""
        ...

    def append(
        self,
        transactions: Sequence[ParsedTransaction],
        source: str,
        provider: BankProvider | None,
        category_mapper: CategoryMapper | None = None,
    ) -> list[LedgerEntry]:
        """Store new transactions and return the stored entries."""
        ...


class InMemoryLedger:
    """List-backed ledger."""

    def __init__(self, entries: Iterable[LedgerEntry] = ()):
        self.entries: list[LedgerEntry] = list(entries)

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_json(cls, path: Path | str) -> "InMemoryLedger":
        """Load entries from a JSON array, or from the ``appended`` list of a previous ``parse`` output."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("transactions") or data.get("appended") or []
        ledger = cls(LedgerEntry.from_dict(item) for item in data)
        logger.info(f"Loaded {len(ledger)} ledger entries from {path}")
        return ledger

    def snapshot(self) -> tuple[LedgerEntry, ...]:
        return tuple(self.entries)

    def append(
        self,
        transactions: Sequence[ParsedTransaction],
        source: str,
        provider: BankProvider | None,
        category_mapper: CategoryMapper | None = None,
    ) -> list[LedgerEntry]:
        added = []
        for transaction in transactions:
            label = transaction.merchant_name or transaction.description
            origin = transaction.provider or provider
            added.append(LedgerEntry(
                date=transaction.date,
                description=transaction.description,
                amount=transaction.amount,
                currency=transaction.currency.value,
                is_credit=transaction.is_credit,
                merchant_name=transaction.merchant_name,
                card_last_four=transaction.card_last_four,
                category=category_mapper(label) if category_mapper else None,
                source=source,
                provider=origin.value if origin else None,
                original_line=transaction.original_line,
            ))
        self.entries.extend(added)
        logger.info(f"Ledger: appended {len(added)} entries from {source}")
        return added
