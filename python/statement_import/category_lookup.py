"""
Category Lookup Module

Maps a merchant name (or description) to a user category using preloaded
mappings. Instances are callables, so they can be handed to the ledger as
the category mapper.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .primitives import normalize_label

logger = logging.getLogger(__name__)


@dataclass
class CategoryMatch:
    """Result of a category lookup."""

    merchant: str
    category: str
    match_type: str  # 'exact' or 'pattern'


class CategoryLookup:
    """Merchant to category lookup.

    Mapping file format (``category_mappings.json``)::

        {
          "exact_matches": {"paypal": "Shopping"},
          "pattern_matches": [{"pattern": "uber|bolt", "category": "Transport"}]
        }
    """

    MAPPINGS_FILE = "category_mappings.json"

    def __init__(self, config_dir: Path | str | None = None, load: bool = True):
        """Initialize the lookup.

        Args:
            config_dir: Directory holding the mappings file
            load: Read the mappings file now
        """
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent.parent.parent / "config"
        self._exact_matches: dict[str, str] = {}
        self._pattern_matches: list[tuple[re.Pattern, str]] = []
        if load:
            self._load_mappings()

    @classmethod
    def from_mappings(cls, exact_matches: dict[str, str] | None = None, pattern_matches=None) -> "CategoryLookup":
        lookup = cls(load=False)
        for merchant, category in (exact_matches or {}).items():
            lookup.add_mapping(merchant, category)
        for entry in pattern_matches or []:
            lookup.add_pattern(entry["pattern"], entry["category"])
        return lookup

    def _load_mappings(self) -> None:
        """Load category mappings from config file."""
        mappings_file = self.config_dir / self.MAPPINGS_FILE

        if not mappings_file.exists():
            logger.warning(f"Category mappings file not found: {mappings_file}")
            return

        with open(mappings_file, encoding="utf-8") as f:
            data = json.load(f)

        for merchant, category in data.get("exact_matches", {}).items():
            self.add_mapping(merchant, category)
        for entry in data.get("pattern_matches", []):
            try:
                self.add_pattern(entry["pattern"], entry["category"])
            except (KeyError, re.error) as e:
                logger.error(f"Skipping invalid category pattern {entry!r}: {e}")

        logger.info(
            f"Loaded {len(self._exact_matches)} exact matches, "
            f"{len(self._pattern_matches)} pattern matches"
        )

    def add_mapping(self, merchant: str, category: str) -> None:
        """Remember ``category`` for ``merchant`` (normalized)."""
        key = normalize_label(merchant)
        if key:
            self._exact_matches[key] = category

    def add_pattern(self, pattern: str, category: str) -> None:
        self._pattern_matches.append((re.compile(pattern, re.IGNORECASE), category))

    def lookup(self, merchant: str) -> CategoryMatch | None:
        """Find the category of a merchant.

        Exact matches on the normalized name win over patterns; patterns are
        tried in file order.
        """
        key = normalize_label(merchant)
        if not key:
            return None

        category = self._exact_matches.get(key)
        if category is not None:
            return CategoryMatch(merchant=merchant, category=category, match_type="exact")

        for pattern, category in self._pattern_matches:
            if pattern.search(key):
                return CategoryMatch(merchant=merchant, category=category, match_type="pattern")

        return None

    def __call__(self, merchant: str) -> str | None:
        match = self.lookup(merchant)
        return match.category if match else None

    def __len__(self) -> int:
        return len(self._exact_matches) + len(self._pattern_matches)
