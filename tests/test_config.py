"""
Configuration Tests

Tests for YAML import settings and the JSON category mappings.
"""

import pytest
import json
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from statement_import.category_lookup import CategoryLookup
from statement_import.config import CONFIG_ENV_VAR, LOG_LEVEL_ENV_VAR, ImportSettings
from statement_import.exceptions import StatementImportError
from statement_import.parsers.base import Currency


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)


class TestImportSettings:
    """Tests for ImportSettings loading."""

    def test_project_settings(self, config_dir):
        """Test the shipped settings file."""
        settings = ImportSettings.load(config_dir / "statement_import.yaml")

        assert settings.default_currency is Currency.EUR
        assert settings.supported_currencies == (Currency.EUR, Currency.USD)
        assert settings.accepted_statuses == ("approved", "cleared")
        assert settings.exclude_credits is False
        assert settings.config_dir == config_dir

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test a missing file is not an error."""
        settings = ImportSettings.load(tmp_path / "missing.yaml")
        assert settings == ImportSettings()

    def test_custom_file(self, tmp_path):
        """Test values from a user file."""
        path = tmp_path / "settings.yaml"
        path.write_text(
            "import:\n"
            "  default_currency: usd\n"
            "  accepted_statuses: [Approved, Settled]\n"
            "  exclude_credits: true\n"
            "  dedupe_by_provider: true\n"
            "  log_level: debug\n",
            encoding="utf-8",
        )
        settings = ImportSettings.load(path)

        assert settings.default_currency is Currency.USD
        assert settings.accepted_statuses == ("approved", "settled")
        assert settings.exclude_credits is True
        assert settings.dedupe_by_provider is True
        assert settings.log_level == "DEBUG"
        assert settings.config_dir == tmp_path

    def test_top_level_keys(self, tmp_path):
        """Test a file without the import section."""
        path = tmp_path / "settings.yaml"
        path.write_text("exclude_credits: true\n", encoding="utf-8")
        assert ImportSettings.load(path).exclude_credits is True

    def test_env_path(self, tmp_path, monkeypatch):
        """Test the settings path from the environment."""
        path = tmp_path / "env.yaml"
        path.write_text("import:\n  exclude_credits: true\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert ImportSettings.load().exclude_credits is True

    def test_env_log_level(self, tmp_path, monkeypatch):
        """Test the log level override."""
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "warning")
        assert ImportSettings.load(tmp_path / "missing.yaml").log_level == "WARNING"

    def test_invalid_currency(self):
        """Test unknown currency codes are rejected."""
        with pytest.raises(StatementImportError):
            ImportSettings.from_dict({"default_currency": "GBP"})

    def test_default_not_supported(self):
        """Test the default currency must be supported."""
        with pytest.raises(StatementImportError, match="not a supported currency"):
            ImportSettings.from_dict({"default_currency": "EUR", "supported_currencies": ["USD"]})


class TestCategoryLookup:
    """Tests for CategoryLookup."""

    @pytest.fixture
    def lookup(self, config_dir):
        return CategoryLookup(config_dir)

    def test_exact_match(self, lookup):
        """Test exact matches on the normalized merchant."""
        match = lookup.lookup("  PayPal ")
        assert match.category == "Shopping"
        assert match.match_type == "exact"

    def test_pattern_match(self, lookup):
        """Test regex patterns on the normalized merchant."""
        match = lookup.lookup("CARREFOUR CITY")
        assert match.category == "Groceries"
        assert match.match_type == "pattern"

    def test_no_match(self, lookup):
        """Test unknown merchants."""
        assert lookup.lookup("DIGI PORTUGAL LDA") is None
        assert lookup.lookup("") is None

    def test_callable(self, lookup):
        """Test the lookup works as a category mapper."""
        assert lookup("Portagem") == "Transport"
        assert lookup("unknown shop") is None

    def test_from_mappings(self):
        """Test building a lookup in code."""
        lookup = CategoryLookup.from_mappings(
            {"Free Mobile": "Utilities"},
            [{"pattern": "^uber", "category": "Transport"}],
        )

        assert lookup("FREE  MOBILE") == "Utilities"
        assert lookup("Uber Eats") == "Transport"
        assert len(lookup) == 2

    def test_missing_file(self, tmp_path):
        """Test a directory without mappings gives an empty lookup."""
        assert len(CategoryLookup(tmp_path)) == 0

    def test_invalid_pattern_skipped(self, tmp_path):
        """Test a broken pattern does not prevent loading the rest."""
        (tmp_path / "category_mappings.json").write_text(json.dumps({
            "exact_matches": {"lidl": "Groceries"},
            "pattern_matches": [
                {"pattern": "(", "category": "Broken"},
                {"pattern": "netflix", "category": "Subscriptions"},
            ],
        }), encoding="utf-8")
        lookup = CategoryLookup(tmp_path)

        assert len(lookup) == 2
        assert lookup("NETFLIX.COM") == "Subscriptions"
