"""
Import Settings Module

Loads ``config/statement_import.yaml``. Every key is optional; a missing file
gives the defaults below.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import StatementImportError
from .parsers.base import Currency

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STATEMENT_IMPORT_CONFIG"
LOG_LEVEL_ENV_VAR = "STATEMENT_IMPORT_LOG_LEVEL"
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "statement_import.yaml"


@dataclass
class ImportSettings:
    """Settings for parsing and importing statements."""

    default_currency: Currency = Currency.EUR
    supported_currencies: tuple[Currency, ...] = (Currency.EUR, Currency.USD)
    accepted_statuses: tuple[str, ...] = ("approved", "cleared")
    exclude_credits: bool = False
    dedupe_by_provider: bool = False
    log_level: str = "INFO"
    config_dir: Path = field(default=DEFAULT_CONFIG_DIR)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "ImportSettings":
        """Read settings from YAML.

        Args:
            path: Settings file; defaults to $STATEMENT_IMPORT_CONFIG, then
                config/statement_import.yaml

        Returns:
            ImportSettings

        Raises:
            StatementImportError: When the file holds invalid values
        """
        config_path = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE)

        if not config_path.exists():
            logger.warning(f"Settings file not found: {config_path}, using defaults")
            settings = cls()
        else:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            settings = cls.from_dict(data.get("import", data), config_dir=config_path.parent)
            logger.debug(f"Loaded settings from {config_path}")

        env_level = os.environ.get(LOG_LEVEL_ENV_VAR)
        if env_level:
            settings.log_level = env_level.upper()
        return settings

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_dir: Path | None = None) -> "ImportSettings":
        settings = cls()
        if config_dir is not None:
            settings.config_dir = Path(config_dir)

        try:
            if "default_currency" in data:
                settings.default_currency = Currency(str(data["default_currency"]).upper())
            if "supported_currencies" in data:
                settings.supported_currencies = tuple(
                    Currency(str(code).upper()) for code in data["supported_currencies"]
                )
        except ValueError as e:
            raise StatementImportError(f"Invalid currency in settings: {e}") from e

        if "accepted_statuses" in data:
            settings.accepted_statuses = tuple(str(s).lower() for s in data["accepted_statuses"])
        if "exclude_credits" in data:
            settings.exclude_credits = bool(data["exclude_credits"])
        if "dedupe_by_provider" in data:
            settings.dedupe_by_provider = bool(data["dedupe_by_provider"])
        if "log_level" in data:
            settings.log_level = str(data["log_level"]).upper()
        if data.get("config_dir"):
            settings.config_dir = Path(data["config_dir"])

        if settings.default_currency not in settings.supported_currencies:
            raise StatementImportError(
                f"Default currency {settings.default_currency.value} is not a supported currency"
            )
        return settings
