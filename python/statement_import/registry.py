"""
Provider Registry Module

Routes statement content to the parser of its provider. The registry holds an
explicit, ordered list of parsers; detection asks each in turn.
"""

import logging
from typing import Iterable

from .exceptions import UnknownProviderError
from .parsers.base import BankProvider, BaseParser, Currency, ParserResult
from .parsers.bourso import BoursoParser
from .parsers.deblock import DeblockParser
from .parsers.etherfi import EtherfiParser
from .parsers.gnosis_pay import GnosisPayParser
from .parsers.pdf import BoursoPdfParser, BPIParser, CreditAgricoleParser

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Ordered collection of text/CSV parsers plus PDF parsers by provider."""

    def __init__(self, parsers: Iterable[BaseParser], pdf_parsers: Iterable[BaseParser] = ()):
        """Initialize the registry.

        Args:
            parsers: Text and CSV parsers, in detection order
            pdf_parsers: PDF parsers; at most one per provider
        """
        self.parsers: tuple[BaseParser, ...] = tuple(parsers)
        self.pdf_parsers: dict[BankProvider, BaseParser] = {p.provider: p for p in pdf_parsers}

    @property
    def providers(self) -> list[BankProvider]:
        return [parser.provider for parser in self.parsers]

    @property
    def pdf_providers(self) -> list[BankProvider]:
        return list(self.pdf_parsers)

    def detect(self, content: str) -> BankProvider | None:
        """First provider whose parser recognizes ``content``."""
        for parser in self.parsers:
            if parser.can_parse(content):
                logger.debug(f"Detected provider {parser.provider.value}")
                return parser.provider
        return None

    def get(self, provider: BankProvider | str) -> BaseParser:
        """Text/CSV parser for ``provider``.

        Raises:
            UnknownProviderError: When no parser is registered for it
        """
        provider = self._coerce(provider)
        for parser in self.parsers:
            if parser.provider is provider:
                return parser
        raise UnknownProviderError(provider)

    def get_pdf(self, provider: BankProvider | str) -> BaseParser:
        """PDF parser for ``provider``.

        Raises:
            UnknownProviderError: When no PDF parser is registered for it
        """
        coerced = self._coerce(provider)
        if coerced not in self.pdf_parsers:
            raise UnknownProviderError(coerced, input_type="PDF")
        return self.pdf_parsers[coerced]

    def parse(
        self,
        content: str,
        provider: BankProvider | str | None = None,
        default_currency: Currency = Currency.EUR,
    ) -> ParserResult:
        """Parse text or CSV content, detecting the provider when not given.

        Args:
            content: Pasted text or CSV content
            provider: Provider to use; detected from the content when None
            default_currency: Currency for statements that do not state one

        Returns:
            ParserResult; unrecognized content yields one error and nothing parsed
        """
        if provider is None:
            provider = self.detect(content)
            if provider is None:
                logger.warning("Could not detect statement provider")
                return ParserResult.failure("Unknown provider: could not recognize the statement format")

        try:
            parser = self.get(provider)
        except UnknownProviderError:
            return ParserResult.failure(f"Unknown provider: {getattr(provider, 'value', provider)}")
        return parser.parse(content, default_currency)

    def parse_pdf(
        self,
        data: bytes,
        provider: BankProvider | str,
        default_currency: Currency = Currency.EUR,
    ) -> ParserResult:
        try:
            parser = self.get_pdf(provider)
        except UnknownProviderError:
            return ParserResult.failure(f"No PDF parser for provider: {getattr(provider, 'value', provider)}")
        return parser.parse(data, default_currency)

    @staticmethod
    def _coerce(provider: BankProvider | str) -> BankProvider:
        if isinstance(provider, BankProvider):
            return provider
        try:
            return BankProvider(str(provider).strip().lower())
        except ValueError:
            raise UnknownProviderError(provider) from None


def default_registry(
    accepted_statuses: Iterable[str] | None = None,
    supported_currencies: Iterable[Currency] | None = None,
) -> ProviderRegistry:
    """Registry with every built-in parser, in detection order.

    CSV exports come first: their header line is the most specific signal.
    """
    accepted = tuple(accepted_statuses) if accepted_statuses is not None else None
    currencies = tuple(supported_currencies) if supported_currencies is not None else None
    return ProviderRegistry(
        parsers=[
            GnosisPayParser(accepted_statuses=accepted, supported_currencies=currencies),
            EtherfiParser(accepted_statuses=accepted, supported_currencies=currencies),
            DeblockParser(),
            BoursoParser(),
        ],
        pdf_parsers=[
            BPIParser(),
            BoursoPdfParser(),
            CreditAgricoleParser(),
        ],
    )
