"""
Statement Import Exceptions

Parsers report bad input through result objects; these exceptions are kept
for strict lookups and misuse of the API.
"""


class StatementImportError(Exception):
    """Base class for statement import errors."""


class UnknownProviderError(StatementImportError, KeyError):
    """Raised when a provider has no registered parser."""

    def __init__(self, provider: object, input_type: str = "text"):
        self.provider = provider
        self.input_type = input_type
        name = getattr(provider, "value", provider)
        super().__init__(f"No {input_type} parser registered for provider: {name}")

    def __str__(self) -> str:
        return self.args[0]
