"""
Transaction Factory Module

Single place where parser output becomes a ParsedTransaction. Every field is
validated through a pydantic schema; a record that fails validation is
dropped and the reason is appended to the caller's error list.
"""

import logging
from datetime import date as Date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .parsers.base import BankProvider, Currency, ParsedTransaction
from .primitives import collapse_whitespace

logger = logging.getLogger(__name__)

# Upper bound on a single movement
MAX_AMOUNT = Decimal("1000000000000")


class TransactionSchema(BaseModel):
    """Validation schema for canonical transactions."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    description: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, lt=MAX_AMOUNT)
    currency: Currency
    merchant_name: str | None = None
    card_last_four: str | None = Field(default=None, pattern=r"^\d{4}$")
    is_credit: bool = False
    original_line: str | None = None
    provider: BankProvider | None = None

    @field_validator("date")
    @classmethod
    def _real_calendar_date(cls, value: str) -> str:
        Date.fromisoformat(value)
        return value

    @field_validator("merchant_name", "card_last_four", "original_line", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


def create_transaction(
    *,
    date: str | None,
    description: str | None,
    amount: Decimal | None,
    currency: Currency | str,
    errors: list[str],
    merchant_name: str | None = None,
    card_last_four: str | None = None,
    is_credit: bool = False,
    original_line: str | None = None,
    provider: BankProvider | None = None,
) -> ParsedTransaction | None:
    """Validate parser output and build a ParsedTransaction.

    Args:
        date: ISO date string
        description: Human-readable label
        amount: Amount in any sign; stored as its magnitude
        currency: Currency enum or code
        errors: Error list of the running parse, appended to on failure
        merchant_name: Extracted merchant, if any
        card_last_four: Card tail, if the statement shows one
        is_credit: True for money coming in
        original_line: Source text the transaction was read from
        provider: Originating provider

    Returns:
        ParsedTransaction, or None when the record is invalid
    """
    label = collapse_whitespace(description or "")
    try:
        schema = TransactionSchema(
            date=date or "",
            description=label,
            amount=abs(amount) if amount is not None else Decimal("0"),
            currency=currency,
            merchant_name=merchant_name,
            card_last_four=card_last_four,
            is_credit=is_credit,
            original_line=original_line,
            provider=provider,
        )
    except ValidationError as e:
        message = f"Invalid transaction ({label[:40] or 'no description'}): {_format_validation_error(e)}"
        logger.debug(message)
        errors.append(message)
        return None

    return ParsedTransaction(
        date=schema.date,
        description=schema.description,
        amount=schema.amount,
        currency=schema.currency,
        merchant_name=schema.merchant_name,
        card_last_four=schema.card_last_four,
        is_credit=schema.is_credit,
        original_line=schema.original_line,
        provider=schema.provider,
    )
