"""
Boursorama Text Statement Parser

Text copied from a Boursorama account page or PDF viewer. A transaction
starts on a line beginning with DD/MM/YYYY; its description and amount may
wrap onto the following lines. Lines are folded through ``step`` over an
immutable ContinuationState, so each transition can be tested on its own.
"""

import logging
import re
from dataclasses import dataclass, replace
from decimal import Decimal
from functools import reduce
from typing import Iterable

from ..merchant import extract_card_last_four, extract_merchant_name
from ..primitives import collapse_whitespace, parse_amount, parse_ddmmyyyy
from ..transaction_factory import create_transaction
from .base import BankProvider, BaseParser, Currency, ParsedTransaction, ParserResult, RawTransaction

logger = logging.getLogger(__name__)


AMOUNT = r"\d{1,3}(?:[ \u00a0\u202f]\d{3})+,\d{2}|\d+,\d{2}"

DATE_ANCHOR_RE = re.compile(r"^(\d{2}/\d{2}/\d{4})")
PURE_AMOUNT_RE = re.compile(rf"^-?({AMOUNT})\s*€?$")
DATE_AMOUNT_RE = re.compile(rf"^(\d{{2}}/\d{{2}}/\d{{4}})({AMOUNT})\s*€?$")
CONCAT_AMOUNT_RE = re.compile(rf"(\d{{2}}/\d{{2}}/\d{{4}})({AMOUNT})\s*€?$")
TRAILING_AMOUNT_RE = re.compile(rf"(?<![\d/,.])({AMOUNT})\s*€?$")
EMBEDDED_AMOUNT_RE = re.compile(rf"(?<![\d/,.])({AMOUNT})(?![\d,])")
TRAILING_DATE_RE = re.compile(r"\s*\d{2}/\d{2}/\d{4}\s*$")

SKIP_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^date$",
        r"^libellé$",
        r"^valeur$",
        r"^débit$",
        r"^crédit$",
        r"^solde",
        r"^page\s+\d+",
        r"^relevé",
        r"^compte",
        r"^iban",
        r"^bic",
        r"^période",
        r"^du\s+\d",
        r"^au\s+\d",
        r"^\d+\s*€$",
        r"^-?\d[\d\s]*,\d{2}\s*€?$",
    )
]
MIN_LINE_LENGTH = 5


@dataclass(frozen=True)
class ContinuationState:
    """Accumulator of the line fold: the open transaction and the closed ones."""

    current: RawTransaction | None = None
    finished: tuple[RawTransaction, ...] = ()

    def closed(self) -> tuple[RawTransaction, ...]:
        """All transactions, the open one included (end of input)."""
        if self.current is None:
            return self.finished
        return (*self.finished, self.current)


def is_credit(description: str) -> bool:
    """Direction of a Boursorama line.

    Only transfers (``VIR SEPA``/``VIR INST``) and refunds (``AVOIR``) can be
    credits: ``EMIS`` is outgoing, ``AVOIR`` is incoming, and a transfer that
    is neither a card payment nor a direct debit is assumed incoming. The last
    rule is a heuristic and may misclassify.
    """
    upper = description.upper()
    transfer = upper.startswith(("VIR INST", "VIR SEPA"))
    if not transfer and "AVOIR" not in upper:
        return False
    if "EMIS" in upper:
        return False
    if "AVOIR" in upper:
        return True
    return "CARTE" not in upper and "PRLV" not in upper


def is_noise(line: str) -> bool:
    if len(line) < MIN_LINE_LENGTH:
        return True
    return any(pattern.search(line) for pattern in SKIP_PATTERNS)


def standalone_amount(line: str) -> Decimal | None:
    """Amount of a line that holds nothing but an amount (or a date glued to one)."""
    match = PURE_AMOUNT_RE.match(line)
    if match:
        amount = parse_amount(match.group(1))
    else:
        match = DATE_AMOUNT_RE.match(line)
        if not match:
            return None
        amount = parse_amount(match.group(2))
    return amount if amount > 0 else None


def start_transaction(line: str) -> RawTransaction:
    """Open a transaction on a date-anchored line."""
    date = line[:10]
    rest = line[10:].strip()
    amount: Decimal | None = None

    match = CONCAT_AMOUNT_RE.search(rest)
    if match:
        amount = parse_amount(match.group(2))
        rest = rest[:match.start()].strip()
    else:
        match = TRAILING_AMOUNT_RE.search(rest)
        if match:
            amount = parse_amount(match.group(1))
            rest = TRAILING_DATE_RE.sub("", rest[:match.start()]).strip()

    raw = RawTransaction(date=date, description=[rest], original_lines=[line])
    if amount:
        return raw.with_amount(amount, is_credit(rest))
    return raw


def step(state: ContinuationState, line: str) -> ContinuationState:
    """Advance the fold by one line."""
    current = state.current

    # A wrapped amount must be claimed before the balance-line skip rule sees it
    if current is not None and not current.has_amount:
        amount = standalone_amount(line)
        if amount is not None:
            return replace(state, current=current.with_amount(amount, is_credit(current.text), line))

    if is_noise(line):
        return state

    if DATE_ANCHOR_RE.match(line):
        return ContinuationState(current=start_transaction(line), finished=state.closed())

    if current is None:
        return state
    return replace(state, current=current.extended(line))


def fold_lines(lines: Iterable[str]) -> tuple[RawTransaction, ...]:
    return reduce(step, lines, ContinuationState()).closed()


def split_lines(content: str) -> list[str]:
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    return [line.strip() for line in content.split("\n") if line.strip()]


def clean_description(description: str) -> str:
    description = re.sub(r"\d{2}/\d{2}/\d{4}", "", description)
    description = re.sub(r"\d{2}/\d{2}/\d{2}", "", description)
    description = re.sub(r"CB\*\d+", "", description)
    return collapse_whitespace(description)


class BoursoParser(BaseParser):
    """Parser for Boursorama statement text."""

    PROVIDER = BankProvider.BOURSO

    DETECTION_KEYWORDS = ("VIR SEPA", "VIR INST", "PRLV SEPA", "CARTE", "AVOIR")

    def can_parse(self, content: str) -> bool:
        if not content or not re.search(r"\d{2}/\d{2}/\d{4}", content):
            return False
        return any(keyword in content for keyword in self.DETECTION_KEYWORDS)

    def _parse(self, content: str, default_currency: Currency, result: ParserResult) -> None:
        for raw in fold_lines(split_lines(content)):
            transaction = self.finalize(raw, default_currency, result.errors)
            if transaction:
                result.transactions.append(transaction)

    def finalize(
        self, raw: RawTransaction, default_currency: Currency, errors: list[str]
    ) -> ParsedTransaction | None:
        """Turn an assembled RawTransaction into a ParsedTransaction.

        Args:
            raw: Transaction built by the fold
            default_currency: Currency of the account
            errors: Error list, appended to when the transaction is unusable

        Returns:
            ParsedTransaction or None
        """
        description = raw.text
        debit, credit = raw.debit, raw.credit

        if not raw.has_amount:
            # Last chance: an amount buried inside the description is a debit
            match = EMBEDDED_AMOUNT_RE.search(description)
            if match:
                debit = parse_amount(match.group(1))
                description = collapse_whitespace(description[:match.start()] + " " + description[match.end():])

        if not debit and not credit:
            errors.append(f"No amount found: {description[:50]}...")
            return None

        transaction_date = parse_ddmmyyyy(raw.date)
        if transaction_date is None:
            errors.append(f"Invalid date: {raw.date}")
            return None

        credit_side = bool(credit) and not debit
        return create_transaction(
            date=transaction_date,
            description=clean_description(description),
            amount=credit if credit_side else debit,
            currency=default_currency,
            merchant_name=extract_merchant_name(description, self.PROVIDER),
            card_last_four=extract_card_last_four(description),
            is_credit=credit_side,
            original_line="\n".join(raw.original_lines),
            provider=self.PROVIDER,
            errors=errors,
        )
