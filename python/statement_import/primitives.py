"""
Statement Primitives Module

Date, amount and label helpers shared by every provider parser and by the
duplicate detector. All functions are pure and never raise on bad input:
unparseable values come back as None (or zero for the lenient amount parser).
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation


# French month names, with and without accents as they appear in exports
FRENCH_MONTHS: dict[str, int] = {
    "janvier": 1,
    "février": 2,
    "fevrier": 2,
    "mars": 3,
    "avril": 4,
    "mai": 5,
    "juin": 6,
    "juillet": 7,
    "août": 8,
    "aout": 8,
    "septembre": 9,
    "octobre": 10,
    "novembre": 11,
    "décembre": 12,
    "decembre": 12,
}

FRENCH_MONTHS_PATTERN = "|".join(FRENCH_MONTHS)

DDMMYYYY_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4})")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Space, no-break space and narrow no-break space all show up as thousands separators
_SPACES_RE = re.compile(r"[\s\u00a0\u202f]")
_WHITESPACE_RE = re.compile(r"\s+")
_LETTER_RE = re.compile(r"[^\W\d_]")
_QUOTES_RE = re.compile(r"['\"]")
# Plain positional notation only; exponents and NaN/Infinity spellings are not amounts
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

CENTS = Decimal("0.01")


# ============================================================
# Dates
# ============================================================

def _iso(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_ddmmyyyy(value: str) -> str | None:
    """Convert the first DD/MM/YYYY date found in ``value`` to ISO format.

    Impossible calendar dates (31/02/2025) are rejected rather than rolled over.
    """
    if not value:
        return None
    match = DDMMYYYY_RE.search(value)
    if not match:
        return None
    day, month, year = match.groups()
    return _iso(int(year), int(month), int(day))


def format_ddmmyyyy(iso_date: str) -> str | None:
    """Render an ISO date back as DD/MM/YYYY."""
    try:
        parsed = date.fromisoformat(iso_date)
    except (TypeError, ValueError):
        return None
    return parsed.strftime("%d/%m/%Y")


def parse_iso_date(value: str) -> str | None:
    """Reduce an ISO date or timestamp to its UTC calendar date.

    Timestamps without an offset (``2025-12-17T17:40:22.883``) are taken as UTC.
    """
    if not value or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def french_month_to_number(month: str) -> int | None:
    if not month:
        return None
    return FRENCH_MONTHS.get(month.strip().lower())


def parse_french_date(day: str, month: str, year: str) -> str | None:
    """Build an ISO date from ``1``, ``octobre``, ``2025``.

    An unknown month token returns None; it is never guessed.
    """
    month_number = french_month_to_number(month)
    if month_number is None:
        return None
    try:
        return _iso(int(year), month_number, int(day))
    except ValueError:
        return None


@dataclass(frozen=True)
class StatementPeriod:
    """Date range declared on a statement, used to place DD/MM dates in a year."""

    start: date
    end: date

    def year_for(self, month: int) -> int:
        if self.start.year == self.end.year:
            return self.start.year
        # Statement crosses a year boundary (e.g. Dec 2025 -> Jan 2026)
        return self.start.year if month >= self.start.month else self.end.year

    def resolve(self, day: int, month: int) -> str | None:
        return _iso(self.year_for(month), month, day)


# ============================================================
# Amounts
# ============================================================

def parse_decimal(value: str) -> Decimal | None:
    """Parse a signed number written with either decimal separator.

    ``1 234,56``, ``1.234,56``, ``1,234.56`` and ``-95,28`` are all understood.
    When both separators are present the right-most one is the decimal point.
    """
    if value is None:
        return None
    cleaned = _SPACES_RE.sub("", str(value))
    if not cleaned:
        return None

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        if cleaned.count(",") > 1:
            return None
        cleaned = cleaned.replace(",", ".")
    elif cleaned.count(".") > 1:
        cleaned = cleaned.replace(".", "")

    if not _NUMBER_RE.match(cleaned):
        return None
    return Decimal(cleaned)


def parse_amount(value: str) -> Decimal:
    """Lenient French amount parser: magnitude, or zero when unparseable."""
    if not value:
        return Decimal("0")
    cleaned = re.sub(r"[^\d,.\-\s\u00a0\u202f]", "", value)
    amount = parse_decimal(cleaned)
    return abs(amount) if amount is not None else Decimal("0")


def parse_signed_amount(value: str) -> Decimal | None:
    """Strict amount parser for tokens lifted from PDF table cells.

    A decimal comma is required and any alphabetic character disqualifies
    the token, so ``UNIPESSOAL,LDA`` or a cheque number is never an amount.
    """
    if not value or "," not in value:
        return None
    if _LETTER_RE.search(value):
        return None
    return parse_decimal(value.replace("€", ""))


def quantize_amount(amount: Decimal | float | int | str) -> Decimal | None:
    """Magnitude rounded to cents, so 13.9 and 13.90 compare equal.

    Returns None for values that are not numbers or are too large to round
    to cents.
    """
    try:
        value = abs(Decimal(str(amount)))
        if not value.is_finite():
            return None
        return value.quantize(CENTS)
    except InvalidOperation:
        return None


# ============================================================
# Text
# ============================================================

def collapse_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def normalize_label(value: str) -> str:
    """Canonical form used for fingerprints and category keys.

    Lowercase, quotes removed, whitespace runs collapsed.
    """
    if not value:
        return ""
    return collapse_whitespace(_QUOTES_RE.sub("", value.lower()))


def last_four_digits(value: str) -> str | None:
    """Card tail from values like ``2206``, ``**** 2206`` or ``X2206``."""
    if not value:
        return None
    digits = re.sub(r"\D", "", value)
    return digits[-4:] if len(digits) >= 4 else None
