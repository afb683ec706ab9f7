"""
Merchant Name Extraction Module

Pulls a short merchant/counterparty name out of a bank description. Each
provider family has its own prefixes; anything unrecognized falls back to the
first few words. Functions here never raise.
"""

import re

from .parsers.base import BankProvider
from .primitives import collapse_whitespace


QUOTED_RE = re.compile(r'"([^"]+)"')

# Boursorama
BOURSO_CARD_RE = re.compile(r"CARTE\s+\d{2}/\d{2}/\d{2}\s+([A-Z0-9*\s]+?)(?:\s+CB|\s*$)")
BOURSO_DEBIT_ORDER_RE = re.compile(r"PRLV\s+SEPA\s+(.+)", re.IGNORECASE)
BOURSO_TRANSFER_RE = re.compile(r"VIR\s+(?:SEPA|INST)\s+(?:EMIS|RECU)?\s*(.+)", re.IGNORECASE)
BOURSO_REFUND_RE = re.compile(r"AVOIR\s+(?:\d{2}/\d{2}/\d{2}\s+)?(.+)", re.IGNORECASE)

# BPI
BPI_FROM_RE = re.compile(r"\bDE\s+(.+)")
BPI_TO_RE = re.compile(r"PARA\s+(.+)")
BPI_DIRECT_DEBIT_RE = re.compile(r"^DD\s+(.+?)(?:\s+\d{5,})")
BPI_MBWAY_RE = re.compile(r"MB WAY\s+(.+)")
BPI_FIXED_LABELS = (
    ("PAG. PORTAGEM", "Portagem"),
    ("PAG. SERV. ATM", "Pagamento Serviços ATM"),
    ("MANUTENCAO DE CONTA", "BPI - Manutenção conta"),
    ("IMPOSTO DE SELO", "Imposto de Selo"),
)

# Crédit Agricole
CA_CARD_RE = re.compile(r"Carte\s+X\d{4}\s+(.+?)(?:\s+\d{2}/\d{2})", re.IGNORECASE)
CA_CARD_REST_RE = re.compile(r"Carte\s+X\d{4}\s+(.+)", re.IGNORECASE)
CA_DEBIT_ORDER_RE = re.compile(r"^Prlv\s+(?:SEPA\s+)?(.+)", re.IGNORECASE)
CA_TRANSFER_FROM_RE = re.compile(r"^Virement\s+De\s+(.+)", re.IGNORECASE)
CA_TRANSFER_WEB_RE = re.compile(r"^Virement\s+Web\s+(.+)", re.IGNORECASE)
CA_TRANSFER_RE = re.compile(r"^Virement\s+(.+)", re.IGNORECASE)
CA_CASH_RE = re.compile(r"^Ret\s+DAB\s+(?:X\d{4}\s+)?(.+?)(?:\s+\d{2}/\d{2}|$)", re.IGNORECASE)

CARD_TAIL_PATTERNS = (
    re.compile(r"CB\*(\d{4})"),
    re.compile(r"Carte\s+X(\d{4})", re.IGNORECASE),
)


def first_words(text: str, count: int, min_length: int = 0) -> str:
    words = [w for w in collapse_whitespace(text).split(" ") if w and len(w) > min_length]
    return " ".join(words[:count])


def extract_card_last_four(description: str) -> str | None:
    """Card tail printed in the description (``CB*8897``, ``Carte X1234``)."""
    for pattern in CARD_TAIL_PATTERNS:
        match = pattern.search(description or "")
        if match:
            return match.group(1)
    return None


def quoted_merchant(description: str) -> str:
    """Deblock: the quoted counterparty, else the whole operation text."""
    match = QUOTED_RE.search(description)
    if match:
        return match.group(1).strip()
    return collapse_whitespace(description)


def bourso_merchant(description: str) -> str:
    text = collapse_whitespace(description)
    upper = text.upper()

    if "CARTE" in upper:
        match = BOURSO_CARD_RE.search(text)
        if match:
            return collapse_whitespace(match.group(1))

    if "PRLV SEPA" in upper:
        match = BOURSO_DEBIT_ORDER_RE.search(text)
        if match:
            return first_words(match.group(1), 2)

    if upper.startswith("VIR"):
        match = BOURSO_TRANSFER_RE.search(text)
        if match:
            return first_words(match.group(1), 3)

    if "AVOIR" in upper:
        match = BOURSO_REFUND_RE.search(text)
        if match:
            return first_words(match.group(1), 2)

    return first_words(text, 2)


def bpi_merchant(description: str) -> str:
    text = collapse_whitespace(description)
    upper = text.upper()

    if "TRF" in upper and "SEPA" in upper and " DE " in upper:
        match = BPI_FROM_RE.search(text)
        if match:
            return match.group(1).strip()

    if "PARA" in upper:
        match = BPI_TO_RE.search(text)
        if match:
            return match.group(1).strip()

    if upper.startswith("DD "):
        match = BPI_DIRECT_DEBIT_RE.search(text)
        if match:
            return match.group(1).strip()
        return text[3:].strip()

    for prefix, label in BPI_FIXED_LABELS:
        if prefix in upper:
            return label

    if "MB WAY" in upper:
        match = BPI_MBWAY_RE.search(text)
        return match.group(1).strip() if match else "MB WAY"

    if "MULTIBANCO" in upper or "MB " in upper:
        return text

    return first_words(text, 4, min_length=2)


def credit_agricole_merchant(description: str) -> str:
    text = collapse_whitespace(description)

    if re.search(r"Carte\s+X\d{4}", text, re.IGNORECASE):
        match = CA_CARD_RE.search(text) or CA_CARD_REST_RE.search(text)
        if match:
            return match.group(1).strip()

    for pattern in (CA_DEBIT_ORDER_RE, CA_TRANSFER_FROM_RE, CA_TRANSFER_WEB_RE, CA_TRANSFER_RE):
        match = pattern.search(text)
        if match:
            return first_words(match.group(1), 3)

    match = CA_CASH_RE.search(text)
    if match:
        return f"Retrait {match.group(1).strip()}"

    if re.match(r"^Rem\s+Chq", text, re.IGNORECASE):
        return "Remise Chèque"

    return first_words(text, 3, min_length=2)


_EXTRACTORS = {
    BankProvider.DEBLOCK: quoted_merchant,
    BankProvider.BOURSO: bourso_merchant,
    BankProvider.BPI: bpi_merchant,
    BankProvider.CREDIT_AGRICOLE: credit_agricole_merchant,
}


def extract_merchant_name(description: str, provider: BankProvider | None = None) -> str | None:
    """Best-effort merchant name for ``description``.

    Args:
        description: Raw description as printed on the statement
        provider: Provider family whose prefixes apply; CSV providers and
            None keep the description itself

    Returns:
        Merchant name, or None for an empty description
    """
    if not description or not description.strip():
        return None
    extractor = _EXTRACTORS.get(provider)
    if extractor is None:
        return collapse_whitespace(description)
    return extractor(description) or collapse_whitespace(description)
