"""
Pytest configuration and fixtures for statement import tests.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "python"))

from statement_import.parsers.base import BankProvider, Currency, ParsedTransaction  # noqa: E402
from statement_import.parsers.pdf.geometry import TextItem  # noqa: E402


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir() -> Path:
    """Return the config directory path."""
    return PROJECT_ROOT / "config"


@pytest.fixture
def deblock_content() -> str:
    """Deblock statement text as copied from the app."""
    return (
        '1 octobre 202529 septembre 2025Prélèvement automatique "DIGI PORTUGAL LDA"7,00\n'
        '3 octobre 20253 octobre 2025Paiement Carte "CARREFOUR CITY"12,50\n'
        '3 octobre 20253 octobre 2025Cashback "CARREFOUR CITY"0,25\n'
        "6 octobre 20256 octobre 2025Virement de Jean Dupont150,00\n"
    )


@pytest.fixture
def bourso_content() -> str:
    """Boursorama account text with wrapped lines and page furniture."""
    return "\n".join([
        "Relevé de compte",
        "Date",
        "Libellé",
        "Débit",
        "Crédit",
        "02/09/2025 CARTE 30/08/25 PAYPAL CB*8897",
        "13,90",
        "03/09/2025 PRLV SEPA FREE MOBILE ABONNEMENT 19,99",
        "04/09/2025 VIR SEPA RECU JEAN DUPONT LOYER 02/09/2025850,00",
        "05/09/2025 VIR INST EMIS MARIE MARTIN 45,00",
        "Page 1",
        "06/09/2025 AVOIR 05/09/25 AMAZON EU CB*8897 23,40",
        "SOLDE AU 30/09/2025",
        "1 234,56",
    ])


@pytest.fixture
def gnosis_csv() -> str:
    """Gnosis Pay export with an approved and a declined payment."""
    return (
        "date,clearing_date,merchant_name,transaction_amount,transaction_currency,"
        "billing_amount,billing_currency,transaction_type_description,status,"
        "card_last_four,mcc_code,kind\n"
        "2026-01-22T12:55:48.898Z,2026-01-23T15:42:15.398Z,POPEYES GARE DU,13.48,EUR,"
        "13.48,EUR,Purchase (POS),Approved,2206,5814,Payment\n"
        "2026-01-23T09:10:00.000Z,,NETFLIX.COM,17.99,EUR,17.99,EUR,Purchase (ECOM),"
        "Declined,2206,4899,Payment\n"
    )


@pytest.fixture
def etherfi_csv() -> str:
    """Etherfi Cash export with a foreign card spend and a top-up."""
    return (
        "timestamp,type,description,status,amount USD,card,card holder name,"
        "original amount,original currency,cashback earned,category\n"
        "2025-12-17T17:40:22.883,card_spend,skycoach.gg,CLEARED,36.21,6794,NDLZ,"
        "30.37,EUR,1.0863,Digital Goods: Games\n"
        "2025-12-18T08:00:00.000,card_spend,STEAM PURCHASE,CLEARED,12.00,6794,NDLZ,,,0.36,Games\n"
        "2025-12-19T10:00:00.000,top_up,Deposit,CLEARED,500.00,,NDLZ,,,,\n"
        "2025-12-20T10:00:00.000,card_spend,PENDING SHOP,PENDING,9.99,6794,NDLZ,,,,\n"
    )


@pytest.fixture
def make_transaction():
    """Factory for canonical transactions."""
    def _make(
        date: str = "2025-09-02",
        description: str = "CARTE PAYPAL",
        amount: str = "13.90",
        merchant_name: str | None = "PAYPAL",
        is_credit: bool = False,
        provider: BankProvider | None = BankProvider.BOURSO,
    ) -> ParsedTransaction:
        return ParsedTransaction(
            date=date,
            description=description,
            amount=Decimal(amount),
            currency=Currency.EUR,
            merchant_name=merchant_name,
            is_credit=is_credit,
            provider=provider,
        )
    return _make


def item(text: str, x: float, y: float, width: float | None = None) -> TextItem:
    """Text item with a width estimated from the text length."""
    return TextItem(text=text, x=x, y=y, width=width if width is not None else len(text) * 5.0)


@pytest.fixture
def bpi_page() -> tuple[TextItem, ...]:
    """One BPI statement page crossing a year boundary."""
    return (
        item("Extracto de conta", 40, 40),
        item("Período De 15/12/2025 a 14/01/2026", 40, 60),
        item("DATA", 40, 100),
        item("DESCRIÇÃO DO MOVIMENTO", 130, 100),
        item("VALOR", 400, 100, width=30),
        item("SALDO", 500, 100, width=30),
        item("MOV", 40, 115),
        item("VAL", 80, 115),
        item("SALDO ANTERIOR", 130, 135),
        item("1.000,00", 490, 135),
        item("20/12", 40, 155),
        item("20/12", 80, 155),
        item("COMPRA CONTINENTE LISBOA", 130, 155),
        item("-45,30", 395, 155),
        item("954,70", 495, 155),
        item("05/01", 40, 175),
        item("05/01", 80, 175),
        item("TRF CR SEPA+ DE NOME COMPLETO EXEMPLO", 130, 175),
        item("250,00", 395, 175),
        item("1.204,70", 490, 175),
        item("UNIPESSOAL,LDA", 130, 187),
        item("PAG. PORTAGEM A1", 130, 200),
        item("-2,35", 400, 200),
        item("1.202,35", 490, 200),
        item("SALDO ACTUAL", 130, 220),
        item("1.202,35", 490, 220),
    )
