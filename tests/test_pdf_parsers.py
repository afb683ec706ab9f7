"""
PDF Statement Parser Tests

Tests for row clustering, column layouts and the BPI, Boursorama and Crédit
Agricole geometric parsers. Most tests feed positioned text items directly;
one builds a real PDF with reportlab and goes through pdfplumber.
"""

import pytest
from decimal import Decimal
from io import BytesIO
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from conftest import item
from statement_import.parsers.base import BankProvider, Currency
from statement_import.parsers.pdf.bourso_pdf import BoursoPdfParser
from statement_import.parsers.pdf.bpi import BPIParser
from statement_import.parsers.pdf.credit_agricole import CreditAgricoleParser
from statement_import.parsers.pdf.geometry import (
    ColumnLayout,
    ColumnRange,
    TextItem,
    find_header_row,
    group_rows,
    page_text,
    row_text,
)


def build_pdf(lines: list[tuple[str, float, float]], encrypt: str | None = None) -> bytes:
    """Render (text, x, top) triples on one A4 page, optionally password-protected."""
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, encrypt=encrypt)
    pdf.setFont("Helvetica", 9)
    height = A4[1]
    for text, x, top in lines:
        pdf.drawString(x, height - top, text)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class TestGeometry:
    """Tests for row clustering and column ranges."""

    def test_group_rows_by_tolerance(self):
        """Test items join a row while within tolerance of its first item."""
        rows = group_rows([
            item("B", 50, 105),
            item("A", 10, 100),
            item("C", 90, 107.9),
            item("D", 10, 108),
            item("E", 10, 130),
        ])

        assert [row_text(row) for row in rows] == ["A B C", "D", "E"]

    def test_group_rows_skips_blank_items(self):
        """Test whitespace-only items are dropped."""
        rows = group_rows([item("  ", 10, 100), item("A", 20, 100)])
        assert len(rows) == 1
        assert rows.row(0)[0].text == "A"

    def test_column_range_is_half_open(self):
        """Test the start is inside and the end is outside."""
        column = ColumnRange(10, 20)
        assert 10 in column
        assert 19.99 in column
        assert 20 not in column
        assert 9.99 not in column

    def test_layout_contains(self):
        """Test lookups on unknown columns are False."""
        layout = ColumnLayout({"date": ColumnRange(0, 50)})
        assert layout.contains("date", 25) is True
        assert layout.contains("amount", 25) is False

    def test_find_header_row(self):
        """Test a header is found only when all labels share its row."""
        items = [
            item("DATA", 40, 300),
            item("DATA", 40, 100),
            item("VALOR", 400, 104),
            item("SALDO", 500, 96),
        ]
        header = find_header_row(
            items,
            anchor=lambda text: text == "DATA",
            others={
                "valor": lambda text: text == "VALOR",
                "saldo": lambda text: text == "SALDO",
            },
        )

        assert header["anchor"].y == 100
        assert header["valor"].x == 400
        assert find_header_row(items, lambda text: text == "VALOR", {"x": lambda text: text == "X"}) is None

    def test_page_text(self, bpi_page):
        """Test whole-document text keeps reading order."""
        text = page_text([bpi_page])
        assert text.splitlines()[1] == "Período De 15/12/2025 a 14/01/2026"


class TestBPIParser:
    """Tests for the BPI PDF parser."""

    @pytest.fixture
    def parser(self):
        return BPIParser()

    def test_cross_year_statement(self, parser, bpi_page):
        """Test December and January movements of one statement."""
        result = parser.parse_pages([bpi_page])

        assert result.errors == []
        assert len(result.transactions) == 3
        purchase, transfer, toll = result.transactions

        assert purchase.date == "2025-12-20"
        assert purchase.amount == Decimal("45.30")
        assert purchase.is_credit is False
        assert purchase.currency is Currency.EUR
        assert purchase.provider is BankProvider.BPI

        assert transfer.date == "2026-01-05"
        assert transfer.amount == Decimal("250.00")
        assert transfer.is_credit is True
        assert transfer.description == "TRF CR SEPA+ DE NOME COMPLETO EXEMPLO UNIPESSOAL,LDA"
        assert transfer.merchant_name == "NOME COMPLETO EXEMPLO UNIPESSOAL,LDA"

    def test_dateless_row_with_amount_inherits_date(self, parser, bpi_page):
        """Test a second movement printed without its own date."""
        toll = parser.parse_pages([bpi_page]).transactions[2]

        assert toll.date == "2026-01-05"
        assert toll.amount == Decimal("2.35")
        assert toll.is_credit is False
        assert toll.merchant_name == "Portagem"

    def test_balances_never_become_amounts(self, parser, bpi_page):
        """Test the SALDO column is ignored."""
        amounts = [t.amount for t in parser.parse_pages([bpi_page]).transactions]
        assert Decimal("954.70") not in amounts
        assert Decimal("1204.70") not in amounts

    def test_name_fragment_in_amount_zone(self, parser, bpi_page):
        """Test a comma-bearing name fragment is description, not an amount."""
        page = tuple(i for i in bpi_page if i.text != "UNIPESSOAL,LDA") + (
            item("UNIPESSOAL,LDA", 330, 187),
        )
        transfer = parser.parse_pages([page]).transactions[1]

        assert transfer.amount == Decimal("250.00")
        assert transfer.description.endswith("UNIPESSOAL,LDA")
        assert len(parser.parse_pages([page]).transactions) == 3

    def test_missing_period_rejects_document(self, parser, bpi_page):
        """Test no transaction is returned without a statement period."""
        page = tuple(i for i in bpi_page if not i.text.startswith("Período"))
        result = parser.parse_pages([page])

        assert result.transactions == []
        assert result.errors == [BPIParser.PERIOD_ERROR]

    def test_statement_month_fallback(self, parser, bpi_page):
        """Test the older 'Extracto MM/YYYY' heading still places dates."""
        page = tuple(i for i in bpi_page if not i.text.startswith("Período")) + (
            item("Extracto 01/2026", 300, 40),
        )
        dates = [t.date for t in parser.parse_pages([page]).transactions]
        assert dates == ["2025-12-20", "2026-01-05", "2026-01-05"]

    def test_missing_headers(self, parser):
        """Test a page without a table header is reported."""
        page = (
            item("Período De 01/01/2026 a 31/01/2026", 40, 60),
            item("SALDO ANTERIOR", 130, 135),
            item("05/01", 40, 175),
        )
        result = parser.parse_pages([page])
        assert result.errors == ["Could not find column headers on page 1"]

    def test_layout_and_section_carry_to_next_page(self, parser, bpi_page):
        """Test a continuation page without headers reuses the previous layout."""
        first = tuple(i for i in bpi_page if i.y != 220)
        second = (
            item("10/01", 40, 50),
            item("10/01", 80, 50),
            item("COMPRA FARMACIA", 130, 50),
            item("-12,00", 395, 50),
            item("1.190,35", 490, 50),
            item("SALDO ACTUAL", 130, 70),
            item("1.190,35", 490, 70),
        )
        result = parser.parse_pages([first, second])

        assert result.errors == []
        assert len(result.transactions) == 4
        last = result.transactions[-1]
        assert last.date == "2026-01-10"
        assert last.amount == Decimal("12.00")

    def test_rows_outside_section_ignored(self, parser, bpi_page):
        """Test rows after the closing balance are not transactions."""
        page = bpi_page + (
            item("25/01", 40, 260),
            item("COMPRA DEPOIS", 130, 260),
            item("-1,00", 395, 260),
        )
        assert len(parser.parse_pages([page]).transactions) == 3

    @pytest.mark.parametrize("texts,expected", [
        (["MOV", "VAL"], True),
        (["DATA", "DESCRIÇÃO"], True),
        (["CONTA 123456789"], True),
        (["EUR", "1.000,00"], True),
        (["COMPRA", "EUR", "1,00"], False),
        (["COMPRA CONTINENTE"], False),
    ])
    def test_noise_rows(self, parser, texts, expected):
        """Test token-level noise rules."""
        row = tuple(item(text, 40 + index * 100, 100) for index, text in enumerate(texts))
        assert parser.is_noise_row(row_text(row), row) is expected

    def test_can_parse_requires_pdf_bytes(self, parser):
        """Test detection by PDF magic."""
        assert parser.can_parse(b"%PDF-1.7\n...") is True
        assert parser.can_parse(b"date,merchant") is False
        assert parser.can_parse("%PDF-1.7") is False

    def test_corrupt_pdf(self, parser):
        """Test an unreadable document becomes a parse error."""
        result = parser.parse(b"%PDF-1.4\nthis is not a real document")

        assert result.success is False
        assert result.errors[0].startswith("PDF parsing error")

    def test_password_protected_pdf(self, parser):
        """Test a document locked with a user password becomes a parse error."""
        data = build_pdf([("SALDO ANTERIOR", 130, 135)], encrypt="secret")
        result = parser.parse(data)

        assert result.success is False
        assert result.errors[0].startswith("PDF parsing error")

    def test_rendered_pdf(self, parser):
        """Test a real PDF through pdfplumber."""
        data = build_pdf([
            ("Extracto de conta", 40, 40),
            ("Periodo De 01/03/2026 a 31/03/2026", 40, 60),
            ("DATA", 40, 100),
            ("DESCRICAO DO MOVIMENTO", 130, 100),
            ("VALOR", 400, 100),
            ("SALDO", 500, 100),
            ("MOV", 40, 115),
            ("VAL", 80, 115),
            ("SALDO ANTERIOR", 130, 135),
            ("500,00", 490, 135),
            ("03/03", 40, 155),
            ("03/03", 80, 155),
            ("COMPRA PINGO DOCE", 130, 155),
            ("-18,40", 395, 155),
            ("481,60", 495, 155),
            ("12/03", 40, 175),
            ("12/03", 80, 175),
            ("TRF CR SEPA+ DE MARIA SILVA", 130, 175),
            ("100,00", 395, 175),
            ("581,60", 495, 175),
            ("SALDO ACTUAL", 130, 200),
            ("581,60", 495, 200),
        ])
        result = parser.parse(data)

        assert result.errors == []
        assert [(t.date, t.amount, t.is_credit) for t in result.transactions] == [
            ("2026-03-03", Decimal("18.40"), False),
            ("2026-03-12", Decimal("100.00"), True),
        ]
        assert result.transactions[1].merchant_name == "MARIA SILVA"


class TestBoursoPdfParser:
    """Tests for the Boursorama PDF parser."""

    @pytest.fixture
    def parser(self):
        return BoursoPdfParser()

    @pytest.fixture
    def page(self):
        return (
            item("MOUVEMENTS EN EUR", 30, 80),
            item("Date", 30, 100),
            item("Libellé", 80, 100),
            item("Valeur", 400, 100),
            item("Débit", 480, 100),
            item("Crédit", 550, 100),
            item("SOLDE AU : 31/08/2025", 80, 110),
            item("1 500,00", 560, 110),
            item("02/09/2025", 30, 125),
            item("CARTE 30/08/25 PAYPAL CB*8897", 80, 125),
            item("02/09/2025", 400, 125),
            item("13,90", 485, 125),
            item("PAYPAL EUROPE", 80, 140),
            item("04/09/2025", 30, 155),
            item("VIR SEPA RECU JEAN DUPONT", 80, 155),
            item("04/09/2025", 400, 155),
            item("850,00", 560, 155),
            item("Nouveau solde", 80, 175),
            item("2 336,10", 560, 175),
        )

    def test_statement_table(self, parser, page):
        """Test debit and credit columns with a wrapped description."""
        result = parser.parse_pages([page])

        assert result.errors == []
        assert len(result.transactions) == 2
        card, transfer = result.transactions

        assert card.date == "2025-09-02"
        assert card.amount == Decimal("13.90")
        assert card.is_credit is False
        assert card.description == "CARTE 30/08/25 PAYPAL CB*8897 PAYPAL EUROPE"
        assert card.merchant_name == "PAYPAL"
        assert card.card_last_four == "8897"

        assert transfer.is_credit is True
        assert transfer.amount == Decimal("850.00")
        assert transfer.merchant_name == "JEAN DUPONT"

    def test_fallback_layout(self, parser):
        """Test a page without headers uses the standard template."""
        page = (
            item("MOUVEMENTS EN EUR", 30, 80),
            item("15/09/2025", 30, 100),
            item("PRLV SEPA FREE MOBILE", 100, 100),
            item("19,99", 480, 100),
        )
        result = parser.parse_pages([page])

        assert result.errors == []
        txn = result.transactions[0]
        assert txn.date == "2025-09-15"
        assert txn.amount == Decimal("19.99")
        assert txn.merchant_name == "FREE MOBILE"

    def test_no_section_no_transactions(self, parser):
        """Test rows are ignored until the movements heading appears."""
        page = (
            item("15/09/2025", 30, 100),
            item("PRLV SEPA FREE MOBILE", 100, 100),
            item("19,99", 480, 100),
        )
        result = parser.parse_pages([page])
        assert result.errors == ["No transactions found"]


class TestCreditAgricoleParser:
    """Tests for the Crédit Agricole PDF parser."""

    @pytest.fixture
    def parser(self):
        return CreditAgricoleParser()

    @pytest.fixture
    def page(self):
        return (
            item("Date opé.", 30, 80),
            item("Date valeur", 70, 80),
            item("Libellé des opérations", 120, 80),
            item("Débit", 400, 80, width=25),
            item("Crédit", 480, 80, width=30),
            item("Ancien solde créditeur au 31.08.2025", 120, 100),
            item("1 000,00", 480, 100),
            item("02.09", 30, 120),
            item("02.09", 70, 120),
            item("Carte X1234 MONOPRIXþ 01/09", 120, 120),
            item("¨", 300, 120),
            item("45,30", 410, 120),
            item("05.09", 30, 140),
            item("05.09", 70, 140),
            item("Prlv SEPA EDF CLIENTS", 120, 140),
            item("1", 385, 140, width=5),
            item("250,00", 398, 140, width=30),
            item("10.09", 30, 160),
            item("10.09", 70, 160),
            item("Virement De ACME SAS", 120, 160),
            item("2 100,00", 440, 160),
            item("SALAIRE SEPTEMBRE", 120, 172),
            item("Nouveau solde créditeur au 30.09.2025", 120, 300),
            item("1 804,70", 440, 300),
        )

    def test_statement_table(self, parser, page):
        """Test debits, credits and continuation lines."""
        result = parser.parse_pages([page])

        assert result.errors == []
        assert len(result.transactions) == 3
        card, debit_order, salary = result.transactions

        assert card.date == "2025-09-02"
        assert card.amount == Decimal("45.30")
        assert card.merchant_name == "MONOPRIX"
        assert card.card_last_four == "1234"
        assert card.is_credit is False

        assert salary.date == "2025-09-10"
        assert salary.is_credit is True
        assert salary.amount == Decimal("2100.00")
        assert salary.description == "Virement De ACME SAS SALAIRE SEPTEMBRE"
        assert salary.merchant_name.startswith("ACME SAS")

    def test_split_thousands_repaired(self, parser, page):
        """Test a thousands prefix read as description joins the amount."""
        debit_order = parser.parse_pages([page]).transactions[1]

        assert debit_order.amount == Decimal("1250.00")
        assert debit_order.description == "Prlv SEPA EDF CLIENTS"
        assert debit_order.merchant_name == "EDF CLIENTS"

    def test_distant_number_not_joined(self, parser, page):
        """Test a number far from the amount stays in the description."""
        moved = tuple(
            item("1", 300, 140, width=5) if (i.text == "1" and i.y == 140) else i
            for i in page
        )
        debit_order = parser.parse_pages([moved]).transactions[1]

        assert debit_order.amount == Decimal("250.00")
        assert debit_order.description == "Prlv SEPA EDF CLIENTS 1"

    def test_stray_glyphs_removed(self, parser, page):
        """Test font artifacts do not leak into descriptions."""
        card = parser.parse_pages([page]).transactions[0]
        assert card.description == "Carte X1234 MONOPRIX 01/09"

    def test_missing_period(self, parser, page):
        """Test the opening balance date is required."""
        page = tuple(i for i in page if not i.text.startswith("Ancien solde")) + (
            item("Ancien solde", 120, 100),
        )
        result = parser.parse_pages([page])

        assert result.transactions == []
        assert result.errors == [CreditAgricoleParser.PERIOD_ERROR]

    def test_closing_date_fallback(self, parser, page):
        """Test the 'Date d'arrêté' line stands in for the closing balance."""
        page = tuple(i for i in page if not i.text.startswith("Nouveau solde")) + (
            item("Date d'arrêté : 30 septembre 2025", 30, 20),
            item("Total des opérations", 120, 300),
        )
        result = parser.parse_pages([page])
        assert len(result.transactions) == 3

    def test_prepare_items_drops_glyph_only_items(self, parser, page):
        """Test items made only of stray glyphs are dropped."""
        prepared = parser.prepare_items(page)
        assert all(isinstance(i, TextItem) for i in prepared)
        assert len(prepared) == len(page) - 1
