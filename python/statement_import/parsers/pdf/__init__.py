"""Geometric PDF statement parsers."""

from .base import PdfStatementParser, SectionState
from .bourso_pdf import BoursoPdfParser
from .bpi import BPIParser
from .credit_agricole import CreditAgricoleParser
from .geometry import ColumnLayout, ColumnRange, TextItem, group_rows, read_pdf_pages

__all__ = [
    "BPIParser",
    "BoursoPdfParser",
    "ColumnLayout",
    "ColumnRange",
    "CreditAgricoleParser",
    "PdfStatementParser",
    "SectionState",
    "TextItem",
    "group_rows",
    "read_pdf_pages",
]
