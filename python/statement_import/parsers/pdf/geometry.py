"""
PDF Geometry Module

Positioned text items, row clustering and column ranges used to rebuild
statement tables from PDF pages. Coordinates follow pdfplumber: x grows to
the right, y grows down from the top of the page.
"""

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Iterator, Sequence

import pdfplumber

logger = logging.getLogger(__name__)


# Items whose y lies within this distance of a row's first item share the row
ROW_Y_TOLERANCE = 8
# Header labels of one table lie within this vertical distance of each other
HEADER_Y_TOLERANCE = 10


@dataclass(frozen=True)
class TextItem:
    """A run of text at a position on the page."""

    text: str
    x: float
    y: float
    width: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def stripped(self) -> str:
        return self.text.strip()


@dataclass(frozen=True)
class ColumnRange:
    """Half-open x interval ``[start, end)``."""

    start: float
    end: float

    def __contains__(self, x: float) -> bool:
        return self.start <= x < self.end


@dataclass(frozen=True)
class ColumnLayout:
    """Named column ranges for one page of a statement table."""

    columns: dict[str, ColumnRange] = field(default_factory=dict)

    def contains(self, column: str, x: float) -> bool:
        column_range = self.columns.get(column)
        return column_range is not None and x in column_range

    def __getitem__(self, column: str) -> ColumnRange:
        return self.columns[column]


Row = tuple[TextItem, ...]


@dataclass(frozen=True)
class PageRows:
    """Items of a page sorted by (row, x); each row is an index range into ``items``."""

    items: tuple[TextItem, ...]
    ranges: tuple[range, ...]

    def __iter__(self) -> Iterator[Row]:
        for index in range(len(self.ranges)):
            yield self.row(index)

    def __len__(self) -> int:
        return len(self.ranges)

    def row(self, index: int) -> Row:
        span = self.ranges[index]
        return self.items[span.start:span.stop]


def group_rows(items: Sequence[TextItem], tolerance: float = ROW_Y_TOLERANCE) -> PageRows:
    """Cluster items into rows.

    Items are taken top to bottom; an item joins the current row while its y
    stays within ``tolerance`` of the row's first item.
    """
    ordered: list[TextItem] = []
    ranges: list[range] = []
    row: list[TextItem] = []
    anchor_y: float | None = None

    def close_row() -> None:
        start = len(ordered)
        ordered.extend(sorted(row, key=lambda item: item.x))
        ranges.append(range(start, len(ordered)))

    for item in sorted(items, key=lambda item: (item.y, item.x)):
        if not item.stripped:
            continue
        if anchor_y is not None and abs(item.y - anchor_y) < tolerance:
            row.append(item)
            continue
        if row:
            close_row()
        row = [item]
        anchor_y = item.y

    if row:
        close_row()

    return PageRows(items=tuple(ordered), ranges=tuple(ranges))


def row_text(row: Sequence[TextItem]) -> str:
    return " ".join(item.stripped for item in row)


def page_text(pages: Sequence[Sequence[TextItem]]) -> str:
    """Whole-document text, rows in reading order, for regex scans."""
    lines = []
    for items in pages:
        lines.extend(row_text(row) for row in group_rows(items))
    return "\n".join(lines)


def find_item(items: Sequence[TextItem], predicate: Callable[[str], bool]) -> TextItem | None:
    return next((item for item in items if predicate(item.stripped)), None)


def find_header_row(
    items: Sequence[TextItem],
    anchor: Callable[[str], bool],
    others: dict[str, Callable[[str], bool]],
    tolerance: float = HEADER_Y_TOLERANCE,
) -> dict[str, TextItem] | None:
    """Locate a header row by its labels.

    Args:
        items: Items of one page
        anchor: Predicate for the label that must be present
        others: Predicates for the other labels, by name

    Returns:
        Mapping of ``"anchor"`` and every found name to its item, taken from
        the first anchor candidate whose row holds all other labels; None when
        no candidate qualifies
    """
    for candidate in (item for item in items if anchor(item.stripped)):
        found = {"anchor": candidate}
        for name, predicate in others.items():
            match = next(
                (
                    item for item in items
                    if item is not candidate
                    and abs(item.y - candidate.y) < tolerance
                    and predicate(item.stripped)
                ),
                None,
            )
            if match is None:
                break
            found[name] = match
        else:
            return found
    return None


def read_pdf_pages(data: bytes) -> tuple[list[tuple[TextItem, ...]], list[str]]:
    """Extract positioned words from every page.

    Args:
        data: PDF file content

    Returns:
        (pages, errors): one item tuple per page, in page order, and the
        errors of pages that could not be read (their tuple is empty)

    Raises:
        pdfplumber.utils.exceptions.PdfminerException: When the document
            cannot be opened, including password-protected documents
    """
    pages: list[tuple[TextItem, ...]] = []
    errors: list[str] = []

    # pdfplumber already tries the empty user password
    with pdfplumber.open(BytesIO(data)) as pdf:
        for number, page in enumerate(pdf.pages, start=1):
            try:
                words = page.extract_words(keep_blank_chars=True, use_text_flow=False)
            except Exception as e:
                logger.warning(f"Failed to read page {number}: {e}")
                errors.append(f"Could not read page {number}: {e}")
                pages.append(())
                continue

            pages.append(tuple(
                TextItem(
                    text=word["text"],
                    x=float(word["x0"]),
                    y=float(word["bottom"]),
                    width=float(word["x1"]) - float(word["x0"]),
                )
                for word in words
            ))

    logger.debug(f"Read {len(pages)} PDF pages")
    return pages, errors
