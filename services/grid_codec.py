# services/grid_codec.py
"""
Grid <-> row conversion for the inventory tab.

The grid comes from the spreadsheet API as a matrix of cells (formatted value +
user format). Row 0 holds the column labels, data starts at row 1. Cell text is
pushed through the csv reader so that quoting and width handling match the
way the sheet is exported; to keep multi-line or comma-containing cells from
breaking that stage, delimiter / newline / quote / dollar characters are swapped for
placeholders first and swapped back on every string field afterwards.
"""
from __future__ import annotations

import csv
import re
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from services.exceptions import ValidationError
from services.inventory_models import Cell, GridColumn, SheetRow, Tab
from services.sheet_schema import SheetSchema

DELIMITER = ","
NEW_LINE = "\n"
CARRIAGE_RETURN = "\r"
DOUBLE_QUOTE = '"'
DOLLAR = "$"

# "$" is escaped too, so cell text that already reads "${DELIMITER}" survives
_PLACEHOLDERS = {
    DELIMITER: "${DELIMITER}",
    NEW_LINE: "${NEW_LINE}",
    CARRIAGE_RETURN: "${CARRIAGE_RETURN}",
    DOUBLE_QUOTE: "${DOUBLE_QUOTE}",
    DOLLAR: "${DOLLAR}",
}
_RAW = {placeholder: raw for raw, placeholder in _PLACEHOLDERS.items()}
_ESCAPE_RE = re.compile("|".join(re.escape(raw) for raw in _PLACEHOLDERS))
_UNESCAPE_RE = re.compile("|".join(re.escape(p) for p in _RAW))

_A1_RE = re.compile(r"^\$?([A-Za-z]+)\$?(\d+)$")


# ---------- escaping ----------

def escape_cell(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _PLACEHOLDERS[m.group(0)], text)


def unescape_cell(text: str) -> str:
    return _UNESCAPE_RE.sub(lambda m: _RAW[m.group(0)], text)


# ---------- A1 helpers ----------

def column_number_to_letter(number: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA (bijective base-26)."""
    if not isinstance(number, int) or number < 1:
        raise ValueError(f"column number must be a positive integer, got {number!r}")
    letters = ""
    while number:
        number, rem = divmod(number - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def column_letter_to_number(letters: str) -> int:
    """A -> 1, Z -> 26, AA -> 27."""
    letters = (letters or "").strip().upper()
    if not letters or not letters.isascii() or not letters.isalpha():
        raise ValueError(f"invalid column letter: {letters!r}")
    number = 0
    for ch in letters:
        number = number * 26 + (ord(ch) - 64)
    return number


def cell_address(row_index: int, col_index: int) -> str:
    """Zero-based (row, col) -> A1 address."""
    return f"{column_number_to_letter(col_index + 1)}{row_index + 1}"


def parse_cell(a1: str) -> Tuple[int, int]:
    """'B7' -> (2, 7): 1-based column and row."""
    m = _A1_RE.match((a1 or "").strip())
    if not m:
        raise ValidationError(f"invalid cell reference: {a1!r}")
    row = int(m.group(2))
    if row < 1:
        raise ValidationError(f"invalid cell reference: {a1!r}")
    return column_letter_to_number(m.group(1)), row


def write_range(start_cell: str, values: Sequence[Sequence[Any]]) -> str:
    """
    Target range for writing ``values`` with its top-left corner at ``start_cell``.
    The extent is the number of rows by the widest row.
    """
    col, row = parse_cell(start_cell)
    height = len(values)
    width = max((len(r) for r in values), default=0)
    if height == 0 or width == 0:
        raise ValidationError("nothing to write")
    end = f"{column_number_to_letter(col + width - 1)}{row + height - 1}"
    return f"{column_number_to_letter(col)}{row}:{end}"


def sheet_range(tab_title: str, rng: str) -> str:
    """``'Title'!A1:B2`` with single quotes in the title doubled, as A1 notation requires."""
    return "'{}'!{}".format(tab_title.replace("'", "''"), rng)


def next_empty_row(tab: Tab) -> int:
    """1-based row just below the last row holding any non-empty cell."""
    last = -1
    for index, row in enumerate(tab.cells):
        if any(c.formatted_value for c in row):
            last = index
    return last + 2


def append_range(tab: Tab, values: Sequence[Sequence[Any]]) -> str:
    return write_range(f"A{next_empty_row(tab)}", values)


# ---------- columns ----------

def last_valid_column(row: Iterable[Cell], include_format: bool = False) -> int:
    """
    Number of columns up to and including the last used cell of ``row``.
    A cell counts as used when it has a formatted value, or (with
    ``include_format``) when it carries a user format.
    """
    last = 0
    for index, cell in enumerate(row, start=1):
        if cell.formatted_value or (include_format and cell.user_format is not None):
            last = index
    return last


def used_width(rows: Iterable[Iterable[Cell]], include_format: bool = False) -> int:
    return max((last_valid_column(r, include_format) for r in rows), default=0)


def read_columns(
        tab: Tab,
        exclude_empty: bool = False,
        include_valid_data: bool = True,
        ignore_user_format: bool = False,
) -> List[GridColumn]:
    """
    Header columns of ``tab``.

    With ``include_valid_data`` the list is padded or trimmed to the used
    width of the tab, so trailing blank header cells above real data still
    count and trailing unused columns do not.
    """
    if not tab.cells:
        return []

    columns = [
        GridColumn(c.formatted_value, None if ignore_user_format else c.user_format)
        for c in tab.header
    ]
    if exclude_empty:
        return [c for c in columns if c.label]

    if include_valid_data:
        width = used_width(tab.cells, include_format=not ignore_user_format)
        columns = columns[:width] + [GridColumn("") for _ in range(width - len(columns))]
    return columns


def find_column(columns: Sequence[GridColumn], label: str) -> int:
    """Index of the first column labelled ``label`` (formats ignored), or -1."""
    wanted = label.strip()
    for index, column in enumerate(columns):
        if column.label.strip() == wanted:
            return index
    return -1


# ---------- codec ----------

class GridCodec:
    def __init__(self, schema: SheetSchema):
        self.schema = schema

    def _text_rows(self, tab: Tab, column_count: int, exclude_empty_rows: bool):
        """Yield (row_number, values) for data rows, padded/cut to ``column_count``."""
        for row_number, row in enumerate(tab.cells[1:], start=1):
            values = [c.formatted_value or "" for c in row[:column_count]]
            values += [""] * (column_count - len(values))
            if exclude_empty_rows and not any(values):
                continue
            yield row_number, values

    def decode(self, tab: Tab, column_count: Optional[int] = None, exclude_empty_rows: bool = True) -> List[SheetRow]:
        """
        Decode the data rows of ``tab`` into ``SheetRow`` objects, in sheet order.

        ``row_number`` on each result is the 1-based index among all data rows
        (blank rows included), so it can target the originating cell later.
        """
        if len(tab.cells) <= 1:
            return []

        if column_count is None:
            column_count = len(tab.header)
        if column_count <= 0:
            return []

        header = [c.formatted_value or "" for c in tab.header[:column_count]]
        header += [""] * (column_count - len(header))

        numbers, lines = [], [DELIMITER.join(escape_cell(h) for h in header)]
        for row_number, values in self._text_rows(tab, column_count, exclude_empty_rows):
            numbers.append(row_number)
            lines.append(DELIMITER.join(escape_cell(v) for v in values))

        parsed = [next(csv.reader([line], delimiter=DELIMITER), []) for line in lines]
        labels = [unescape_cell(h) for h in _pad(parsed[0], column_count)]

        rows = []
        for row_number, record in zip(numbers, parsed[1:]):
            values = [unescape_cell(v) for v in _pad(record, column_count)]
            rows.append(self._to_row(row_number, labels, values))
        return rows

    def _to_row(self, row_number: int, labels: List[str], values: List[str]) -> SheetRow:
        by_label = {}
        for label, value in zip(labels, values):
            by_label.setdefault(label.strip(), value)
        kwargs = {spec.field_name: spec.decode(by_label.get(spec.column_label, "")) for spec in self.schema}
        return SheetRow(row_number=row_number, **kwargs)

    def encode(self, records: Iterable[Any], column_order: Optional[Sequence[str]] = None) -> List[List[Any]]:
        """
        Cell matrix for ``records`` in ``column_order`` (labels).
        Records may be objects or mappings keyed by field name; labels not in
        the schema produce empty cells.
        """
        order = list(column_order) if column_order is not None else self.schema.labels
        matrix = []
        for record in records:
            row = []
            for label in order:
                spec = self.schema.by_label(label)
                if spec is None:
                    row.append("")
                    continue
                if isinstance(record, dict):
                    value = record.get(spec.field_name)
                else:
                    value = getattr(record, spec.field_name, None)
                row.append(spec.encode(value))
            matrix.append(row)
        return matrix


def _pad(values: List[str], count: int) -> List[str]:
    return (list(values) + [""] * count)[:count]
