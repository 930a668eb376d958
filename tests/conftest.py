from __future__ import annotations

import re

import pytest

from keyword_url_report.clients.sheets_client import MissingSheetError, SheetRef

_CELL = re.compile(r"^([A-Z]+)(\d+)$")
_COLUMNS = re.compile(r"^([A-Z]+):([A-Z]+)$")


def _column_index(letters: str) -> int:
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


class FakeSheetStore:
    """In-memory stand-in for SheetsClient used by writer and workflow tests."""

    def __init__(self, grids: dict[str, list[list[object]]] | None = None):
        self.cells: dict[str, dict[tuple[int, int], object]] = {}
        self.ids: dict[str, int] = {}
        self.percent_formats: list[tuple[str, int, int, int]] = []
        self.renames: list[tuple[str, str]] = []
        for title, grid in (grids or {}).items():
            self._create(title)
            for r, row in enumerate(grid, start=1):
                for c, value in enumerate(row, start=1):
                    if value not in (None, ""):
                        self.cells[title][(r, c)] = value

    def _create(self, title: str) -> SheetRef:
        sheet_id = len(self.ids) + 100
        self.ids[title] = sheet_id
        self.cells[title] = {}
        return SheetRef(sheet_id=sheet_id, title=title)

    def list_sheets(self) -> list[SheetRef]:
        return [SheetRef(sheet_id=sheet_id, title=title) for title, sheet_id in self.ids.items()]

    def require_sheet(self, title: str) -> SheetRef:
        if title not in self.ids:
            raise MissingSheetError(f"Sheet '{title}' is not defined in the spreadsheet.")
        return SheetRef(sheet_id=self.ids[title], title=title)

    def read_values(self, title: str, a1_range: str) -> list[list[object]]:
        cells = self.cells[title]
        cell_match = _CELL.match(a1_range)
        if cell_match:
            key = (int(cell_match.group(2)), _column_index(cell_match.group(1)))
            return [[cells[key]]] if key in cells else []
        columns_match = _COLUMNS.match(a1_range)
        assert columns_match, f"unsupported range {a1_range}"
        first = _column_index(columns_match.group(1))
        last = _column_index(columns_match.group(2))
        rows_in_range = [r for (r, c) in cells if first <= c <= last]
        if not rows_in_range:
            return []
        values: list[list[object]] = []
        for r in range(1, max(rows_in_range) + 1):
            row = [cells.get((r, c), "") for c in range(first, last + 1)]
            while row and row[-1] == "":
                row.pop()
            values.append(row)
        return values

    def read_cell(self, title: str, cell: str) -> object | None:
        values = self.read_values(title, cell)
        return values[0][0] if values else None

    def add_sheet(self) -> SheetRef:
        return self._create(f"シート{len(self.ids) + 1}")

    def rename_sheet(self, sheet: SheetRef, title: str) -> SheetRef:
        self.cells[title] = self.cells.pop(sheet.title)
        self.ids[title] = self.ids.pop(sheet.title)
        self.renames.append((sheet.title, title))
        return SheetRef(sheet_id=sheet.sheet_id, title=title)

    def last_filled_row(self, sheet: SheetRef, column: int) -> int:
        rows = [r for (r, c), value in self.cells[sheet.title].items() if c == column and str(value).strip()]
        return max(rows, default=0)

    def write_rows(self, sheet: SheetRef, start_row: int, start_column: int, rows: list[list[object]]) -> None:
        for r, row in enumerate(rows, start=start_row):
            for c, value in enumerate(row, start=start_column):
                self.cells[sheet.title][(r, c)] = value

    def format_percent(self, sheet: SheetRef, start_row: int, row_count: int, column: int) -> None:
        self.percent_formats.append((sheet.title, start_row, row_count, column))

    def row(self, title: str, row: int, first_column: int = 1, width: int = 7) -> list[object]:
        return [self.cells[title].get((row, c), "") for c in range(first_column, first_column + width)]


@pytest.fixture
def fake_store_factory():
    return FakeSheetStore
