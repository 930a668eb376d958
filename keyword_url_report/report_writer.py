from __future__ import annotations

import logging
from dataclasses import dataclass

from keyword_url_report.clients.sheets_client import SheetRef
from keyword_url_report.date_range import report_sheet_title
from keyword_url_report.models import (
    ANCHOR_QUALIFIED,
    EXACT_MATCH,
    MISMATCH,
    ClassifiedRow,
    DateRange,
    KeywordOutcome,
    PlaceholderRow,
)

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    EXACT_MATCH: "対策URL一致",
    MISMATCH: "意図していない表示URL",
    ANCHOR_QUALIFIED: "枝付きURL",
}
NO_RESULT_LABEL = "該当データなし"

KEYWORD_HEADER = ("キーワード", "記事URL")
CATEGORY_HEADER = "分類"
METRIC_HEADER = ("クリック数", "インプレッション", "平均順位", "平均CTR")

MAIN_SHEET = "main"
MATCHED_SHEET = "matched"


def header_row(category_column: bool) -> list[str]:
    header = list(KEYWORD_HEADER)
    if category_column:
        header.append(CATEGORY_HEADER)
    header.extend(METRIC_HEADER)
    return header


@dataclass(frozen=True)
class ReportSection:
    sheet: str
    categories: tuple[str, ...]
    start_column: int
    header_row: int
    title: str = ""
    placeholders: bool = False


def build_sections(layout: str, category_column: bool) -> list[ReportSection]:
    """Where each category lands for the ``single`` or ``dual`` layout."""
    if layout == "dual":
        width = len(header_row(category_column))
        return [
            ReportSection(
                sheet=MAIN_SHEET,
                categories=(MISMATCH,),
                start_column=1,
                header_row=2,
                title=CATEGORY_LABELS[MISMATCH],
            ),
            ReportSection(
                sheet=MAIN_SHEET,
                categories=(ANCHOR_QUALIFIED,),
                start_column=width + 2,
                header_row=2,
                title=CATEGORY_LABELS[ANCHOR_QUALIFIED],
            ),
            ReportSection(
                sheet=MATCHED_SHEET,
                categories=(EXACT_MATCH,),
                start_column=1,
                header_row=1,
                placeholders=True,
            ),
        ]
    return [
        ReportSection(
            sheet=MAIN_SHEET,
            categories=(EXACT_MATCH, MISMATCH, ANCHOR_QUALIFIED),
            start_column=1,
            header_row=1,
            placeholders=True,
        )
    ]


class ReportWriter:
    """Appends classified keyword results into the output sheet(s)."""

    def __init__(
        self,
        store,
        layout: str = "single",
        category_column: bool = True,
        report_label: str = "対キーワード週次検索結果",
        matched_report_label: str = "対キーワードURL週次検索結果",
    ) -> None:
        self.store = store
        self.layout = layout
        self.category_column = category_column
        self.labels = {MAIN_SHEET: report_label, MATCHED_SHEET: matched_report_label}
        self.sections = build_sections(layout, category_column)
        self._sheets: dict[str, SheetRef] = {}

    @property
    def ctr_offset(self) -> int:
        return len(header_row(self.category_column)) - 1

    def render_row(self, item: ClassifiedRow) -> list[object]:
        row = item.row
        values: list[object] = [row.query, row.page]
        if self.category_column:
            values.append(CATEGORY_LABELS[item.category])
        values.extend([row.clicks, row.impressions, row.position, row.ctr])
        return values

    def render_placeholder(self, placeholder: PlaceholderRow) -> list[object]:
        values: list[object] = [placeholder.keyword, placeholder.page]
        if self.category_column:
            values.append(NO_RESULT_LABEL)
        values.extend([0, 0, 0, 0])
        return values

    def create_sheets(self) -> None:
        for section in self.sections:
            if section.sheet not in self._sheets:
                self._sheets[section.sheet] = self.store.add_sheet()

        header = header_row(self.category_column)
        for section in self.sections:
            sheet = self._sheets[section.sheet]
            if section.title:
                self.store.write_rows(sheet, section.header_row - 1, section.start_column, [[section.title]])
            self.store.write_rows(sheet, section.header_row, section.start_column, [header])

    def _append(self, section: ReportSection, rows: list[list[object]]) -> int:
        if not rows:
            return 0
        sheet = self._sheets[section.sheet]
        last_row = self.store.last_filled_row(sheet, section.start_column)
        start_row = max(last_row, section.header_row) + 1
        self.store.write_rows(sheet, start_row, section.start_column, rows)
        self.store.format_percent(
            sheet,
            start_row,
            len(rows),
            section.start_column + self.ctr_offset,
        )
        return len(rows)

    def write_outcome(self, outcome: KeywordOutcome) -> int:
        if not self._sheets:
            raise RuntimeError("Output sheets were not created before writing results.")
        written = 0
        for section in self.sections:
            rows = [self.render_row(item) for item in outcome.rows if item.category in section.categories]
            if section.placeholders and outcome.placeholder is not None:
                rows.append(self.render_placeholder(outcome.placeholder))
            written += self._append(section, rows)
        return written

    def finalize(self, date_range: DateRange) -> list[str]:
        titles: list[str] = []
        for key, sheet in list(self._sheets.items()):
            title = report_sheet_title(self.labels[key], date_range)
            self._sheets[key] = self.store.rename_sheet(sheet, title)
            titles.append(title)
        return titles
