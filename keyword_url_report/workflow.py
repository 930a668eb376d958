"""Keyword → URL search report run.

Run order:
  1. Read the date range from the period sheet (unless given)
  2. Load the keyword → URL mapping
  3. Create the output sheet(s) and write headers
  4. Per keyword: query Search Console, classify rows, append them
  5. Name the output sheet(s) after the date range
"""

from __future__ import annotations

import logging

from keyword_url_report.classification import classify_rows, placeholder_for
from keyword_url_report.config import ReportConfig
from keyword_url_report.date_range import date_range_from_cells
from keyword_url_report.keyword_loader import load_keyword_urls
from keyword_url_report.models import (
    DateRange,
    KeywordOutcome,
    KeywordUrlMapping,
    RunSummary,
)
from keyword_url_report.report_writer import ReportWriter

logger = logging.getLogger(__name__)


def read_date_range(config: ReportConfig, store) -> DateRange:
    store.require_sheet(config.period_sheet_name)
    start_raw = store.read_cell(config.period_sheet_name, config.period_start_cell)
    end_raw = store.read_cell(config.period_sheet_name, config.period_end_cell)
    return date_range_from_cells(start_raw, end_raw)


def load_keyword_mappings(config: ReportConfig, store) -> list[KeywordUrlMapping]:
    store.require_sheet(config.keyword_sheet_name)
    values = store.read_values(config.keyword_sheet_name, "A:B")
    return load_keyword_urls(values, header_rows=1)


def collect_keyword_outcome(
    mapping: KeywordUrlMapping,
    date_range: DateRange,
    search_client,
    placeholder_rows: bool = True,
) -> KeywordOutcome:
    """Fetch and classify one keyword; failures are recorded, not raised."""
    outcome = KeywordOutcome(keyword=mapping.keyword)
    try:
        rows = search_client.fetch_keyword_rows(mapping.keyword, date_range)
    except Exception as exc:
        outcome.error = str(exc)
        logger.error("Keyword failed: keyword=%s, error=%s", mapping.keyword, exc)
        return outcome

    if not rows:
        logger.info("No search data: keyword=%s", mapping.keyword)

    outcome.rows = classify_rows(mapping, rows)
    if not outcome.rows and placeholder_rows:
        outcome.placeholder = placeholder_for(mapping)
    logger.info(
        "keyword=%s fetched=%d classified=%d",
        mapping.keyword,
        len(rows),
        len(outcome.rows),
    )
    return outcome


def run_keyword_report(
    config: ReportConfig,
    store,
    search_client,
    date_range: DateRange | None = None,
) -> RunSummary:
    if date_range is None:
        date_range = read_date_range(config, store)
    logger.info("Date range: %s ~ %s", date_range.start_iso, date_range.end_iso)

    mappings = load_keyword_mappings(config, store)
    logger.info("Loaded %d keywords", len(mappings))

    writer = ReportWriter(
        store,
        layout=config.report_layout,
        category_column=config.report_category_column,
        report_label=config.report_label,
        matched_report_label=config.matched_report_label,
    )
    writer.create_sheets()

    summary = RunSummary(date_range=date_range)
    for mapping in mappings:
        outcome = collect_keyword_outcome(
            mapping,
            date_range,
            search_client,
            placeholder_rows=config.report_placeholder_rows,
        )
        if not outcome.failed:
            writer.write_outcome(outcome)
        summary.outcomes.append(outcome)

    summary.sheet_titles = writer.finalize(date_range)
    logger.info(
        "Report written: sheets=%s keywords=%d rows=%d placeholders=%d failures=%d",
        ", ".join(summary.sheet_titles),
        summary.keyword_count,
        summary.row_count,
        summary.placeholder_count,
        len(summary.failures),
    )
    return summary
