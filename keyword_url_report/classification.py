from __future__ import annotations

from typing import Iterable

from keyword_url_report.models import (
    ANCHOR_QUALIFIED,
    CATEGORIES,
    EXACT_MATCH,
    MISMATCH,
    ClassifiedRow,
    KeywordUrlMapping,
    PlaceholderRow,
    SearchPerformanceRow,
)


def classify_row(row: SearchPerformanceRow, intended_urls: Iterable[str]) -> str | None:
    """Category for one row, or None when the row is excluded.

    Anchored pages count only with traffic. Intended pages always count so a
    page without clicks stays visible. Any other page counts only with traffic.
    """
    if row.is_anchored:
        return ANCHOR_QUALIFIED if row.clicks >= 1 else None
    if row.page in intended_urls:
        return EXACT_MATCH
    if row.clicks >= 1:
        return MISMATCH
    return None


def classify_rows(
    mapping: KeywordUrlMapping,
    rows: list[SearchPerformanceRow],
) -> list[ClassifiedRow]:
    grouped: dict[str, list[ClassifiedRow]] = {category: [] for category in CATEGORIES}
    intended = set(mapping.urls)
    for row in rows:
        category = classify_row(row, intended)
        if category is None:
            continue
        grouped[category].append(ClassifiedRow(row=row, category=category))

    ordered: list[ClassifiedRow] = []
    for category in CATEGORIES:
        ordered.extend(grouped[category])
    return ordered


def placeholder_for(mapping: KeywordUrlMapping) -> PlaceholderRow:
    return PlaceholderRow(keyword=mapping.keyword, page=mapping.first_url)
