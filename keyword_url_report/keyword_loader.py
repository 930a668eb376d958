from __future__ import annotations

from keyword_url_report.models import KeywordUrlMapping


def _cell_text(row: list[object], idx: int) -> str:
    if idx >= len(row):
        return ""
    value = row[idx]
    return "" if value is None else str(value).strip()


def load_keyword_urls(values: list[list[object]], header_rows: int = 1) -> list[KeywordUrlMapping]:
    """Group ``(keyword, url)`` sheet rows into one mapping per keyword.

    Keywords keep the order of their first appearance and URLs keep the
    order they were listed in, without duplicates.
    """
    grouped: dict[str, list[str]] = {}
    for row in values[header_rows:]:
        if not isinstance(row, list):
            continue
        keyword = _cell_text(row, 0)
        if not keyword:
            continue
        urls = grouped.setdefault(keyword, [])
        url = _cell_text(row, 1)
        if url and url not in urls:
            urls.append(url)
    return [KeywordUrlMapping(keyword=keyword, urls=tuple(urls)) for keyword, urls in grouped.items()]
