from __future__ import annotations

from datetime import date, datetime, timedelta

from keyword_url_report.models import DateRange

# Day zero of spreadsheet serial date numbers.
SERIAL_EPOCH = datetime(1899, 12, 30)

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%Y年%m月%d日",
)


def _naive(value: datetime) -> datetime:
    # Offsets are dropped; the calendar date as written is what counts.
    return value.replace(tzinfo=None)


def parse_iso_date(text: str) -> datetime:
    """ISO 8601 date or datetime as a naive datetime (``Z`` accepted)."""
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return _naive(datetime.fromisoformat(value))


def parse_cell_date(raw: object) -> datetime | None:
    """Parse a date cell as returned by the Sheets API.

    Cells read with ``dateTimeRenderOption=SERIAL_NUMBER`` come back as
    serial day numbers; cells typed as text come back as strings.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        return _naive(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)

    if isinstance(raw, (int, float)):
        if raw <= 0:
            return None
        return SERIAL_EPOCH + timedelta(days=float(raw))

    text = str(raw).strip()
    if not text:
        return None

    try:
        serial = float(text)
    except ValueError:
        serial = None
    if serial is not None:
        return parse_cell_date(serial)

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        return parse_iso_date(text)
    except ValueError:
        return None


def date_range_from_cells(start_raw: object, end_raw: object) -> DateRange:
    start = parse_cell_date(start_raw)
    if start is None:
        raise ValueError(f"Start date cell is empty or not a date: {start_raw!r}")
    end = parse_cell_date(end_raw)
    if end is None:
        raise ValueError(f"End date cell is empty or not a date: {end_raw!r}")
    return DateRange.from_dates(start, end)


def report_sheet_title(label: str, date_range: DateRange) -> str:
    """Output sheet title, e.g. ``2024-01-01~01-07-対キーワード週次検索結果``."""
    return (
        f"{date_range.start.strftime('%Y-%m-%d')}~"
        f"{date_range.end.strftime('%m-%d')}-{label}"
    )
