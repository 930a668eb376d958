from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time

ANCHOR_QUALIFIED = "anchor_qualified"
EXACT_MATCH = "exact_match"
MISMATCH = "mismatch"
CATEGORIES = (EXACT_MATCH, MISMATCH, ANCHOR_QUALIFIED)

END_OF_DAY = time(23, 59, 59, 999000)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), END_OF_DAY, tzinfo=value.tzinfo)


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ValueError("Date range mixes timezone-aware and naive datetimes.")
        if self.start > self.end:
            raise ValueError(
                f"Date range start {self.start.isoformat()} is after end {self.end.isoformat()}."
            )

    @classmethod
    def from_dates(cls, start: datetime, end: datetime) -> "DateRange":
        """Build a range whose end covers the whole of its calendar day."""
        return cls(start=start, end=end_of_day(end))

    @property
    def start_iso(self) -> str:
        return self.start.strftime("%Y-%m-%d")

    @property
    def end_iso(self) -> str:
        return self.end.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class KeywordUrlMapping:
    keyword: str
    urls: tuple[str, ...] = ()

    @property
    def first_url(self) -> str:
        return self.urls[0] if self.urls else ""

    def is_intended(self, page: str) -> bool:
        return page in self.urls


@dataclass(frozen=True)
class SearchPerformanceRow:
    query: str
    page: str
    clicks: int
    impressions: int
    position: float
    ctr: float

    @property
    def is_anchored(self) -> bool:
        return "#" in self.page

    @classmethod
    def from_api_row(cls, row: object) -> "SearchPerformanceRow":
        """Decode one Search Analytics row grouped by ``["query", "page"]``."""
        if not isinstance(row, dict):
            raise ValueError(f"Search Analytics row is not an object: {row!r}")
        keys = row.get("keys")
        if not isinstance(keys, list) or len(keys) < 2:
            raise ValueError(f"Search Analytics row has no [query, page] keys: {row!r}")
        try:
            return cls(
                query=str(keys[0]),
                page=str(keys[1]),
                clicks=int(float(row.get("clicks", 0))),
                impressions=int(float(row.get("impressions", 0))),
                position=float(row.get("position", 0.0)),
                ctr=float(row.get("ctr", 0.0)),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Search Analytics row has non-numeric metrics: {row!r}") from exc


@dataclass(frozen=True)
class ClassifiedRow:
    row: SearchPerformanceRow
    category: str


@dataclass(frozen=True)
class PlaceholderRow:
    keyword: str
    page: str


@dataclass
class KeywordOutcome:
    keyword: str
    rows: list[ClassifiedRow] = field(default_factory=list)
    placeholder: PlaceholderRow | None = None
    error: str = ""

    @property
    def failed(self) -> bool:
        return bool(self.error)


@dataclass
class RunSummary:
    date_range: DateRange
    sheet_titles: list[str] = field(default_factory=list)
    outcomes: list[KeywordOutcome] = field(default_factory=list)

    @property
    def keyword_count(self) -> int:
        return len(self.outcomes)

    @property
    def row_count(self) -> int:
        return sum(len(outcome.rows) for outcome in self.outcomes)

    @property
    def placeholder_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.placeholder is not None)

    @property
    def failures(self) -> list[KeywordOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]
