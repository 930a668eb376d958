from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from dotenv import find_dotenv, load_dotenv

from keyword_url_report.clients.gsc_client import GSCClient
from keyword_url_report.clients.sheets_client import MissingSheetError, SheetsClient
from keyword_url_report.config import REPORT_LAYOUTS, ReportConfig
from keyword_url_report.date_range import parse_iso_date
from keyword_url_report.models import DateRange, RunSummary
from keyword_url_report.workflow import read_date_range, run_keyword_report

CONFIRM_PROMPT = "検索を実行しますか? [y/N]: "


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keyword → URL search report")
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Run without asking for confirmation.",
    )
    parser.add_argument(
        "--layout",
        choices=REPORT_LAYOUTS,
        default=None,
        help="Output layout for this run (default: REPORT_LAYOUT from environment).",
    )
    parser.add_argument(
        "--no-category-column",
        dest="category_column",
        action="store_false",
        default=None,
        help="Leave out the category label column.",
    )
    parser.add_argument(
        "--no-placeholder-rows",
        dest="placeholder_rows",
        action="store_false",
        default=None,
        help="Do not write a 'no result' row for keywords without data.",
    )
    parser.add_argument(
        "--start-date",
        dest="start_date",
        help="Start date in YYYY-MM-DD format (default: period sheet).",
    )
    parser.add_argument(
        "--end-date",
        dest="end_date",
        help="End date in YYYY-MM-DD format (default: period sheet).",
    )
    return parser.parse_args(argv)


def _apply_runtime_toggles(
    config: ReportConfig,
    layout: str | None,
    category_column: bool | None,
    placeholder_rows: bool | None,
) -> ReportConfig:
    updated = config
    if layout is not None:
        updated = replace(updated, report_layout=layout)
    if category_column is not None:
        updated = replace(updated, report_category_column=bool(category_column))
    if placeholder_rows is not None:
        updated = replace(updated, report_placeholder_rows=bool(placeholder_rows))
    return updated


def _parse_date_override(start_raw: str | None, end_raw: str | None) -> DateRange | None:
    if not start_raw and not end_raw:
        return None
    if not (start_raw and end_raw):
        raise SystemExit("--start-date and --end-date must be given together.")
    try:
        return DateRange.from_dates(
            parse_iso_date(start_raw),
            parse_iso_date(end_raw),
        )
    except ValueError as exc:
        raise SystemExit(f"Invalid date override: {exc}") from exc


def _confirm(answer_reader=input) -> bool:
    try:
        answer = answer_reader(CONFIRM_PROMPT)
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _validate_config(config: ReportConfig) -> None:
    if not config.spreadsheet_url:
        raise SystemExit("SPREADSHEET_URL is not defined.")
    if not config.spreadsheet_id:
        raise SystemExit(f"SPREADSHEET_URL is not a Google Sheets URL: {config.spreadsheet_url}")
    if config.report_layout not in REPORT_LAYOUTS:
        raise SystemExit(
            f"REPORT_LAYOUT must be one of {', '.join(REPORT_LAYOUTS)}, got '{config.report_layout}'."
        )
    if not config.gsc_enabled:
        raise SystemExit(
            "GSC credentials are not configured. Set GSC_CREDENTIALS_PATH or "
            "GSC_OAUTH_CLIENT_SECRET_PATH + GSC_OAUTH_REFRESH_TOKEN."
        )


def _build_clients(config: ReportConfig) -> tuple[SheetsClient, GSCClient]:
    store = SheetsClient(
        spreadsheet_id=config.spreadsheet_id,
        client_secret_path=config.sheets_client_secret_path,
        token_path=config.sheets_token_path,
    )
    search_client = GSCClient(
        site_url=config.gsc_site_url,
        credentials_path=config.gsc_credentials_path,
        oauth_client_secret_path=config.gsc_oauth_client_secret_path,
        oauth_refresh_token=config.gsc_oauth_refresh_token,
        oauth_token_uri=config.gsc_oauth_token_uri,
        row_limit=config.gsc_row_limit,
    )
    return store, search_client


def _print_summary(summary: RunSummary) -> None:
    print(
        "Keyword report: done | "
        f"sheets={', '.join(summary.sheet_titles)} | "
        f"keywords={summary.keyword_count} | "
        f"rows={summary.row_count} | "
        f"no_result={summary.placeholder_count} | "
        f"failed={len(summary.failures)}"
    )
    for outcome in summary.failures:
        print(f"  failed keyword={outcome.keyword}: {outcome.error}")


def main(argv: list[str] | None = None) -> int:
    load_dotenv(find_dotenv(usecwd=True), override=False)

    args = _parse_args(argv)
    config = _apply_runtime_toggles(
        ReportConfig.from_env(),
        layout=args.layout,
        category_column=args.category_column,
        placeholder_rows=args.placeholder_rows,
    )
    setup_logging(config.log_level)
    _validate_config(config)
    date_range = _parse_date_override(args.start_date, args.end_date)

    if not args.yes and not _confirm():
        print("Keyword report: cancelled.")
        return 0

    store, search_client = _build_clients(config)
    try:
        if date_range is None:
            date_range = read_date_range(config, store)
    except ValueError as exc:
        raise SystemExit(f"Invalid period: {exc}") from exc
    except MissingSheetError as exc:
        raise SystemExit(str(exc)) from exc

    try:
        summary = run_keyword_report(config, store, search_client, date_range=date_range)
    except MissingSheetError as exc:
        raise SystemExit(str(exc)) from exc

    _print_summary(summary)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
