from __future__ import annotations

import os
import re
from dataclasses import dataclass

REPORT_LAYOUTS = ("single", "dual")


def _env(name: str, default: str = "") -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default.strip()
    value = raw.strip()
    placeholder = f"{name}="
    unquoted = value.strip("'\"").strip()
    if unquoted.lower() == placeholder.lower():
        return default.strip()
    return value if value else default.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    return int(raw) if raw else default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _normalize_site_domain(raw: str) -> str:
    value = raw.strip().lower()
    value = re.sub(r"^[a-z]+://", "", value)
    return value.split("/", 1)[0]


def _normalize_layout(raw: str) -> str:
    return raw.strip().lower()


def extract_spreadsheet_id(reference: str) -> str:
    """Return the spreadsheet id from a Sheets URL or a bare id ('' if none)."""
    raw = reference.strip()
    if not raw:
        return ""
    if re.fullmatch(r"[a-zA-Z0-9_-]{20,}", raw):
        return raw
    match = re.search(r"/spreadsheets/d/([a-zA-Z0-9_-]{20,})", raw)
    if match:
        return match.group(1)
    return ""


@dataclass(frozen=True)
class ReportConfig:
    spreadsheet_url: str
    site_domain: str

    gsc_site_url: str
    gsc_credentials_path: str
    gsc_oauth_client_secret_path: str
    gsc_oauth_refresh_token: str
    gsc_oauth_token_uri: str
    gsc_row_limit: int

    sheets_client_secret_path: str
    sheets_token_path: str

    period_sheet_name: str
    period_start_cell: str
    period_end_cell: str
    keyword_sheet_name: str

    report_layout: str
    report_category_column: bool
    report_placeholder_rows: bool
    report_label: str
    matched_report_label: str

    log_level: str

    @classmethod
    def from_env(cls) -> "ReportConfig":
        site_domain = _normalize_site_domain(_env("SITE_DOMAIN", "siiibo.com"))
        return cls(
            spreadsheet_url=_env("SPREADSHEET_URL"),
            site_domain=site_domain,
            gsc_site_url=_env("GSC_SITE_URL", f"sc-domain:{site_domain}"),
            gsc_credentials_path=_env("GSC_CREDENTIALS_PATH"),
            gsc_oauth_client_secret_path=_env("GSC_OAUTH_CLIENT_SECRET_PATH"),
            gsc_oauth_refresh_token=_env("GSC_OAUTH_REFRESH_TOKEN"),
            gsc_oauth_token_uri=_env(
                "GSC_OAUTH_TOKEN_URI", "https://oauth2.googleapis.com/token"
            ),
            gsc_row_limit=max(1, _env_int("GSC_ROW_LIMIT", 1000)),
            sheets_client_secret_path=_env("SHEETS_CLIENT_SECRET_PATH", "secret.json"),
            sheets_token_path=_env("SHEETS_TOKEN_PATH", ".google_sheets_token.json"),
            period_sheet_name=_env("PERIOD_SHEET_NAME", "期間指定"),
            period_start_cell=_env("PERIOD_START_CELL", "B4").upper(),
            period_end_cell=_env("PERIOD_END_CELL", "C4").upper(),
            keyword_sheet_name=_env("KEYWORD_SHEET_NAME", "対キーワードURL週次検索結果"),
            report_layout=_normalize_layout(_env("REPORT_LAYOUT", "single")),
            report_category_column=_env_bool("REPORT_CATEGORY_COLUMN", True),
            report_placeholder_rows=_env_bool("REPORT_PLACEHOLDER_ROWS", True),
            report_label=_env("REPORT_LABEL", "対キーワード週次検索結果"),
            matched_report_label=_env(
                "MATCHED_REPORT_LABEL", "対キーワードURL週次検索結果"
            ),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def spreadsheet_id(self) -> str:
        return extract_spreadsheet_id(self.spreadsheet_url)

    @property
    def gsc_enabled(self) -> bool:
        if not self.gsc_site_url:
            return False
        has_service_account = bool(self.gsc_credentials_path)
        has_oauth = bool(
            self.gsc_oauth_client_secret_path and self.gsc_oauth_refresh_token
        )
        return has_service_account or has_oauth
