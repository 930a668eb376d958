from __future__ import annotations

import json
import logging
from pathlib import Path

import httplib2
from google.auth.credentials import Credentials
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials as UserCredentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from keyword_url_report.models import DateRange, SearchPerformanceRow
from keyword_url_report.query_pattern import keyword_query_pattern

logger = logging.getLogger(__name__)


class GSCClient:
    """Per-keyword Search Analytics queries grouped by query and page."""

    SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]
    DIMENSIONS = ["query", "page"]
    HTTP_TIMEOUT_SEC = 30

    def __init__(
        self,
        site_url: str,
        credentials_path: str = "",
        oauth_client_secret_path: str = "",
        oauth_refresh_token: str = "",
        oauth_token_uri: str = "https://oauth2.googleapis.com/token",
        row_limit: int = 1000,
        service=None,
    ) -> None:
        self.site_url = site_url
        self.credentials_path = credentials_path
        self.oauth_client_secret_path = oauth_client_secret_path
        self.oauth_refresh_token = oauth_refresh_token
        self.oauth_token_uri = oauth_token_uri
        self.row_limit = row_limit
        self._service = service

    def _build_service(self):
        if self._service is not None:
            return self._service

        credentials = self._build_credentials()
        http = AuthorizedHttp(
            credentials,
            http=httplib2.Http(timeout=self.HTTP_TIMEOUT_SEC),
        )
        self._service = build(
            "searchconsole",
            "v1",
            http=http,
            cache_discovery=False,
        )
        return self._service

    def _build_credentials(self) -> Credentials:
        if self.credentials_path:
            payload = self._load_json(self.credentials_path)
            if payload.get("type") == "service_account":
                return service_account.Credentials.from_service_account_file(
                    self.credentials_path,
                    scopes=self.SCOPES,
                )
            return self._oauth_credentials_from_payload(payload)

        if self.oauth_client_secret_path:
            payload = self._load_json(self.oauth_client_secret_path)
            return self._oauth_credentials_from_payload(payload)

        raise RuntimeError(
            "Missing GSC credentials. Set GSC_CREDENTIALS_PATH (service account or oauth JSON) "
            "or set GSC_OAUTH_CLIENT_SECRET_PATH + GSC_OAUTH_REFRESH_TOKEN."
        )

    def _oauth_credentials_from_payload(self, payload: dict) -> UserCredentials:
        # OAuth JSON can be either {"installed": {...}} or {"web": {...}}.
        client_section = payload.get("installed") or payload.get("web") or payload
        client_id = client_section.get("client_id")
        client_secret = client_section.get("client_secret")
        token_uri = client_section.get("token_uri") or self.oauth_token_uri

        if not (client_id and client_secret):
            raise RuntimeError("OAuth client JSON is missing client_id/client_secret.")
        if not self.oauth_refresh_token:
            raise RuntimeError("Missing GSC_OAUTH_REFRESH_TOKEN for OAuth credentials.")

        return UserCredentials(
            token=None,
            refresh_token=self.oauth_refresh_token,
            token_uri=token_uri,
            client_id=client_id,
            client_secret=client_secret,
            scopes=self.SCOPES,
        )

    @staticmethod
    def _load_json(path_value: str) -> dict:
        path = Path(path_value)
        if not path.exists():
            raise RuntimeError(f"GSC credentials file not found: {path_value}")
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Invalid JSON in credentials file: {path_value}") from exc

    def build_query_body(self, keyword: str, date_range: DateRange) -> dict:
        return {
            "startDate": date_range.start_iso,
            "endDate": date_range.end_iso,
            "dimensions": list(self.DIMENSIONS),
            "rowLimit": self.row_limit,
            "dimensionFilterGroups": [
                {
                    "filters": [
                        {
                            "dimension": "query",
                            "operator": "includingRegex",
                            "expression": keyword_query_pattern(keyword),
                        }
                    ]
                }
            ],
        }

    def fetch_keyword_rows(self, keyword: str, date_range: DateRange) -> list[SearchPerformanceRow]:
        """Rows whose query is exactly ``keyword`` (either space width).

        An empty response is a valid empty result. API errors raise
        ``RuntimeError`` and malformed rows raise ``ValueError``.
        """
        service = self._build_service()
        body = self.build_query_body(keyword, date_range)
        try:
            response = (
                service.searchanalytics()
                .query(siteUrl=self.site_url, body=body)
                .execute()
            )
        except HttpError as exc:
            raise RuntimeError(f"GSC API error for keyword {keyword!r}: {exc}") from exc

        if not response:
            return []
        if not isinstance(response, dict):
            raise ValueError(f"Unexpected GSC response for keyword {keyword!r}: {response!r}")
        raw_rows = response.get("rows") or []
        if not isinstance(raw_rows, list):
            raise ValueError(f"Unexpected GSC rows for keyword {keyword!r}: {raw_rows!r}")

        rows = [SearchPerformanceRow.from_api_row(row) for row in raw_rows]
        logger.debug("GSC returned %d rows for keyword=%s", len(rows), keyword)
        return rows
