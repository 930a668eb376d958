from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest
from googleapiclient.errors import HttpError
from httplib2 import Response

from keyword_url_report.clients.gsc_client import GSCClient
from keyword_url_report.models import DateRange


class _FakeRequest:
    def __init__(self, payload):
        self.payload = payload

    def execute(self):
        return self.payload


class _FakeErrorRequest:
    def __init__(self, error: Exception):
        self.error = error

    def execute(self):
        raise self.error


class _FakeSearchAnalytics:
    def __init__(self, request):
        self.request = request
        self.calls: list[dict] = []

    def query(self, siteUrl=None, body=None):
        self.calls.append({"siteUrl": siteUrl, "body": body})
        return self.request


class _FakeSearchConsole:
    def __init__(self, request):
        self.analytics = _FakeSearchAnalytics(request)

    def searchanalytics(self):
        return self.analytics


def _date_range() -> DateRange:
    return DateRange.from_dates(datetime(2024, 1, 1), datetime(2024, 1, 7))


def _client(payload) -> tuple[GSCClient, _FakeSearchConsole]:
    service = _FakeSearchConsole(_FakeRequest(payload))
    client = GSCClient(site_url="sc-domain:example.com", service=service)
    return client, service


def test_query_body_filters_whole_keyword_regex() -> None:
    client, service = _client({"rows": []})

    client.fetch_keyword_rows("東京 旅行", _date_range())

    call = service.analytics.calls[0]
    assert call["siteUrl"] == "sc-domain:example.com"
    assert call["body"] == {
        "startDate": "2024-01-01",
        "endDate": "2024-01-07",
        "dimensions": ["query", "page"],
        "rowLimit": 1000,
        "dimensionFilterGroups": [
            {
                "filters": [
                    {
                        "dimension": "query",
                        "operator": "includingRegex",
                        "expression": "^東京( |　)旅行$",
                    }
                ]
            }
        ],
    }


def test_rows_are_decoded_into_typed_records() -> None:
    client, _ = _client(
        {
            "rows": [
                {
                    "keys": ["東京　旅行", "https://example.com/a"],
                    "clicks": 3,
                    "impressions": 120,
                    "ctr": 0.025,
                    "position": 4.2,
                }
            ]
        }
    )

    rows = client.fetch_keyword_rows("東京 旅行", _date_range())

    assert len(rows) == 1
    assert rows[0].query == "東京　旅行"
    assert rows[0].page == "https://example.com/a"
    assert rows[0].clicks == 3
    assert rows[0].impressions == 120
    assert rows[0].ctr == pytest.approx(0.025)
    assert rows[0].position == pytest.approx(4.2)


@pytest.mark.parametrize("payload", [{}, {"responseAggregationType": "byPage"}, {"rows": []}])
def test_empty_or_absent_rows_is_empty_result(payload) -> None:
    client, _ = _client(payload)
    assert client.fetch_keyword_rows("東京 旅行", _date_range()) == []


def test_malformed_row_raises_value_error() -> None:
    client, _ = _client({"rows": [{"keys": ["only-query"], "clicks": 1}]})
    with pytest.raises(ValueError):
        client.fetch_keyword_rows("東京 旅行", _date_range())


def test_http_error_is_raised_as_runtime_error_with_keyword() -> None:
    response = Response({"status": "403", "reason": "Forbidden"})
    error = HttpError(response, b'{"error": {"message": "denied"}}', uri="https://searchconsole.googleapis.com")
    service = _FakeSearchConsole(_FakeErrorRequest(error))
    client = GSCClient(site_url="sc-domain:example.com", service=service)

    with pytest.raises(RuntimeError, match="東京 旅行"):
        client.fetch_keyword_rows("東京 旅行", _date_range())


def test_missing_credentials_raise_runtime_error() -> None:
    client = GSCClient(site_url="sc-domain:example.com")
    with pytest.raises(RuntimeError, match="Missing GSC credentials"):
        client._build_credentials()


def test_oauth_credentials_from_installed_payload(tmp_path: Path) -> None:
    secret = tmp_path / "client.json"
    secret.write_text(
        json.dumps({"installed": {"client_id": "cid", "client_secret": "csecret"}}),
        encoding="utf-8",
    )
    client = GSCClient(
        site_url="sc-domain:example.com",
        oauth_client_secret_path=str(secret),
        oauth_refresh_token="refresh-token",
    )

    credentials = client._build_credentials()

    assert credentials.refresh_token == "refresh-token"
    assert credentials.client_id == "cid"
