"""Unit tests for the Redmine client (mocked HTTP session)."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from redmine_slack_relay.relay.redmine.client import REDMINE_AUTH_HEADER, RedmineClient
from redmine_slack_relay.relay.redmine.models import (
    format_timestamp,
    next_watermark,
    parse_timestamp,
)


def _response(status: int = 200, payload: Any = None, text: str = "") -> Mock:
    resp = Mock(spec=requests.Response)
    resp.status_code = status
    resp.url = "https://redmine.example.com/issues.json"
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session() -> Mock:
    mock = Mock(spec=requests.Session)
    mock.headers = {}
    return mock


@pytest.fixture
def client(session: Mock) -> RedmineClient:
    return RedmineClient(
        base_url="https://redmine.example.com/", api_key="secret", session=session
    )


def test_client_sets_api_key_header(client: RedmineClient, session: Mock) -> None:
    assert session.headers[REDMINE_AUTH_HEADER] == "secret"


def test_fetch_issues_builds_query_and_parses_issues(
    client: RedmineClient,
    session: Mock,
    make_issue_payload: Callable[..., dict[str, Any]],
) -> None:
    session.get.return_value = _response(
        payload={
            "issues": [make_issue_payload(1), make_issue_payload(2, assigned_to=None)],
            "total_count": 2,
            "offset": 0,
            "limit": 200,
        }
    )

    result = client.fetch_issues(
        created_on_min="2015-05-11T16:37:22Z",
        limit=200,
        sort="created_on",
        project_id="demo",
        status="*",
    )

    assert result.error is None
    assert [issue.id for issue in result.value or []] == [1, 2]
    assert result.value is not None and result.value[1].assigned_to is None
    session.get.assert_called_once_with(
        "https://redmine.example.com/issues.json",
        params={
            "limit": 200,
            "sort": "created_on",
            "created_on": ">=2015-05-11T16:37:22Z",
            "project_id": "demo",
            "status": "*",
        },
        timeout=30.0,
    )


def test_fetch_issues_without_watermark_has_no_lower_bound(
    client: RedmineClient, session: Mock
) -> None:
    session.get.return_value = _response(payload={"issues": []})

    result = client.fetch_issues(created_on_min=None, limit=5)

    assert result.error is None
    assert result.value == []
    params = session.get.call_args.kwargs["params"]
    assert "created_on" not in params
    assert params["limit"] == 5


def test_fetch_issues_http_error(client: RedmineClient, session: Mock) -> None:
    session.get.return_value = _response(status=422, text='{"errors":["Created is invalid"]}')

    result = client.fetch_issues(created_on_min="garbage")

    assert result.error is not None
    assert result.error is not None
    assert result.error.kind == "http"
    assert result.error.status == 422
    assert "Created is invalid" in result.error.body


def test_fetch_issues_transport_error(client: RedmineClient, session: Mock) -> None:
    session.get.side_effect = requests.ConnectionError("connection refused")

    result = client.fetch_issues(created_on_min=None)

    assert result.error is not None
    assert result.error.kind == "transport"
    assert "connection refused" in result.error.body


@pytest.mark.parametrize(
    "payload",
    [
        ValueError("not json"),
        ["not", "an", "object"],
        {"no_issues_key": True},
        {"issues": [{"id": 1}]},
    ],
)
def test_fetch_issues_malformed_response(
    client: RedmineClient, session: Mock, payload: Any
) -> None:
    session.get.return_value = _response(payload=payload)

    result = client.fetch_issues(created_on_min=None)

    assert result.error is not None
    assert result.error.kind == "malformed"


def test_timestamps() -> None:
    parsed = parse_timestamp("2015-05-11T16:37:21Z")

    assert parsed == datetime(2015, 5, 11, 16, 37, 21, tzinfo=UTC)
    assert format_timestamp(parsed) == "2015-05-11T16:37:21Z"
    assert format_timestamp(parse_timestamp("2015-05-11T17:37:21+01:00")) == "2015-05-11T16:37:21Z"
    assert next_watermark(parsed) == "2015-05-11T16:37:22Z"
    assert next_watermark(datetime(2015, 12, 31, 23, 59, 59, tzinfo=UTC)) == "2016-01-01T00:00:00Z"

    with pytest.raises(ValueError):
        parse_timestamp("  ")
