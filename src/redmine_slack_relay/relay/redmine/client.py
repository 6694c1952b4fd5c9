"""Redmine REST API client.

A thin wrapper around a `requests.Session`: builds the issue query, performs
the GET, and turns the JSON body into typed `Issue` records. Remote failures
are returned as `ApiResult` errors rather than raised.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import ValidationError

from redmine_slack_relay.relay.redmine.models import Issue, IssuePage
from redmine_slack_relay.relay.results import ApiError, ApiResult

logger = logging.getLogger(__name__)

REDMINE_AUTH_HEADER = "X-Redmine-API-Key"


class RedmineClient:
    """Small wrapper around the Redmine issues endpoint."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Redmine base URL is required")
        if not api_key:
            raise ValueError("Redmine API key is required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                REDMINE_AUTH_HEADER: api_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": "redmine-slack-relay",
            }
        )

    def close(self) -> None:
        self._session.close()

    def _get_json(self, path: str, params: dict[str, Any]) -> ApiResult[Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            return ApiResult.failure(ApiError(kind="transport", url=url, body=str(e)))

        if resp.status_code != 200:
            return ApiResult.failure(
                ApiError(kind="http", url=resp.url or url, status=resp.status_code, body=resp.text)
            )

        try:
            return ApiResult.success(resp.json())
        except ValueError:
            return ApiResult.failure(
                ApiError(
                    kind="malformed",
                    url=resp.url or url,
                    status=resp.status_code,
                    body=resp.text,
                )
            )

    def fetch_issues(
        self,
        *,
        created_on_min: str | None,
        limit: int = 100,
        sort: str = "created_on",
        project_id: str | None = None,
        status: str | None = None,
    ) -> ApiResult[list[Issue]]:
        """Fetch one page of issues created at or after `created_on_min`.

        Args:
            created_on_min: Inclusive lower bound (ISO-8601), or None for no bound.
            limit: Maximum number of issues returned.
            sort: Redmine sort expression; plain field names sort ascending.
            project_id: Optional project scope (id or identifier).
            status: Optional status filter ("open", "closed", "*" or an id).

        Returns:
            The issues in the order Redmine returned them, or the failure.
        """

        params: dict[str, Any] = {"limit": limit, "sort": sort}
        if created_on_min:
            params["created_on"] = f">={created_on_min}"
        if project_id:
            params["project_id"] = project_id
        if status:
            params["status"] = status

        result = self._get_json("issues.json", params)
        if result.error is not None:
            return ApiResult.failure(result.error)

        payload = result.value
        url = f"{self._base_url}/issues.json"
        if not isinstance(payload, dict) or not isinstance(payload.get("issues"), list):
            return ApiResult.failure(
                ApiError(
                    kind="malformed",
                    url=url,
                    body=f"expected an object with an 'issues' list, got {type(payload).__name__}",
                )
            )

        try:
            page = IssuePage.model_validate(payload)
        except ValidationError as e:
            return ApiResult.failure(ApiError(kind="malformed", url=url, body=str(e)))

        logger.debug(
            "Fetched issues",
            extra={
                "count": len(page.issues),
                "total_count": page.total_count,
                "created_on_min": created_on_min,
            },
        )
        return ApiResult.success(page.issues)
