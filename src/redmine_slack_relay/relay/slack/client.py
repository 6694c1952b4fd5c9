"""Slack incoming-webhook client."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

import requests

from redmine_slack_relay.relay.results import ApiError, ApiResult
from redmine_slack_relay.relay.slack.models import SlackMessage

logger = logging.getLogger(__name__)


class SlackClient:
    """Posts messages to a Slack incoming webhook.

    Notes:
        - When `enabled` is False (dry-run) messages are only logged.
        - When `channel_override` is set every message goes to that channel,
          whatever channel the formatter computed.
        - Consecutive posts are spaced by at least `post_delay_seconds`, so
          that a burst of new issues is not rejected by Slack.
    """

    def __init__(
        self,
        *,
        webhook_url: str,
        enabled: bool = True,
        channel_override: str | None = None,
        verbose: bool = False,
        post_delay_seconds: float = 1.0,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not webhook_url:
            raise ValueError("Slack webhook URL is required")

        self._webhook_url = webhook_url
        self.enabled = enabled
        self.channel_override = channel_override or None
        self.verbose = verbose
        self._post_delay = post_delay_seconds
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep
        self._last_post_at: float | None = None

    def close(self) -> None:
        self._session.close()

    def deliver(self, message: SlackMessage) -> ApiResult[None]:
        """Post one message; returns an error result instead of raising."""

        update: dict[str, object] = {"link_names": 1}
        if self.channel_override:
            update["channel"] = self.channel_override
        payload = message.model_copy(update=update).to_payload()

        if not self.enabled:
            if self.verbose:
                logger.info(
                    "Slack disabled; would-be post",
                    extra={"payload": json.dumps(payload, ensure_ascii=False)},
                )
            else:
                logger.info(
                    "Slack disabled; would-be post",
                    extra={"channel": payload.get("channel"), "text": payload.get("text")},
                )
            return ApiResult.success()

        if self.verbose:
            logger.debug(
                "Posting to Slack", extra={"payload": json.dumps(payload, ensure_ascii=False)}
            )

        self._wait_for_rate_limit()
        try:
            resp = self._session.post(
                self._webhook_url,
                data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            return ApiResult.failure(
                ApiError(kind="transport", url=self._redacted_url(), body=str(e))
            )
        finally:
            self._last_post_at = self._clock()

        if not 200 <= resp.status_code < 300:
            return ApiResult.failure(
                ApiError(
                    kind="http",
                    url=self._redacted_url(),
                    status=resp.status_code,
                    body=resp.text,
                )
            )
        return ApiResult.success()

    def post_text(self, *, channel: str, text: str, username: str | None = None) -> ApiResult[None]:
        """Post a plain operational message (connectivity test, hello/goodbye)."""

        return self.deliver(SlackMessage(text=text, channel=channel, username=username))

    def _wait_for_rate_limit(self) -> None:
        if self._last_post_at is None or self._post_delay <= 0:
            return
        remaining = self._post_delay - (self._clock() - self._last_post_at)
        if remaining > 0:
            self._sleep(remaining)

    def _redacted_url(self) -> str:
        # The webhook URL path is a credential; keep only the host in errors/logs.
        scheme, _, rest = self._webhook_url.partition("://")
        host = rest.split("/", 1)[0]
        return f"{scheme}://{host}/..." if rest else self._webhook_url
