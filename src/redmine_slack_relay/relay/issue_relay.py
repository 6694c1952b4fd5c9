"""The fetch -> filter -> post -> advance-watermark cycle.

Watermark rules:
- the watermark is the inclusive `created_on` lower bound of the next fetch
- it only moves after every eligible issue of the cycle was delivered
- it moves past the newest *fetched* issue, eligible or not; otherwise issues
  that are always filtered out would be fetched again on every cycle
- a failed cycle leaves it untouched, so the failed issue and everything after
  it are fetched and delivered again next time (at-least-once)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from redmine_slack_relay.relay.filtering import IssueFilter
from redmine_slack_relay.relay.formatting import IssueFormatter
from redmine_slack_relay.relay.redmine.client import RedmineClient
from redmine_slack_relay.relay.redmine.models import format_timestamp, next_watermark
from redmine_slack_relay.relay.results import ApiError
from redmine_slack_relay.relay.slack.client import SlackClient
from redmine_slack_relay.relay.storage import KeyValueStore

logger = logging.getLogger(__name__)

WATERMARK_KEY = "last_creation"
DEFAULT_PAGE_SIZE = 200


@dataclass(frozen=True, slots=True)
class NoNewIssues:
    watermark: str | None


@dataclass(frozen=True, slots=True)
class Posted:
    count: int
    watermark: str


@dataclass(frozen=True, slots=True)
class Failed:
    error: ApiError
    delivered: int = 0


CycleResult = NoNewIssues | Posted | Failed


class IssueRelay:
    """Runs one polling cycle per `run_cycle()` call.

    This is the only component that writes the watermark.
    """

    def __init__(
        self,
        *,
        redmine: RedmineClient,
        slack: SlackClient,
        store: KeyValueStore,
        issue_filter: IssueFilter,
        formatter: IssueFormatter,
        page_size: int = DEFAULT_PAGE_SIZE,
        initial_watermark: str | None = None,
        project_id: str | None = None,
        status: str | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self._redmine = redmine
        self._slack = slack
        self._store = store
        self._filter = issue_filter
        self._formatter = formatter
        self._page_size = page_size
        self._initial_watermark = initial_watermark or None
        self._project_id = project_id
        self._status = status

    def current_watermark(self) -> str | None:
        """The stored watermark, else the configured initial one, else None (fetch all)."""

        return self._store.get(WATERMARK_KEY) or self._initial_watermark

    def set_watermark(self, value: str) -> None:
        self._store.put(WATERMARK_KEY, value)

    def run_cycle(self) -> CycleResult:
        watermark = self.current_watermark()

        fetched = self._redmine.fetch_issues(
            created_on_min=watermark,
            limit=self._page_size,
            sort="created_on",
            project_id=self._project_id,
            status=self._status,
        )
        if fetched.error is not None:
            logger.error(
                "Fetching issues failed; will retry next cycle",
                extra={"error": str(fetched.error), "watermark": watermark},
            )
            return Failed(error=fetched.error)

        issues = sorted(fetched.value or [], key=lambda issue: issue.created_on)
        if not issues:
            logger.info("No new issues", extra={"since": watermark})
            return NoNewIssues(watermark=watermark)

        if len(issues) >= self._page_size:
            logger.warning(
                "Fetched a full page; remaining issues are picked up next cycle",
                extra={"page_size": self._page_size},
            )

        eligible = self._filter.eligible(issues)
        for issue in issues:
            logger.debug(
                "Fetched issue",
                extra={
                    "issue_id": issue.id,
                    "project": issue.project.name,
                    "priority": issue.priority.id,
                    "created_on": format_timestamp(issue.created_on),
                    "subject": issue.subject,
                },
            )

        for delivered, issue in enumerate(eligible):
            result = self._slack.deliver(self._formatter.format(issue))
            if result.error is not None:
                logger.error(
                    "Posting issue to Slack failed; watermark not advanced",
                    extra={
                        "issue_id": issue.id,
                        "error": str(result.error),
                        "delivered": delivered,
                        "watermark": watermark,
                    },
                )
                return Failed(error=result.error, delivered=delivered)

        new_watermark = next_watermark(issues[-1].created_on)
        self._store.put(WATERMARK_KEY, new_watermark)

        logger.info(
            "Posted issues",
            extra={
                "posted": len(eligible),
                "fetched": len(issues),
                "filtered_out": len(issues) - len(eligible),
                "watermark": new_watermark,
            },
        )
        return Posted(count=len(eligible), watermark=new_watermark)
