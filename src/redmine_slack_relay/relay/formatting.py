"""Render Redmine issues as Slack messages."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping

from redmine_slack_relay.relay.config import REDMINE_ICON_URL
from redmine_slack_relay.relay.redmine.models import Issue
from redmine_slack_relay.relay.slack.markup import render_markup, slack_link, strip_markup
from redmine_slack_relay.relay.slack.models import SlackAttachment, SlackMessage

NOT_ASSIGNED = "_Not Assigned_"

DEFAULT_CATEGORY_EMOJI: dict[str, str] = {"Android": ":android:", "iOS": ":aapl:"}


def priority_to_color(priority_id: int) -> str | None:
    """Map a Redmine priority id to an attachment color.

    1 (low) has no color; 2 is light grey; 3 is "warning"; 4 and above are "danger".
    """

    if priority_id <= 1:
        return None
    if priority_id == 2:
        return "#D7D7D7"
    if priority_id == 3:
        return "warning"
    return "danger"


def convert_category(category: str | None, emoji: Mapping[str, str]) -> str:
    if not category:
        return ""
    if category in emoji:
        return f" {emoji[category]}"
    return f"/{category}"


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slack_handle(name: str | None, overrides: Mapping[str, str] | None = None) -> str:
    """Turn a Redmine full name into a Slack mention.

    "Ana Lúcia Sousa" -> "@ana.lucia.sousa", unless `overrides` has an entry for
    the exact name. No name means the issue is not assigned.
    """

    if name is None:
        return NOT_ASSIGNED
    if overrides and name in overrides:
        return overrides[name]
    return "@" + re.sub(r"\s+", ".", strip_diacritics(name.strip().lower()))


def channel_for_project(project_name: str) -> str:
    return "#" + re.sub(r"\s+", "-", project_name.strip().lower())


class IssueFormatter:
    """Builds the Slack message posted for one issue."""

    def __init__(
        self,
        *,
        base_url: str,
        category_emoji: Mapping[str, str] | None = None,
        handle_overrides: Mapping[str, str] | None = None,
        icon_url: str = REDMINE_ICON_URL,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._category_emoji = dict(
            DEFAULT_CATEGORY_EMOJI if category_emoji is None else category_emoji
        )
        self._handle_overrides = dict(handle_overrides or {})
        self._icon_url = icon_url

    def issue_url(self, issue_id: int) -> str:
        return f"{self._base_url}/issues/{issue_id}"

    def format(self, issue: Issue) -> SlackMessage:  # noqa: A003
        assignee = issue.assigned_to.name if issue.assigned_to is not None else None
        handle = slack_handle(assignee, self._handle_overrides)
        link = slack_link(self.issue_url(issue.id), f"#{issue.id}")
        category = convert_category(
            issue.category.name if issue.category is not None else None, self._category_emoji
        )
        description = render_markup(issue.description)

        return SlackMessage(
            channel=channel_for_project(issue.project.name),
            text=f"{handle}: Ticket {link} *{issue.subject}* - {issue.tracker.name}{category}",
            username=issue.author.name,
            icon_url=self._icon_url,
            attachments=[
                SlackAttachment(
                    fallback=strip_markup(description),
                    color=priority_to_color(issue.priority.id),
                    text=description,
                    mrkdwn_in=["text"],
                )
            ],
        )
