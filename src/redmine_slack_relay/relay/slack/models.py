"""Slack incoming-webhook payloads."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SlackAttachment(BaseModel):
    fallback: str = ""
    color: str | None = None
    text: str = ""
    mrkdwn_in: list[str] = Field(default_factory=list)


class SlackMessage(BaseModel):
    """A message posted to an incoming webhook."""

    text: str
    channel: str | None = None
    username: str | None = None
    icon_url: str | None = None
    attachments: list[SlackAttachment] = Field(default_factory=list)
    link_names: int | None = None

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json", exclude_none=True)
