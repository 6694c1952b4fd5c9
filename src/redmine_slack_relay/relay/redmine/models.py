"""Typed views of the Redmine issue JSON.

See http://www.redmine.org/projects/redmine/wiki/Rest_Issues for the wire format.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, field_validator


class NamedRef(BaseModel):
    """A `{"id": ..., "name": ...}` reference (project, user, tracker, ...)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str = ""


class Issue(BaseModel):
    """A Redmine issue, as returned by `GET /issues.json`."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    project: NamedRef
    tracker: NamedRef
    priority: NamedRef
    author: NamedRef
    subject: str = ""
    description: str | None = None
    status: NamedRef | None = None
    category: NamedRef | None = None
    assigned_to: NamedRef | None = None
    created_on: datetime
    updated_on: datetime | None = None

    @field_validator("created_on", "updated_on")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class IssuePage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    issues: list[Issue]
    total_count: int | None = None
    offset: int | None = None
    limit: int | None = None


def format_timestamp(value: datetime) -> str:
    """Format a timestamp the way Redmine filters expect: UTC, seconds, `Z` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""

    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp")
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def next_watermark(latest_created_on: datetime) -> str:
    """Lower bound for the fetch following one whose newest issue was `latest_created_on`.

    Redmine timestamps have second resolution and the `created_on>=` filter is
    inclusive, so the boundary issue is skipped by moving one second past it.
    """

    return format_timestamp(latest_created_on + timedelta(seconds=1))
