"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from redmine_slack_relay.relay.config import RelaySettings
from redmine_slack_relay.relay.logging import JsonFormatter
from redmine_slack_relay.relay.redmine.models import Issue
from redmine_slack_relay.relay.storage import KeyValueStore

# Every variable RelaySettings reads, so a developer shell cannot leak into tests.
_RELAY_ENV_VARS = tuple(
    field.validation_alias
    for field in RelaySettings.model_fields.values()
    if isinstance(field.validation_alias, str)
)


@pytest.fixture(autouse=True)
def clean_relay_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from the developer's environment and `.env` file."""
    for name in _RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def drop_json_log_handlers() -> Iterator[None]:
    """Undo `configure_logging` calls made by the code under test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonFormatter):
            root.removeHandler(handler)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[KeyValueStore]:
    """Provide a SQLite-file backed key/value store."""
    kv = KeyValueStore(f"sqlite:///{tmp_path / 'relay.db'}")
    yield kv
    kv.close()


def issue_payload(
    issue_id: int = 1,
    *,
    project: str = "demo",
    created_on: str = "2015-05-11T16:37:21Z",
    author: tuple[int, str] = (10, "Maria Santos"),
    assigned_to: tuple[int, str] | None = (20, "Rui Costa"),
    category: str | None = None,
    priority: int = 2,
    subject: str = "Crash on login",
    description: str | None = "It crashes.",
    tracker: str = "Bug",
) -> dict[str, Any]:
    """Build a Redmine issue as it appears in `/issues.json`."""
    payload: dict[str, Any] = {
        "id": issue_id,
        "project": {"id": 1, "name": project},
        "tracker": {"id": 1, "name": tracker},
        "status": {"id": 1, "name": "New"},
        "priority": {"id": priority, "name": "Normal"},
        "author": {"id": author[0], "name": author[1]},
        "subject": subject,
        "description": description,
        "created_on": created_on,
        "updated_on": created_on,
    }
    if assigned_to is not None:
        payload["assigned_to"] = {"id": assigned_to[0], "name": assigned_to[1]}
    if category is not None:
        payload["category"] = {"id": 3, "name": category}
    return payload


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    """Factory for typed issues; accepts the same keywords as `issue_payload`."""

    def _make(issue_id: int = 1, **kwargs: Any) -> Issue:
        return Issue.model_validate(issue_payload(issue_id, **kwargs))

    return _make


@pytest.fixture
def make_issue_payload() -> Callable[..., dict[str, Any]]:
    """Factory for raw issue JSON."""
    return issue_payload
