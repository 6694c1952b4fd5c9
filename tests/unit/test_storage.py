"""Unit tests for the key/value store."""

from __future__ import annotations

from pathlib import Path

import pytest

from redmine_slack_relay.relay.storage import KeyValueStore, normalize_database_url


def test_get_missing_key_returns_default(store: KeyValueStore) -> None:
    assert store.get("last_creation") is None
    assert store.get("last_creation", "2015-05-11T16:37:21Z") == "2015-05-11T16:37:21Z"


def test_put_inserts_then_replaces(store: KeyValueStore) -> None:
    store.put("last_creation", "2015-05-11T16:37:22Z")
    store.put("last_creation", "2015-05-12T08:00:00Z")
    store.put("other", "x")

    assert store.get("last_creation") == "2015-05-12T08:00:00Z"
    assert store.get("other") == "x"


def test_values_survive_reopen(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'state.db'}"
    first = KeyValueStore(url)
    first.put("last_creation", "2015-05-11T16:37:22Z")
    first.close()

    reopened = KeyValueStore(url)
    try:
        assert reopened.get("last_creation") == "2015-05-11T16:37:22Z"
    finally:
        reopened.close()


def test_normalize_database_url() -> None:
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"
    assert normalize_database_url("postgresql://u:p@h/db") == "postgresql://u:p@h/db"
    assert normalize_database_url("sqlite:///x.db") == "sqlite:///x.db"


def test_store_requires_url() -> None:
    with pytest.raises(ValueError):
        KeyValueStore("")
