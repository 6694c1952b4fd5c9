"""Key/value persistence for relay state (the creation-time watermark).

Backed by a single SQL table so that any SQLAlchemy-supported database works:
SQLite for local runs and tests, Postgres on Heroku-style deployments. The
table is created on first use.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, select
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

key_values = Table(
    "key_values",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("key", String(255), nullable=False, unique=True),
    Column("value", String(255)),
)


def normalize_database_url(url: str) -> str:
    """Accept Heroku's legacy `postgres://` scheme, which SQLAlchemy rejects."""

    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://") :]
    return url


class KeyValueStore:
    """SQL-table backed string store."""

    def __init__(self, url: str, *, engine: Engine | None = None) -> None:
        if engine is None and not url:
            raise ValueError("Database URL is required")
        self._engine = engine or create_engine(normalize_database_url(url))
        metadata.create_all(self._engine)
        logger.debug("Key/value store ready", extra={"dialect": self._engine.dialect.name})

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value stored for `key`, or `default` if there is none."""

        with self._engine.connect() as conn:
            value = conn.execute(
                select(key_values.c.value).where(key_values.c.key == key)
            ).scalar_one_or_none()
        return default if value is None else value

    def put(self, key: str, value: str) -> None:
        """Store `value` for `key`, replacing any previous value."""

        with self._engine.begin() as conn:
            updated = conn.execute(
                key_values.update().where(key_values.c.key == key).values(value=value)
            )
            if updated.rowcount == 0:
                conn.execute(key_values.insert().values(key=key, value=value))

    def close(self) -> None:
        self._engine.dispose()
