"""SQLAlchemy engine construction for the shared SQL substrate."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Engine, create_engine

from resources.substrates.sql.config import SqlSettings


def create_sql_engine(settings: SqlSettings) -> Engine:
    """Construct a configured SQLAlchemy engine.

    SQLite engines are shared across the request threadpool, so thread
    affinity checks are disabled and lock waits use the configured timeout.
    """
    connect_args: dict[str, Any] = {}
    if settings.is_sqlite():
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.busy_timeout_seconds,
        }
        if settings.url is None:
            settings.database_path().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        settings.resolved_url(),
        pool_pre_ping=settings.pool_pre_ping,
        echo=settings.echo,
        connect_args=connect_args,
    )
