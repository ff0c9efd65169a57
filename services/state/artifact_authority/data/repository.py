"""Authoritative SQL repository for Artifact Authority Service state."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Mapping

from sqlalchemy import Column, insert, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.filesystem import Namespace
from resources.substrates.sql import transactional_session
from services.state.artifact_authority.domain import ConsignmentRecord, MediaRecord
from services.state.artifact_authority.errors import DuplicateKeyError
from services.state.artifact_authority.interfaces import (
    ArtifactRecord,
    ArtifactRepository,
)

from .schema import TABLES, consignments


class SqlArtifactRepository(ArtifactRepository):
    """SQL repository over service-owned consignment and media tables."""

    def __init__(self, sessions: sessionmaker[Session]) -> None:
        self._sessions = sessions

    def find_by_key(self, *, namespace: Namespace, key: str) -> ArtifactRecord | None:
        """Read one record by namespace and rendezvous key."""
        table = TABLES[namespace]
        with transactional_session(self._sessions) as session:
            row = (
                session.execute(select(table).where(_key_column(namespace) == key))
                .mappings()
                .one_or_none()
            )
            return None if row is None else _to_record(namespace, row)

    def insert(
        self, *, namespace: Namespace, key: str, content_ref: str
    ) -> ArtifactRecord:
        """Insert one record, relying on the primary key to reject duplicates."""
        table = TABLES[namespace]
        key_column = _key_column(namespace)
        try:
            with transactional_session(self._sessions) as session:
                session.execute(
                    insert(table).values(
                        {key_column.name: key, "content_ref": content_ref}
                    )
                )
                row = (
                    session.execute(select(table).where(key_column == key))
                    .mappings()
                    .one()
                )
                return _to_record(namespace, row)
        except IntegrityError as exc:
            if self.find_by_key(namespace=namespace, key=key) is not None:
                raise DuplicateKeyError(namespace=namespace, key=key) from exc
            raise

    def set_ack(self, *, blinded_utxo: str, ack: bool) -> bool:
        """Compare-and-set the ack column from NULL to ``ack``."""
        with transactional_session(self._sessions) as session:
            result = session.execute(
                update(consignments)
                .where(
                    consignments.c.blinded_utxo == blinded_utxo,
                    consignments.c.ack.is_(None),
                )
                .values(ack=ack)
            )
            return int(result.rowcount or 0) == 1

    def ping(self) -> bool:
        """Return whether the backing database answers a trivial query."""
        with transactional_session(self._sessions) as session:
            session.execute(text("SELECT 1"))
        return True


def _key_column(namespace: Namespace) -> Column[Any]:
    """Return the primary key column for one namespace table."""
    return next(iter(TABLES[namespace].primary_key.columns))


def _to_record(namespace: Namespace, row: Mapping[str, Any]) -> ArtifactRecord:
    """Map one SQL row to a strict domain record."""
    if namespace is Namespace.CONSIGNMENT:
        ack = row["ack"]
        return ConsignmentRecord(
            blinded_utxo=str(row["blinded_utxo"]),
            content_ref=str(row["content_ref"]),
            ack=None if ack is None else bool(ack),
            created_at=_row_dt(row, "created_at"),
        )
    return MediaRecord(
        attachment_id=str(row["attachment_id"]),
        content_ref=str(row["content_ref"]),
        created_at=_row_dt(row, "created_at"),
    )


def _row_dt(row: Mapping[str, Any], column: str) -> datetime:
    """Read and normalize one timezone-aware datetime field from SQL row."""
    value = row.get(column)
    if not isinstance(value, datetime):
        raise ValueError(f"expected datetime column for {column}")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
