"""SQLAlchemy table definitions owned by Artifact Authority Service."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    func,
)

from resources.substrates.filesystem import Namespace

metadata = MetaData()

consignments = Table(
    "consignments",
    metadata,
    Column("blinded_utxo", String(512), primary_key=True),
    Column("content_ref", String(64), nullable=False, index=True),
    Column("ack", Boolean, nullable=True),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    CheckConstraint("length(content_ref) = 64", name="ck_consignments_ref_len"),
)

media = Table(
    "media",
    metadata,
    Column("attachment_id", String(512), primary_key=True),
    Column("content_ref", String(64), nullable=False, index=True),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    CheckConstraint("length(content_ref) = 64", name="ck_media_ref_len"),
)

TABLES: dict[Namespace, Table] = {
    Namespace.CONSIGNMENT: consignments,
    Namespace.MEDIA: media,
}
