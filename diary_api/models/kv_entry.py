"""
Diary Backend — Key-Value Entry SQLAlchemy Model
=================================================

What:  ORM model for the `kv_entries` table that backs the key-value store.
How:   One row per key. The value column holds the JSON document exactly as
       the store serialized it; nothing else in the application looks inside
       it at the SQL level.
Who:   Used by SQLKVStore for put/get/delete/list and by Alembic.

Table Design:
    - key: primary key; its B-tree index gives the ordered, prefix-scoped
      scans that listing relies on (WHERE key LIKE 'diary:%' AND key > :after
      ORDER BY key).
    - value: TEXT JSON document.
    - updated_at: last write time (UTC), for operators; not part of the API.
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TIMESTAMP

from diary_api.database import Base

KEY_MAX_LENGTH = 512


class KVEntry(Base):
    """A single key/value pair in the diary store."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(
        String(KEY_MAX_LENGTH),
        primary_key=True,
        comment="Store key, e.g. diary:2026-10-19:<uuid>",
    )

    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON-serialized value",
    )

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this key was last written (UTC)",
    )

    def __repr__(self) -> str:
        return f"<KVEntry(key='{self.key}', updated_at='{self.updated_at}')>"
