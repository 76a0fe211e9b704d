"""
FarmTrace Backend — World State SQLAlchemy Model
==================================================

What:  ORM model for the `produce_state` table, the ledger's key/value store.
How:   One row per produce key. The value column holds the produce record as
       JSON text exactly as it was written; reads return it unchanged.
Who:   Used by WorldState for reads, writes and range scans, and by Alembic.

Key ordering:
    Keys are strings compared lexically, so range scans over ["0", "999")
    return "1", "10", "2", ... in that order.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from farmtrace.database import Base


class ProduceState(Base):
    """A single key in the world state and its current JSON value."""

    __tablename__ = "produce_state"

    key: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Ledger key of the produce record",
    )

    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON-encoded produce record",
    )

    # Last transaction that wrote this key
    tx_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Transaction id of the most recent write",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        comment="When this key was last written (UTC)",
    )

    def __repr__(self) -> str:
        return f"<ProduceState(key='{self.key}', tx_id='{self.tx_id}')>"
