# meetwise/db/models/slot_lock.py

from __future__ import annotations
from datetime import datetime
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from meetwise.db.session import Base
from meetwise.db.types import BigIntPK, UTCDateTime, utcnow

class SlotLock(Base):
    """Short-lived advisory hold on a slot between display and submission."""

    __tablename__ = "slot_locks"
    __table_args__ = (
        sa.UniqueConstraint("lock_id", "user_id", name="uq_slot_locks_lock_id_user_id"),
        sa.Index("ix_slot_locks_user_id_start_time", "user_id", "start_time"),
        sa.Index("ix_slot_locks_expires_at", "expires_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    # group locks hold one row per host under the same lock_id
    lock_id: Mapped[str] = mapped_column(sa.String(100), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_type_id: Mapped[int | None] = mapped_column(
        sa.BigInteger, sa.ForeignKey("event_types.id", ondelete="CASCADE")
    )
    group_event_type_id: Mapped[int | None] = mapped_column(
        sa.BigInteger, sa.ForeignKey("group_event_types.id", ondelete="CASCADE")
    )
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
