# meetwise/db/models/meeting.py

from __future__ import annotations
from datetime import datetime
from enum import Enum
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from meetwise.db.session import Base
from meetwise.db.types import BigIntPK, UTCDateTime, utcnow


class MeetingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Meetings in these states occupy the host's time
BLOCKING_STATUSES = (MeetingStatus.PENDING.value, MeetingStatus.CONFIRMED.value)
TERMINAL_STATUSES = (MeetingStatus.CANCELLED.value, MeetingStatus.COMPLETED.value)


class MeetingParticipant(Base):
    __tablename__ = "meeting_participants"
    __table_args__ = (
        sa.Index("ix_meeting_participants_meeting_id", "meeting_id"),
        sa.Index("ix_meeting_participants_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    meeting_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False)
    # set on host rows so group meetings can be found per host
    user_id: Mapped[int | None] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="SET NULL"))
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    is_host: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(sa.Text)
    access_token: Mapped[str | None] = mapped_column(sa.String(64), unique=True)


class Meeting(Base):
    __tablename__ = "meetings"
    __table_args__ = (
        sa.CheckConstraint("end_time > start_time", name="ck_meetings_end_after_start"),
        sa.Index("ix_meetings_host_user_id_start_time", "host_user_id", "start_time"),
        sa.Index("ix_meetings_status", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    event_type_id: Mapped[int | None] = mapped_column(
        sa.BigInteger, sa.ForeignKey("event_types.id", ondelete="SET NULL")
    )
    group_event_type_id: Mapped[int | None] = mapped_column(
        sa.BigInteger, sa.ForeignKey("group_event_types.id", ondelete="SET NULL")
    )
    host_user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str | None] = mapped_column(sa.String(255))

    # Store as timezone-aware UTC
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    timezone: Mapped[str] = mapped_column(sa.String(64), nullable=False, default="UTC")
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=MeetingStatus.CONFIRMED.value)

    calendar_event_id: Mapped[str | None] = mapped_column(sa.String(255))
    calendar_provider: Mapped[str | None] = mapped_column(sa.String(32))

    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    participants: Mapped[list[MeetingParticipant]] = relationship(
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=MeetingParticipant.id,
    )

    @property
    def host_participants(self) -> list[MeetingParticipant]:
        return [p for p in self.participants if p.is_host]

    @property
    def guest_participants(self) -> list[MeetingParticipant]:
        return [p for p in self.participants if not p.is_host]

    @property
    def host_user_ids(self) -> list[int]:
        ids = {p.user_id for p in self.participants if p.is_host and p.user_id is not None}
        ids.add(self.host_user_id)
        return sorted(ids)
