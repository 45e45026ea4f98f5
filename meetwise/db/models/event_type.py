# meetwise/db/models/event_type.py

from __future__ import annotations
from datetime import datetime
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from meetwise.db.session import Base
from meetwise.db.types import BigIntPK, UTCDateTime, utcnow

LOCATION_TYPES = ("in_person", "phone", "video", "custom")


class EventType(Base):
    __tablename__ = "event_types"
    __table_args__ = (
        sa.CheckConstraint("duration_minutes > 0", name="ck_event_types_duration_positive"),
        sa.Index("ix_event_types_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text)
    duration_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    location_type: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="video")
    location: Mapped[str | None] = mapped_column(sa.String(500))
    buffer_before_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    buffer_after_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    minimum_notice_hours: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=24)
    daily_limit: Mapped[int | None] = mapped_column(sa.Integer)
    booking_link: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    @property
    def host_user_ids(self) -> list[int]:
        return [self.user_id]


class GroupEventTypeHost(Base):
    __tablename__ = "group_event_type_hosts"
    __table_args__ = (
        sa.UniqueConstraint("group_event_type_id", "user_id", name="uq_group_event_type_hosts_group_user"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    group_event_type_id: Mapped[int] = mapped_column(
        sa.BigInteger, sa.ForeignKey("group_event_types.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


class GroupEventType(Base):
    __tablename__ = "group_event_types"
    __table_args__ = (
        sa.CheckConstraint("duration_minutes > 0", name="ck_group_event_types_duration_positive"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    # the host who created the group; every host (creator included) is in `hosts`
    created_by: Mapped[int | None] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="SET NULL"))
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text)
    duration_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    location_type: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="video")
    location: Mapped[str | None] = mapped_column(sa.String(500))
    buffer_before_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    buffer_after_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    minimum_notice_hours: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=24)
    daily_limit: Mapped[int | None] = mapped_column(sa.Integer)
    booking_link: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    hosts: Mapped[list[GroupEventTypeHost]] = relationship(
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=GroupEventTypeHost.user_id,
    )

    @property
    def host_user_ids(self) -> list[int]:
        return sorted(h.user_id for h in self.hosts)
