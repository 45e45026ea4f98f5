# meetwise/db/models/calendar.py

from __future__ import annotations
from datetime import datetime
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from meetwise.db.session import Base
from meetwise.db.types import BigIntPK, UTCDateTime, utcnow

class CalendarConnection(Base):
    """A host's connected external calendar. Tokens come from the OAuth flow."""

    __tablename__ = "calendars"
    __table_args__ = (
        sa.Index("ix_calendars_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    provider: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="google")
    calendar_id: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="primary")
    access_token: Mapped[str | None] = mapped_column(sa.Text)
    refresh_token: Mapped[str | None] = mapped_column(sa.Text)
    token_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
