# meetwise/db/models/availability.py

from __future__ import annotations
from datetime import time
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from meetwise.db.session import Base
from meetwise.db.types import BigIntPK

class AvailabilityRule(Base):
    __tablename__ = "availability_rules"
    __table_args__ = (
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_rules_day_of_week"),
        sa.CheckConstraint("start_time < end_time", name="ck_availability_rules_start_before_end"),
        sa.Index("ix_availability_rules_user_id_day", "user_id", "day_of_week"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # 0=Sunday .. 6=Saturday; times are wall-clock in the host's time zone
    day_of_week: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    end_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    is_available: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True, server_default=sa.true())
