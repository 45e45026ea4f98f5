# meetwise/db/models/dashboard_share.py

from __future__ import annotations
from datetime import datetime
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from meetwise.db.session import Base
from meetwise.db.types import BigIntPK, UTCDateTime, utcnow

PERMISSION_LEVELS = ("view", "edit")

class DashboardShare(Base):
    __tablename__ = "dashboard_shares"
    __table_args__ = (
        sa.UniqueConstraint("owner_user_id", "shared_with_user_id", name="uq_dashboard_shares_owner_shared"),
        sa.CheckConstraint("permission_level IN ('view', 'edit')", name="ck_dashboard_shares_permission"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    shared_with_user_id: Mapped[int] = mapped_column(
        sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    permission_level: Mapped[str] = mapped_column(sa.String(8), nullable=False, default="view")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
