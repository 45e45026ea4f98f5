# meetwise/db/models/user.py

from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
import sqlalchemy as sa

from meetwise.db.session import Base
from meetwise.db.types import BigIntPK, UTCDateTime, utcnow

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(sa.String(120))
    # IANA zone the host's availability rules are written in
    timezone: Mapped[str] = mapped_column(sa.String(64), nullable=False, default="UTC", server_default="UTC")
    # bumped by every booking transaction; the UPDATE is the per-host write lock
    booking_seq: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username
