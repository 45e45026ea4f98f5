# meetwise/db/base.py

"""
This file imports all the ORM models so Alembic can discover them.
Whenever you add a new model, import it here.
"""
from meetwise.db.models.user import User
from meetwise.db.models.availability import AvailabilityRule
from meetwise.db.models.event_type import EventType, GroupEventType, GroupEventTypeHost
from meetwise.db.models.meeting import Meeting, MeetingParticipant
from meetwise.db.models.slot_lock import SlotLock
from meetwise.db.models.calendar import CalendarConnection
from meetwise.db.models.dashboard_share import DashboardShare
from meetwise.db.session import engine, Base

async def init_db(bind=None):
    """Initialize database by creating all tables"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
