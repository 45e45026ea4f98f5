#!/usr/bin/env python3
"""
Shared fixtures: a throwaway SQLite database per test, a frozen clock, seeded
hosts and event types, and a notification dispatcher that records instead of
calling Google or Mailgun.
"""

import os

# Settings are read at import time; pin the test environment first.
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["API_KEY"] = "test_api_key"
os.environ["MAINTENANCE_INTERVAL_SECONDS"] = "0"
os.environ["GOOGLE_CALENDAR_ENABLED"] = "false"
os.environ["MAILGUN_API_KEY"] = ""
os.environ["MAILGUN_DOMAIN"] = ""

from datetime import datetime, time, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from meetwise.core.clock import FixedClock
from meetwise.crud.availability import replace_rules
from meetwise.crud.event_type import create_event_type, create_group_event_type
from meetwise.crud.meeting import add_meeting
from meetwise.crud.user import create_user
from meetwise.db.base import init_db
from meetwise.db.models.meeting import MeetingParticipant, MeetingStatus
from meetwise.schemas.availability import AvailabilityRuleIn
from meetwise.schemas.event_type import EventTypeCreate, GroupEventTypeCreate
from meetwise.services.notifications import NotificationDispatcher

UTC = timezone.utc

# Thursday; the Monday used throughout the tests is four days later.
NOW = datetime(2026, 10, 15, 12, 0, tzinfo=UTC)
MONDAY = datetime(2026, 10, 19).date()
MONDAY_DOW = 1  # 0=Sunday


def at(hour: int, minute: int = 0, day=MONDAY) -> datetime:
    """UTC instant on the test Monday (or another day)."""
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'meetwise.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


class Recorder:
    """Notification sink that remembers what it was told."""

    def __init__(self):
        self.calls = []

    async def __call__(self, db, meeting_id, operation):
        self.calls.append((meeting_id, operation.value))


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def notifier(recorder, session_factory):
    return NotificationDispatcher({"recorder": recorder}, session_factory=session_factory)


# ---------- Seeding helpers ----------

async def make_host(db, username="host", tz="UTC", rules=((MONDAY_DOW, "09:00", "12:00"),)):
    host = await create_user(db, username=username, email=f"{username}@example.com", full_name=username.title(), timezone=tz)
    rule_objs = []
    for rule in rules:
        day, start, end = rule[:3]
        available = rule[3] if len(rule) > 3 else True
        rule_objs.append(
            AvailabilityRuleIn(
                day_of_week=day,
                start_time=time.fromisoformat(start),
                end_time=time.fromisoformat(end),
                is_available=available,
            )
        )
    await replace_rules(db, user_id=host.id, rules=rule_objs)
    return host


async def make_event_type(db, host, **overrides):
    fields = {"name": "Intro call", "duration_minutes": 30, "minimum_notice_hours": 24}
    fields.update(overrides)
    return await create_event_type(db, user_id=host.id, data=EventTypeCreate(**fields))


async def make_group(db, hosts, **overrides):
    fields = {"name": "Panel", "duration_minutes": 30, "minimum_notice_hours": 24}
    fields.update(overrides)
    return await create_group_event_type(
        db,
        created_by=hosts[0].id,
        data=GroupEventTypeCreate(host_user_ids=[h.id for h in hosts], **fields),
    )


async def make_meeting(db, host, event_type, start, *, status=MeetingStatus.CONFIRMED.value, minutes=30):
    meeting = add_meeting(
        db,
        host_user_id=host.id,
        event_type_id=event_type.id if event_type is not None else None,
        start_utc=start,
        end_utc=start + timedelta(minutes=minutes),
        status=status,
        timezone="UTC",
        title="Existing",
        participants=[
            MeetingParticipant(user_id=host.id, name=host.display_name, email=host.email, is_host=True),
            MeetingParticipant(name="Earlier Guest", email="earlier@example.com", access_token=f"tok-{start.isoformat()}"),
        ],
    )
    await db.commit()
    return meeting


@pytest_asyncio.fixture
async def host(db):
    return await make_host(db)


@pytest_asyncio.fixture
async def event_type(db, host):
    return await make_event_type(db, host)


# Pytest configuration hooks
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "smoke: Quick validation tests")
    config.addinivalue_line("markers", "essential: Core functionality tests")
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies")
    config.addinivalue_line("markers", "integration: Tests through the HTTP layer and database")
