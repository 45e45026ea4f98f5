#!/usr/bin/env python3
"""
Create the schema on a local SQLite database and seed one demo host.

Production databases are migrated with ``alembic upgrade head`` instead.
"""

import asyncio
import os
from datetime import time
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./data/meetwise.db")


async def init_database() -> bool:
    from meetwise.db.base import init_db

    Path("data").mkdir(exist_ok=True)
    print("🗄️  Creating tables...")
    await init_db()
    print("✅ Database tables created")
    return True


async def create_sample_data() -> None:
    import sqlalchemy as sa

    from meetwise.crud.availability import replace_rules
    from meetwise.crud.event_type import create_event_type
    from meetwise.crud.user import create_user
    from meetwise.db.models.user import User
    from meetwise.db.session import AsyncSessionLocal
    from meetwise.schemas.availability import AvailabilityRuleIn
    from meetwise.schemas.event_type import EventTypeCreate

    async with AsyncSessionLocal() as session:
        existing = await session.execute(sa.select(User.id).limit(1))
        if existing.scalar_one_or_none() is not None:
            print("📊 Sample data already exists, skipping")
            return

        host = await create_user(
            session, username="demo", email="demo@example.com", full_name="Demo Host", timezone="America/New_York"
        )
        # Monday to Friday, 09:00-17:00
        await replace_rules(
            session,
            user_id=host.id,
            rules=[
                AvailabilityRuleIn(day_of_week=d, start_time=time(9), end_time=time(17))
                for d in range(1, 6)
            ],
        )
        event_type = await create_event_type(
            session,
            user_id=host.id,
            data=EventTypeCreate(name="Intro call", duration_minutes=30, buffer_after_minutes=10),
        )
        print(f"✅ Demo host {host.id} with booking link /book/{event_type.booking_link}")


if __name__ == "__main__":
    print("🚀 Meetwise Database Initialization")
    print("=" * 50)
    if asyncio.run(init_database()):
        asyncio.run(create_sample_data())
        print("\n🎉 Database initialization complete!")
