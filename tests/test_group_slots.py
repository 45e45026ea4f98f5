#!/usr/bin/env python3
"""
Tests for group slot computation: every host must be free at once.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from conftest import MONDAY, MONDAY_DOW, at, make_event_type, make_group, make_host, make_meeting
from meetwise.core.errors import InvalidRangeError, NotFoundError
from meetwise.services.group_slots import compute_group_slots


def starts(slots):
    return [s.slot_start for s in slots]


async def group_slots(db, group, clock, tz="UTC"):
    return await compute_group_slots(
        db, group_event_type_id=group.id, start_date=MONDAY, end_date=MONDAY, timezone=tz, clock=clock
    )


@pytest_asyncio.fixture
async def panel(db):
    alice = await make_host(db, username="alice", rules=((MONDAY_DOW, "09:00", "12:00"),))
    bob = await make_host(db, username="bob", rules=((MONDAY_DOW, "10:00", "13:00"),))
    group = await make_group(db, [alice, bob])
    return alice, bob, group


class TestComputeGroupSlots:
    """Intersection of the hosts' free time"""

    @pytest.mark.asyncio
    async def test_only_overlap_is_offered(self, db, panel, clock):
        """Test 09-12 and 10-13 share 10-12"""
        _, _, group = panel

        slots = await group_slots(db, group, clock)

        assert starts(slots) == [at(10), at(10, 30), at(11), at(11, 30)]

    @pytest.mark.asyncio
    async def test_one_hosts_meeting_blocks_the_group(self, db, panel, clock):
        """Test that a single-host booking of one member removes the common slot"""
        alice, _, group = panel
        solo = await make_event_type(db, alice)
        await make_meeting(db, alice, solo, at(10, 30))

        slots = await group_slots(db, group, clock)

        assert starts(slots) == [at(10), at(11), at(11, 30)]

    @pytest.mark.asyncio
    async def test_hosts_in_different_zones(self, db, clock):
        """Test a London host and a New York host overlapping for one hour"""
        london = await make_host(db, username="london", tz="Europe/London", rules=((MONDAY_DOW, "13:00", "17:00"),))
        new_york = await make_host(db, username="nyc", tz="America/New_York", rules=((MONDAY_DOW, "09:00", "12:00"),))
        group = await make_group(db, [london, new_york])

        # London 13-17 BST = 12-16 UTC; New York 09-12 EDT = 13-16 UTC
        slots = await group_slots(db, group, clock)

        assert starts(slots)[0] == at(13)
        assert starts(slots)[-1] == at(15, 30)
        assert len(slots) == 6

    @pytest.mark.asyncio
    async def test_no_overlap_yields_nothing(self, db, clock):
        early = await make_host(db, username="early", rules=((MONDAY_DOW, "08:00", "10:00"),))
        late = await make_host(db, username="late", rules=((MONDAY_DOW, "14:00", "16:00"),))
        group = await make_group(db, [early, late])

        assert await group_slots(db, group, clock) == []

    @pytest.mark.asyncio
    async def test_daily_limit_applies_to_group_bookings(self, db, clock):
        alice = await make_host(db, username="alice", rules=((MONDAY_DOW, "09:00", "12:00"),))
        bob = await make_host(db, username="bob", rules=((MONDAY_DOW, "09:00", "12:00"),))
        group = await make_group(db, [alice, bob], daily_limit=1)

        slots = await group_slots(db, group, clock)

        assert starts(slots) == [at(9)]

    @pytest.mark.asyncio
    async def test_inactive_group(self, db, clock):
        alice = await make_host(db, username="alice")
        bob = await make_host(db, username="bob")
        group = await make_group(db, [alice, bob], is_active=False)

        with pytest.raises(NotFoundError):
            await group_slots(db, group, clock)

    @pytest.mark.asyncio
    async def test_range_past_horizon_is_invalid(self, db, panel, clock):
        _, _, group = panel
        far_monday = MONDAY + timedelta(weeks=10)

        with pytest.raises(InvalidRangeError):
            await compute_group_slots(
                db, group_event_type_id=group.id, start_date=far_monday, end_date=far_monday, clock=clock
            )
