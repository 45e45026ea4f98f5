"""initial scheduling schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, rules, event types, meetings, locks, calendars and shares."""
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(64), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(120)),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'availability_rules',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_availability_rules_day_of_week'),
        sa.CheckConstraint('start_time < end_time', name='ck_availability_rules_start_before_end'),
    )
    op.create_index('ix_availability_rules_user_id_day', 'availability_rules', ['user_id', 'day_of_week'])

    op.create_table(
        'event_types',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('location_type', sa.String(16), nullable=False),
        sa.Column('location', sa.String(500)),
        sa.Column('buffer_before_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('buffer_after_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('minimum_notice_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('daily_limit', sa.Integer()),
        sa.Column('booking_link', sa.String(64), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('duration_minutes > 0', name='ck_event_types_duration_positive'),
    )
    op.create_index('ix_event_types_user_id', 'event_types', ['user_id'])

    op.create_table(
        'group_event_types',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('created_by', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('location_type', sa.String(16), nullable=False),
        sa.Column('location', sa.String(500)),
        sa.Column('buffer_before_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('buffer_after_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('minimum_notice_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('daily_limit', sa.Integer()),
        sa.Column('booking_link', sa.String(64), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('duration_minutes > 0', name='ck_group_event_types_duration_positive'),
    )

    op.create_table(
        'group_event_type_hosts',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            'group_event_type_id',
            sa.BigInteger(),
            sa.ForeignKey('group_event_types.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('group_event_type_id', 'user_id', name='uq_group_event_type_hosts_group_user'),
    )

    op.create_table(
        'meetings',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('event_type_id', sa.BigInteger(), sa.ForeignKey('event_types.id', ondelete='SET NULL')),
        sa.Column(
            'group_event_type_id', sa.BigInteger(), sa.ForeignKey('group_event_types.id', ondelete='SET NULL')
        ),
        sa.Column('host_user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255)),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('status', sa.String(16), nullable=False, server_default='confirmed'),
        sa.Column('calendar_event_id', sa.String(255)),
        sa.Column('calendar_provider', sa.String(32)),
        sa.Column('cancelled_at', sa.DateTime(timezone=True)),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('end_time > start_time', name='ck_meetings_end_after_start'),
    )
    op.create_index('ix_meetings_host_user_id_start_time', 'meetings', ['host_user_id', 'start_time'])
    op.create_index('ix_meetings_status', 'meetings', ['status'])

    op.create_table(
        'meeting_participants',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('meeting_id', sa.BigInteger(), sa.ForeignKey('meetings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('is_host', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text()),
        sa.Column('access_token', sa.String(64), unique=True),
    )
    op.create_index('ix_meeting_participants_meeting_id', 'meeting_participants', ['meeting_id'])
    op.create_index('ix_meeting_participants_user_id', 'meeting_participants', ['user_id'])

    op.create_table(
        'slot_locks',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('lock_id', sa.String(100), nullable=False),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type_id', sa.BigInteger(), sa.ForeignKey('event_types.id', ondelete='CASCADE')),
        sa.Column(
            'group_event_type_id', sa.BigInteger(), sa.ForeignKey('group_event_types.id', ondelete='CASCADE')
        ),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('lock_id', 'user_id', name='uq_slot_locks_lock_id_user_id'),
    )
    op.create_index('ix_slot_locks_lock_id', 'slot_locks', ['lock_id'])
    op.create_index('ix_slot_locks_user_id_start_time', 'slot_locks', ['user_id', 'start_time'])
    op.create_index('ix_slot_locks_expires_at', 'slot_locks', ['expires_at'])

    op.create_table(
        'calendars',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider', sa.String(32), nullable=False, server_default='google'),
        sa.Column('calendar_id', sa.String(255), nullable=False, server_default='primary'),
        sa.Column('access_token', sa.Text()),
        sa.Column('refresh_token', sa.Text()),
        sa.Column('token_expires_at', sa.DateTime(timezone=True)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_calendars_user_id', 'calendars', ['user_id'])

    op.create_table(
        'dashboard_shares',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('owner_user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'shared_with_user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('permission_level', sa.String(8), nullable=False, server_default='view'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('owner_user_id', 'shared_with_user_id', name='uq_dashboard_shares_owner_shared'),
        sa.CheckConstraint("permission_level IN ('view', 'edit')", name='ck_dashboard_shares_permission'),
    )


def downgrade() -> None:
    """Drop everything in reverse dependency order."""
    op.drop_table('dashboard_shares')
    op.drop_index('ix_calendars_user_id', table_name='calendars')
    op.drop_table('calendars')
    op.drop_index('ix_slot_locks_expires_at', table_name='slot_locks')
    op.drop_index('ix_slot_locks_user_id_start_time', table_name='slot_locks')
    op.drop_index('ix_slot_locks_lock_id', table_name='slot_locks')
    op.drop_table('slot_locks')
    op.drop_index('ix_meeting_participants_user_id', table_name='meeting_participants')
    op.drop_index('ix_meeting_participants_meeting_id', table_name='meeting_participants')
    op.drop_table('meeting_participants')
    op.drop_index('ix_meetings_status', table_name='meetings')
    op.drop_index('ix_meetings_host_user_id_start_time', table_name='meetings')
    op.drop_table('meetings')
    op.drop_table('group_event_type_hosts')
    op.drop_table('group_event_types')
    op.drop_index('ix_event_types_user_id', table_name='event_types')
    op.drop_table('event_types')
    op.drop_index('ix_availability_rules_user_id_day', table_name='availability_rules')
    op.drop_table('availability_rules')
    op.drop_table('users')
