"""add users.booking_seq

Revision ID: 20261019_0002
Revises: 20261018_0001
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_0002'
down_revision: Union[str, Sequence[str], None] = '20261018_0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Per-host counter written at the start of every booking transaction."""
    op.add_column('users', sa.Column('booking_seq', sa.Integer(), nullable=False, server_default='0'))


def downgrade() -> None:
    op.drop_column('users', 'booking_seq')
