"""create_position_events_table

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per open/roll/close/assignment movement; chain_id links the legs
    op.create_table(
        'position_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.String(64), nullable=False),
        sa.Column('ticker', sa.String(10), nullable=False),
        sa.Column('strategy', sa.String(20), nullable=False),
        sa.Column('contracts', sa.Integer(), nullable=False),
        sa.Column('strike', sa.Float(), nullable=False),
        sa.Column('opening_price', sa.Float(), nullable=True),
        sa.Column('current_price', sa.Float(), nullable=True),
        sa.Column('premium_received', sa.Float(), nullable=False),
        sa.Column('commission', sa.Float(), nullable=False),
        sa.Column('closing_cost', sa.Float(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('expiration_date', sa.Date(), nullable=True),
        sa.Column('close_date', sa.Date(), nullable=True),
        sa.Column('event_date', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('movement_type', sa.String(20), nullable=False),
        sa.Column('is_current_position', sa.Boolean(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_position_events_chain_id', 'position_events', ['chain_id'])
    op.create_index('ix_position_events_is_current', 'position_events', ['is_current_position'])


def downgrade() -> None:
    op.drop_index('ix_position_events_is_current', table_name='position_events')
    op.drop_index('ix_position_events_chain_id', table_name='position_events')
    op.drop_table('position_events')
