"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - shortcodes table: shortcode -> target URL mappings with expiry and click counter
    - click_events table: bounded per-shortcode click history
    """
    op.create_table(
        'shortcodes',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('target_url', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=False), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=False), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.String(length=100), nullable=False, server_default='system'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_shortcodes_code', 'shortcodes', ['code'], unique=True)
    op.create_index('ix_shortcodes_created_at', 'shortcodes', ['created_at'])
    op.create_index('ix_shortcodes_expires_at', 'shortcodes', ['expires_at'])
    op.create_index('ix_shortcodes_active', 'shortcodes', ['active'])

    op.create_table(
        'click_events',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=False), nullable=False),
        sa.Column('referrer', sa.Text(), nullable=False, server_default='Direct'),
        sa.Column('country', sa.String(length=100), nullable=False),
        sa.Column('region', sa.String(length=100), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('ip', sa.String(length=45), nullable=False),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', 'sequence', name='uq_click_events_code_sequence')
    )
    op.create_index('ix_click_events_code', 'click_events', ['code'])


def downgrade() -> None:
    op.drop_index('ix_click_events_code', table_name='click_events')
    op.drop_table('click_events')
    op.drop_index('ix_shortcodes_active', table_name='shortcodes')
    op.drop_index('ix_shortcodes_expires_at', table_name='shortcodes')
    op.drop_index('ix_shortcodes_created_at', table_name='shortcodes')
    op.drop_index('ix_shortcodes_code', table_name='shortcodes')
    op.drop_table('shortcodes')
