"""create_session_and_summary_tables

Revision ID: 5b2d9e4c1a07
Revises:
Create Date: 2026-10-18 09:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b2d9e4c1a07'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('team_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )
    op.create_index(op.f('ix_users_team_id'), 'users', ['team_id'], unique=False)

    op.create_table(
        'guests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('guest_id', sa.String(length=36), nullable=True),
        sa.Column('project_name', sa.String(length=255), nullable=True),
        sa.Column('tool_name', sa.String(length=100), nullable=True),
        sa.Column('session_date', sa.Date(), nullable=False),
        sa.Column('start_timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('prompt_count', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['guest_id'], ['guests.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_sessions_user_date', 'sessions', ['user_id', 'session_date'], unique=False)
    op.create_index('idx_sessions_guest_date', 'sessions', ['guest_id', 'session_date'], unique=False)

    op.create_table(
        'session_contents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('messages', sa.JSON(), nullable=False),
        sa.Column('message_count', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id')
    )

    op.create_table(
        'daily_summaries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('guest_id', sa.String(length=36), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('summary', sa.JSON(), nullable=False),
        sa.Column('work_categories', sa.JSON(), nullable=False),
        sa.Column('project_todos', sa.JSON(), nullable=False),
        sa.Column('quality_score', sa.Float(), nullable=False),
        sa.Column('quality_score_explanation', sa.String(length=300), nullable=False),
        sa.Column('raw_text', sa.Text(), nullable=False),
        sa.Column('validation_errors', sa.JSON(), nullable=False),
        sa.Column('validation_warnings', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('(user_id IS NULL) <> (guest_id IS NULL)', name='ck_daily_summaries_one_subject'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['guest_id'], ['guests.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_daily_summaries_id'), 'daily_summaries', ['id'], unique=False)
    op.create_index('idx_daily_summaries_user_date', 'daily_summaries', ['user_id', 'date'], unique=True)
    op.create_index('idx_daily_summaries_guest_date', 'daily_summaries', ['guest_id', 'date'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_daily_summaries_guest_date', table_name='daily_summaries')
    op.drop_index('idx_daily_summaries_user_date', table_name='daily_summaries')
    op.drop_index(op.f('ix_daily_summaries_id'), table_name='daily_summaries')
    op.drop_table('daily_summaries')
    op.drop_table('session_contents')
    op.drop_index('idx_sessions_guest_date', table_name='sessions')
    op.drop_index('idx_sessions_user_date', table_name='sessions')
    op.drop_table('sessions')
    op.drop_table('guests')
    op.drop_index(op.f('ix_users_team_id'), table_name='users')
    op.drop_table('users')
