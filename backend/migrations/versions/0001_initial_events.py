"""initial events and event comments

Revision ID: 0001_initial_events
Revises: 
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_events'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=True),
        sa.Column('is_planned', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='draft'),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('budget', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('planned_budget', sa.Numeric(12, 2), nullable=True),
        sa.Column('planned_enquiries', sa.Integer(), nullable=True),
        sa.Column('planned_orders', sa.Integer(), nullable=True),
        sa.Column('actual_budget', sa.Numeric(12, 2), nullable=True),
        sa.Column('actual_enquiries', sa.Integer(), nullable=True),
        sa.Column('actual_orders', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_index('ix_events_creator_id', 'events', ['creator_id'])
    op.create_index('ix_events_branch_id', 'events', ['branch_id'])

    op.create_table('event_comments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('kind', sa.String(length=16), nullable=False, server_default='general'),
        sa.Column('status_from', sa.String(length=32), nullable=True),
        sa.Column('status_to', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_event_comments_event_id', 'event_comments', ['event_id'])
    op.create_index('ix_event_comments_author_id', 'event_comments', ['author_id'])


def downgrade():
    op.drop_index('ix_event_comments_author_id', table_name='event_comments')
    op.drop_index('ix_event_comments_event_id', table_name='event_comments')
    op.drop_table('event_comments')
    op.drop_index('ix_events_branch_id', table_name='events')
    op.drop_index('ix_events_creator_id', table_name='events')
    op.drop_index('ix_events_status', table_name='events')
    op.drop_table('events')
