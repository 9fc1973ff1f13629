"""projects, snapshots and visits

Revision ID: visits_initial_001
Revises:
Create Date: 2026-01-06

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'visits_initial_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

snapshot_status = postgresql.ENUM('ACTIVE', 'PAUSED', 'COMPLETED', name='snapshot_status', create_type=False)
visitor_type = postgresql.ENUM('PENDING', 'REAL', 'ZOMBIE', 'BOT', name='visitor_type', create_type=False)


def upgrade() -> None:
    snapshot_status.create(op.get_bind(), checkfirst=True)
    visitor_type.create(op.get_bind(), checkfirst=True)

    # --- Projects ---
    op.create_table('projects',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('shop', sa.String(length=255), nullable=False),
        sa.Column('product_id', sa.String(length=100), nullable=False),
        sa.Column('product_title', sa.String(length=500), nullable=False),
        sa.Column('product_handle', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_projects_shop'), 'projects', ['shop'], unique=False)
    op.create_index(op.f('ix_projects_product_id'), 'projects', ['product_id'], unique=False)
    op.create_index(op.f('ix_projects_product_handle'), 'projects', ['product_handle'], unique=False)

    # --- Snapshots ---
    op.create_table('snapshots',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('target_visitors', sa.Integer(), server_default='1000', nullable=False),
        sa.Column('status', snapshot_status, server_default='ACTIVE', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_snapshots_project_id'), 'snapshots', ['project_id'], unique=False)
    op.create_index(op.f('ix_snapshots_status'), 'snapshots', ['status'], unique=False)
    op.create_index('ix_snapshots_project_number', 'snapshots', ['project_id', 'number'], unique=True)
    op.create_index('ix_snapshots_project_status', 'snapshots', ['project_id', 'status'], unique=False)

    # --- Visits ---
    op.create_table('visits',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('snapshot_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', sa.String(length=100), nullable=False),
        sa.Column('visitor_type', visitor_type, server_default='PENDING', nullable=False),
        sa.Column('bot_score', sa.Integer(), server_default='0', nullable=False),
        sa.Column('source', sa.String(length=255), nullable=True),
        sa.Column('medium', sa.String(length=255), nullable=True),
        sa.Column('campaign', sa.String(length=255), nullable=True),
        sa.Column('referrer', sa.Text(), nullable=True),
        sa.Column('source_category', sa.String(length=50), nullable=True),
        sa.Column('time_on_page', sa.Integer(), server_default='0', nullable=False),
        sa.Column('scroll_depth', sa.Integer(), server_default='0', nullable=False),
        sa.Column('mouse_movements', sa.Integer(), server_default='0', nullable=False),
        sa.Column('key_presses', sa.Integer(), server_default='0', nullable=False),
        sa.Column('touch_events', sa.Integer(), server_default='0', nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('country_code', sa.String(length=2), nullable=True),
        sa.Column('city', sa.String(length=255), nullable=True),
        sa.Column('region', sa.String(length=255), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('has_mouse_moved', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('has_scrolled', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('has_key_pressed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('has_touched', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_webdriver', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('suspicious_ua', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('linear_movement', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('datacenter_ip', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('datacenter_provider', sa.String(length=50), nullable=True),
        sa.Column('added_to_cart', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('added_to_cart_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('converted', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('converted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('exit_type', sa.String(length=30), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('device_type', sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(['snapshot_id'], ['snapshots.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_visits_snapshot_id'), 'visits', ['snapshot_id'], unique=False)
    op.create_index(op.f('ix_visits_session_id'), 'visits', ['session_id'], unique=False)
    op.create_index(op.f('ix_visits_visitor_type'), 'visits', ['visitor_type'], unique=False)
    op.create_index(op.f('ix_visits_source_category'), 'visits', ['source_category'], unique=False)
    op.create_index(op.f('ix_visits_country_code'), 'visits', ['country_code'], unique=False)
    op.create_index(op.f('ix_visits_started_at'), 'visits', ['started_at'], unique=False)
    op.create_index('ix_visits_session_snapshot', 'visits', ['session_id', 'snapshot_id'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_visits_session_snapshot', table_name='visits')
    op.drop_index(op.f('ix_visits_started_at'), table_name='visits')
    op.drop_index(op.f('ix_visits_country_code'), table_name='visits')
    op.drop_index(op.f('ix_visits_source_category'), table_name='visits')
    op.drop_index(op.f('ix_visits_visitor_type'), table_name='visits')
    op.drop_index(op.f('ix_visits_session_id'), table_name='visits')
    op.drop_index(op.f('ix_visits_snapshot_id'), table_name='visits')
    op.drop_table('visits')

    op.drop_index('ix_snapshots_project_status', table_name='snapshots')
    op.drop_index('ix_snapshots_project_number', table_name='snapshots')
    op.drop_index(op.f('ix_snapshots_status'), table_name='snapshots')
    op.drop_index(op.f('ix_snapshots_project_id'), table_name='snapshots')
    op.drop_table('snapshots')

    op.drop_index(op.f('ix_projects_product_handle'), table_name='projects')
    op.drop_index(op.f('ix_projects_product_id'), table_name='projects')
    op.drop_index(op.f('ix_projects_shop'), table_name='projects')
    op.drop_table('projects')

    visitor_type.drop(op.get_bind(), checkfirst=True)
    snapshot_status.drop(op.get_bind(), checkfirst=True)
