"""create study buddy notification tables

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = 'a7c1e2d3f4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOTIFICATION_TYPES = (
    'session_reminder', 'group_invite', 'progress_update', 'partner_match', 'message', 'system',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('user_id', sa.String(255), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'study_groups',
        sa.Column('group_id', sa.Integer(), primary_key=True),
        sa.Column('group_name', sa.String(255), nullable=False),
        sa.Column('creator_id', sa.String(255), sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'group_members',
        sa.Column('membership_id', sa.Integer(), primary_key=True),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('study_groups.group_id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='member'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('group_id', 'user_id', name='uq_group_members_group_user'),
    )
    op.create_index('ix_group_members_group_id', 'group_members', ['group_id'])
    op.create_index('ix_group_members_user_id', 'group_members', ['user_id'])

    op.create_table(
        'study_sessions',
        sa.Column('session_id', sa.Integer(), primary_key=True),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('study_groups.group_id', ondelete='CASCADE'), nullable=False),
        sa.Column('organizer_id', sa.String(255), sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('session_title', sa.String(255), nullable=False),
        sa.Column('scheduled_start', sa.DateTime(), nullable=False),
        sa.Column('scheduled_end', sa.DateTime(), nullable=False),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='scheduled'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_study_sessions_group_id', 'study_sessions', ['group_id'])
    op.create_index('ix_study_sessions_scheduled_start', 'study_sessions', ['scheduled_start'])

    op.create_table(
        'session_attendees',
        sa.Column('attendance_id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('study_sessions.session_id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('attendance_status', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('session_id', 'user_id', name='uq_session_attendees_session_user'),
    )
    op.create_index('ix_session_attendees_session_id', 'session_attendees', ['session_id'])
    op.create_index('ix_session_attendees_user_id', 'session_attendees', ['user_id'])

    op.create_table(
        'notifications',
        sa.Column('notification_id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(255), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('notification_type', sa.String(100), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', sa.Text(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "notification_type IN ({})".format(", ".join(f"'{t}'" for t in NOTIFICATION_TYPES)),
            name='ck_notifications_type',
        ),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    # Unread badge polling
    op.create_index('ix_notifications_user_read', 'notifications', ['user_id', 'is_read'])
    # Dispatcher pending poll
    op.create_index('ix_notifications_scheduled_sent', 'notifications', ['scheduled_for', 'sent_at'])


def downgrade() -> None:
    op.drop_index('ix_notifications_scheduled_sent', table_name='notifications')
    op.drop_index('ix_notifications_user_read', table_name='notifications')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_session_attendees_user_id', table_name='session_attendees')
    op.drop_index('ix_session_attendees_session_id', table_name='session_attendees')
    op.drop_table('session_attendees')
    op.drop_index('ix_study_sessions_scheduled_start', table_name='study_sessions')
    op.drop_index('ix_study_sessions_group_id', table_name='study_sessions')
    op.drop_table('study_sessions')
    op.drop_index('ix_group_members_user_id', table_name='group_members')
    op.drop_index('ix_group_members_group_id', table_name='group_members')
    op.drop_table('group_members')
    op.drop_table('study_groups')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
