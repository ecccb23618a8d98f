"""Initial migration - accounts, sessions, and lost & found tables

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-18

Room, course and schedule tables and the fn_* room functions are owned by
the timetable schema and are not created here.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _profile_owner() -> sa.Column:
    return sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, unique=True)


def _item_columns(kind: str) -> list:
    return [
        sa.Column(f'{kind}_item_id', sa.Integer(), primary_key=True),
        sa.Column(f'{kind}_item_name', sa.String(length=200), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(f'{kind}_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_resolved', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by_user_id', sa.Integer(), sa.ForeignKey('users.user_id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create account, session and lost & found tables."""
    op.create_table(
        'users',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('profile_image_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('user_id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email')),
        sa.CheckConstraint("role IN ('student', 'staff', 'admin', 'community')", name=op.f('ck_users_role')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'students',
        sa.Column('student_id', sa.Integer(), primary_key=True),
        _profile_owner(),
        sa.Column('student_number', sa.String(length=20), nullable=False, unique=True),
        sa.Column('student_name', sa.String(length=100), nullable=False),
        sa.Column('student_surname', sa.String(length=100), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=False),
        sa.Column('current_semester', sa.Integer(), nullable=True),
        sa.Column('phone_number', sa.String(length=30), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
    )
    op.create_table(
        'offices',
        sa.Column('office_id', sa.Integer(), primary_key=True),
        sa.Column('office_name', sa.String(length=100), nullable=False),
        sa.Column('office_code', sa.String(length=20), nullable=False),
        sa.Column('room_id', sa.Integer(), nullable=True),
    )
    op.create_table(
        'staff',
        sa.Column('staff_id', sa.Integer(), primary_key=True),
        _profile_owner(),
        sa.Column('staff_name', sa.String(length=100), nullable=False),
        sa.Column('staff_surname', sa.String(length=100), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=False),
        sa.Column('staff_title', sa.String(length=50), nullable=True),
        sa.Column('phone_number', sa.String(length=30), nullable=True),
        sa.Column('office_id', sa.Integer(), sa.ForeignKey('offices.office_id'), nullable=True),
        sa.Column('office_hours', sa.String(length=200), nullable=True),
    )
    op.create_table(
        'admins',
        sa.Column('admin_id', sa.Integer(), primary_key=True),
        _profile_owner(),
        sa.Column('admin_name', sa.String(length=100), nullable=False),
        sa.Column('admin_surname', sa.String(length=100), nullable=False),
    )
    op.create_table(
        'communities',
        sa.Column('community_id', sa.Integer(), primary_key=True),
        _profile_owner(),
        sa.Column('community_name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
    )

    op.create_table(
        'user_sessions',
        sa.Column('session_id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index(op.f('ix_user_sessions_session_token'), 'user_sessions', ['session_token'], unique=True)
    op.create_index(op.f('ix_user_sessions_user_id'), 'user_sessions', ['user_id'], unique=False)

    op.create_table(
        'email_verification_tokens',
        sa.Column('email_token_id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index(op.f('ix_email_verification_tokens_token'), 'email_verification_tokens', ['token'], unique=True)

    for kind in ('lost', 'found'):
        op.create_table(f'{kind}_items', *_item_columns(kind))
        op.create_index(f'ix_{kind}_items_{kind}_date', f'{kind}_items', [f'{kind}_date'], unique=False)
        op.create_table(
            f'{kind}_item_images',
            sa.Column('image_id', sa.Integer(), primary_key=True),
            sa.Column(f'{kind}_item_id', sa.Integer(),
                      sa.ForeignKey(f'{kind}_items.{kind}_item_id', ondelete='CASCADE'), nullable=False),
            sa.Column('image_url', sa.String(length=500), nullable=False),
        )
        op.create_index(f'ix_{kind}_item_images_{kind}_item_id', f'{kind}_item_images', [f'{kind}_item_id'], unique=False)

    op.create_table(
        'item_comments',
        sa.Column('comment_id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_type', sa.String(length=10), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("item_type IN ('lost', 'found')", name=op.f('ck_item_comments_item_type')),
    )
    op.create_index(op.f('ix_item_comments_item_id'), 'item_comments', ['item_type', 'item_id'], unique=False)


def downgrade() -> None:
    """Drop everything created in upgrade, children first."""
    op.drop_index(op.f('ix_item_comments_item_id'), table_name='item_comments')
    op.drop_table('item_comments')
    for kind in ('found', 'lost'):
        op.drop_index(f'ix_{kind}_item_images_{kind}_item_id', table_name=f'{kind}_item_images')
        op.drop_table(f'{kind}_item_images')
        op.drop_index(f'ix_{kind}_items_{kind}_date', table_name=f'{kind}_items')
        op.drop_table(f'{kind}_items')
    op.drop_index(op.f('ix_email_verification_tokens_token'), table_name='email_verification_tokens')
    op.drop_table('email_verification_tokens')
    op.drop_index(op.f('ix_user_sessions_user_id'), table_name='user_sessions')
    op.drop_index(op.f('ix_user_sessions_session_token'), table_name='user_sessions')
    op.drop_table('user_sessions')
    op.drop_table('communities')
    op.drop_table('admins')
    op.drop_table('staff')
    op.drop_table('offices')
    op.drop_table('students')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
