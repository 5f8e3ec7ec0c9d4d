"""initial schema

Revision ID: 3f9c2a7d1e40
Revises:
Create Date: 2026-10-19 10:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


APPLICATION_STATUS = sa.Enum(
    'PENDING', 'UNDER_REVIEW', 'INCOMPLETE', 'APPROVED', 'REJECTED',
    name='applicationstatus',
)
DONATION_STATUS = sa.Enum(
    'PENDING', 'COMPLETED', 'FAILED', 'CANCELLED',
    name='donationstatus',
)
USER_ROLE = sa.Enum('admin', 'manager', 'donor', 'student', name='user_role')
ACTIVE_STATUS_CLAUSE = "status IN ('PENDING', 'UNDER_REVIEW', 'INCOMPLETE', 'APPROVED')"


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_guest', sa.Boolean(), nullable=False),
        sa.Column('role', USER_ROLE, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'], unique=False)

    op.create_table(
        'user_permissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('permission', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'permission', name='uq_user_permission'),
    )
    op.create_index('ix_user_permissions_user', 'user_permissions', ['user_id'], unique=False)

    op.create_table(
        'permission_audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor_id', sa.Uuid(), nullable=False),
        sa.Column('target_user_id', sa.Uuid(), nullable=False),
        sa.Column('added', sa.JSON(), nullable=False),
        sa.Column('removed', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['target_user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_permission_audit_logs_created_at', 'permission_audit_logs', ['created_at'], unique=False)
    op.create_index(
        'ix_permission_audit_actor_target',
        'permission_audit_logs',
        ['actor_id', 'target_user_id', 'created_at'],
        unique=False,
    )

    op.create_table(
        'student_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('source_application_id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(length=500), nullable=False),
        sa.Column('story', sa.String(length=2000), nullable=False),
        sa.Column('academic_background', sa.String(length=500), nullable=True),
        sa.Column('dream_career', sa.String(length=200), nullable=True),
        sa.Column('photo_url', sa.String(length=500), nullable=True),
        sa.Column('funding_goal', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('amount_raised', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('is_visible', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('source_application_id'),
    )
    op.create_index('ix_student_profile_visible', 'student_profiles', ['is_visible'], unique=False)

    op.create_table(
        'student_applications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('place_of_birth', sa.String(length=200), nullable=False),
        sa.Column('current_residency', sa.String(length=500), nullable=False),
        sa.Column('email', sa.String(length=200), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('father_name', sa.String(length=200), nullable=False),
        sa.Column('mother_name', sa.String(length=200), nullable=False),
        sa.Column('parents_annual_salary', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('family_situation', sa.String(length=1000), nullable=True),
        sa.Column('personal_story', sa.String(length=2000), nullable=False),
        sa.Column('academic_background', sa.String(length=1000), nullable=False),
        sa.Column('current_education_level', sa.String(length=200), nullable=True),
        sa.Column('field_of_study', sa.String(length=200), nullable=True),
        sa.Column('dream_career', sa.String(length=200), nullable=True),
        sa.Column('profile_image_url', sa.String(length=500), nullable=True),
        sa.Column('proof_document_urls', sa.JSON(), nullable=True),
        sa.Column('gallery_image_urls', sa.JSON(), nullable=True),
        sa.Column('requested_funding_amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('funding_purpose', sa.String(length=1000), nullable=True),
        sa.Column('status', APPLICATION_STATUS, nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('reviewed_by_manager_id', sa.Uuid(), nullable=True),
        sa.Column('reviewed_by_manager_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by_admin_id', sa.Uuid(), nullable=True),
        sa.Column('approved_by_admin_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_posted', sa.Boolean(), nullable=False),
        sa.Column('profile_id', sa.Uuid(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by_manager_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['approved_by_admin_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['profile_id'], ['student_profiles.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id'),
        sa.UniqueConstraint('profile_id'),
    )
    op.create_index('ix_student_applications_user_id', 'student_applications', ['user_id'], unique=False)
    op.create_index('ix_student_applications_status', 'student_applications', ['status'], unique=False)
    op.create_index('ix_student_application_user_status', 'student_applications', ['user_id', 'status'], unique=False)
    op.create_index(
        'ix_student_application_status_submitted',
        'student_applications',
        ['status', 'submitted_at'],
        unique=False,
    )
    op.create_index(
        'uq_student_application_active_user',
        'student_applications',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATUS_CLAUSE),
    )

    op.create_table(
        'application_status_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('application_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('from_status', APPLICATION_STATUS, nullable=True),
        sa.Column('to_status', APPLICATION_STATUS, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['student_applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id'),
    )
    op.create_index(
        'ix_application_status_history_application_id',
        'application_status_history',
        ['application_id'],
        unique=False,
    )
    op.create_index(
        'ix_status_history_application_created',
        'application_status_history',
        ['application_id', 'created_at'],
        unique=False,
    )

    op.create_table(
        'donations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('profile_id', sa.Uuid(), nullable=False),
        sa.Column('donor_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=False),
        sa.Column('transaction_id', sa.String(length=200), nullable=True),
        sa.Column('status', DONATION_STATUS, nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['student_profiles.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['donor_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id'),
    )
    op.create_index('ix_donations_profile_id', 'donations', ['profile_id'], unique=False)
    op.create_index('ix_donations_donor_id', 'donations', ['donor_id'], unique=False)
    op.create_index('ix_donations_status', 'donations', ['status'], unique=False)
    op.create_index('ix_donation_profile_status', 'donations', ['profile_id', 'status'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('link_url', sa.String(length=500), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_user_read', 'notifications', ['user_id', 'is_read'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_notification_user_read', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_donation_profile_status', table_name='donations')
    op.drop_index('ix_donations_status', table_name='donations')
    op.drop_index('ix_donations_donor_id', table_name='donations')
    op.drop_index('ix_donations_profile_id', table_name='donations')
    op.drop_table('donations')
    op.drop_index('ix_status_history_application_created', table_name='application_status_history')
    op.drop_index('ix_application_status_history_application_id', table_name='application_status_history')
    op.drop_table('application_status_history')
    op.drop_index('uq_student_application_active_user', table_name='student_applications')
    op.drop_index('ix_student_application_status_submitted', table_name='student_applications')
    op.drop_index('ix_student_application_user_status', table_name='student_applications')
    op.drop_index('ix_student_applications_status', table_name='student_applications')
    op.drop_index('ix_student_applications_user_id', table_name='student_applications')
    op.drop_table('student_applications')
    op.drop_index('ix_student_profile_visible', table_name='student_profiles')
    op.drop_table('student_profiles')
    op.drop_index('ix_permission_audit_actor_target', table_name='permission_audit_logs')
    op.drop_index('ix_permission_audit_logs_created_at', table_name='permission_audit_logs')
    op.drop_table('permission_audit_logs')
    op.drop_index('ix_user_permissions_user', table_name='user_permissions')
    op.drop_table('user_permissions')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    op.execute("DROP TYPE IF EXISTS donationstatus")
    op.execute("DROP TYPE IF EXISTS applicationstatus")
    op.execute("DROP TYPE IF EXISTS user_role")
