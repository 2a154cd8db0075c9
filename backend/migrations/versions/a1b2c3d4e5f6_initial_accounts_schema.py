"""initial accounts schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-01-14 00:00:00.000000

Creates the four principal tables and their supporting tables:
- super_admins, shop_owners, users, employees: one table per account kind
- guard_sessions: server-side record behind each guard's session slot
- security_events: login attempts / logouts (throttling)
- audit_logs: append-only log of actions inside a shop

employees.email and users.email are unique; employee provisioning relies on
both constraints.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # super_admins
    # ============================================================================
    op.create_table(
        'super_admins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_ip', sa.String(length=45), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id', name='pk_super_admins'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_super_admins_email', 'super_admins', ['email'], unique=True)
    op.create_index('ix_super_admins_status', 'super_admins', ['status'])

    # ============================================================================
    # shop_owners: tenant root, reviewed once by a super admin
    # ============================================================================
    op.create_table(
        'shop_owners',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=False),
        sa.Column('business_address', sa.String(length=255), nullable=False),
        sa.Column('business_type', sa.String(length=16), nullable=False),
        sa.Column('registration_type', sa.String(length=16), nullable=False),
        sa.Column('operating_hours', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by_admin_id', sa.Integer(), nullable=True),
        _timestamp('updated_at'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['reviewed_by_admin_id'], ['super_admins.id'],
                                name='fk_shop_owners_reviewed_by_admin_id_super_admins'),
        sa.PrimaryKeyConstraint('id', name='pk_shop_owners'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shop_owners_email', 'shop_owners', ['email'], unique=True)
    op.create_index('ix_shop_owners_status', 'shop_owners', ['status'])

    # ============================================================================
    # users: customers and staff logins
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('shop_owner_id', sa.Integer(), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=True),
        sa.Column('position', sa.String(length=100), nullable=True),
        sa.Column('force_password_change', sa.Boolean(), nullable=False,
                  server_default=sa.false()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_ip', sa.String(length=45), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['shop_owner_id'], ['shop_owners.id'],
                                name='fk_users_shop_owner_id_shop_owners'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_status', 'users', ['status'])
    op.create_index('ix_users_shop_owner_id', 'users', ['shop_owner_id'])

    # ============================================================================
    # employees: staff records scoped to one shop, soft-deletable
    # ============================================================================
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('shop_owner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('position', sa.String(length=100), nullable=True),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('branch', sa.String(length=100), nullable=True),
        sa.Column('functional_role', sa.String(length=32), nullable=True),
        sa.Column('salary', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('updated_at'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['shop_owner_id'], ['shop_owners.id'],
                                name='fk_employees_shop_owner_id_shop_owners'),
        sa.PrimaryKeyConstraint('id', name='pk_employees'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_employees_email', 'employees', ['email'], unique=True)
    op.create_index('ix_employees_shop_owner_id', 'employees', ['shop_owner_id'])
    op.create_index('ix_employees_department', 'employees', ['department'])
    op.create_index('ix_employees_status', 'employees', ['status'])
    op.create_index('ix_employees_deleted_at', 'employees', ['deleted_at'])
    op.create_index('ix_employees_shop_owner_status', 'employees', ['shop_owner_id', 'status'])

    # ============================================================================
    # guard_sessions
    # ============================================================================
    op.create_table(
        'guard_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('guard', sa.String(length=16), nullable=False),
        sa.Column('principal_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_guard_sessions'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_guard_sessions_token_hash', 'guard_sessions', ['token_hash'], unique=True)
    op.create_index('ix_guard_sessions_expires_at', 'guard_sessions', ['expires_at'])
    op.create_index('ix_guard_sessions_is_revoked', 'guard_sessions', ['is_revoked'])
    op.create_index('ix_guard_sessions_principal', 'guard_sessions',
                    ['guard', 'principal_id', 'is_revoked'])

    # ============================================================================
    # security_events
    # ============================================================================
    op.create_table(
        'security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('guard', sa.String(length=16), nullable=False),
        sa.Column('identifier', sa.String(length=255), nullable=False),
        sa.Column('principal_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        _timestamp('occurred_at'),
        sa.PrimaryKeyConstraint('id', name='pk_security_events'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])
    op.create_index('ix_security_events_guard_identifier', 'security_events',
                    ['guard', 'identifier', 'event_type'])
    op.create_index('ix_security_events_occurred', 'security_events', ['occurred_at'])

    # ============================================================================
    # audit_logs
    # ============================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_owner_id', sa.Integer(), nullable=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('target_type', sa.String(length=64), nullable=True),
        sa.Column('target_id', sa.Integer(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['shop_owner_id'], ['shop_owners.id'],
                                name='fk_audit_logs_shop_owner_id_shop_owners'),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_audit_logs_shop_owner_id', 'audit_logs', ['shop_owner_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_shop_created', 'audit_logs', ['shop_owner_id', 'created_at'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('security_events')
    op.drop_table('guard_sessions')
    op.drop_table('employees')
    op.drop_table('users')
    op.drop_table('shop_owners')
    op.drop_table('super_admins')
