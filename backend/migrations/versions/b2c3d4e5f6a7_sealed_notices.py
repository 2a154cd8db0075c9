"""sealed notices

Revision ID: b2c3d4e5f6a7
Revises: a1b2c3d4e5f6
Create Date: 2026-10-19 00:00:00.000000

One-time notices claimed by the next page read. The cookie session carries
only the token; the temporary password of a newly provisioned employee is
stored masked here until it is shown once.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b2c3d4e5f6a7'
down_revision = 'a1b2c3d4e5f6'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'sealed_notices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('guard', sa.String(length=16), nullable=False),
        sa.Column('principal_id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('secret_field', sa.String(length=64), nullable=True),
        sa.Column('sealed_secret', sa.String(length=512), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_sealed_notices'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sealed_notices_token_hash', 'sealed_notices', ['token_hash'], unique=True)
    op.create_index('ix_sealed_notices_expires', 'sealed_notices', ['expires_at'])


def downgrade():
    op.drop_index('ix_sealed_notices_expires', table_name='sealed_notices')
    op.drop_index('ix_sealed_notices_token_hash', table_name='sealed_notices')
    op.drop_table('sealed_notices')
