"""create_accounts

Revision ID: 3f9c1a2b7d40
Revises:
Create Date: 2026-10-17 21:14:02.518337

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = '3f9c1a2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

verificationstatus_enum = sa.Enum(
    'UNLINKED', 'CLAIMED', 'SUBMITTED', 'APPROVED', 'REJECTED',
    name='verificationstatus',
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('external_login_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('display_name', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('verification_status', verificationstatus_enum, nullable=False),
        sa.Column('external_handle', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('verification_token', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('submission_reference', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.Column('credential_hash', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('credential_set', sa.Boolean(), nullable=False),
        sa.Column('reset_token_hash', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('reset_token_expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_accounts_external_login_id'), 'accounts', ['external_login_id'], unique=True)
    op.create_index(op.f('ix_accounts_email'), 'accounts', ['email'], unique=False)
    op.create_index(op.f('ix_accounts_verification_status'), 'accounts', ['verification_status'], unique=False)
    op.create_index(op.f('ix_accounts_external_handle'), 'accounts', ['external_handle'], unique=False)

    # At most one APPROVED account per handle
    op.create_index(
        'uq_accounts_approved_handle',
        'accounts',
        ['external_handle'],
        unique=True,
        sqlite_where=sa.text("verification_status = 'APPROVED'"),
        postgresql_where=sa.text("verification_status = 'APPROVED'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('uq_accounts_approved_handle', table_name='accounts')
    op.drop_index(op.f('ix_accounts_external_handle'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_verification_status'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_email'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_external_login_id'), table_name='accounts')
    op.drop_table('accounts')

    # Drop the enum type (PostgreSQL)
    verificationstatus_enum.drop(op.get_bind(), checkfirst=True)
