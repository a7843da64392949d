"""create_projects_and_sap_rate_limits

Revision ID: 001
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('projects'):
        op.create_table('projects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=500), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('translator', sa.String(length=255), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('interim_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('words', sa.Integer(), nullable=True),
        sa.Column('lines', sa.Integer(), nullable=True),
        sa.Column('short', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('invoiced', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('language_in', sa.String(length=20), nullable=True),
        sa.Column('language_out', sa.String(length=20), nullable=True),
        sa.Column('initial_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('final_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('system', sa.String(length=20), nullable=True),
        sa.Column('api_source', sa.String(length=50), nullable=False, server_default='manual'),
        sa.Column('sap_subproject_id', sa.String(length=255), nullable=True),
        sa.Column('sap_parent_id', sa.String(length=50), nullable=True),
        sa.Column('sap_parent_name', sa.String(length=500), nullable=True),
        sa.Column('sap_account', sa.String(length=255), nullable=True),
        sa.Column('sap_instructions', sa.Text(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sap_subproject_id')
        )
        op.create_index(op.f('ix_projects_id'), 'projects', ['id'], unique=False)
        op.create_index(op.f('ix_projects_api_source'), 'projects', ['api_source'], unique=False)
        op.create_index(
            'ix_projects_api_source_sap_subproject_id', 'projects',
            ['api_source', 'sap_subproject_id'], unique=False
        )

    if not inspector.has_table('sap_api_rate_limits'):
        op.create_table('sap_api_rate_limits',
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('last_fetch_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('user_id')
        )


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('sap_api_rate_limits'):
        op.drop_table('sap_api_rate_limits')

    if inspector.has_table('projects'):
        op.drop_index('ix_projects_api_source_sap_subproject_id', table_name='projects')
        op.drop_index(op.f('ix_projects_api_source'), table_name='projects')
        op.drop_index(op.f('ix_projects_id'), table_name='projects')
        op.drop_table('projects')
