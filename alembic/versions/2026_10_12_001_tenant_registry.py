"""Tenant registry table

Revision ID: 001_tenant_registry
Revises:
Create Date: 2026-10-12

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '001_tenant_registry'
down_revision = None


def upgrade():
    op.create_table(
        'tenant_registry',
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('contact_email', sa.String(255), nullable=False),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('contact_address', sa.JSON(), nullable=True),
        sa.Column('subscription_plan', sa.String(20), nullable=False),
        sa.Column('schema_name', sa.String(63), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_index('ix_tenant_registry_contact_email', 'tenant_registry', ['contact_email'])
    op.create_index('ix_tenant_registry_schema_name', 'tenant_registry', ['schema_name'], unique=True)
    op.create_index('ix_tenant_registry_status', 'tenant_registry', ['status'])
    op.create_index('ix_tenant_registry_created_at', 'tenant_registry', ['created_at'])


def downgrade():
    op.drop_index('ix_tenant_registry_created_at', 'tenant_registry')
    op.drop_index('ix_tenant_registry_status', 'tenant_registry')
    op.drop_index('ix_tenant_registry_schema_name', 'tenant_registry')
    op.drop_index('ix_tenant_registry_contact_email', 'tenant_registry')
    op.drop_table('tenant_registry')
