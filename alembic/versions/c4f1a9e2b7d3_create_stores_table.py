"""create_stores_table

Revision ID: c4f1a9e2b7d3
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'c4f1a9e2b7d3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

shopify_status = sa.Enum('CONFIRMED', 'PROBABLE', 'UNLIKELY', 'UNVERIFIED', name='shopifystatus')
health_status = sa.Enum('HEALTHY', 'POSSIBLY_INACTIVE', 'NONEXISTENT', 'PASSWORD_PROTECTED', name='healthstatus')
store_status = sa.Enum('PENDING', 'ACTIVE', 'DEAD', 'BLOCKED', 'INACTIVE_SHOPIFY', name='storestatus')
business_model = sa.Enum('PRINT_ON_DEMAND', 'DROPSHIPPING', 'BRANDED_ECOMMERCE', 'MARKETPLACE', name='businessmodel')
theme_tier = sa.Enum('FREE', 'PAID', name='themetier')


def upgrade() -> None:
    """Create the stores catalog table, keyed by canonical URL."""
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('canonical_url', sa.String(500), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('source', sa.String(50), nullable=True),
        sa.Column('country_label', sa.String(50), nullable=True),
        sa.Column('theme_name', sa.String(50), nullable=True),
        sa.Column('theme_tier', theme_tier, nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('tags_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('business_model_scores', sa.JSON(), nullable=True),
        sa.Column('primary_business_model', business_model, nullable=True),
        sa.Column('business_model_confidence', sa.Float(), nullable=True),
        sa.Column('has_advertising', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ad_networks', sa.JSON(), nullable=True),
        sa.Column('product_count', sa.Integer(), nullable=True),
        sa.Column('next_retry_at', sa.DateTime(), nullable=True),
        sa.Column('last_classified_at', sa.DateTime(), nullable=True),
        sa.Column('shopify_status', shopify_status, nullable=False, server_default='UNVERIFIED'),
        sa.Column('shopify_confidence', sa.Integer(), nullable=True),
        sa.Column('fingerprints', sa.JSON(), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('health_status', health_status, nullable=True),
        sa.Column('store_status', store_status, nullable=False, server_default='PENDING'),
        sa.Column('failed_probe_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_health_check_at', sa.DateTime(), nullable=True),
        sa.Column('date_added', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_scraped', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('canonical_url', name='uq_stores_canonical_url'),
    )
    op.create_index('ix_stores_name', 'stores', ['name'])
    op.create_index('ix_stores_country_label', 'stores', ['country_label'])
    op.create_index('ix_stores_theme_name', 'stores', ['theme_name'])
    op.create_index('ix_stores_primary_business_model', 'stores', ['primary_business_model'])
    op.create_index('ix_stores_shopify_status', 'stores', ['shopify_status'])
    op.create_index('ix_stores_health_status', 'stores', ['health_status'])
    op.create_index('ix_stores_store_status', 'stores', ['store_status'])
    op.create_index('idx_stores_visibility', 'stores', ['store_status', 'health_status', 'shopify_status'])
    op.create_index('idx_stores_date_added_desc', 'stores', [sa.text('date_added DESC')])


def downgrade() -> None:
    """Drop the stores table and its enum types."""
    op.drop_table('stores')
    bind = op.get_bind()
    for enum_type in (shopify_status, health_status, store_status, business_model, theme_tier):
        enum_type.drop(bind, checkfirst=True)
