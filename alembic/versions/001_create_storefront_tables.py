"""create products, purchases and download_tokens tables

Revision ID: 001
Revises:
Create Date: 2025-01-20 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create products table
    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('tenant_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('content_path', sa.Text(), nullable=False),
        sa.Column('image_url', sa.Text()),
        sa.Column('price_token', sa.String(32), nullable=False),
        sa.Column('price_amount_wei', sa.Text(), nullable=False),  # Integer string, wei precision exceeds BIGINT
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_unlimited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('stock >= 0', name='stock_non_negative'),
        sa.CheckConstraint("price_amount_wei ~ '^[0-9]+$'", name='price_amount_wei_digits'),
    )
    op.create_index('idx_products_tenant_created', 'products', ['tenant_id', 'created_at'])

    # Create purchases table
    op.create_table(
        'purchases',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('buyer', sa.Text(), nullable=False),
        sa.Column('tx_hash', sa.Text(), nullable=False),
        sa.Column('amount_wei', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_unique_constraint('uq_purchases_tx_hash', 'purchases', ['tx_hash'])
    op.create_index('idx_purchases_buyer_created', 'purchases', ['buyer', 'created_at'])

    # Create download_tokens table
    op.create_table(
        'download_tokens',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('purchase_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('purchases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('token', sa.Text(), nullable=False),
        sa.Column('is_consumed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consumed_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_unique_constraint('uq_download_tokens_token', 'download_tokens', ['token'])
    op.create_index('idx_download_tokens_purchase', 'download_tokens', ['purchase_id'])


def downgrade() -> None:
    op.drop_table('download_tokens')
    op.drop_table('purchases')
    op.drop_table('products')
