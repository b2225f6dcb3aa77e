"""Initial ledger schema: catalog, registers, movements, sales, settings

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Catalog (categories, products, price_lists, product_prices)
2. Cash registers and cash movements
3. Sales with item and payment snapshots
4. Settings key-value area
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _money():
    return sa.Numeric(precision=12, scale=2)


def upgrade():
    # ==========================================================================
    # 1. CATALOG
    # ==========================================================================
    op.create_table('categories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('icon', sa.String(length=16), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('price_lists',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key', name='uq_price_lists_key'),
    )

    op.create_table('products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('category_id', sa.String(length=36), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('image', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], name='fk_products_category_id_categories'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_category_id', ['category_id'], unique=False)

    op.create_table('product_prices',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('price_list_id', sa.String(length=36), nullable=False),
        sa.Column('price', _money(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_product_prices_product_id_products'),
        sa.ForeignKeyConstraint(['price_list_id'], ['price_lists.id'], name='fk_product_prices_price_list_id_price_lists'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'price_list_id', name='uq_product_prices_product_list'),
    )
    with op.batch_alter_table('product_prices', schema=None) as batch_op:
        batch_op.create_index('ix_product_prices_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_product_prices_price_list_id', ['price_list_id'], unique=False)

    # ==========================================================================
    # 2. CASH REGISTERS AND MOVEMENTS
    # ==========================================================================
    op.create_table('cash_registers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('branch_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('opening_amount', _money(), nullable=False),
        sa.Column('closing_amount', _money(), nullable=True),
        sa.Column('expected_amount', _money(), nullable=True),
        sa.Column('opened_at', sa.DateTime(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('synced', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('cash_registers', schema=None) as batch_op:
        batch_op.create_index('ix_cash_registers_branch_id', ['branch_id'], unique=False)
        batch_op.create_index('ix_cash_registers_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_cash_registers_status', ['status'], unique=False)
        batch_op.create_index('ix_cash_registers_opened_at', ['opened_at'], unique=False)
        batch_op.create_index('ix_cash_registers_synced', ['synced'], unique=False)
        batch_op.create_index('ix_cash_registers_user_status', ['user_id', 'status'], unique=False)

    op.create_table('cash_movements',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('cash_register_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount', _money(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('login_session_id', sa.String(length=64), nullable=True),
        sa.Column('reversed', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('reversed_movement_id', sa.String(length=36), nullable=True),
        sa.Column('opening_adjustment', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('synced', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('cash_movements', schema=None) as batch_op:
        batch_op.create_index('ix_cash_movements_cash_register_id', ['cash_register_id'], unique=False)
        batch_op.create_index('ix_cash_movements_created_at', ['created_at'], unique=False)
        batch_op.create_index('ix_cash_movements_reversed_movement_id', ['reversed_movement_id'], unique=False)
        batch_op.create_index('ix_cash_movements_synced', ['synced'], unique=False)

    # ==========================================================================
    # 3. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('branch_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('cash_register_id', sa.String(length=36), nullable=False),
        sa.Column('login_session_id', sa.String(length=64), nullable=True),
        sa.Column('subtotal', _money(), nullable=False),
        sa.Column('discount', _money(), nullable=False),
        sa.Column('delivery_cost', _money(), nullable=False),
        sa.Column('is_delivery', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('total', _money(), nullable=False),
        sa.Column('price_list_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('synced', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('reversed', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('reversed_sale_id', sa.String(length=36), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_branch_id', ['branch_id'], unique=False)
        batch_op.create_index('ix_sales_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_sales_cash_register_id', ['cash_register_id'], unique=False)
        batch_op.create_index('ix_sales_created_at', ['created_at'], unique=False)
        batch_op.create_index('ix_sales_synced', ['synced'], unique=False)
        batch_op.create_index('ix_sales_reversed_sale_id', ['reversed_sale_id'], unique=False)
        batch_op.create_index('ix_sales_register_created', ['cash_register_id', 'created_at'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('product_name', sa.String(length=120), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', _money(), nullable=False),
        sa.Column('subtotal', _money(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], name='fk_sale_items_sale_id_sales'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index('ix_sale_items_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_sale_items_product_id', ['product_id'], unique=False)

    op.create_table('sale_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('amount', _money(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], name='fk_sale_payments_sale_id_sales'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sale_payments', schema=None) as batch_op:
        batch_op.create_index('ix_sale_payments_sale_id', ['sale_id'], unique=False)

    # ==========================================================================
    # 4. SETTINGS
    # ==========================================================================
    op.create_table('settings',
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade():
    op.drop_table('settings')
    op.drop_table('sale_payments')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('cash_movements')
    op.drop_table('cash_registers')
    op.drop_table('product_prices')
    op.drop_table('products')
    op.drop_table('price_lists')
    op.drop_table('categories')
