"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

This migration creates the complete StorePOS schema from scratch:
- stores: tenants, joined by store_code
- managers / cashier_accounts: the two identity tables (UUID vs integer keys)
- join_requests: pending staff membership requests
- products + inventory_batches: catalogue and batch-level stock
- sales, sale_items, payments, partial_payment_customers: checkout records
- expenses
- document_sequences: per-store sale numbering
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

ACTOR_XOR_SQL = "(manager_id IS NULL) <> (cashier_id IS NULL)"


def _created_at(name='created_at'):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # stores and identities
    # ============================================================================
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_code', sa.String(length=16), nullable=False),
        sa.Column('store_name', sa.String(length=120), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stores_store_code', 'stores', ['store_code'], unique=True)

    op.create_table(
        'managers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_managers_store_id', 'managers', ['store_id'])

    op.create_table(
        'cashier_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='Cashier'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='0'),
        _created_at(),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cashier_accounts_store_id', 'cashier_accounts', ['store_id'])

    op.create_table(
        'join_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('user_type', sa.String(length=16), nullable=False),
        sa.Column('user_name', sa.String(length=255), nullable=False),
        sa.Column('user_phone', sa.String(length=32), nullable=False),
        sa.Column('user_email', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', sa.String(length=36), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        _created_at('requested_at'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_join_requests_store_id', 'join_requests', ['store_id'])
    op.create_index('ix_join_requests_status', 'join_requests', ['status'])
    op.create_index('ix_join_requests_store_status', 'join_requests', ['store_id', 'status'])

    # ============================================================================
    # products and inventory batches
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        _created_at('updated_at'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'sku', name='uq_products_store_sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_store_id', 'products', ['store_id'])
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_store_name', 'products', ['store_id', 'name'])
    op.create_index('ix_products_store_active', 'products', ['store_id', 'is_active'])

    # INVARIANT: 0 <= quantity_remaining <= quantity_added
    op.create_table(
        'inventory_batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_added', sa.Integer(), nullable=False),
        sa.Column('quantity_remaining', sa.Integer(), nullable=False),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('batch_number', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at('restock_date'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity_remaining >= 0', name='ck_inventory_batches_remaining_nonneg'),
        sa.CheckConstraint('quantity_remaining <= quantity_added', name='ck_inventory_batches_remaining_le_added'),
        sa.CheckConstraint('cost_price_cents >= 0', name='ck_inventory_batches_cost_nonneg'),
        sa.CheckConstraint('selling_price_cents >= 0', name='ck_inventory_batches_price_nonneg'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_batches_store_id', 'inventory_batches', ['store_id'])
    op.create_index('ix_inventory_batches_product_id', 'inventory_batches', ['product_id'])
    op.create_index('ix_inventory_batches_product_restock', 'inventory_batches', ['product_id', 'restock_date'])

    # ============================================================================
    # sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('sale_number', sa.String(length=64), nullable=False),
        sa.Column('sale_description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('manager_id', sa.String(length=36), nullable=True),
        sa.Column('cashier_id', sa.Integer(), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=False, server_default='none'),
        sa.Column('discount_value', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('discount_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_due_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('change_due_cents', sa.Integer(), nullable=False, server_default='0'),
        _created_at('sale_date'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['manager_id'], ['managers.id'], ),
        sa.ForeignKeyConstraint(['cashier_id'], ['cashier_accounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'sale_number', name='uq_sales_store_sale_number'),
        sa.CheckConstraint(ACTOR_XOR_SQL, name='ck_sales_single_actor'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_store_id', 'sales', ['store_id'])
    op.create_index('ix_sales_manager_id', 'sales', ['manager_id'])
    op.create_index('ix_sales_cashier_id', 'sales', ['cashier_id'])
    op.create_index('ix_sales_payment_status', 'sales', ['payment_status'])
    op.create_index('ix_sales_sale_date', 'sales', ['sale_date'])
    op.create_index('ix_sales_store_sale_date', 'sales', ['store_id', 'sale_date'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_sku', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('cost_price_snapshot_cents', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('change_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('manager_id', sa.String(length=36), nullable=True),
        sa.Column('cashier_id', sa.Integer(), nullable=True),
        _created_at('payment_date'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['manager_id'], ['managers.id'], ),
        sa.ForeignKeyConstraint(['cashier_id'], ['cashier_accounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(ACTOR_XOR_SQL, name='ck_payments_single_actor'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_payments_sale_id', 'payments', ['sale_id'])
    op.create_index('ix_payments_store_id', 'payments', ['store_id'])
    op.create_index('ix_payments_manager_id', 'payments', ['manager_id'])
    op.create_index('ix_payments_cashier_id', 'payments', ['cashier_id'])
    op.create_index('ix_payments_payment_date', 'payments', ['payment_date'])

    op.create_table(
        'partial_payment_customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_national_id', sa.String(length=64), nullable=False),
        sa.Column('customer_phone', sa.String(length=32), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False),
        sa.Column('amount_remaining_cents', sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', name='uq_partial_payment_customers_sale'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_partial_payment_customers_store_id', 'partial_payment_customers', ['store_id'])
    op.create_index('ix_partial_payment_customers_store_name', 'partial_payment_customers',
                    ['store_id', 'customer_name'])

    # ============================================================================
    # expenses and document numbering
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('manager_id', sa.String(length=36), nullable=True),
        sa.Column('cashier_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['manager_id'], ['managers.id'], ),
        sa.ForeignKeyConstraint(['cashier_id'], ['cashier_accounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount_cents > 0', name='ck_expenses_amount_positive'),
        sa.CheckConstraint('NOT (manager_id IS NOT NULL AND cashier_id IS NOT NULL)',
                           name='ck_expenses_single_recorder'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_store_id', 'expenses', ['store_id'])
    op.create_index('ix_expenses_store_date', 'expenses', ['store_id', 'expense_date'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        _created_at('updated_at'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'document_type', name='uq_doc_sequences_store_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_store_id', 'document_sequences', ['store_id'])
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('document_sequences')
    op.drop_table('expenses')
    op.drop_table('partial_payment_customers')
    op.drop_table('payments')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('inventory_batches')
    op.drop_table('products')
    op.drop_table('join_requests')
    op.drop_table('cashier_accounts')
    op.drop_table('managers')
    op.drop_table('stores')
