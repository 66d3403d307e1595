"""initial ledger schema

Revision ID: 0001_initial_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete ledger schema:
- suppliers, customers: named accounts with versioned balances
- products: stock quantity and weighted average cost (6 decimal places)
- purchases: stock-in from suppliers
- sales, sale_items: stock-out to customers with cost snapshot per item
- customer_payments, payment_allocations: money received, split to suppliers
- expenses, cash_transactions, supplier_payments: the cash register
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # Parties
    # ============================================================================
    op.create_table(
        'suppliers',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('balance_cents', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_suppliers_name', 'suppliers', ['name'])

    op.create_table(
        'customers',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('balance_cents', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_customers_name', 'customers', ['name'])

    # ============================================================================
    # Inventory
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('average_cost_cents', sa.Numeric(18, 6), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_category', 'products', ['category'])

    op.create_table(
        'purchases',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('supplier_id', sa.String(length=32), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchases_occurred_at', 'purchases', ['occurred_at'])
    op.create_index('ix_purchases_supplier_occurred', 'purchases', ['supplier_id', 'occurred_at'])
    op.create_index('ix_purchases_product_occurred', 'purchases', ['product_id', 'occurred_at'])

    # ============================================================================
    # Sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('customer_id', sa.String(length=32), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('total_profit_cents', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sales_occurred_at', 'sales', ['occurred_at'])
    op.create_index('ix_sales_customer_occurred', 'sales', ['customer_id', 'occurred_at'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('sale_id', sa.String(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Numeric(18, 6), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'position', name='uq_sale_items_sale_position'),
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    # ============================================================================
    # Payments
    # ============================================================================
    op.create_table(
        'customer_payments',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('customer_id', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_customer_payments_occurred_at', 'customer_payments', ['occurred_at'])
    op.create_index('ix_customer_payments_customer_occurred', 'customer_payments', ['customer_id', 'occurred_at'])

    op.create_table(
        'payment_allocations',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('payment_id', sa.String(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['payment_id'], ['customer_payments.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_allocations_payment_id', 'payment_allocations', ['payment_id'])
    op.create_index('ix_payment_allocations_supplier_id', 'payment_allocations', ['supplier_id'])

    # ============================================================================
    # Cash register
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=24), nullable=False),
        sa.Column('customer_payment_id', sa.String(length=32), nullable=True),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_payment_id'], ['customer_payments.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_expenses_occurred_at', 'expenses', ['occurred_at'])
    op.create_index('ix_expenses_customer_payment_id', 'expenses', ['customer_payment_id'])

    op.create_table(
        'cash_transactions',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('customer_payment_id', sa.String(length=32), nullable=True),
        sa.Column('expense_id', sa.String(length=32), nullable=True),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_payment_id'], ['customer_payments.id']),
        sa.ForeignKeyConstraint(['expense_id'], ['expenses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount_cents > 0', name='ck_cash_transactions_amount_positive'),
    )
    op.create_index('ix_cash_transactions_type', 'cash_transactions', ['type'])
    op.create_index('ix_cash_transactions_occurred_at', 'cash_transactions', ['occurred_at'])
    op.create_index('ix_cash_transactions_customer_payment_id', 'cash_transactions', ['customer_payment_id'])
    op.create_index('ix_cash_transactions_expense_id', 'cash_transactions', ['expense_id'])

    op.create_table(
        'supplier_payments',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('supplier_id', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('origin', sa.String(length=16), nullable=False),
        sa.Column('cash_transaction_id', sa.String(length=32), nullable=True),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['cash_transaction_id'], ['cash_transactions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_supplier_payments_supplier_id', 'supplier_payments', ['supplier_id'])
    op.create_index('ix_supplier_payments_occurred_at', 'supplier_payments', ['occurred_at'])


def downgrade():
    op.drop_table('supplier_payments')
    op.drop_table('cash_transactions')
    op.drop_table('expenses')
    op.drop_table('payment_allocations')
    op.drop_table('customer_payments')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('purchases')
    op.drop_table('products')
    op.drop_table('customers')
    op.drop_table('suppliers')
