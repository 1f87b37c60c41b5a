"""Initial NETPRO schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. Users and per-user permission rows
2. Reference data: companies, customers, suppliers, package/product types, packages, products
3. Stock categories and stock items
4. Sales and sale lines
5. Master invoices, invoice items, invoices, invoice stock items
6. Quotations, proforma invoices and their lines
7. Cashpower transactions
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def _user_fk(name='user_id'):
    return sa.ForeignKeyConstraint([name], ['users.id'], ondelete='SET NULL')


def upgrade():
    # ==========================================================================
    # 1. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_username'), ['username'], unique=False)

    op.create_table('user_permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('permission_name', sa.String(length=64), nullable=False),
        sa.Column('granted_by_user_id', sa.Integer(), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        _user_fk('granted_by_user_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'permission_name', name='uq_user_permissions_user_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_permissions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_permissions_user_id'), ['user_id'], unique=False)

    # ==========================================================================
    # 2. REFERENCE DATA
    # ==========================================================================
    op.create_table('companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('tin', sa.String(length=64), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tin', name='uq_companies_tin'),
        sqlite_autoincrement=True
    )

    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('billing_name', sa.String(length=255), nullable=False),
        sa.Column('tin', sa.String(length=64), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('service_number', sa.String(length=64), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('service_number', name='uq_customers_service_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_name', ['name'], unique=False)
        batch_op.create_index(batch_op.f('ix_customers_company_id'), ['company_id'], unique=False)

    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('tin', sa.String(length=64), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tin', name='uq_suppliers_tin'),
        sqlite_autoincrement=True
    )

    op.create_table('package_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_package_types_name'),
        sqlite_autoincrement=True
    )

    op.create_table('product_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_product_types_name'),
        sqlite_autoincrement=True
    )

    op.create_table('packages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('package_type_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['package_type_id'], ['package_types.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('packages', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_packages_package_type_id'), ['package_type_id'], unique=False)

    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('product_type_id', sa.Integer(), nullable=True),
        sa.Column('package_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['product_type_id'], ['product_types.id'], ),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_product_type_id'), ['product_type_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_package_id'), ['package_id'], unique=False)

    # ==========================================================================
    # 3. STOCK
    # ==========================================================================
    op.create_table('stock_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_stock_categories_name'),
        sqlite_autoincrement=True
    )

    op.create_table('stock_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reorder_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_items_quantity_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['stock_categories.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        _user_fk(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_items', schema=None) as batch_op:
        batch_op.create_index('ix_stock_items_status_quantity', ['status', 'quantity'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_items_category_id'), ['category_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_items_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_items_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table('sale_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('sale_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=12, scale=2), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        _user_fk(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_transactions', schema=None) as batch_op:
        batch_op.create_index('ix_sale_transactions_sale_date', ['sale_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_transactions_customer_id'), ['customer_id'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sale_transactions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['item_id'], ['stock_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_items_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_items_item_id'), ['item_id'], unique=False)

    # ==========================================================================
    # 5. INVOICES
    # ==========================================================================
    op.create_table('master_invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_type', sa.String(length=16), nullable=False, server_default='individual'),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('billing_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('amount_to_pay', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('amount_paid', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='unpaid'),
        sa.Column('payment_method', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "(invoice_type = 'consolidated' AND company_id IS NOT NULL AND customer_id IS NULL) OR "
            "(invoice_type = 'individual' AND customer_id IS NOT NULL AND company_id IS NULL)",
            name='ck_master_invoices_billed_party',
        ),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        _user_fk(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('master_invoices', schema=None) as batch_op:
        batch_op.create_index('ix_master_invoices_type_created', ['invoice_type', 'created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_master_invoices_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_master_invoices_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_master_invoices_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_master_invoices_end_date'), ['end_date'], unique=False)

    op.create_table('invoice_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('master_invoice_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('qty', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['master_invoice_id'], ['master_invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['item_id'], ['stock_items.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoice_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_invoice_items_master_invoice_id'), ['master_invoice_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoice_items_item_id'), ['item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoice_items_customer_id'), ['customer_id'], unique=False)

    op.create_table('invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('master_invoice_id', sa.Integer(), nullable=True),
        sa.Column('amount_to_pay', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('amount_paid', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='unpaid'),
        sa.Column('payment_method', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['master_invoice_id'], ['master_invoices.id'], ondelete='CASCADE'),
        _user_fk(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.create_index('ix_invoices_customer_created', ['customer_id', 'created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_master_invoice_id'), ['master_invoice_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_user_id'), ['user_id'], unique=False)

    op.create_table('invoice_stock_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['item_id'], ['stock_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoice_stock_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_invoice_stock_items_invoice_id'), ['invoice_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoice_stock_items_item_id'), ['item_id'], unique=False)

    # ==========================================================================
    # 6. QUOTATIONS AND PROFORMAS
    # ==========================================================================
    op.create_table('quotations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('amount_to_pay', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('valid_until', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        _user_fk(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('quotations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_quotations_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_quotations_user_id'), ['user_id'], unique=False)

    op.create_table('quotation_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quotation_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('discount', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('discount >= 0 AND discount <= 100', name='ck_quotation_products_discount'),
        sa.ForeignKeyConstraint(['quotation_id'], ['quotations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('quotation_products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_quotation_products_quotation_id'), ['quotation_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_quotation_products_product_id'), ['product_id'], unique=False)

    op.create_table('proforma_invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('amount_to_pay', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='Pending'),
        _created_at(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        _user_fk(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('proforma_invoices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_proforma_invoices_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_proforma_invoices_user_id'), ['user_id'], unique=False)

    op.create_table('proforma_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('proforma_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('discount', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('discount >= 0 AND discount <= 100', name='ck_proforma_products_discount'),
        sa.ForeignKeyConstraint(['proforma_id'], ['proforma_invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('proforma_products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_proforma_products_proforma_id'), ['proforma_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_proforma_products_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 7. CASHPOWER
    # ==========================================================================
    op.create_table('cashpower_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('meter_number', sa.String(length=64), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('token', sa.String(length=128), nullable=True),
        sa.Column('units', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('commission', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='completed'),
        _created_at(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        _user_fk(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashpower_transactions', schema=None) as batch_op:
        batch_op.create_index('ix_cashpower_transactions_created', ['created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashpower_transactions_customer_id'), ['customer_id'], unique=False)


def downgrade():
    for table in (
        'cashpower_transactions',
        'proforma_products',
        'proforma_invoices',
        'quotation_products',
        'quotations',
        'invoice_stock_items',
        'invoices',
        'invoice_items',
        'master_invoices',
        'sale_items',
        'sale_transactions',
        'stock_items',
        'stock_categories',
        'products',
        'packages',
        'product_types',
        'package_types',
        'suppliers',
        'customers',
        'companies',
        'user_permissions',
        'users',
    ):
        op.drop_table(table)
