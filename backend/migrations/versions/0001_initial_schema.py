"""Initial schema: accounts, catalog, stock ledgers, menus and alerts

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17

This migration adds:
1. users, roles, user_roles, session_tokens, security_events
2. suppliers, products
3. stock_in_transactions (purchases) and stock_out_transactions (sales)
4. menus and recipes
5. notifications (low-stock alerts, one row per owner/product/status)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. ACCOUNTS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_username', ['username'], unique=True)
        batch_op.create_index('ix_users_email', ['email'], unique=True)

    op.create_table('roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_roles'),
        sa.UniqueConstraint('name', name='uq_roles_name'),
        sqlite_autoincrement=True
    )

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('assigned_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_user_roles_user_id_users'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], name='fk_user_roles_role_id_roles'),
        sa.PrimaryKeyConstraint('id', name='pk_user_roles'),
        sa.UniqueConstraint('user_id', 'role_id', name='uq_user_roles'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_roles', schema=None) as batch_op:
        batch_op.create_index('ix_user_roles_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_user_roles_role_id', ['role_id'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_session_tokens_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_session_tokens'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_session_tokens_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_session_tokens_token_hash', ['token_hash'], unique=True)
        batch_op.create_index('ix_session_tokens_expires_at', ['expires_at'], unique=False)
        batch_op.create_index('ix_session_tokens_is_revoked', ['is_revoked'], unique=False)
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)

    op.create_table('security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=255), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_security_events_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_security_events'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('security_events', schema=None) as batch_op:
        batch_op.create_index('ix_security_events_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_security_events_event_type', ['event_type'], unique=False)
        batch_op.create_index('ix_security_events_occurred_at', ['occurred_at'], unique=False)
        batch_op.create_index('ix_security_events_type_action', ['event_type', 'action'], unique=False)

    # ==========================================================================
    # 2. CATALOG
    # ==========================================================================
    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('whatsapp_number', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_suppliers_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_suppliers'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('suppliers', schema=None) as batch_op:
        batch_op.create_index('ix_suppliers_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_suppliers_owner_status', ['user_id', 'status'], unique=False)

    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('unit', sa.String(length=8), nullable=False, server_default='PCS'),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('low_stock', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_products_user_id_users'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], name='fk_products_supplier_id_suppliers'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_products_supplier_id', ['supplier_id'], unique=False)
        batch_op.create_index('ix_products_owner_name', ['user_id', 'name'], unique=False)
        batch_op.create_index('ix_products_owner_updated', ['user_id', 'updated_at'], unique=False)

    # ==========================================================================
    # 3. MENUS
    # ==========================================================================
    op.create_table('menus',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_menus'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('menus', schema=None) as batch_op:
        batch_op.create_index('ix_menus_code', ['code'], unique=True)
        batch_op.create_index('ix_menus_name', ['name'], unique=False)

    op.create_table('recipes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('qty_per_portion', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.ForeignKeyConstraint(['menu_id'], ['menus.id'], name='fk_recipes_menu_id_menus'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_recipes_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_recipes'),
        sa.UniqueConstraint('menu_id', 'product_id', name='uq_recipes_menu_product'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('recipes', schema=None) as batch_op:
        batch_op.create_index('ix_recipes_menu_id', ['menu_id'], unique=False)
        batch_op.create_index('ix_recipes_product_id', ['product_id'], unique=False)

    # ==========================================================================
    # 4. STOCK LEDGERS
    # ==========================================================================
    op.create_table('stock_in_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='CASH'),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_stock_in_transactions_user_id_users'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_stock_in_transactions_product_id_products'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], name='fk_stock_in_transactions_supplier_id_suppliers'),
        sa.PrimaryKeyConstraint('id', name='pk_stock_in_transactions'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_in_transactions', schema=None) as batch_op:
        batch_op.create_index('ix_stock_in_transactions_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_stock_in_transactions_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_stock_in_transactions_supplier_id', ['supplier_id'], unique=False)
        batch_op.create_index('ix_stock_in_owner_date', ['user_id', 'transaction_date'], unique=False)
        batch_op.create_index('ix_stock_in_owner_status', ['user_id', 'status'], unique=False)

    op.create_table('stock_out_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('menu_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=16), nullable=False, server_default='MANUAL'),
        sa.Column('batch_ref', sa.String(length=64), nullable=True),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_stock_out_transactions_user_id_users'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_stock_out_transactions_product_id_products'),
        sa.ForeignKeyConstraint(['menu_id'], ['menus.id'], name='fk_stock_out_transactions_menu_id_menus'),
        sa.PrimaryKeyConstraint('id', name='pk_stock_out_transactions'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_out_transactions', schema=None) as batch_op:
        batch_op.create_index('ix_stock_out_transactions_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_stock_out_transactions_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_stock_out_transactions_menu_id', ['menu_id'], unique=False)
        batch_op.create_index('ix_stock_out_transactions_batch_ref', ['batch_ref'], unique=False)
        batch_op.create_index('ix_stock_out_owner_date', ['user_id', 'transaction_date'], unique=False)
        batch_op.create_index('ix_stock_out_owner_source', ['user_id', 'source'], unique=False)

    # ==========================================================================
    # 5. LOW-STOCK NOTIFICATIONS
    # ==========================================================================
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False, server_default='LOW_STOCK'),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('severity', sa.String(length=16), nullable=False),
        sa.Column('message', sa.String(length=255), nullable=False),
        sa.Column('notified_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_notifications_user_id_users'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_notifications_product_id_products', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_notifications'),
        sa.UniqueConstraint('user_id', 'product_id', 'status', name='uq_notifications_owner_product_status'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('notifications', schema=None) as batch_op:
        batch_op.create_index('ix_notifications_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_notifications_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_notifications_owner_notified', ['user_id', 'notified_at'], unique=False)


def downgrade():
    for table in (
        'notifications',
        'stock_out_transactions',
        'stock_in_transactions',
        'recipes',
        'menus',
        'products',
        'suppliers',
        'security_events',
        'session_tokens',
        'user_roles',
        'roles',
        'users',
    ):
        op.drop_table(table)
