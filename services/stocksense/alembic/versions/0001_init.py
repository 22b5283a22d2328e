from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'inventory',
        sa.Column('code', sa.String(50), primary_key=True),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('vendor', sa.String(255), nullable=True),
        sa.Column('storage_location', sa.String(100), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('current_stock', sa.Integer, nullable=False, server_default='0'),
        sa.Column('allocated_stock', sa.Integer, nullable=False, server_default='0'),
        sa.Column('min_threshold', sa.Integer, nullable=False, server_default='5'),
        sa.Column('max_ceiling', sa.Integer, nullable=False, server_default='20'),
        sa.Column('date_delivered', sa.Date, nullable=True),
        sa.Column('warranty_start', sa.Date, nullable=True),
        sa.Column('warranty_end', sa.Date, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.CheckConstraint('current_stock >= 0', name='ck_inventory_current_stock_non_negative'),
        sa.CheckConstraint('allocated_stock >= 0', name='ck_inventory_allocated_stock_non_negative'),
        sa.CheckConstraint('allocated_stock <= current_stock', name='ck_inventory_allocated_within_stock'),
        sa.CheckConstraint('min_threshold >= 0', name='ck_inventory_min_threshold_non_negative'),
        sa.CheckConstraint('max_ceiling >= min_threshold', name='ck_inventory_ceiling_above_threshold'),
    )

    op.create_table(
        'transactions',
        sa.Column('seq', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('item_code', sa.String(50), nullable=False),
        sa.Column('item_name_snapshot', sa.String(255), nullable=False),
        sa.Column('actor_id', sa.String(100), nullable=False),
        sa.Column('actor_name_snapshot', sa.String(200), nullable=False),
        sa.Column('quantity_change', sa.Integer, nullable=False),
        sa.Column('previous_stock', sa.Integer, nullable=False),
        sa.Column('new_stock', sa.Integer, nullable=False),
        sa.Column('transaction_type', sa.String(20), nullable=False),
        sa.Column('destination', sa.String(500), nullable=False),
        sa.Column('purpose', sa.String(500), nullable=False),
        sa.Column('timestamp', sa.DateTime, nullable=False),
        sa.Column('idempotency_key', sa.String(100), nullable=True),
        sa.UniqueConstraint('idempotency_key', name='uq_transactions_idempotency_key'),
        sa.CheckConstraint('quantity_change <> 0', name='ck_transactions_non_zero_change'),
        sa.CheckConstraint('new_stock = previous_stock + quantity_change', name='ck_transactions_stock_arithmetic'),
        sa.CheckConstraint(
            "(transaction_type = 'addition' AND quantity_change > 0) OR "
            "(transaction_type = 'dispatch' AND quantity_change < 0)",
            name='ck_transactions_type_matches_sign',
        ),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'], unique=True)
    op.create_index('ix_transactions_item_code', 'transactions', ['item_code'])
    op.create_index('ix_transactions_timestamp', 'transactions', ['timestamp'])

    op.create_table(
        'allocation_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('request_id', sa.String(30), nullable=False),
        sa.Column('item_code', sa.String(50), nullable=False),
        sa.Column('item_name_snapshot', sa.String(255), nullable=False),
        sa.Column('quantity_allocated', sa.Integer, nullable=False),
        sa.Column('destination', sa.String(500), nullable=False),
        sa.Column('purpose', sa.String(500), nullable=False),
        sa.Column('requested_by', sa.String(100), nullable=False),
        sa.Column('requested_by_name', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('requested_at', sa.DateTime, nullable=False),
        sa.CheckConstraint('quantity_allocated > 0', name='ck_allocation_logs_positive_quantity'),
        sa.CheckConstraint("status IN ('pending', 'fulfilled', 'cancelled')", name='ck_allocation_logs_status'),
    )
    op.create_index('ix_allocation_logs_request_id', 'allocation_logs', ['request_id'], unique=True)
    op.create_index('ix_allocation_logs_item_code', 'allocation_logs', ['item_code'])

def downgrade():
    op.drop_table('allocation_logs')
    op.drop_table('transactions')
    op.drop_table('inventory')
