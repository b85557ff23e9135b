"""0001 - initial ledger schema: catalog, cost layers, balances and ledger documents

Revision ID: 0001_initial_ledger_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_ledger_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade():
    # 1) Catalog identities
    op.create_table(
        'item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sku', sa.String(length=64), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('weight', sa.Numeric(12, 4), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'location',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_transfer_source', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_transfer_destination', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # 2) Receipts (cost layers point back at receipt lines)
    op.create_table(
        'item_receipt',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('receipt_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('receipt_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='received'),
        sa.Column('vendor_name', sa.String(length=255), nullable=True),
        sa.Column('purchase_order_reference', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'item_receipt_line',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('item_receipt.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('item.id'), nullable=False),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        sa.Column('quantity_accepted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_rejected', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_cost', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('bin_location', sa.String(length=50), nullable=True),
        sa.CheckConstraint('quantity_received > 0', name='check_receipt_line_received_positive'),
        sa.CheckConstraint(
            'quantity_accepted + quantity_rejected <= quantity_received',
            name='check_receipt_line_accepted_rejected',
        ),
    )

    # 3) Cost layers and their consumption trail
    op.create_table(
        'cost_layer',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('item.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('receipt_line_id', sa.Integer(), sa.ForeignKey('item_receipt_line.id'), nullable=True),
        sa.Column('layer_type', sa.String(length=20), nullable=False, server_default='receipt'),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        sa.Column('quantity_remaining', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('original_unit_cost', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('landed_cost_adjustment', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('last_cost_adjustment', sa.DateTime(), nullable=True),
        sa.Column('revaluation_reason', sa.Text(), nullable=True),
        sa.Column('receipt_date', sa.DateTime(), nullable=False),
        sa.Column('bin_location', sa.String(length=50), nullable=True),
        sa.Column('quality_status', sa.String(length=20), nullable=False, server_default='available'),
        sa.Column('source_type', sa.String(length=50), nullable=True),
        sa.Column('source_reference', sa.String(length=100), nullable=True),
        sa.Column('transfer_reference', sa.String(length=100), nullable=True),
        sa.Column('voided', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('void_reason', sa.Text(), nullable=True),
        sa.Column('voided_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity_remaining >= 0', name='check_layer_remaining_non_negative'),
        sa.CheckConstraint('quantity_received > 0', name='check_layer_received_positive'),
        sa.CheckConstraint(
            'quantity_remaining <= quantity_received', name='check_layer_remaining_not_exceeds_received'
        ),
        sa.CheckConstraint('unit_cost >= 0', name='check_layer_unit_cost_non_negative'),
    )
    op.create_index('ix_cost_layer_fifo', 'cost_layer', ['item_id', 'location_id', 'receipt_date', 'id'])

    op.create_table(
        'layer_consumption',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cost_layer_id', sa.Integer(), sa.ForeignKey('cost_layer.id'), nullable=False),
        sa.Column('transaction_type', sa.String(length=32), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('quantity_consumed', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('total_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('transaction_date', sa.DateTime(), nullable=False),
        sa.Column(
            'reversal_of_id', sa.Integer(), sa.ForeignKey('layer_consumption.id'), nullable=True, unique=True
        ),
        sa.Column(
            'reversed_by_id', sa.Integer(), sa.ForeignKey('layer_consumption.id'), nullable=True, unique=True
        ),
        sa.Column('reversal_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            '(reversal_of_id IS NULL AND quantity_consumed > 0) OR '
            '(reversal_of_id IS NOT NULL AND quantity_consumed < 0)',
            name='check_consumption_quantity_sign',
        ),
        sa.CheckConstraint(
            'reversal_of_id IS NULL OR reversed_by_id IS NULL',
            name='check_consumption_reversal_exclusive',
        ),
    )
    op.create_index(
        'ix_layer_consumption_layer_date', 'layer_consumption', ['cost_layer_id', 'transaction_date']
    )
    op.create_index(
        'ix_layer_consumption_transaction', 'layer_consumption', ['transaction_type', 'transaction_id']
    )

    # 4) Balance cache
    op.create_table(
        'inventory_balance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('item.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('bin_location', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('quantity_on_hand', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_available', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_committed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_on_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_in_transit', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_reserved', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_backordered', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('average_cost', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('last_movement_date', sa.DateTime(), nullable=True),
        sa.Column('last_count_date', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('item_id', 'location_id', 'bin_location', name='uq_inventory_balance_item_location_bin'),
        sa.CheckConstraint('quantity_committed >= 0', name='check_balance_committed_non_negative'),
        sa.CheckConstraint('quantity_reserved >= 0', name='check_balance_reserved_non_negative'),
        sa.CheckConstraint('quantity_backordered >= 0', name='check_balance_backordered_non_negative'),
        sa.CheckConstraint('quantity_in_transit >= 0', name='check_balance_in_transit_non_negative'),
        sa.CheckConstraint('quantity_on_order >= 0', name='check_balance_on_order_non_negative'),
    )

    # 5) Landed costs
    op.create_table(
        'landed_cost',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('landed_cost_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('item_receipt.id'), nullable=False),
        sa.Column('cost_category', sa.String(length=50), nullable=False),
        sa.Column('total_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('allocation_method', sa.String(length=20), nullable=False),
        sa.Column('applied_method', sa.String(length=20), nullable=False),
        sa.Column('reference', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('applied_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('total_cost > 0', name='check_landed_cost_total_positive'),
    )
    op.create_table(
        'landed_cost_allocation',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('landed_cost_id', sa.Integer(), sa.ForeignKey('landed_cost.id'), nullable=False),
        sa.Column('receipt_line_id', sa.Integer(), sa.ForeignKey('item_receipt_line.id'), nullable=False),
        sa.Column('cost_layer_id', sa.Integer(), sa.ForeignKey('cost_layer.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('item.id'), nullable=False),
        sa.Column('allocated_amount', sa.Numeric(14, 4), nullable=False),
        sa.Column('percentage', sa.Numeric(9, 4), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('original_unit_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('adjusted_unit_cost', sa.Numeric(14, 4), nullable=False),
    )

    # 6) Adjustments
    op.create_table(
        'inventory_adjustment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('adjustment_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('adjustment_type', sa.String(length=30), nullable=False, server_default='quantity_adjustment'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('reason_code', sa.String(length=50), nullable=False),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('reference_number', sa.String(length=50), nullable=True),
        sa.Column('adjustment_date', sa.DateTime(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.String(length=100), nullable=True),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.Column('total_value_change', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column(
            'reversal_of_id', sa.Integer(), sa.ForeignKey('inventory_adjustment.id'), nullable=True, unique=True
        ),
        *_timestamps(),
    )
    op.create_table(
        'inventory_adjustment_line',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('adjustment_id', sa.Integer(), sa.ForeignKey('inventory_adjustment.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('item.id'), nullable=False),
        sa.Column('line_type', sa.String(length=20), nullable=False, server_default='quantity'),
        sa.Column('quantity_change', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_cost', sa.Numeric(14, 4), nullable=True),
        sa.Column('current_unit_cost', sa.Numeric(14, 4), nullable=True),
        sa.Column('new_unit_cost', sa.Numeric(14, 4), nullable=True),
        sa.Column('total_cost_impact', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('cost_layer_id', sa.Integer(), sa.ForeignKey('cost_layer.id'), nullable=True),
        sa.Column('bin_location', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )

    # 7) Transfers
    op.create_table(
        'inventory_transfer',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transfer_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('from_location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('to_location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('transfer_type', sa.String(length=20), nullable=False, server_default='standard'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('expected_delivery_date', sa.DateTime(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('shipped_at', sa.DateTime(), nullable=True),
        sa.Column('received_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('carrier', sa.String(length=100), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('shipping_cost', sa.Numeric(14, 4), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('from_location_id <> to_location_id', name='check_transfer_distinct_locations'),
    )
    op.create_table(
        'inventory_transfer_line',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transfer_id', sa.Integer(), sa.ForeignKey('inventory_transfer.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('item.id'), nullable=False),
        sa.Column('quantity_requested', sa.Integer(), nullable=False),
        sa.Column('quantity_shipped', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_received', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_cost', sa.Numeric(14, 4), nullable=True),
        sa.Column('total_cost', sa.Numeric(14, 4), nullable=True),
        sa.Column('from_bin_location', sa.String(length=50), nullable=True),
        sa.Column('to_bin_location', sa.String(length=50), nullable=True),
        sa.Column('destination_layer_id', sa.Integer(), sa.ForeignKey('cost_layer.id'), nullable=True),
        sa.CheckConstraint('quantity_requested > 0', name='check_transfer_line_requested_positive'),
    )

    # 8) Physical counts
    op.create_table(
        'physical_count',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('count_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('count_type', sa.String(length=20), nullable=False, server_default='full_physical'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='planned'),
        sa.Column('count_date', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('adjustment_id', sa.Integer(), sa.ForeignKey('inventory_adjustment.id'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'physical_count_line',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('physical_count_id', sa.Integer(), sa.ForeignKey('physical_count.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('item.id'), nullable=False),
        sa.Column('system_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counted_quantity', sa.Integer(), nullable=True),
        sa.Column('variance_quantity', sa.Integer(), nullable=True),
        sa.Column('variance_value', sa.Numeric(14, 4), nullable=True),
        sa.Column('unit_cost', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('counted_by', sa.String(length=100), nullable=True),
        sa.Column('counted_at', sa.DateTime(), nullable=True),
    )


def downgrade():
    for table in (
        'physical_count_line',
        'physical_count',
        'inventory_transfer_line',
        'inventory_transfer',
        'inventory_adjustment_line',
        'inventory_adjustment',
        'landed_cost_allocation',
        'landed_cost',
        'inventory_balance',
        'layer_consumption',
        'cost_layer',
        'item_receipt_line',
        'item_receipt',
        'location',
        'item',
    ):
        op.drop_table(table)
