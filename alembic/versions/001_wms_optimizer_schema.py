"""Create WMS optimizer tables

Revision ID: 001_wms_optimizer
Revises:
Create Date: 2026-10-18

Operational tables are created in the schema selected with
``alembic -x schema=<tenant_schema> upgrade head``; the tenant registry
always lives in public and is created once.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers
revision = '001_wms_optimizer'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=True),
    ]


def upgrade():
    """Create tenant registry (public) and operational tables (current schema)"""

    # ====================
    # TENANTS TABLE (public)
    # ====================
    op.execute("""
        CREATE TABLE IF NOT EXISTS public.tenants (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            subdomain VARCHAR(100) UNIQUE NOT NULL,
            database_schema VARCHAR(100) NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ====================
    # WAREHOUSES
    # ====================
    op.create_table(
        'warehouses',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('code', sa.String(20), unique=True, nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('warehouse_type', sa.String(50), server_default='REGIONAL', nullable=True),
        sa.Column('dock_x', sa.Float, server_default='0', nullable=False),
        sa.Column('dock_y', sa.Float, server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_warehouses_code', 'warehouses', ['code'])

    # ====================
    # PRODUCTS
    # ====================
    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('sku', sa.String(50), unique=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('is_hazmat', sa.Boolean, server_default='false', nullable=False),
        sa.Column('temperature_requirement', sa.String(30), nullable=True),
        sa.Column('unit_weight_kg', sa.Float, nullable=True),
        sa.Column('unit_volume_m3', sa.Float, nullable=True),
        sa.Column('unit_price', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_products_sku', 'products', ['sku'])

    # ====================
    # STORAGE LOCATIONS
    # ====================
    op.create_table(
        'wms_locations',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('warehouse_id', UUID(as_uuid=True), sa.ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('location_type', sa.String(30), server_default='rack', nullable=False),
        sa.Column('zone', sa.String(20), nullable=False),
        sa.Column('aisle', sa.String(10), nullable=True),
        sa.Column('rack', sa.String(10), nullable=True),
        sa.Column('shelf', sa.String(10), nullable=True),
        sa.Column('bin', sa.String(10), nullable=True),
        sa.Column('coord_x', sa.Float, nullable=True),
        sa.Column('coord_y', sa.Float, nullable=True),
        sa.Column('coord_z', sa.Float, nullable=True),
        sa.Column('capacity', sa.Integer, server_default='0', nullable=False),
        sa.Column('current_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('max_weight', sa.Float, nullable=True),
        sa.Column('current_weight', sa.Float, nullable=True),
        sa.Column('temperature_zone', sa.String(30), nullable=True),
        sa.Column('is_picking_face', sa.Boolean, server_default='false', nullable=False),
        sa.Column('is_bulk_storage', sa.Boolean, server_default='false', nullable=False),
        sa.Column('reserved_for_sku', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), server_default='available', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('warehouse_id', 'code', name='uq_wms_location_code'),
        sa.CheckConstraint('current_quantity >= 0', name='ck_wms_location_qty_non_negative'),
        sa.CheckConstraint('current_quantity <= capacity', name='ck_wms_location_qty_within_capacity'),
    )
    op.create_index('ix_wms_locations_warehouse_id', 'wms_locations', ['warehouse_id'])
    op.create_index('ix_wms_locations_code', 'wms_locations', ['code'])
    op.create_index('ix_wms_locations_zone', 'wms_locations', ['zone'])

    # ====================
    # INVENTORY (per location / product / lot)
    # ====================
    op.create_table(
        'wms_inventory',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('warehouse_id', UUID(as_uuid=True), sa.ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('location_id', UUID(as_uuid=True), sa.ForeignKey('wms_locations.id'), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('lot_number', sa.String(50), server_default='', nullable=False),
        sa.Column('expiry_date', sa.Date, nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('quantity_on_hand', sa.Integer, server_default='0', nullable=False),
        sa.Column('quantity_reserved', sa.Integer, server_default='0', nullable=False),
        sa.Column('quantity_available', sa.Integer, server_default='0', nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('status', sa.String(20), server_default='AVAILABLE', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=True),
        sa.UniqueConstraint('location_id', 'product_id', 'lot_number', name='uq_wms_inventory_location_product_lot'),
        sa.CheckConstraint('quantity_on_hand >= 0', name='ck_wms_inventory_on_hand'),
        sa.CheckConstraint('quantity_available >= 0', name='ck_wms_inventory_available'),
        sa.CheckConstraint('quantity_reserved >= 0', name='ck_wms_inventory_reserved'),
    )
    op.create_index('ix_wms_inventory_warehouse_id', 'wms_inventory', ['warehouse_id'])
    op.create_index('ix_wms_inventory_location_id', 'wms_inventory', ['location_id'])
    op.create_index('ix_wms_inventory_product_id', 'wms_inventory', ['product_id'])
    op.create_index('ix_wms_inventory_sku', 'wms_inventory', ['sku'])

    # ====================
    # STOCK MOVEMENTS (ABC consumption source)
    # ====================
    op.create_table(
        'stock_movements',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('movement_type', sa.String(30), nullable=False),
        sa.Column('movement_date', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('warehouse_id', UUID(as_uuid=True), sa.ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('from_location_id', UUID(as_uuid=True), nullable=True),
        sa.Column('to_location_id', UUID(as_uuid=True), nullable=True),
        sa.Column('lot_number', sa.String(50), server_default='', nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('reference_type', sa.String(50), nullable=True),
        sa.Column('reference_id', UUID(as_uuid=True), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
    )
    op.create_index('ix_stock_movements_movement_type', 'stock_movements', ['movement_type'])
    op.create_index('ix_stock_movements_movement_date', 'stock_movements', ['movement_date'])
    op.create_index('ix_stock_movements_warehouse_id', 'stock_movements', ['warehouse_id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])

    # ====================
    # PICKING ORDERS
    # ====================
    op.create_table(
        'picking_orders',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('picking_number', sa.String(30), unique=True, nullable=False),
        sa.Column('warehouse_id', UUID(as_uuid=True), sa.ForeignKey('warehouses.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('order_reference', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('priority', sa.String(20), server_default='normal', nullable=False),
        sa.Column('picking_strategy', sa.String(20), server_default='fifo', nullable=False),
        sa.Column('total_items', sa.Integer, server_default='0', nullable=True),
        sa.Column('total_quantity', sa.Integer, server_default='0', nullable=True),
        sa.Column('picked_quantity', sa.Integer, server_default='0', nullable=True),
        sa.Column('items', JSONB, server_default='[]', nullable=False),
        sa.Column('metadata', JSONB, server_default='{}', nullable=False),
        sa.Column('assigned_to', sa.String(100), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', sa.String(100), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_picking_orders_picking_number', 'picking_orders', ['picking_number'])
    op.create_index('ix_picking_orders_warehouse_id', 'picking_orders', ['warehouse_id'])
    op.create_index('ix_picking_orders_order_reference', 'picking_orders', ['order_reference'])
    op.create_index('ix_picking_orders_status', 'picking_orders', ['status'])


def downgrade():
    """Drop operational tables (the shared tenant registry is left in place)"""
    op.drop_table('picking_orders')
    op.drop_table('stock_movements')
    op.drop_table('wms_inventory')
    op.drop_table('wms_locations')
    op.drop_table('products')
    op.drop_table('warehouses')
