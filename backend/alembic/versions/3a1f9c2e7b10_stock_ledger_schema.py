"""stock ledger schema

Revision ID: 3a1f9c2e7b10
Revises:
Create Date: 2026-10-19 10:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3a1f9c2e7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'app_config',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_app_config_name'), 'app_config', ['name'], unique=True)

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('record_id', sa.String(), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_log_id'), 'audit_log', ['id'], unique=False)

    op.create_table(
        'parties',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('prefix', sa.String(length=10), nullable=True),
        sa.Column('last_order_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'material_categories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'units',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'materials',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category_id', sa.String(length=36), nullable=True),
        sa.Column('unit', sa.String(), nullable=False, server_default='Pcs'),
        sa.Column('rate', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('opening_stock', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('current_stock', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('min_stock', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['category_id'], ['material_categories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('party_id', sa.String(length=36), nullable=True),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('raw_material_deductions', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('net_total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['party_id'], ['parties.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_orders_order_number'), 'orders', ['order_number'], unique=True)

    op.create_table(
        'order_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('order_id', sa.String(length=36), nullable=False),
        sa.Column('serial_no', sa.Integer(), nullable=False),
        sa.Column('particular', sa.String(), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity_unit', sa.String(), nullable=False, server_default='Dzn'),
        sa.Column('rate_per_dzn', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_order_items_order_id'), 'order_items', ['order_id'], unique=False)

    op.create_table(
        'raw_material_deductions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('order_id', sa.String(length=36), nullable=False),
        sa.Column('material_id', sa.String(length=36), nullable=True),
        sa.Column('material_name', sa.String(), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('rate', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_raw_material_deductions_order_id'), 'raw_material_deductions', ['order_id'], unique=False)

    op.create_table(
        'stock_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('material_id', sa.String(length=36), nullable=False),
        sa.Column('transaction_type', sa.String(length=30), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('source_type', sa.String(length=30), nullable=True),
        sa.Column('reason_type', sa.String(length=30), nullable=True),
        sa.Column('party_id', sa.String(length=36), nullable=True),
        sa.Column('order_id', sa.String(length=36), nullable=True),
        sa.Column('order_number', sa.String(), nullable=True),
        sa.Column('rate', sa.Numeric(12, 2), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('balance_after', sa.Numeric(12, 2), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['party_id'], ['parties.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stock_transactions_material_date', 'stock_transactions', ['material_id', 'transaction_date'], unique=False)

    op.create_table(
        'order_counter',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(length=10), nullable=False, server_default='SG'),
        sa.Column('current_number', sa.Integer(), nullable=False, server_default='371'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.execute("INSERT INTO order_counter (id, prefix, current_number) VALUES (1, 'SG', 371)")


def downgrade() -> None:
    op.drop_table('order_counter')
    op.drop_index('ix_stock_transactions_material_date', table_name='stock_transactions')
    op.drop_table('stock_transactions')
    op.drop_index(op.f('ix_raw_material_deductions_order_id'), table_name='raw_material_deductions')
    op.drop_table('raw_material_deductions')
    op.drop_index(op.f('ix_order_items_order_id'), table_name='order_items')
    op.drop_table('order_items')
    op.drop_index(op.f('ix_orders_order_number'), table_name='orders')
    op.drop_table('orders')
    op.drop_table('materials')
    op.drop_table('units')
    op.drop_table('material_categories')
    op.drop_table('parties')
    op.drop_index(op.f('ix_audit_log_id'), table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_index(op.f('ix_app_config_name'), table_name='app_config')
    op.drop_table('app_config')
