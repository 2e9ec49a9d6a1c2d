"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-01-12

Creates:
- profiles (mirrored from the identity provider)
- products, boms, bom_lines
- manufacturing_orders, work_orders
- stock_ledger (append-only, with the running-balance index)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='operator'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.CheckConstraint("role IN ('admin', 'operator')", name='ck_profiles_role'),
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])
    op.create_index('ix_profiles_role', 'profiles', ['role'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='raw_material'),
        sa.Column('stock_on_hand', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_stock_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("type IN ('raw_material', 'finished_good')", name='ck_products_type'),
        sa.CheckConstraint('min_stock_level >= 0', name='ck_products_min_stock_level'),
    )
    op.create_index('ix_products_id', 'products', ['id'])
    op.create_index('ix_products_name', 'products', ['name'], unique=True)

    op.create_table(
        'boms',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('version', sa.String(length=20), nullable=False, server_default='1.0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_boms_id', 'boms', ['id'])
    op.create_index('ix_boms_product_id', 'boms', ['product_id'])

    op.create_table(
        'bom_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bom_id', sa.Integer(), nullable=False),
        sa.Column('component_product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['bom_id'], ['boms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['component_product_id'], ['products.id']),
        sa.CheckConstraint('quantity > 0', name='ck_bom_lines_quantity_positive'),
        sa.UniqueConstraint('bom_id', 'component_product_id', name='uq_bom_lines_component'),
    )
    op.create_index('ix_bom_lines_id', 'bom_lines', ['id'])
    op.create_index('ix_bom_lines_bom_id', 'bom_lines', ['bom_id'])
    op.create_index('ix_bom_lines_component_product_id', 'bom_lines', ['component_product_id'])

    op.create_table(
        'manufacturing_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('bom_id', sa.Integer(), nullable=False),
        sa.Column('assignee_id', sa.Integer(), nullable=True),
        sa.Column('quantity_to_produce', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['bom_id'], ['boms.id']),
        sa.ForeignKeyConstraint(['assignee_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id'], ondelete='SET NULL'),
        sa.CheckConstraint('quantity_to_produce > 0', name='ck_manufacturing_orders_quantity_positive'),
    )
    op.create_index('ix_manufacturing_orders_id', 'manufacturing_orders', ['id'])
    op.create_index('ix_manufacturing_orders_product_id', 'manufacturing_orders', ['product_id'])
    op.create_index('ix_manufacturing_orders_bom_id', 'manufacturing_orders', ['bom_id'])
    op.create_index('ix_manufacturing_orders_assignee_id', 'manufacturing_orders', ['assignee_id'])
    op.create_index('ix_manufacturing_orders_status', 'manufacturing_orders', ['status'])
    op.create_index('ix_manufacturing_orders_created_at', 'manufacturing_orders', ['created_at'])

    op.create_table(
        'work_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mo_id', sa.Integer(), nullable=False),
        sa.Column('bom_line_id', sa.Integer(), nullable=True),
        sa.Column('component_product_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('required_quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('operator_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['mo_id'], ['manufacturing_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['bom_line_id'], ['bom_lines.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['component_product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['operator_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.CheckConstraint('required_quantity > 0', name='ck_work_orders_required_quantity_positive'),
    )
    op.create_index('ix_work_orders_id', 'work_orders', ['id'])
    op.create_index('ix_work_orders_mo_id', 'work_orders', ['mo_id'])
    op.create_index('ix_work_orders_component_product_id', 'work_orders', ['component_product_id'])
    op.create_index('ix_work_orders_status', 'work_orders', ['status'])
    op.create_index('ix_work_orders_operator_id', 'work_orders', ['operator_id'])

    op.create_table(
        'stock_ledger',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=30), nullable=False),
        sa.Column('quantity_in', sa.Integer(), nullable=True),
        sa.Column('quantity_out', sa.Integer(), nullable=True),
        sa.Column('balance', sa.Integer(), nullable=False),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('reference_id', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            '(quantity_in IS NULL) <> (quantity_out IS NULL)',
            name='ck_stock_ledger_single_direction',
        ),
        sa.CheckConstraint('quantity_in IS NULL OR quantity_in > 0', name='ck_stock_ledger_quantity_in_positive'),
        sa.CheckConstraint('quantity_out IS NULL OR quantity_out > 0', name='ck_stock_ledger_quantity_out_positive'),
    )
    op.create_index('ix_stock_ledger_id', 'stock_ledger', ['id'])
    op.create_index('ix_stock_ledger_movement_type', 'stock_ledger', ['movement_type'])
    op.create_index('ix_stock_ledger_reference_id', 'stock_ledger', ['reference_id'])
    op.create_index('ix_stock_ledger_product_created', 'stock_ledger', ['product_id', 'created_at', 'id'])


def downgrade() -> None:
    op.drop_table('stock_ledger')
    op.drop_table('work_orders')
    op.drop_table('manufacturing_orders')
    op.drop_table('bom_lines')
    op.drop_table('boms')
    op.drop_table('products')
    op.drop_table('profiles')
