"""normalize stock transaction types

Rewrites legacy direction synonyms to the canonical in/out values. Rows with
a type that maps to neither direction are left as they are and reported by
the ledger reports until someone fixes them.

Revision ID: 8c4d2b6f1e93
Revises: 3a1f9c2e7b10
Create Date: 2026-10-19 11:02:17.540921

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '8c4d2b6f1e93'
down_revision: Union[str, None] = '3a1f9c2e7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INCREASE = ('in', 'add', 'stock_in', 'stockin')
DECREASE = ('out', 'reduce', 'order_deduction', 'stock_out', 'stockout')


def upgrade() -> None:
    conn = op.get_bind()
    table = sa.table('stock_transactions', sa.column('transaction_type'))
    normalized = sa.func.lower(sa.func.trim(table.c.transaction_type))
    conn.execute(table.update().where(normalized.in_(INCREASE), table.c.transaction_type != 'in').values(transaction_type='in'))
    conn.execute(table.update().where(normalized.in_(DECREASE), table.c.transaction_type != 'out').values(transaction_type='out'))


def downgrade() -> None:
    # Original spellings are not recoverable
    pass
