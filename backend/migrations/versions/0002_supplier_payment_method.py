"""Record how direct supplier payments were made

Revision ID: 0002_supplier_payment_method
Revises: 0001_initial_ledger
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_supplier_payment_method"
down_revision = "0001_initial_ledger"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("supplier_payments", schema=None) as batch_op:
        batch_op.add_column(
            sa.Column("method", sa.String(length=16), nullable=False, server_default="CASH")
        )


def downgrade():
    with op.batch_alter_table("supplier_payments", schema=None) as batch_op:
        batch_op.drop_column("method")
