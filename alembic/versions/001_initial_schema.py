"""Initial schema: charges

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "charges",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("merchant_id", sa.String(255), nullable=False),
        sa.Column("order_id", sa.String(255), nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("current_amount", sa.BigInteger, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="BRL"),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method_type", sa.String(20), nullable=False, server_default="credit"),
        sa.Column("installments", sa.Integer, nullable=False, server_default="1"),
        sa.Column("payment_source_type", sa.String(20), nullable=False, server_default="card"),
        sa.Column("payment_source_id", sa.String(255), nullable=True),
        sa.Column("provider_id", sa.String(255), nullable=True),
        sa.Column("provider_name", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_charges_amount_positive"),
        sa.CheckConstraint(
            "current_amount >= 0 AND current_amount <= amount",
            name="ck_charges_current_amount_range",
        ),
    )
    # Idempotency key; inserts racing on the same order fail here
    op.create_index("ix_charges_merchant_order", "charges", ["merchant_id", "order_id"], unique=True)
    op.create_index("ix_charges_created_at", "charges", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_charges_created_at", table_name="charges")
    op.drop_index("ix_charges_merchant_order", table_name="charges")
    op.drop_table("charges")
