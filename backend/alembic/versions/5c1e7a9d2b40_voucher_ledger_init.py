"""Voucher ledger tables

- vouchers (with optimistic-concurrency version counter)
- transactions (ON DELETE CASCADE from vouchers)
- voucher_categories (custom categories per user)
"""

from alembic import op
import sqlalchemy as sa

# --- Alembic identifiers ---
revision = "5c1e7a9d2b40"
down_revision = None
branch_labels = None
depends_on = None

transaction_kind = sa.Enum("purchase", "refund", "adjustment", name="transaction_kind")


def upgrade() -> None:
    op.create_table(
        "vouchers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(200), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("eligible_businesses_url", sa.String(500), nullable=True),
        sa.Column("voucher_url", sa.String(500), nullable=True),
        sa.Column("original_balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("offer_for_sale", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("contact_info", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_vouchers_id", "vouchers", ["id"])
    op.create_index("ix_vouchers_user_id", "vouchers", ["user_id"])
    op.create_index("ix_vouchers_user_updated", "vouchers", ["user_id", "updated_at"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "voucher_id",
            sa.Integer(),
            sa.ForeignKey("vouchers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", transaction_kind, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("previous_balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("new_balance", sa.Numeric(12, 2), nullable=False),
    )
    op.create_index("ix_transactions_id", "transactions", ["id"])
    op.create_index("ix_transactions_voucher_id", "transactions", ["voucher_id"])

    op.create_table(
        "voucher_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "name", name="uq_voucher_categories_user_name"),
    )
    op.create_index("ix_voucher_categories_id", "voucher_categories", ["id"])
    op.create_index("ix_voucher_categories_user_id", "voucher_categories", ["user_id"])


def downgrade() -> None:
    op.drop_table("voucher_categories")
    op.drop_table("transactions")
    op.drop_table("vouchers")
    transaction_kind.drop(op.get_bind(), checkfirst=True)
