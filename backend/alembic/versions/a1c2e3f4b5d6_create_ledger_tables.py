"""Create ledger tables.

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c2e3f4b5d6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create users, balances, the journal, prices, usage, topups and invoices.

    Balances carry a version column for compare-and-swap writes and a CHECK
    that keeps them non-negative. Model prices allow one open row per model.
    """
    op.create_table(
        "billing_user",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("received_signup_credit", sa.Boolean(), nullable=False),
        sa.Column("first_paid_topup_applied", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("modified_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_billing_user"),
        sa.UniqueConstraint("external_id", name="uq_billing_user_external_id"),
    )

    op.create_table(
        "balance",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("balance_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("reserved_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["billing_user.id"], name="fk_balance_user_id"),
        sa.PrimaryKeyConstraint("user_id", name="pk_balance"),
        sa.CheckConstraint("balance_micro_cents >= 0", name="ck_balance_balance_non_negative"),
        sa.CheckConstraint("reserved_micro_cents >= 0", name="ck_balance_reserved_non_negative"),
    )

    op.create_table(
        "ledger_transaction",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("amount_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("provider_cost_micro_cents", sa.BigInteger(), nullable=True),
        sa.Column("fee_micro_cents", sa.BigInteger(), nullable=True),
        sa.Column("reference_id", sa.String(255), nullable=True),
        sa.Column("idempotency_key", sa.String(255), nullable=True),
        sa.Column("provider", sa.String(100), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["billing_user.id"], name="fk_ledger_transaction_user_id"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_ledger_transaction"),
    )
    op.create_index(
        "idx_ledger_transaction_user_created", "ledger_transaction", ["user_id", "created_at"]
    )
    op.create_index(
        "idx_ledger_transaction_type_created", "ledger_transaction", ["type", "created_at"]
    )
    op.create_index("idx_ledger_transaction_reference", "ledger_transaction", ["reference_id"])

    op.create_table(
        "idempotency_key",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("operation_type", sa.String(40), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("result_reference", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_idempotency_key"),
        sa.UniqueConstraint("key", name="uq_idempotency_key_key"),
    )
    op.create_index("idx_idempotency_key_created_at", "idempotency_key", ["created_at"])

    op.create_table(
        "model_token_price",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("model_id", sa.String(100), nullable=False),
        sa.Column("provider", sa.String(100), nullable=True),
        sa.Column("price_micro_cents_per_input_token", sa.BigInteger(), nullable=False),
        sa.Column("price_micro_cents_per_output_token", sa.BigInteger(), nullable=False),
        sa.Column("effective_from", sa.DateTime(), nullable=False),
        sa.Column("effective_to", sa.DateTime(), nullable=True),
        sa.Column("admin_id", sa.String(255), nullable=False),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_model_token_price"),
    )
    op.create_index(
        "idx_model_token_price_model_from", "model_token_price", ["model_id", "effective_from"]
    )
    # At most one active row per model
    op.create_index(
        "uq_model_token_price_active",
        "model_token_price",
        ["model_id"],
        unique=True,
        postgresql_where=sa.text("effective_to IS NULL"),
    )

    op.create_table(
        "topup",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("bonus_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("payment_provider", sa.String(50), nullable=False),
        sa.Column("payment_reference", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("idempotency_key", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["billing_user.id"], name="fk_topup_user_id"),
        sa.PrimaryKeyConstraint("id", name="pk_topup"),
    )
    op.create_index("idx_topup_user_created", "topup", ["user_id", "created_at"])
    op.create_index("idx_topup_payment_reference", "topup", ["payment_reference"])

    op.create_table(
        "usage_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("model_id", sa.String(100), nullable=False),
        sa.Column("provider_call_id", sa.String(255), nullable=True),
        sa.Column("input_tokens", sa.BigInteger(), nullable=False),
        sa.Column("output_tokens", sa.BigInteger(), nullable=False),
        sa.Column("price_micro_cents_per_input_token", sa.BigInteger(), nullable=False),
        sa.Column("price_micro_cents_per_output_token", sa.BigInteger(), nullable=False),
        sa.Column("provider_cost_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("fee_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("total_charge_micro_cents", sa.BigInteger(), nullable=False),
        sa.Column("charge_transaction_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("idempotency_key", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["billing_user.id"], name="fk_usage_log_user_id"),
        sa.PrimaryKeyConstraint("id", name="pk_usage_log"),
    )
    op.create_index("idx_usage_log_user_created", "usage_log", ["user_id", "created_at"])
    op.create_index("idx_usage_log_status_created", "usage_log", ["status", "created_at"])

    op.create_table(
        "provider_invoice",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider", sa.String(100), nullable=False),
        sa.Column("invoice_date", sa.DateTime(), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("reconciled", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_provider_invoice"),
    )
    op.create_index(
        "idx_provider_invoice_provider_date", "provider_invoice", ["provider", "invoice_date"]
    )


def downgrade():
    """Drop every ledger table."""
    op.drop_table("provider_invoice")
    op.drop_table("usage_log")
    op.drop_table("topup")
    op.drop_table("model_token_price")
    op.drop_table("idempotency_key")
    op.drop_table("ledger_transaction")
    op.drop_table("balance")
    op.drop_table("billing_user")
