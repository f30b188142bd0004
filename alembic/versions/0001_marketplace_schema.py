"""marketplace schema

Revision ID: 0001_marketplace_schema
Revises:
Create Date: 2026-10-16 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_marketplace_schema"
down_revision = None
branch_labels = None
depends_on = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("role", sa.Enum("CUSTOMER", "PROVIDER", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "services",
        *_base_columns(),
        sa.Column("provider_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(18, 2), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column(
            "parent_service_id",
            sa.Integer(),
            sa.ForeignKey("services.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.CheckConstraint("price > 0", name="ck_service_positive_price"),
    )
    op.create_index("ix_services_provider_id", "services", ["provider_id"])
    op.create_index("ix_services_parent_service_id", "services", ["parent_service_id"])

    op.create_table(
        "service_requests",
        *_base_columns(),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("time_slot", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "ACCEPTED", "REJECTED", "COMPLETED", name="servicerequeststatus"),
            nullable=False,
        ),
    )
    op.create_index("ix_service_requests_service_id", "service_requests", ["service_id"])
    op.create_index("ix_service_requests_customer_id", "service_requests", ["customer_id"])
    op.create_index("ix_service_requests_status", "service_requests", ["status"])

    op.create_table(
        "bills",
        *_base_columns(),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("service_requests.id"), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("status", sa.Enum("UNPAID", "PAID", name="billstatus"), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_bill_positive_amount"),
    )
    op.create_index("ix_bills_request_id", "bills", ["request_id"], unique=True)

    op.create_table(
        "payments",
        *_base_columns(),
        sa.Column("bill_id", sa.Integer(), sa.ForeignKey("bills.id"), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("platform_fee", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("gateway_order_id", sa.String(length=64), nullable=False),
        sa.Column("gateway_payment_id", sa.String(length=64), nullable=True),
        sa.Column("method", sa.String(length=32), nullable=True),
        sa.Column("status", sa.Enum("CREATED", "CAPTURED", "FAILED", name="paymentstatus"), nullable=False),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_payment_positive_amount"),
        sa.CheckConstraint("platform_fee >= 0", name="ck_payment_fee_non_negative"),
        sa.UniqueConstraint("gateway_order_id"),
        sa.UniqueConstraint("gateway_payment_id"),
    )
    op.create_index("ix_payments_bill_id", "payments", ["bill_id"], unique=True)
    op.create_index("ix_payments_status", "payments", ["status"])

    op.create_table(
        "transfers",
        *_base_columns(),
        sa.Column("payment_id", sa.Integer(), sa.ForeignKey("payments.id"), nullable=False),
        sa.Column("provider_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("transfer_mode", sa.String(length=16), nullable=False),
        sa.Column("status", sa.Enum("CREATED", "CAPTURED", name="transferstatus"), nullable=False),
        sa.Column("idempotency_key", sa.String(length=128), nullable=False),
        sa.Column("gateway_payout_id", sa.String(length=64), nullable=True),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount >= 0", name="ck_transfer_non_negative_amount"),
        sa.UniqueConstraint("idempotency_key"),
        sa.UniqueConstraint("gateway_payout_id"),
    )
    op.create_index("ix_transfers_payment_id", "transfers", ["payment_id"], unique=True)
    op.create_index("ix_transfers_provider_id", "transfers", ["provider_id"])
    op.create_index("ix_transfers_status", "transfers", ["status"])

    op.create_table(
        "provider_bank_details",
        *_base_columns(),
        sa.Column("provider_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("account_holder_name", sa.String(length=120), nullable=False),
        sa.Column("account_number", sa.String(length=34), nullable=False),
        sa.Column("ifsc", sa.String(length=11), nullable=False),
        sa.Column("gateway_fund_account_id", sa.String(length=64), nullable=True),
        sa.Column(
            "verification_status",
            sa.Enum("PENDING", "VERIFIED", "UNVERIFIED", name="bankverificationstatus"),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_provider_bank_details_provider_id", "provider_bank_details", ["provider_id"], unique=True
    )

    op.create_table(
        "api_keys",
        *_base_columns(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("prefix", sa.String(length=32), nullable=False),
        sa.Column("key_hash", sa.String(length=128), nullable=False),
        sa.Column("scope", sa.Enum("customer", "provider", "support", "admin", name="apiscope"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("key_hash"),
    )
    op.create_index("ix_api_keys_prefix", "api_keys", ["prefix"])
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])

    op.create_table(
        "audit_logs",
        *_base_columns(),
        sa.Column("actor", sa.String(length=100), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("data_json", sa.JSON(), nullable=False),
        sa.Column("at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity", "entity_id"])

    op.create_table(
        "scheduler_locks",
        *_base_columns(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("owner", sa.String(length=64), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("scheduler_locks")
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_api_keys_user_id", table_name="api_keys")
    op.drop_index("ix_api_keys_prefix", table_name="api_keys")
    op.drop_table("api_keys")
    op.drop_index("ix_provider_bank_details_provider_id", table_name="provider_bank_details")
    op.drop_table("provider_bank_details")
    op.drop_index("ix_transfers_status", table_name="transfers")
    op.drop_index("ix_transfers_provider_id", table_name="transfers")
    op.drop_index("ix_transfers_payment_id", table_name="transfers")
    op.drop_table("transfers")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_bill_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_bills_request_id", table_name="bills")
    op.drop_table("bills")
    op.drop_index("ix_service_requests_status", table_name="service_requests")
    op.drop_index("ix_service_requests_customer_id", table_name="service_requests")
    op.drop_index("ix_service_requests_service_id", table_name="service_requests")
    op.drop_table("service_requests")
    op.drop_index("ix_services_parent_service_id", table_name="services")
    op.drop_index("ix_services_provider_id", table_name="services")
    op.drop_table("services")
    op.drop_table("users")
    sa.Enum(name="apiscope").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="bankverificationstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="transferstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="paymentstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="billstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="servicerequeststatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
