"""Initial sales schema: admin accounts, catalog, documents, payments, alerts.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "admin_accounts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.String(20), server_default="admin", nullable=False),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_admin_accounts_email", "admin_accounts", ["email"])
    op.create_index("ix_admin_accounts_status", "admin_accounts", ["status"])

    op.create_table(
        "catalog_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(36), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("long_description", sa.Text()),
        sa.Column("unit", sa.String(50)),
        sa.Column("group_name", sa.String(100)),
        sa.Column("rate", sa.Numeric(14, 4), nullable=False),
        sa.Column("tax1_rate", sa.Numeric(7, 4), server_default="0", nullable=False),
        sa.Column("tax2_rate", sa.Numeric(7, 4), server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_catalog_items_owner_id", "catalog_items", ["owner_id"])
    op.create_index("ix_catalog_items_group_name", "catalog_items", ["group_name"])

    op.create_table(
        "sales_documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(36), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("number", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), server_default="Draft", nullable=False),
        sa.Column("customer_ref", sa.String(255), nullable=False),
        # Lines & discount
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("discount_type", sa.String(10), server_default="percent", nullable=False),
        sa.Column("discount_value", sa.Numeric(14, 4), server_default="0", nullable=False),
        sa.Column("apply_line_taxes", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        # Derived amounts
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False),
        sa.Column("discount", sa.Numeric(14, 2), nullable=False),
        sa.Column("tax", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("total", sa.Numeric(14, 2), nullable=False),
        # Dates
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("open_till", sa.Date()),
        sa.Column("expiry_date", sa.Date()),
        sa.Column("due_date", sa.Date()),
        # Kind-specific
        sa.Column("title", sa.String(255)),
        sa.Column("assigned", sa.String(255)),
        sa.Column("bill_to", sa.Text()),
        sa.Column("ship_to", sa.Text()),
        sa.Column("sales_agent", sa.String(255)),
        sa.Column("recurring", sa.String(20)),
        sa.Column("client_email", sa.String(255)),
        sa.Column("reference", sa.String(100)),
        sa.Column("invoice_ref", sa.String(36)),
        # Invoice payment state
        sa.Column("paid_amount", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("paid_date", sa.Date()),
        sa.Column("payment_mode", sa.String(30)),
        sa.Column("notes", sa.Text()),
        sa.Column("admin_note", sa.Text()),
        sa.Column("tags", sa.String(255)),
        *_timestamps(),
        sa.UniqueConstraint("owner_id", "kind", "number", name="uq_sales_documents_number"),
    )
    op.create_index("ix_sales_documents_owner_id", "sales_documents", ["owner_id"])
    op.create_index("ix_sales_documents_kind", "sales_documents", ["kind"])
    op.create_index("ix_sales_documents_status", "sales_documents", ["status"])
    op.create_index("ix_sales_documents_customer_ref", "sales_documents", ["customer_ref"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(36), nullable=False),
        sa.Column("number", sa.String(50), nullable=False),
        sa.Column(
            "invoice_id", sa.String(36),
            sa.ForeignKey("sales_documents.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("invoice_number", sa.String(50)),
        sa.Column("customer_ref", sa.String(255)),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_mode", sa.String(30), nullable=False),
        sa.Column("transaction_id", sa.String(100)),
        sa.Column("status", sa.String(20), server_default="Completed", nullable=False),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("owner_id", "number", name="uq_payments_number"),
    )
    op.create_index("ix_payments_owner_id", "payments", ["owner_id"])
    op.create_index("ix_payments_invoice_id", "payments", ["invoice_id"])
    op.create_index("ix_payments_customer_ref", "payments", ["customer_ref"])
    op.create_index("ix_payments_status", "payments", ["status"])

    op.create_table(
        "reconciliation_alerts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(36), nullable=False),
        # Classification
        sa.Column("alert_type", sa.String(50), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        # Mismatch details
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("expected_value", sa.Float()),
        sa.Column("actual_value", sa.Float()),
        sa.Column("variance", sa.Float()),
        sa.Column("variance_pct", sa.Float()),
        sa.Column("unit", sa.String(20)),
        sa.Column("entity_refs", sa.JSON()),
        # Status
        sa.Column("status", sa.String(20), server_default="open", nullable=False),
        sa.Column("resolved_at", sa.DateTime()),
        sa.Column("resolved_by", sa.String(36)),
        sa.Column("resolution_note", sa.Text()),
        # Run metadata
        sa.Column("run_id", sa.String(36)),
        sa.Column("is_deleted", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_recon_alerts_owner_id", "reconciliation_alerts", ["owner_id"])
    op.create_index("ix_recon_alerts_alert_type", "reconciliation_alerts", ["alert_type"])
    op.create_index("ix_recon_alerts_severity", "reconciliation_alerts", ["severity"])
    op.create_index("ix_recon_alerts_status", "reconciliation_alerts", ["status"])
    op.create_index("ix_recon_alerts_run_id", "reconciliation_alerts", ["run_id"])


def downgrade() -> None:
    op.drop_table("reconciliation_alerts")
    op.drop_table("payments")
    op.drop_table("sales_documents")
    op.drop_table("catalog_items")
    op.drop_table("admin_accounts")
