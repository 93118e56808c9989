"""SalesDocument: proposals, estimates, credit notes and invoices.

One table for all four kinds; `kind` selects which of the kind-specific
columns are in use.  `items` holds the cloned line items as JSON with
decimals as exact strings:

    [{"description": "Setup", "quantity": 2, "rate": "12.50",
      "tax1_rate": "0", "tax2_rate": "0", "amount": "25.00", ...}]

subtotal / discount / tax / total are derived.  They are stored for
listing and reporting only and re-checked against `items` on every load.

Lifecycles:
    proposal     Draft → Sent → Accepted | Rejected
    estimate     Draft → Pending → Approved | Rejected
    credit_note  Draft → Pending | Issued → Cancelled
    invoice      Draft → Unpaid → Partiallypaid → Paid, Overdue by date
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean, Date, DateTime, JSON, Numeric, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.database import Base


class SalesDocument(Base):
    __tablename__ = "sales_documents"
    __table_args__ = (
        UniqueConstraint("owner_id", "kind", "number", name="uq_sales_documents_number"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # proposal | estimate | credit_note | invoice
    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="Draft", index=True)

    # ── Customer ─────────────────────────────────────────────
    customer_ref: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # ── Lines & discount ─────────────────────────────────────
    items: Mapped[list] = mapped_column(JSON, default=list)
    discount_type: Mapped[str] = mapped_column(String(10), default="percent")
    discount_value: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=Decimal("0"))
    apply_line_taxes: Mapped[bool] = mapped_column(Boolean, default=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # ── Derived amounts ──────────────────────────────────────
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    # ── Dates ────────────────────────────────────────────────
    issue_date: Mapped[date] = mapped_column(Date, default=date.today)
    open_till: Mapped[date | None] = mapped_column(Date)       # proposal
    expiry_date: Mapped[date | None] = mapped_column(Date)     # estimate
    due_date: Mapped[date | None] = mapped_column(Date)        # invoice

    # ── Kind-specific ────────────────────────────────────────
    title: Mapped[str | None] = mapped_column(String(255))          # proposal
    assigned: Mapped[str | None] = mapped_column(String(255))       # proposal
    bill_to: Mapped[str | None] = mapped_column(Text)               # estimate, credit_note, invoice
    ship_to: Mapped[str | None] = mapped_column(Text)               # estimate, credit_note, invoice
    sales_agent: Mapped[str | None] = mapped_column(String(255))    # estimate, invoice
    # No | Every one month | Custom
    recurring: Mapped[str | None] = mapped_column(String(20))       # invoice
    client_email: Mapped[str | None] = mapped_column(String(255))   # proposal
    reference: Mapped[str | None] = mapped_column(String(100))      # estimate, credit_note
    invoice_ref: Mapped[str | None] = mapped_column(String(36))     # credit_note

    # ── Invoice payment state (ledger-owned) ─────────────────
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    paid_date: Mapped[date | None] = mapped_column(Date)
    payment_mode: Mapped[str | None] = mapped_column(String(30))

    notes: Mapped[str | None] = mapped_column(Text)
    admin_note: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
