"""Payment: a persisted ledger entry against an invoice.

Lifecycle:  Pending → Completed → Refunded
            Pending → Failed

Only Completed payments count towards the invoice's paid_amount.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.database import Base


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("owner_id", "number", name="uq_payments_number"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    number: Mapped[str] = mapped_column(String(50), nullable=False)

    # ── Invoice link ─────────────────────────────────────────
    invoice_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales_documents.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    invoice_number: Mapped[str | None] = mapped_column(String(50))
    customer_ref: Mapped[str | None] = mapped_column(String(255), index=True)

    # ── Money ────────────────────────────────────────────────
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # ── Settlement ───────────────────────────────────────────
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Bank | Stripe Checkout | Cash | Credit Card | Other
    payment_mode: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_id: Mapped[str | None] = mapped_column(String(100))
    # Completed | Pending | Failed | Refunded
    status: Mapped[str] = mapped_column(String(20), default="Completed", index=True)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
