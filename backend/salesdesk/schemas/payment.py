"""Pydantic schemas for the payment ledger."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, field_validator

from salesdesk.schemas.common import MoneyInput
from salesdesk.schemas.document import DocumentOut


class PaymentCreate(BaseModel):
    invoice_id: str
    amount: MoneyInput
    payment_date: date
    payment_mode: str
    transaction_id: str | None = None
    notes: str | None = None
    status: str = "Completed"

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        if v not in ("Completed", "Pending"):
            raise ValueError("status must be 'Completed' or 'Pending'")
        return v


class ClientPaymentCreate(BaseModel):
    invoice_id: str
    amount: MoneyInput
    payment_date: date
    payment_mode: str
    transaction_id: str | None = None
    notes: str | None = None


class PaymentOut(BaseModel):
    id: str
    number: str | None
    invoice_id: str
    invoice_number: str | None
    customer_ref: str | None
    amount: Decimal
    currency: str
    payment_date: date
    payment_mode: str
    transaction_id: str | None
    status: str
    notes: str | None = None
    # full | partial for payments derived from invoice state
    derived_kind: str | None = None

    model_config = {"from_attributes": True}


class PaymentRecorded(BaseModel):
    """A ledger change always returns the invoice it moved."""
    invoice: DocumentOut
    payment: PaymentOut | None = None


class StatsTotal(BaseModel):
    count: int
    total_amount: Decimal


class PaymentStats(BaseModel):
    total: StatsTotal
    by_status: dict[str, int]
    amount_by_status: dict[str, Decimal]


class LedgerLineOut(BaseModel):
    invoice_id: str
    invoice_number: str | None
    status: str
    total: Decimal
    paid_amount: Decimal
    recorded: Decimal
    derived: Decimal
    consistent: bool

    model_config = {"from_attributes": True}


class LedgerReportOut(BaseModel):
    lines: list[LedgerLineOut]
    mismatches: list[LedgerLineOut]
    recorded_total: Decimal
    derived_total: Decimal

    model_config = {"from_attributes": True}
