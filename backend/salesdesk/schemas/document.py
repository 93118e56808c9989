"""Pydantic schemas for proposals, estimates, credit notes and invoices.

Derived amounts (subtotal, discount, tax, total) only ever appear on
output schemas; inputs carry line items and discount settings.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from salesdesk.schemas.common import MoneyInput


class LineItemIn(BaseModel):
    description: str
    long_description: str | None = None
    quantity: MoneyInput | None = 1
    rate: MoneyInput
    tax1_rate: MoneyInput | None = None
    tax2_rate: MoneyInput | None = None
    unit: str | None = None


class LineItemOut(BaseModel):
    description: str
    long_description: str | None
    quantity: int
    rate: Decimal
    tax1_rate: Decimal
    tax2_rate: Decimal
    unit: str | None
    source_item_id: str | None
    amount: Decimal

    model_config = {"from_attributes": True}


class _HeaderFields(BaseModel):
    currency: str | None = None
    issue_date: date | None = None
    notes: str | None = None
    apply_line_taxes: bool | None = None
    admin_note: str | None = None
    tags: str | None = None
    # proposal
    title: str | None = None
    open_till: date | None = None
    client_email: str | None = None
    assigned: str | None = None
    # estimate / credit note
    expiry_date: date | None = None
    reference: str | None = None
    invoice_ref: str | None = None
    # estimate / credit note / invoice
    bill_to: str | None = None
    ship_to: str | None = None
    sales_agent: str | None = None
    # invoice
    due_date: date | None = None
    recurring: str | None = None


class DocumentCreate(_HeaderFields):
    customer_ref: str
    items: list[LineItemIn] = []
    discount_type: str = "percent"
    discount_value: MoneyInput = 0


class DocumentUpdate(_HeaderFields):
    """Draft edit.  Omitted fields are left as they are."""
    customer_ref: str | None = None
    items: list[LineItemIn] | None = None
    discount_type: str | None = None
    discount_value: MoneyInput | None = None


class TransitionRequest(BaseModel):
    status: str


class CatalogSelection(BaseModel):
    item_id: str
    quantity: MoneyInput | None = 1


class AddFromCatalog(BaseModel):
    items: list[CatalogSelection]


class ClientDocumentOut(BaseModel):
    """What a customer sees in the portal."""
    id: str
    kind: str
    number: str | None
    status: str
    customer_ref: str
    items: list[LineItemOut]
    discount_type: str
    discount_value: Decimal
    currency: str
    issue_date: date
    apply_line_taxes: bool
    notes: str | None = None
    tags: str | None = None

    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal

    open_till: date | None = None
    client_email: str | None = None
    expiry_date: date | None = None
    reference: str | None = None
    invoice_ref: str | None = None
    due_date: date | None = None
    title: str | None = None
    assigned: str | None = None
    bill_to: str | None = None
    ship_to: str | None = None
    sales_agent: str | None = None
    recurring: str | None = None
    paid_amount: Decimal | None = None
    paid_date: date | None = None
    payment_mode: str | None = None
    balance_due: Decimal | None = None

    model_config = {"from_attributes": True}


class DocumentOut(ClientDocumentOut):
    admin_note: str | None = None
