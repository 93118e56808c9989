"""Sales documents: Proposal, Estimate, CreditNote, Invoice.

Documents are immutable values.  Every mutator returns a new document
with totals re-derived, and refuses to run once the document has left
Draft.  Status changes go through `salesdesk.domain.lifecycle`.
"""

import uuid
from dataclasses import dataclass, field, fields as dc_fields, replace
from datetime import date
from decimal import Decimal
from typing import ClassVar

from salesdesk.domain import line_items
from salesdesk.domain.line_items import LineItem
from salesdesk.domain.money import ZERO, parse_money
from salesdesk.domain.totals import DISCOUNT_TYPES, PERCENT, recompute
from salesdesk.middleware.exceptions import InvalidStateError, ValidationError

DRAFT = "Draft"


@dataclass(frozen=True)
class Document:
    kind: ClassVar[str] = "document"
    number_prefix: ClassVar[str] = "DOC"

    owner_id: str
    customer_ref: str
    items: tuple[LineItem, ...] = ()
    discount_type: str = PERCENT
    discount_value: Decimal = ZERO
    currency: str = "USD"
    issue_date: date = field(default_factory=date.today)
    status: str = DRAFT
    apply_line_taxes: bool = False
    notes: str | None = None
    admin_note: str | None = None
    tags: str | None = None
    number: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Derived; always overwritten by totals.recompute
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    total: Decimal = ZERO

    @property
    def is_draft(self) -> bool:
        return self.status == DRAFT


@dataclass(frozen=True)
class Proposal(Document):
    kind: ClassVar[str] = "proposal"
    number_prefix: ClassVar[str] = "PRO"

    title: str | None = None
    open_till: date | None = None
    client_email: str | None = None
    assigned: str | None = None


@dataclass(frozen=True)
class Estimate(Document):
    kind: ClassVar[str] = "estimate"
    number_prefix: ClassVar[str] = "EST"

    expiry_date: date | None = None
    reference: str | None = None
    bill_to: str | None = None
    ship_to: str | None = None
    sales_agent: str | None = None


@dataclass(frozen=True)
class CreditNote(Document):
    kind: ClassVar[str] = "credit_note"
    number_prefix: ClassVar[str] = "CN"

    reference: str | None = None
    # Invoice this credit note offsets, if any
    invoice_ref: str | None = None
    bill_to: str | None = None
    ship_to: str | None = None


@dataclass(frozen=True)
class Invoice(Document):
    kind: ClassVar[str] = "invoice"
    number_prefix: ClassVar[str] = "INV"

    due_date: date | None = None
    bill_to: str | None = None
    ship_to: str | None = None
    sales_agent: str | None = None
    recurring: str = "No"
    # Maintained by the payment ledger only
    paid_amount: Decimal = ZERO
    paid_date: date | None = None
    payment_mode: str | None = None

    @property
    def balance_due(self) -> Decimal:
        return max(self.total - self.paid_amount, ZERO)


DOCUMENT_CLASSES: dict[str, type[Document]] = {
    cls.kind: cls for cls in (Proposal, Estimate, CreditNote, Invoice)
}

# Header fields a caller may set; everything else is derived or ledger-owned
_LOCKED_FIELDS = frozenset({
    "id", "owner_id", "items", "discount_type", "discount_value", "status",
    "number", "subtotal", "discount", "tax", "total",
    "paid_amount", "paid_date", "payment_mode",
})


# Header fields that always hold a value; they may be omitted but never cleared
REQUIRED_HEADER_FIELDS = frozenset({"currency", "issue_date", "apply_line_taxes", "recurring"})

RECURRING_OPTIONS = ("No", "Every one month", "Custom")


def header_fields(cls: type[Document]) -> set[str]:
    return {f.name for f in dc_fields(cls) if f.name not in _LOCKED_FIELDS}


def _check_header_values(changes: dict) -> None:
    for name in sorted(REQUIRED_HEADER_FIELDS & set(changes)):
        value = changes[name]
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(name, "is required")
    if "recurring" in changes and changes["recurring"] not in RECURRING_OPTIONS:
        raise ValidationError(
            "recurring", f"must be one of {', '.join(RECURRING_OPTIONS)}", changes["recurring"],
        )


def _require_draft(document: Document, action: str) -> None:
    if not document.is_draft:
        raise InvalidStateError(
            document.status, action,
            reason=f"{document.kind} financial fields are frozen outside {DRAFT}",
        )


def _check_discount(discount_type: str, value) -> tuple[str, Decimal]:
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(
            "discount_type", f"must be one of {', '.join(DISCOUNT_TYPES)}", discount_type,
        )
    amount = parse_money(ZERO if value in (None, "") else value, "discount_value")
    if amount < ZERO:
        raise ValidationError("discount_value", "must be >= 0", value)
    return discount_type, amount


# ── Construction ────────────────────────────────────────────

def new_document(
    kind: str,
    owner_id: str,
    customer_ref: str,
    items=(),
    discount_type: str = PERCENT,
    discount_value=ZERO,
    **header,
) -> Document:
    """Create a Draft document of `kind` with totals derived from `items`.

    `items` may hold LineItem objects or plain dicts (ad-hoc lines).
    """
    cls = DOCUMENT_CLASSES.get(kind)
    if cls is None:
        raise ValidationError("kind", f"must be one of {', '.join(DOCUMENT_CLASSES)}", kind)
    if not customer_ref or not str(customer_ref).strip():
        raise ValidationError("customer_ref", "is required")

    unknown = set(header) - header_fields(cls)
    if unknown:
        raise ValidationError(sorted(unknown)[0], f"is not a {kind} field")
    _check_header_values(header)

    discount_type, discount_value = _check_discount(discount_type, discount_value)
    lines = tuple(
        line if isinstance(line, LineItem) else line_items.custom(line)
        for line in items
    )
    document = cls(
        owner_id=owner_id,
        customer_ref=str(customer_ref).strip(),
        items=lines,
        discount_type=discount_type,
        discount_value=discount_value,
        **header,
    )
    return recompute(document)


# ── Draft mutators ──────────────────────────────────────────

def add_item(document: Document, line: LineItem) -> Document:
    _require_draft(document, "add_item")
    return recompute(replace(document, items=document.items + (line,)))


def set_items(document: Document, lines) -> Document:
    _require_draft(document, "set_items")
    new_lines = tuple(
        line if isinstance(line, LineItem) else line_items.custom(line)
        for line in lines
    )
    return recompute(replace(document, items=new_lines))


def _check_position(document: Document, index: int) -> None:
    if not 0 <= index < len(document.items):
        raise ValidationError("items", f"no line at position {index}")


def remove_item(document: Document, index: int) -> Document:
    _require_draft(document, "remove_item")
    _check_position(document, index)
    lines = document.items[:index] + document.items[index + 1:]
    return recompute(replace(document, items=lines))


def update_item(document: Document, index: int, field_name: str, value) -> Document:
    _require_draft(document, "update_item")
    _check_position(document, index)
    changed = line_items.update(document.items[index], field_name, value)
    lines = document.items[:index] + (changed,) + document.items[index + 1:]
    return recompute(replace(document, items=lines))


def set_discount(document: Document, discount_type: str, value) -> Document:
    _require_draft(document, "set_discount")
    discount_type, amount = _check_discount(discount_type, value)
    return recompute(
        replace(document, discount_type=discount_type, discount_value=amount)
    )


def set_header(document: Document, **changes) -> Document:
    """Edit non-financial header fields (dates, customer, notes...)."""
    _require_draft(document, "edit")
    allowed = header_fields(type(document))
    for name in changes:
        if name not in allowed:
            raise ValidationError(name, f"is not an editable {document.kind} field")
    if "customer_ref" in changes and not str(changes["customer_ref"] or "").strip():
        raise ValidationError("customer_ref", "is required")
    _check_header_values(changes)
    return recompute(replace(document, **changes))
