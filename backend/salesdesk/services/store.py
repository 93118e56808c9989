"""Persistence for catalog items, sales documents and payments.

Every function takes the owner it acts for and filters on it; nothing
here reads identity from request state.  Rows are converted to the
immutable domain objects in `salesdesk.domain` on the way out.

Documents are re-derived on both sides of the database:
  - save_document rejects a document whose totals do not match its items
  - load_document re-derives from the stored items and, if the stored
    totals disagree, flags the row with a ReconciliationAlert and raises
    ConsistencyError.  The row itself is never corrected.
"""

import logging
from dataclasses import replace
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.domain.catalog import CatalogItem
from salesdesk.domain.documents import DOCUMENT_CLASSES, Document, Invoice
from salesdesk.domain.ledger import Payment
from salesdesk.domain.line_items import LineItem
from salesdesk.domain.money import to_cents
from salesdesk.domain.totals import recompute, verify_totals
from salesdesk.middleware.exceptions import ConsistencyError, ResourceNotFoundError
from salesdesk.models.catalog_item import CatalogItem as CatalogItemRow
from salesdesk.models.payment import Payment as PaymentRow
from salesdesk.models.reconciliation_alert import ReconciliationAlert
from salesdesk.models.sales_document import SalesDocument
from salesdesk.utils.numbering import generate_number

logger = logging.getLogger(__name__)

_KIND_LABELS = {
    "proposal": "Proposal",
    "estimate": "Estimate",
    "credit_note": "Credit note",
    "invoice": "Invoice",
}

# Columns shared by every document kind, besides the derived amounts
_COMMON_COLUMNS = (
    "id", "owner_id", "number", "status", "customer_ref", "discount_type",
    "discount_value", "apply_line_taxes", "currency", "issue_date", "notes",
    "admin_note", "tags",
)
_KIND_COLUMNS = (
    "open_till", "client_email", "expiry_date", "reference", "invoice_ref",
    "due_date", "paid_amount", "paid_date", "payment_mode",
    "title", "assigned", "bill_to", "ship_to", "sales_agent", "recurring",
)


def kind_label(kind: str) -> str:
    return _KIND_LABELS.get(kind, "Document")


# ── Row ↔ domain conversion ─────────────────────────────────

def document_from_row(row: SalesDocument) -> Document:
    cls = DOCUMENT_CLASSES[row.kind]
    own_fields = set(cls.__dataclass_fields__)
    values = {name: getattr(row, name) for name in _COMMON_COLUMNS}
    values.update({
        name: getattr(row, name)
        for name in _KIND_COLUMNS
        if name in own_fields
    })
    if "paid_amount" in values and values["paid_amount"] is None:
        values["paid_amount"] = Decimal("0")
    if "recurring" in values and values["recurring"] is None:
        values["recurring"] = "No"
    if values["discount_value"] is None:
        values["discount_value"] = Decimal("0")
    values["items"] = tuple(LineItem.from_dict(data) for data in (row.items or []))
    return recompute(cls(**values))


def stored_totals(row: SalesDocument) -> dict:
    return {
        "subtotal": row.subtotal,
        "discount": row.discount,
        "tax": row.tax,
        "total": row.total,
    }


def _write_document(row: SalesDocument, document: Document) -> None:
    row.kind = document.kind
    for name in _COMMON_COLUMNS:
        setattr(row, name, getattr(document, name))
    for name in _KIND_COLUMNS:
        setattr(row, name, getattr(document, name, None))
    if isinstance(document, Invoice):
        row.paid_amount = to_cents(document.paid_amount)
    else:
        row.paid_amount = Decimal("0")
    row.items = [line.to_dict() for line in document.items]
    row.subtotal = to_cents(document.subtotal)
    row.discount = to_cents(document.discount)
    row.tax = to_cents(document.tax)
    row.total = to_cents(document.total)


def _catalog_item_from_row(row: CatalogItemRow) -> CatalogItem:
    return CatalogItem(
        id=row.id,
        owner_id=row.owner_id,
        description=row.description,
        long_description=row.long_description,
        rate=row.rate,
        tax1_rate=row.tax1_rate or Decimal("0"),
        tax2_rate=row.tax2_rate or Decimal("0"),
        unit=row.unit,
        group_name=row.group_name,
    )


def _payment_from_row(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        owner_id=row.owner_id,
        number=row.number,
        invoice_id=row.invoice_id,
        invoice_number=row.invoice_number,
        customer_ref=row.customer_ref,
        amount=row.amount,
        currency=row.currency,
        payment_date=row.payment_date,
        payment_mode=row.payment_mode,
        transaction_id=row.transaction_id,
        status=row.status,
        notes=row.notes,
    )


# ── Consistency flagging ────────────────────────────────────

def document_totals_alert(
    document: Document,
    error: ConsistencyError,
    run_id: str | None = None,
) -> ReconciliationAlert:
    """Build (unsaved) the alert for a document whose stored totals drifted."""
    stored, derived = error.mismatches.get("total") or next(iter(error.mismatches.values()))
    expected, actual = float(derived), float(stored)
    variance = actual - expected
    pct = round(abs(variance) / abs(expected) * 100, 2) if expected else (100.0 if actual else 0.0)
    label = kind_label(document.kind)
    return ReconciliationAlert(
        owner_id=document.owner_id,
        alert_type="document_totals",
        severity="critical",
        title=f"{label} {document.number}: stored totals ≠ line items",
        description=error.message,
        expected_value=expected,
        actual_value=actual,
        variance=variance,
        variance_pct=pct,
        unit=document.currency,
        entity_refs={
            "document_id": document.id,
            "kind": document.kind,
            "number": document.number,
            "mismatches": sorted(error.mismatches),
        },
        run_id=run_id,
    )


async def _has_open_alert(db: AsyncSession, owner_id: str, alert_type: str, entity_id: str) -> bool:
    result = await db.execute(
        select(ReconciliationAlert).where(
            ReconciliationAlert.owner_id == owner_id,
            ReconciliationAlert.alert_type == alert_type,
            ReconciliationAlert.status.in_(["open", "acknowledged"]),
            ReconciliationAlert.is_deleted == False,  # noqa: E712
        )
    )
    return any(
        (alert.entity_refs or {}).get("document_id") == entity_id
        for alert in result.scalars().all()
    )


async def flag_inconsistent_document(
    db: AsyncSession, document: Document, error: ConsistencyError,
) -> None:
    """Persist an alert for `document` and commit it, so it survives the
    rollback that follows the ConsistencyError."""
    logger.error(
        f"Inconsistent {document.kind} {document.number}: {error.message}",
        extra={"owner_id": document.owner_id, "document_id": document.id},
    )
    if not await _has_open_alert(db, document.owner_id, "document_totals", document.id):
        db.add(document_totals_alert(document, error))
    await db.commit()


# ── Documents ───────────────────────────────────────────────

async def _get_document_row(
    db: AsyncSession, owner_id: str, document_id: str, kind: str | None = None,
) -> SalesDocument:
    stmt = select(SalesDocument).where(
        SalesDocument.id == document_id,
        SalesDocument.owner_id == owner_id,
    )
    if kind:
        stmt = stmt.where(SalesDocument.kind == kind)
    result = await db.execute(stmt)
    row = result.scalar_one_or_none()
    if row is None:
        raise ResourceNotFoundError(kind_label(kind), document_id)
    return row


async def save_document(db: AsyncSession, document: Document) -> str:
    """Insert or update `document`; returns its id.

    Raises ConsistencyError when the document's totals are not what its
    items and discount produce.  A missing number is generated.
    """
    verify_totals(document, {
        "subtotal": document.subtotal,
        "discount": document.discount,
        "tax": document.tax,
        "total": document.total,
    })

    result = await db.execute(
        select(SalesDocument).where(SalesDocument.id == document.id)
    )
    row = result.scalar_one_or_none()
    if row is not None and (
        row.owner_id != document.owner_id or row.kind != document.kind
    ):
        raise ResourceNotFoundError(kind_label(document.kind), document.id)

    # Number first: the sequence query would autoflush a half-built row
    if not document.number:
        number = await generate_number(db, document.owner_id, document.kind)
        document = replace(document, number=number)

    if row is None:
        row = SalesDocument(id=document.id)
        db.add(row)
    _write_document(row, document)
    await db.flush()
    return row.id


async def load_document(
    db: AsyncSession, owner_id: str, document_id: str, kind: str | None = None,
) -> Document:
    row = await _get_document_row(db, owner_id, document_id, kind)
    document = document_from_row(row)
    try:
        verify_totals(document, stored_totals(row))
    except ConsistencyError as exc:
        await flag_inconsistent_document(db, document, exc)
        raise
    return document


async def list_documents(
    db: AsyncSession,
    owner_id: str,
    kind: str | None = None,
    status: str | None = None,
    customer_ref: str | None = None,
    search: str | None = None,
    exclude_draft: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Document], int]:
    """Return one page of documents plus the total matching count.

    Totals on the returned documents are re-derived from their items.
    """
    stmt = select(SalesDocument).where(SalesDocument.owner_id == owner_id)
    if kind:
        stmt = stmt.where(SalesDocument.kind == kind)
    if status:
        stmt = stmt.where(SalesDocument.status == status)
    if exclude_draft:
        stmt = stmt.where(SalesDocument.status != "Draft")
    if customer_ref:
        stmt = stmt.where(SalesDocument.customer_ref == customer_ref)
    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(
            SalesDocument.number.ilike(like),
            SalesDocument.customer_ref.ilike(like),
        ))

    count_result = await db.execute(
        select(func.count()).select_from(stmt.subquery())
    )
    total = count_result.scalar() or 0

    result = await db.execute(
        stmt.order_by(SalesDocument.created_at.desc(), SalesDocument.number.desc())
        .limit(limit)
        .offset(offset)
    )
    return [document_from_row(row) for row in result.scalars().all()], total


async def list_document_rows(
    db: AsyncSession, owner_id: str, kind: str | None = None,
) -> list[SalesDocument]:
    """Raw rows, for checks that compare stored values with derived ones."""
    stmt = select(SalesDocument).where(SalesDocument.owner_id == owner_id)
    if kind:
        stmt = stmt.where(SalesDocument.kind == kind)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def delete_document(
    db: AsyncSession, owner_id: str, document_id: str, kind: str | None = None,
) -> None:
    row = await _get_document_row(db, owner_id, document_id, kind)
    if row.kind == "invoice":
        payments = await db.execute(
            select(PaymentRow).where(PaymentRow.invoice_id == row.id)
        )
        for payment in payments.scalars().all():
            await db.delete(payment)
    await db.delete(row)
    await db.flush()


async def list_invoices(
    db: AsyncSession,
    owner_id: str,
    status: str | None = None,
    customer_ref: str | None = None,
) -> list[Invoice]:
    stmt = select(SalesDocument).where(
        SalesDocument.owner_id == owner_id,
        SalesDocument.kind == "invoice",
    )
    if status:
        stmt = stmt.where(SalesDocument.status == status)
    if customer_ref:
        stmt = stmt.where(SalesDocument.customer_ref == customer_ref)
    result = await db.execute(stmt.order_by(SalesDocument.number))
    return [document_from_row(row) for row in result.scalars().all()]


# ── Catalog ─────────────────────────────────────────────────

async def save_catalog_item(db: AsyncSession, item: CatalogItem) -> str:
    result = await db.execute(
        select(CatalogItemRow).where(CatalogItemRow.id == item.id)
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = CatalogItemRow(id=item.id, owner_id=item.owner_id)
        db.add(row)
    elif row.owner_id != item.owner_id:
        raise ResourceNotFoundError("Item", item.id)

    row.description = item.description
    row.long_description = item.long_description
    row.rate = item.rate
    row.tax1_rate = item.tax1_rate
    row.tax2_rate = item.tax2_rate
    row.unit = item.unit
    row.group_name = item.group_name
    await db.flush()
    return row.id


async def load_catalog_item(db: AsyncSession, owner_id: str, item_id: str) -> CatalogItem:
    result = await db.execute(
        select(CatalogItemRow).where(
            CatalogItemRow.id == item_id,
            CatalogItemRow.owner_id == owner_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise ResourceNotFoundError("Item", item_id)
    return _catalog_item_from_row(row)


async def get_catalog_items(
    db: AsyncSession, owner_id: str, ids: list[str],
) -> list[CatalogItem]:
    result = await db.execute(
        select(CatalogItemRow).where(
            CatalogItemRow.id.in_(list(ids)),
            CatalogItemRow.owner_id == owner_id,
        )
    )
    return [_catalog_item_from_row(row) for row in result.scalars().all()]


async def list_catalog_items(
    db: AsyncSession,
    owner_id: str,
    search: str | None = None,
    group: str | None = None,
) -> list[CatalogItem]:
    stmt = select(CatalogItemRow).where(CatalogItemRow.owner_id == owner_id)
    if group:
        stmt = stmt.where(func.lower(CatalogItemRow.group_name) == group.lower())
    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(
            CatalogItemRow.description.ilike(like),
            CatalogItemRow.long_description.ilike(like),
            CatalogItemRow.group_name.ilike(like),
        ))
    result = await db.execute(
        stmt.order_by(CatalogItemRow.created_at.desc(), CatalogItemRow.description)
    )
    return [_catalog_item_from_row(row) for row in result.scalars().all()]


async def delete_catalog_items(
    db: AsyncSession, owner_id: str, ids: list[str],
) -> tuple[list[str], list[str]]:
    """Delete the owner's items among `ids`.

    Returns (deleted, skipped).  Ids that do not exist or belong to
    another owner are skipped, not errors.
    """
    unique_ids = list(dict.fromkeys(ids))
    result = await db.execute(
        select(CatalogItemRow).where(
            CatalogItemRow.id.in_(unique_ids),
            CatalogItemRow.owner_id == owner_id,
        )
    )
    rows = {row.id: row for row in result.scalars().all()}
    deleted, skipped = [], []
    for item_id in unique_ids:
        row = rows.get(item_id)
        if row is None:
            skipped.append(item_id)
            continue
        await db.delete(row)
        deleted.append(item_id)
    await db.flush()
    return deleted, skipped


# ── Payments ────────────────────────────────────────────────

async def save_payment(db: AsyncSession, payment: Payment) -> str:
    """Insert or update `payment`; a missing number is generated."""
    result = await db.execute(select(PaymentRow).where(PaymentRow.id == payment.id))
    row = result.scalar_one_or_none()
    if row is None:
        number = payment.number or await generate_number(db, payment.owner_id, "payment")
        row = PaymentRow(id=payment.id, owner_id=payment.owner_id, number=number)
        db.add(row)
    elif row.owner_id != payment.owner_id:
        raise ResourceNotFoundError("Payment", payment.id)

    row.invoice_id = payment.invoice_id
    row.invoice_number = payment.invoice_number
    row.customer_ref = payment.customer_ref
    row.amount = to_cents(payment.amount)
    row.currency = payment.currency
    row.payment_date = payment.payment_date
    row.payment_mode = payment.payment_mode
    row.transaction_id = payment.transaction_id
    row.status = payment.status
    row.notes = payment.notes
    await db.flush()
    return row.id


async def load_payment(db: AsyncSession, owner_id: str, payment_id: str) -> Payment:
    result = await db.execute(
        select(PaymentRow).where(
            PaymentRow.id == payment_id,
            PaymentRow.owner_id == owner_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise ResourceNotFoundError("Payment", payment_id)
    return _payment_from_row(row)


async def list_payments(
    db: AsyncSession,
    owner_id: str,
    invoice_id: str | None = None,
    status: str | None = None,
    customer_ref: str | None = None,
) -> list[Payment]:
    stmt = select(PaymentRow).where(PaymentRow.owner_id == owner_id)
    if invoice_id:
        stmt = stmt.where(PaymentRow.invoice_id == invoice_id)
    if status:
        stmt = stmt.where(PaymentRow.status == status)
    if customer_ref:
        stmt = stmt.where(PaymentRow.customer_ref == customer_ref)
    result = await db.execute(
        stmt.order_by(PaymentRow.payment_date.desc(), PaymentRow.number.desc())
    )
    return [_payment_from_row(row) for row in result.scalars().all()]


async def delete_payment(db: AsyncSession, owner_id: str, payment_id: str) -> None:
    result = await db.execute(
        select(PaymentRow).where(
            PaymentRow.id == payment_id,
            PaymentRow.owner_id == owner_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise ResourceNotFoundError("Payment", payment_id)
    await db.delete(row)
    await db.flush()
