"""Sales document service.

Loads documents through the store, applies domain operations as the
caller's SessionContext allows, and saves the result.  Client callers
only ever see their own customer's non-draft documents.
"""

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.permissions import can_delete
from salesdesk.config import settings
from salesdesk.domain import documents as docs
from salesdesk.domain import line_items
from salesdesk.domain.documents import Document, Invoice
from salesdesk.domain.lifecycle import mark_overdue, transition
from salesdesk.middleware.exceptions import (
    InvalidStateError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from salesdesk.services import store
from salesdesk.tenancy import SessionContext

logger = logging.getLogger(__name__)


def _require_staff(ctx: SessionContext) -> None:
    if ctx.is_client:
        raise PermissionDeniedError("Clients cannot edit sales documents")


def _check_visible(ctx: SessionContext, document: Document) -> None:
    if ctx.is_client and (
        document.customer_ref != ctx.customer_ref or document.is_draft
    ):
        raise ResourceNotFoundError(store.kind_label(document.kind), document.id)


async def _save_and_reload(db: AsyncSession, document: Document) -> Document:
    document_id = await store.save_document(db, document)
    return await store.load_document(db, document.owner_id, document_id, document.kind)


async def _check_invoice_ref(db: AsyncSession, ctx: SessionContext, header: dict) -> None:
    invoice_ref = header.get("invoice_ref")
    if invoice_ref:
        await store.load_document(db, ctx.owner_id, invoice_ref, "invoice")


# ── Reads ───────────────────────────────────────────────────

async def get_document(
    db: AsyncSession, ctx: SessionContext, kind: str, document_id: str,
) -> Document:
    document = await store.load_document(db, ctx.owner_id, document_id, kind)
    _check_visible(ctx, document)
    return document


async def list_documents(
    db: AsyncSession,
    ctx: SessionContext,
    kind: str,
    status: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Document], int]:
    return await store.list_documents(
        db,
        ctx.owner_id,
        kind=kind,
        status=status,
        customer_ref=ctx.customer_ref if ctx.is_client else None,
        exclude_draft=ctx.is_client,
        search=search,
        limit=limit,
        offset=offset,
    )


# ── Draft editing ───────────────────────────────────────────

async def create_document(
    db: AsyncSession,
    ctx: SessionContext,
    kind: str,
    customer_ref: str,
    items: list | None = None,
    discount_type: str = "percent",
    discount_value=0,
    **header,
) -> Document:
    """Create a Draft.  Totals come from `items`; callers cannot set them."""
    _require_staff(ctx)
    header.setdefault("currency", settings.default_currency)
    header.setdefault("apply_line_taxes", settings.apply_line_taxes)
    await _check_invoice_ref(db, ctx, header)

    document = docs.new_document(
        kind,
        ctx.owner_id,
        customer_ref,
        items=items or (),
        discount_type=discount_type,
        discount_value=discount_value,
        **header,
    )
    saved = await _save_and_reload(db, document)
    logger.info(f"Created {kind} {saved.number} for {saved.customer_ref}")
    return saved


async def update_document(
    db: AsyncSession,
    ctx: SessionContext,
    kind: str,
    document_id: str,
    changes: dict,
) -> Document:
    """Apply a Draft edit: replace items, change discount and/or header fields."""
    _require_staff(ctx)
    document = await store.load_document(db, ctx.owner_id, document_id, kind)
    changes = dict(changes)

    items = changes.pop("items", None)
    discount_type = changes.pop("discount_type", None)
    discount_value = changes.pop("discount_value", None)

    if items is not None:
        document = docs.set_items(document, items)
    if discount_type is not None or discount_value is not None:
        document = docs.set_discount(
            document,
            discount_type or document.discount_type,
            discount_value if discount_value is not None else document.discount_value,
        )
    if changes:
        await _check_invoice_ref(db, ctx, changes)
        document = docs.set_header(document, **changes)

    return await _save_and_reload(db, document)


async def add_catalog_items(
    db: AsyncSession,
    ctx: SessionContext,
    kind: str,
    document_id: str,
    selections: list[dict],
) -> Document:
    """Clone catalog entries into a Draft as new lines.

    `selections` is ``[{"item_id": ..., "quantity": ...}, ...]``.
    """
    _require_staff(ctx)
    document = await store.load_document(db, ctx.owner_id, document_id, kind)
    for selection in selections:
        item_id = selection.get("item_id")
        if not item_id:
            raise ValidationError("item_id", "is required")
        item = await store.load_catalog_item(db, ctx.owner_id, item_id)
        line = line_items.from_catalog(item, selection.get("quantity", 1))
        document = docs.add_item(document, line)
    return await _save_and_reload(db, document)


# ── Lifecycle ───────────────────────────────────────────────

async def transition_document(
    db: AsyncSession,
    ctx: SessionContext,
    kind: str,
    document_id: str,
    to_state: str,
) -> Document:
    document = await store.load_document(db, ctx.owner_id, document_id, kind)
    _check_visible(ctx, document)
    moved = transition(document, to_state, role=ctx.role)
    saved = await _save_and_reload(db, moved)
    logger.info(
        f"{store.kind_label(kind)} {saved.number}: {document.status} → {saved.status}",
        extra={"owner_id": ctx.owner_id, "user_id": ctx.user_id},
    )
    return saved


async def delete_document(
    db: AsyncSession, ctx: SessionContext, kind: str, document_id: str,
) -> None:
    """Delete a document.  Catalog items it was built from are untouched."""
    document = await store.load_document(db, ctx.owner_id, document_id, kind)
    _check_visible(ctx, document)
    if not can_delete(ctx.role, document):
        raise PermissionDeniedError(
            f"Role {ctx.role} may not delete a {document.status} {kind}"
        )
    if isinstance(document, Invoice):
        completed = await store.list_payments(
            db, ctx.owner_id, invoice_id=document.id, status="Completed",
        )
        if completed:
            raise InvalidStateError(
                document.status, "delete",
                reason="invoice has completed payments; refund or remove them first",
            )
    await store.delete_document(db, ctx.owner_id, document_id, kind)
    logger.info(f"Deleted {kind} {document.number}", extra={"owner_id": ctx.owner_id})


async def mark_overdue_invoices(
    db: AsyncSession, owner_id: str, today: date | None = None,
) -> list[Invoice]:
    """Move every past-due Unpaid / Partiallypaid invoice to Overdue."""
    today = today or date.today()
    updated: list[Invoice] = []
    for status in ("Unpaid", "Partiallypaid"):
        for invoice in await store.list_invoices(db, owner_id, status=status):
            overdue = mark_overdue(invoice, today)
            if overdue is not invoice:
                await store.save_document(db, overdue)
                updated.append(overdue)
    if updated:
        logger.info(f"Marked {len(updated)} invoice(s) overdue for {owner_id}")
    return updated
