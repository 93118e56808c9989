"""Payment ledger service.

Every change to what an invoice has collected goes through here: the
payment row and the invoice's paid_amount/status are written in the
same transaction.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.config import settings
from salesdesk.domain import ledger
from salesdesk.domain.documents import Invoice
from salesdesk.domain.ledger import Payment, ReconciliationReport
from salesdesk.middleware.exceptions import ResourceNotFoundError
from salesdesk.services import store
from salesdesk.tenancy import SessionContext

logger = logging.getLogger(__name__)


async def _load_invoice(db: AsyncSession, ctx: SessionContext, invoice_id: str) -> Invoice:
    invoice = await store.load_document(db, ctx.owner_id, invoice_id, "invoice")
    if ctx.is_client and (invoice.customer_ref != ctx.customer_ref or invoice.is_draft):
        raise ResourceNotFoundError("Invoice", invoice_id)
    return invoice


async def _load_payment(db: AsyncSession, ctx: SessionContext, payment_id: str) -> Payment:
    payment = await store.load_payment(db, ctx.owner_id, payment_id)
    if ctx.is_client and payment.customer_ref != ctx.customer_ref:
        raise ResourceNotFoundError("Payment", payment_id)
    return payment


async def _commit_pair(
    db: AsyncSession, invoice: Invoice, payment: Payment,
) -> tuple[Invoice, Payment]:
    await store.save_document(db, invoice)
    payment_id = await store.save_payment(db, payment)
    return (
        await store.load_document(db, invoice.owner_id, invoice.id, "invoice"),
        await store.load_payment(db, payment.owner_id, payment_id),
    )


# ── Recording & status changes ──────────────────────────────

async def record_payment(
    db: AsyncSession,
    ctx: SessionContext,
    invoice_id: str,
    amount,
    payment_date: date,
    payment_mode: str,
    transaction_id: str | None,
    notes: str | None = None,
    status: str = "Completed",
) -> tuple[Invoice, Payment]:
    invoice = await _load_invoice(db, ctx, invoice_id)
    updated, payment = ledger.record_payment(
        invoice, amount, payment_date, payment_mode, transaction_id,
        notes=notes, status=status,
    )
    invoice, payment = await _commit_pair(db, updated, payment)
    logger.info(
        f"Recorded {payment.status} payment {payment.number} of {payment.amount} "
        f"on {invoice.number} ({invoice.status})",
        extra={"owner_id": ctx.owner_id, "user_id": ctx.user_id},
    )
    return invoice, payment


async def complete_payment(
    db: AsyncSession, ctx: SessionContext, payment_id: str,
) -> tuple[Invoice, Payment]:
    payment = await _load_payment(db, ctx, payment_id)
    invoice = await _load_invoice(db, ctx, payment.invoice_id)
    updated, completed = ledger.complete_payment(invoice, payment)
    return await _commit_pair(db, updated, completed)


async def fail_payment(db: AsyncSession, ctx: SessionContext, payment_id: str) -> Payment:
    payment = ledger.fail_payment(await _load_payment(db, ctx, payment_id))
    await store.save_payment(db, payment)
    return payment


async def refund_payment(
    db: AsyncSession, ctx: SessionContext, payment_id: str,
) -> tuple[Invoice, Payment]:
    payment = await _load_payment(db, ctx, payment_id)
    invoice = await _load_invoice(db, ctx, payment.invoice_id)
    updated, refunded = ledger.refund_payment(invoice, payment)
    invoice, refunded = await _commit_pair(db, updated, refunded)
    logger.info(
        f"Refunded payment {refunded.number}; {invoice.number} now {invoice.status}",
        extra={"owner_id": ctx.owner_id, "user_id": ctx.user_id},
    )
    return invoice, refunded


async def remove_payment(db: AsyncSession, ctx: SessionContext, payment_id: str) -> Invoice:
    """Delete a payment and take it back off its invoice."""
    payment = await _load_payment(db, ctx, payment_id)
    invoice = await _load_invoice(db, ctx, payment.invoice_id)
    updated = ledger.remove_payment(invoice, payment)
    await store.save_document(db, updated)
    await store.delete_payment(db, ctx.owner_id, payment_id)
    return await store.load_document(db, ctx.owner_id, invoice.id, "invoice")


# ── Reads ───────────────────────────────────────────────────

async def list_payments(
    db: AsyncSession,
    ctx: SessionContext,
    invoice_id: str | None = None,
    status: str | None = None,
) -> list[Payment]:
    return await store.list_payments(
        db,
        ctx.owner_id,
        invoice_id=invoice_id,
        status=status,
        customer_ref=ctx.customer_ref if ctx.is_client else None,
    )


async def payment_stats(db: AsyncSession, ctx: SessionContext) -> dict:
    """Statistics over persisted payments, never over derived ones."""
    return ledger.stats(await list_payments(db, ctx))


async def derived_payments(db: AsyncSession, ctx: SessionContext) -> list[Payment]:
    invoices = await store.list_invoices(
        db, ctx.owner_id, customer_ref=ctx.customer_ref if ctx.is_client else None,
    )
    return ledger.derive_from_invoices(invoices)


async def reconcile_ledger(db: AsyncSession, owner_id: str) -> ReconciliationReport:
    invoices = await store.list_invoices(db, owner_id)
    payments = await store.list_payments(db, owner_id)
    return ledger.reconcile(
        invoices, payments, tolerance=Decimal(settings.amount_tolerance),
    )
