"""Payment ledger router.

Endpoints:
    GET    /                         List persisted payments
    POST   /                         Record a payment against an invoice
    GET    /stats                    Counts and sums by status
    GET    /derived                  Payments implied by invoice statuses
    GET    /{payment_id}             Fetch one payment
    POST   /{payment_id}/complete    Pending → Completed (updates the invoice)
    POST   /{payment_id}/fail        Pending → Failed
    POST   /{payment_id}/refund      Completed → Refunded (updates the invoice)
    DELETE /{payment_id}             Remove a payment (updates the invoice)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.deps import require_permission
from salesdesk.database import get_db
from salesdesk.schemas.document import DocumentOut
from salesdesk.schemas.payment import (
    PaymentCreate,
    PaymentOut,
    PaymentRecorded,
    PaymentStats,
)
from salesdesk.services import payments as payment_service
from salesdesk.services.store import load_payment
from salesdesk.tenancy import SessionContext

router = APIRouter()


def recorded_out(invoice, payment=None) -> PaymentRecorded:
    return PaymentRecorded(
        invoice=DocumentOut.model_validate(invoice),
        payment=PaymentOut.model_validate(payment) if payment is not None else None,
    )


@router.get("/", response_model=list[PaymentOut])
async def list_payments(
    invoice_id: str | None = Query(None),
    payment_status: str | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.read")),
):
    payments = await payment_service.list_payments(
        db, ctx, invoice_id=invoice_id, status=payment_status,
    )
    return [PaymentOut.model_validate(p) for p in payments]


@router.post("/", response_model=PaymentRecorded, status_code=status.HTTP_201_CREATED)
async def record_payment(
    body: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.write")),
):
    invoice, payment = await payment_service.record_payment(
        db, ctx,
        invoice_id=body.invoice_id,
        amount=body.amount,
        payment_date=body.payment_date,
        payment_mode=body.payment_mode,
        transaction_id=body.transaction_id,
        notes=body.notes,
        status=body.status,
    )
    return recorded_out(invoice, payment)


@router.get("/stats", response_model=PaymentStats)
async def payment_stats(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.read")),
):
    return await payment_service.payment_stats(db, ctx)


@router.get("/derived", response_model=list[PaymentOut])
async def derived_payments(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.read")),
):
    payments = await payment_service.derived_payments(db, ctx)
    return [PaymentOut.model_validate(p) for p in payments]


@router.get("/{payment_id}", response_model=PaymentOut)
async def get_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.read")),
):
    return PaymentOut.model_validate(await load_payment(db, ctx.owner_id, payment_id))


@router.post("/{payment_id}/complete", response_model=PaymentRecorded)
async def complete_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.write")),
):
    invoice, payment = await payment_service.complete_payment(db, ctx, payment_id)
    return recorded_out(invoice, payment)


@router.post("/{payment_id}/fail", response_model=PaymentOut)
async def fail_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.write")),
):
    return PaymentOut.model_validate(
        await payment_service.fail_payment(db, ctx, payment_id)
    )


@router.post("/{payment_id}/refund", response_model=PaymentRecorded)
async def refund_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.refund")),
):
    invoice, payment = await payment_service.refund_payment(db, ctx, payment_id)
    return recorded_out(invoice, payment)


@router.delete("/{payment_id}", response_model=PaymentRecorded)
async def remove_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("payments.refund")),
):
    invoice = await payment_service.remove_payment(db, ctx, payment_id)
    return recorded_out(invoice)
