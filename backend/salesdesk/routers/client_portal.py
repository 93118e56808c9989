"""Client portal router.

A client session sees only its own customer's documents, never a Draft,
and may answer proposals and estimates or pay its invoices.

Endpoints:
    GET  /invoices                       My invoices
    GET  /invoices/{id}                  One invoice
    GET  /proposals                      My proposals
    POST /proposals/{id}/respond         Accept or reject a Sent proposal
    GET  /estimates                      My estimates
    POST /estimates/{id}/respond         Approve or reject a Pending estimate
    GET  /payments                       My payments
    GET  /payments/stats                 My payment statistics
    POST /payments                       Pay an invoice
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.deps import require_permission, require_role
from salesdesk.database import get_db
from salesdesk.schemas.common import PaginatedResponse
from salesdesk.schemas.document import ClientDocumentOut, TransitionRequest
from salesdesk.schemas.payment import (
    ClientPaymentCreate,
    PaymentOut,
    PaymentRecorded,
    PaymentStats,
)
from salesdesk.services import documents as document_service
from salesdesk.services import payments as payment_service
from salesdesk.tenancy import SessionContext

router = APIRouter(dependencies=[Depends(require_role("client"))])


async def _my_documents(db, ctx, kind, status_filter, limit, offset):
    documents, total = await document_service.list_documents(
        db, ctx, kind, status=status_filter, limit=limit, offset=offset,
    )
    return PaginatedResponse[ClientDocumentOut](
        items=[ClientDocumentOut.model_validate(d) for d in documents],
        total=total,
        limit=limit,
        offset=offset,
    )


# ── Documents ────────────────────────────────────────────────

@router.get("/invoices", response_model=PaginatedResponse[ClientDocumentOut])
async def my_invoices(
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.read")),
):
    return await _my_documents(db, ctx, "invoice", status_filter, limit, offset)


@router.get("/invoices/{invoice_id}", response_model=ClientDocumentOut)
async def my_invoice(
    invoice_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.read")),
):
    return ClientDocumentOut.model_validate(
        await document_service.get_document(db, ctx, "invoice", invoice_id)
    )


@router.get("/proposals", response_model=PaginatedResponse[ClientDocumentOut])
async def my_proposals(
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.read")),
):
    return await _my_documents(db, ctx, "proposal", status_filter, limit, offset)


@router.post("/proposals/{proposal_id}/respond", response_model=ClientDocumentOut)
async def respond_to_proposal(
    proposal_id: str,
    body: TransitionRequest,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.respond")),
):
    return ClientDocumentOut.model_validate(
        await document_service.transition_document(
            db, ctx, "proposal", proposal_id, body.status,
        )
    )


@router.get("/estimates", response_model=PaginatedResponse[ClientDocumentOut])
async def my_estimates(
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.read")),
):
    return await _my_documents(db, ctx, "estimate", status_filter, limit, offset)


@router.post("/estimates/{estimate_id}/respond", response_model=ClientDocumentOut)
async def respond_to_estimate(
    estimate_id: str,
    body: TransitionRequest,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.respond")),
):
    return ClientDocumentOut.model_validate(
        await document_service.transition_document(
            db, ctx, "estimate", estimate_id, body.status,
        )
    )


# ── Payments ─────────────────────────────────────────────────

@router.get("/payments", response_model=list[PaymentOut])
async def my_payments(
    invoice_id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.read")),
):
    payments = await payment_service.list_payments(db, ctx, invoice_id=invoice_id)
    return [PaymentOut.model_validate(p) for p in payments]


@router.get("/payments/stats", response_model=PaymentStats)
async def my_payment_stats(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.read")),
):
    return await payment_service.payment_stats(db, ctx)


@router.post("/payments", response_model=PaymentRecorded, status_code=status.HTTP_201_CREATED)
async def pay_invoice(
    body: ClientPaymentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("portal.pay")),
):
    invoice, payment = await payment_service.record_payment(
        db, ctx,
        invoice_id=body.invoice_id,
        amount=body.amount,
        payment_date=body.payment_date,
        payment_mode=body.payment_mode,
        transaction_id=body.transaction_id,
        notes=body.notes,
    )
    return PaymentRecorded(
        invoice=ClientDocumentOut.model_validate(invoice),
        payment=PaymentOut.model_validate(payment),
    )
