"""Sales document routers.

One router per document kind, all built by `build_router`:

    GET    /                              List (paginated, status/search filters)
    POST   /                              Create a Draft
    GET    /{document_id}                 Fetch one document
    PATCH  /{document_id}                 Edit a Draft (items, discount, header)
    POST   /{document_id}/items/from-catalog  Clone catalog items in as lines
    POST   /{document_id}/transition      Move to another status
    DELETE /{document_id}                 Delete

Invoices additionally expose ``POST /mark-overdue``.
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.deps import require_permission
from salesdesk.database import get_db
from salesdesk.schemas.common import PaginatedResponse
from salesdesk.schemas.document import (
    AddFromCatalog,
    DocumentCreate,
    DocumentOut,
    DocumentUpdate,
    TransitionRequest,
)
from salesdesk.services import documents as document_service
from salesdesk.tenancy import SessionContext


def document_out(document) -> DocumentOut:
    return DocumentOut.model_validate(document)


def build_router(kind: str) -> APIRouter:
    router = APIRouter()

    @router.get("/", response_model=PaginatedResponse[DocumentOut])
    async def list_documents(
        status_filter: str | None = Query(None, alias="status"),
        search: str | None = Query(None, description="Match number or customer"),
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        db: AsyncSession = Depends(get_db),
        ctx: SessionContext = Depends(require_permission("documents.read")),
    ):
        documents, total = await document_service.list_documents(
            db, ctx, kind, status=status_filter, search=search,
            limit=limit, offset=offset,
        )
        return PaginatedResponse[DocumentOut](
            items=[document_out(d) for d in documents],
            total=total,
            limit=limit,
            offset=offset,
        )

    @router.post("/", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
    async def create_document(
        body: DocumentCreate,
        db: AsyncSession = Depends(get_db),
        ctx: SessionContext = Depends(require_permission("documents.write")),
    ):
        header = body.model_dump(exclude_none=True)
        customer_ref = header.pop("customer_ref")
        items = header.pop("items", [])
        discount_type = header.pop("discount_type", "percent")
        discount_value = header.pop("discount_value", 0)
        document = await document_service.create_document(
            db, ctx, kind, customer_ref,
            items=items,
            discount_type=discount_type,
            discount_value=discount_value,
            **header,
        )
        return document_out(document)

    if kind == "invoice":
        @router.post("/mark-overdue", response_model=list[DocumentOut])
        async def mark_overdue(
            db: AsyncSession = Depends(get_db),
            ctx: SessionContext = Depends(require_permission("documents.write")),
        ):
            updated = await document_service.mark_overdue_invoices(db, ctx.owner_id)
            return [document_out(d) for d in updated]

    @router.get("/{document_id}", response_model=DocumentOut)
    async def get_document(
        document_id: str,
        db: AsyncSession = Depends(get_db),
        ctx: SessionContext = Depends(require_permission("documents.read")),
    ):
        return document_out(
            await document_service.get_document(db, ctx, kind, document_id)
        )

    @router.patch("/{document_id}", response_model=DocumentOut)
    async def update_document(
        document_id: str,
        body: DocumentUpdate,
        db: AsyncSession = Depends(get_db),
        ctx: SessionContext = Depends(require_permission("documents.write")),
    ):
        changes = body.model_dump(exclude_unset=True)
        if "items" in changes and changes["items"] is not None:
            changes["items"] = [
                {k: v for k, v in line.items() if v is not None}
                for line in changes["items"]
            ]
        document = await document_service.update_document(
            db, ctx, kind, document_id, changes,
        )
        return document_out(document)

    @router.post("/{document_id}/items/from-catalog", response_model=DocumentOut)
    async def add_from_catalog(
        document_id: str,
        body: AddFromCatalog,
        db: AsyncSession = Depends(get_db),
        ctx: SessionContext = Depends(require_permission("documents.write")),
    ):
        document = await document_service.add_catalog_items(
            db, ctx, kind, document_id,
            [s.model_dump(exclude_none=True) for s in body.items],
        )
        return document_out(document)

    @router.post("/{document_id}/transition", response_model=DocumentOut)
    async def transition_document(
        document_id: str,
        body: TransitionRequest,
        db: AsyncSession = Depends(get_db),
        ctx: SessionContext = Depends(require_permission("documents.write")),
    ):
        document = await document_service.transition_document(
            db, ctx, kind, document_id, body.status,
        )
        return document_out(document)

    @router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_document(
        document_id: str,
        db: AsyncSession = Depends(get_db),
        ctx: SessionContext = Depends(require_permission("documents.delete")),
    ):
        await document_service.delete_document(db, ctx, kind, document_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


proposals = build_router("proposal")
estimates = build_router("estimate")
credit_notes = build_router("credit_note")
invoices = build_router("invoice")
