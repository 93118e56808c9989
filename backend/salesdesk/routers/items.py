"""Item catalog router.

Endpoints:
    GET    /               List the owner's items (search, group filters)
    POST   /               Create an item
    PATCH  /{item_id}      Edit an item
    DELETE /{item_id}      Delete one item
    POST   /bulk-import    Import rows (JSON); bad rows are reported, not fatal
    POST   /upload         Import rows from a CSV upload
    GET    /template       Download the CSV import template
    POST   /bulk-delete    Delete many items; unknown ids are reported as skipped
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.deps import require_permission
from salesdesk.database import get_db
from salesdesk.middleware.exceptions import ResourceNotFoundError
from salesdesk.schemas.catalog import (
    BulkDeleteRequest,
    BulkDeleteResult,
    BulkImportRequest,
    BulkImportResult,
    CatalogItemCreate,
    CatalogItemOut,
    CatalogItemUpdate,
    RejectedRowOut,
)
from salesdesk.services import catalog as catalog_service
from salesdesk.tenancy import SessionContext

router = APIRouter()


def _import_result(result: catalog_service.ImportResult) -> BulkImportResult:
    return BulkImportResult(
        imported=[CatalogItemOut.model_validate(i) for i in result.imported],
        rejected=[RejectedRowOut.model_validate(r) for r in result.rejected],
    )


@router.get("/", response_model=list[CatalogItemOut])
async def list_items(
    search: str | None = Query(None, description="Match description or group"),
    group: str | None = Query(None, description="Exact group name"),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("items.read")),
):
    items = await catalog_service.list_items(db, ctx, search=search, group=group)
    return [CatalogItemOut.model_validate(i) for i in items]


@router.post("/", response_model=CatalogItemOut, status_code=status.HTTP_201_CREATED)
async def create_item(
    body: CatalogItemCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("items.write")),
):
    item = await catalog_service.create_item(db, ctx, body.model_dump())
    return CatalogItemOut.model_validate(item)


@router.get("/template", response_class=PlainTextResponse)
async def download_template(
    _ctx: SessionContext = Depends(require_permission("items.read")),
):
    return PlainTextResponse(
        catalog_service.template_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="items_template.csv"'},
    )


@router.post("/bulk-import", response_model=BulkImportResult)
async def bulk_import(
    body: BulkImportRequest,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("items.write")),
):
    result = await catalog_service.bulk_import(db, ctx, body.rows)
    return _import_result(result)


@router.post("/upload", response_model=BulkImportResult)
async def upload_csv(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("items.write")),
):
    result = await catalog_service.import_csv(db, ctx, file)
    return _import_result(result)


@router.post("/bulk-delete", response_model=BulkDeleteResult)
async def bulk_delete(
    body: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("items.delete")),
):
    result = await catalog_service.bulk_delete(db, ctx, body.ids)
    return BulkDeleteResult(deleted=result.deleted, skipped=result.skipped)


@router.patch("/{item_id}", response_model=CatalogItemOut)
async def update_item(
    item_id: str,
    body: CatalogItemUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("items.write")),
):
    item = await catalog_service.update_item(
        db, ctx, item_id, body.model_dump(exclude_unset=True),
    )
    return CatalogItemOut.model_validate(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("items.delete")),
):
    result = await catalog_service.bulk_delete(db, ctx, [item_id])
    if not result.deleted:
        raise ResourceNotFoundError("Item", item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
