"""Item catalog service: owner-scoped CRUD and bulk import/delete."""

import logging
from dataclasses import dataclass, field

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.permissions import can_delete
from salesdesk.domain import catalog
from salesdesk.domain.catalog import CatalogItem, RejectedRow
from salesdesk.middleware.exceptions import PermissionDeniedError
from salesdesk.services import store
from salesdesk.tenancy import SessionContext
from salesdesk.utils.csv_import import FieldDef, generate_template_csv, read_csv

logger = logging.getLogger(__name__)

TEMPLATE_FIELDS = [
    FieldDef("Description", "description", required=True),
    FieldDef("Long Description", "long_description"),
    FieldDef("Rate", "rate", required=True),
    FieldDef("Tax 1", "tax1_rate"),
    FieldDef("Tax 2", "tax2_rate"),
    FieldDef("Unit", "unit"),
    FieldDef("Group Name", "group_name"),
]

TEMPLATE_SAMPLE = {
    "Description": "Website hosting",
    "Long Description": "Managed hosting, billed monthly",
    "Rate": "$49.00",
    "Tax 1": "5%",
    "Tax 2": "",
    "Unit": "month",
    "Group Name": "Services",
}


@dataclass
class ImportResult:
    imported: list[CatalogItem] = field(default_factory=list)
    rejected: list[RejectedRow] = field(default_factory=list)


@dataclass
class DeleteResult:
    deleted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


async def create_item(db: AsyncSession, ctx: SessionContext, fields: dict) -> CatalogItem:
    item = catalog.create_item(ctx.owner_id, fields)
    await store.save_catalog_item(db, item)
    return item


async def update_item(
    db: AsyncSession, ctx: SessionContext, item_id: str, fields: dict,
) -> CatalogItem:
    current = await store.load_catalog_item(db, ctx.owner_id, item_id)
    updated = catalog.update_item(current, fields)
    await store.save_catalog_item(db, updated)
    return updated


async def list_items(
    db: AsyncSession,
    ctx: SessionContext,
    search: str | None = None,
    group: str | None = None,
) -> list[CatalogItem]:
    return await store.list_catalog_items(db, ctx.owner_id, search=search, group=group)


async def bulk_import(db: AsyncSession, ctx: SessionContext, rows: list[dict]) -> ImportResult:
    """Import what validates; report the rest.  Never all-or-nothing."""
    imported, rejected = catalog.prepare_import(ctx.owner_id, rows)
    for item in imported:
        await store.save_catalog_item(db, item)

    logger.info(
        f"Catalog import for {ctx.owner_id}: {len(imported)} imported, {len(rejected)} rejected",
        extra={"owner_id": ctx.owner_id},
    )
    return ImportResult(imported=imported, rejected=rejected)


async def import_csv(db: AsyncSession, ctx: SessionContext, file: UploadFile) -> ImportResult:
    parsed = await read_csv(file)
    return await bulk_import(db, ctx, parsed.rows)


def template_csv() -> str:
    return generate_template_csv(TEMPLATE_FIELDS, TEMPLATE_SAMPLE)


async def bulk_delete(db: AsyncSession, ctx: SessionContext, ids: list[str]) -> DeleteResult:
    """Delete the owner's items; unknown or foreign ids are skipped.

    Documents keep their cloned lines, so nothing else changes.
    """
    for item in await store.get_catalog_items(db, ctx.owner_id, ids):
        if not can_delete(ctx.role, item):
            raise PermissionDeniedError(f"Role {ctx.role} may not delete catalog items")
    deleted, skipped = await store.delete_catalog_items(db, ctx.owner_id, ids)
    return DeleteResult(deleted=deleted, skipped=skipped)
