"""Pydantic schemas for the item catalog."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from salesdesk.schemas.common import MoneyInput


class CatalogItemCreate(BaseModel):
    description: str
    long_description: str | None = None
    rate: MoneyInput
    tax1_rate: MoneyInput | None = None
    tax2_rate: MoneyInput | None = None
    unit: str | None = None
    group_name: str | None = None


class CatalogItemUpdate(BaseModel):
    description: str | None = None
    long_description: str | None = None
    rate: MoneyInput | None = None
    tax1_rate: MoneyInput | None = None
    tax2_rate: MoneyInput | None = None
    unit: str | None = None
    group_name: str | None = None


class CatalogItemOut(BaseModel):
    id: str
    description: str
    long_description: str | None
    rate: Decimal
    tax1_rate: Decimal
    tax2_rate: Decimal
    unit: str | None
    group_name: str | None

    model_config = {"from_attributes": True}


class BulkImportRequest(BaseModel):
    """Rows as submitted; column names may vary (``Rate``, ``Group Name``...)."""
    rows: list[dict[str, Any]]


class RejectedRowOut(BaseModel):
    row: int
    data: dict[str, Any]
    reason: str

    model_config = {"from_attributes": True}


class BulkImportResult(BaseModel):
    imported: list[CatalogItemOut]
    rejected: list[RejectedRowOut]


class BulkDeleteRequest(BaseModel):
    ids: list[str]


class BulkDeleteResult(BaseModel):
    deleted: list[str]
    skipped: list[str]
