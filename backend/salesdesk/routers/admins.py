"""Admin account router: registration and approval.

Endpoints:
    POST   /register              Register an account (first one is an approved superAdmin)
    GET    /                      List accounts, optionally by status
    PATCH  /{account_id}/status   Approve or reject an account
    DELETE /{account_id}          Delete an account
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.deps import require_permission
from salesdesk.database import get_db
from salesdesk.schemas.admin import AdminOut, AdminRegister, AdminStatusUpdate
from salesdesk.services import admins as admin_service
from salesdesk.tenancy import SessionContext

router = APIRouter()


@router.post("/register", response_model=AdminOut, status_code=status.HTTP_201_CREATED)
async def register(body: AdminRegister, db: AsyncSession = Depends(get_db)):
    return await admin_service.register_admin(db, body.name, body.email)


@router.get("/", response_model=list[AdminOut])
async def list_admins(
    account_status: str | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    _ctx: SessionContext = Depends(require_permission("admins.read")),
):
    return await admin_service.list_admins(db, status=account_status)


@router.patch("/{account_id}/status", response_model=AdminOut)
async def set_status(
    account_id: str,
    body: AdminStatusUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("admins.manage")),
):
    return await admin_service.set_status(db, ctx, account_id, body.status)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_admin(
    account_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("admins.manage")),
):
    await admin_service.delete_admin(db, ctx, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
