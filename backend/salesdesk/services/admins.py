"""Admin account registration and approval."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.permissions import can_change_account_status
from salesdesk.domain.lifecycle import check_account_transition
from salesdesk.middleware.exceptions import (
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from salesdesk.models.admin_account import AdminAccount
from salesdesk.tenancy import SessionContext

logger = logging.getLogger(__name__)


async def register_admin(db: AsyncSession, name: str, email: str) -> AdminAccount:
    """Create an admin account.

    The very first account becomes an approved superAdmin; every later
    one starts pending until a superAdmin approves it.
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise ValidationError("name", "is required")
    if "@" not in email:
        raise ValidationError("email", "must be a valid email address", email)

    existing = await db.execute(select(AdminAccount).where(AdminAccount.email == email))
    if existing.scalar_one_or_none():
        raise ValidationError("email", "is already registered", email)

    count = (await db.execute(select(func.count(AdminAccount.id)))).scalar() or 0
    first = count == 0
    account = AdminAccount(
        name=name,
        email=email,
        role="superAdmin" if first else "admin",
        status="approved" if first else "pending",
    )
    db.add(account)
    await db.flush()
    logger.info(f"Registered {account.role} {email} ({account.status})")
    return account


async def list_admins(
    db: AsyncSession, status: str | None = None,
) -> list[AdminAccount]:
    stmt = select(AdminAccount)
    if status:
        stmt = stmt.where(AdminAccount.status == status)
    result = await db.execute(stmt.order_by(AdminAccount.created_at.desc()))
    return list(result.scalars().all())


async def _get(db: AsyncSession, account_id: str) -> AdminAccount:
    result = await db.execute(select(AdminAccount).where(AdminAccount.id == account_id))
    account = result.scalar_one_or_none()
    if account is None:
        raise ResourceNotFoundError("Admin", account_id)
    return account


async def set_status(
    db: AsyncSession, ctx: SessionContext, account_id: str, status: str,
) -> AdminAccount:
    account = await _get(db, account_id)
    check_account_transition(ctx.role, account.role, account.status, status)
    previous, account.status = account.status, status
    await db.flush()
    logger.info(
        f"Admin {account.email}: {previous} → {status}",
        extra={"user_id": ctx.user_id},
    )
    return account


async def delete_admin(db: AsyncSession, ctx: SessionContext, account_id: str) -> None:
    account = await _get(db, account_id)
    if not can_change_account_status(ctx.role, account.role):
        raise PermissionDeniedError("Only a superAdmin may delete another admin account")
    await db.delete(account)
    await db.flush()
