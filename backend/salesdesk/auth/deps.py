"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_session_context     → decode JWT, return the caller's SessionContext
  require_role(...)       → restrict to specific roles
  require_permission(...) → restrict to roles holding the listed permissions
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from salesdesk.auth.jwt import decode_token
from salesdesk.auth.permissions import ROLE_DEFAULTS, has_permission
from salesdesk.middleware.exceptions import PermissionDeniedError
from salesdesk.tenancy import SessionContext

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core session dependency ─────────────────────────────────

async def get_session_context(
    token: str = Depends(oauth2_scheme),
) -> SessionContext:
    """Decode the JWT and turn its claims into a SessionContext.

    Tokens are self-contained, so this is a zero-DB-hit check.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    owner_id = payload.get("owner_id")
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No owner context in token",
        )

    try:
        return SessionContext(
            owner_id=owner_id,
            role=payload.get("role", ""),
            user_id=user_id,
            customer_ref=payload.get("customer_ref"),
        )
    except PermissionDeniedError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        )


# ── Role-based access control ───────────────────────────────

def require_role(*roles: str):
    """Dependency factory: restrict to one or more roles.

    Usage:
        @router.get("/clients-only")
        async def portal(ctx: SessionContext = Depends(require_role("client"))):
            ...
    """
    async def _check(
        ctx: SessionContext = Depends(get_session_context),
    ) -> SessionContext:
        if ctx.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(roles)}",
            )
        if ctx.role == "client" and not ctx.customer_ref:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Client session has no customer reference",
            )
        return ctx

    return _check


# ── Permission-based access control ─────────────────────────

def require_permission(*perms: str):
    """Dependency factory: restrict to roles that hold ALL listed permissions.

    Usage:
        @router.post("/invoices")
        async def create_invoice(
            ctx: SessionContext = Depends(require_permission("documents.write")),
        ):
            ...
    """
    async def _check(
        ctx: SessionContext = Depends(get_session_context),
    ) -> SessionContext:
        role_perms = ROLE_DEFAULTS.get(ctx.role, set())
        missing = [p for p in perms if not has_permission(role_perms, p)]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing)}",
            )
        return ctx

    return _check
