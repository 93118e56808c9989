"""Explicit per-call session context.

Every service call receives a SessionContext instead of reading the
caller's identity from request-global state.  Tenancy is row-level:
`owner_id` is the admin account whose catalog and documents the caller
works on.
"""

from dataclasses import dataclass

from salesdesk.middleware.exceptions import PermissionDeniedError

ROLES = ("superAdmin", "admin", "staff", "client")


@dataclass(frozen=True)
class SessionContext:
    owner_id: str
    role: str
    user_id: str | None = None
    # Set for client-portal callers; limits reads to one customer
    customer_ref: str | None = None

    def __post_init__(self):
        if self.role not in ROLES:
            raise PermissionDeniedError(f"Unknown role: {self.role}")
        if not self.owner_id:
            raise PermissionDeniedError("No owner context for this session")

    @property
    def is_client(self) -> bool:
        return self.role == "client"
