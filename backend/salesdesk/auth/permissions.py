"""Role policy for SalesDesk.

Design:
  - Each role has a fixed set of DEFAULT permissions (defined here, not in DB).
  - Endpoint guards check permissions via `require_permission(...)`.
  - Lifecycle and deletion decisions go through `can_transition` and
    `can_delete`, so every surface (admin views, client portal, CLI)
    applies the same rule.

Permission naming: `<resource>.<action>`
  Resources: items, documents, payments, reconciliation, admins, portal
  Actions:   read, write, delete, refund, manage, respond, pay
"""

from __future__ import annotations


# ── All known permissions ───────────────────────────────────

ALL_PERMISSIONS: set[str] = {
    # Item catalog
    "items.read",
    "items.write",
    "items.delete",

    # Proposals, estimates, credit notes, invoices
    "documents.read",
    "documents.write",
    "documents.delete",

    # Payment ledger
    "payments.read",
    "payments.write",
    "payments.refund",

    # Reconciliation alerts
    "reconciliation.read",
    "reconciliation.write",

    # Admin account approval workflow
    "admins.read",
    "admins.manage",

    # Client portal
    "portal.read",
    "portal.respond",         # accept / reject proposals and estimates
    "portal.pay",             # record own payments
}


# ── Role → default permissions ──────────────────────────────

ROLE_DEFAULTS: dict[str, set[str]] = {
    "superAdmin": ALL_PERMISSIONS - {"portal.read", "portal.respond", "portal.pay"},

    "admin": ALL_PERMISSIONS - {
        "admins.manage", "portal.read", "portal.respond", "portal.pay",
    },

    "staff": {
        "items.read", "items.write",
        "documents.read", "documents.write", "documents.delete",
        "payments.read", "payments.write",
        "reconciliation.read",
    },

    "client": {
        "portal.read", "portal.respond", "portal.pay",
    },
}

PRIVILEGED_ROLES = frozenset({"superAdmin", "admin"})

# States a client may move a document into from the portal
CLIENT_RESPONSES: dict[str, dict[str, set[str]]] = {
    "proposal": {"Sent": {"Accepted", "Rejected"}},
    "estimate": {"Pending": {"Approved", "Rejected"}},
}

# Staff may do everything a privileged role does except void documents
STAFF_FORBIDDEN_TARGETS = frozenset({"Cancelled"})


# ── Resolution ──────────────────────────────────────────────

def has_permission(user_permissions: list[str] | set[str], required: str) -> bool:
    """Check whether a permission set satisfies a requirement."""
    return required in user_permissions


# ── Lifecycle / record predicates ───────────────────────────

def can_transition(role: str, kind: str, from_state: str, to_state: str) -> bool:
    """May `role` move a `kind` record from `from_state` to `to_state`?

    This answers the authorization question only; whether the
    transition exists at all is the state machine's call.
    """
    if role in PRIVILEGED_ROLES:
        return True
    if role == "staff":
        return to_state not in STAFF_FORBIDDEN_TARGETS
    if role == "client":
        allowed = CLIENT_RESPONSES.get(kind, {}).get(from_state, set())
        return to_state in allowed
    return False


def can_delete(role: str, record) -> bool:
    """May `role` delete `record` (a document or a catalog item)?

    Drafts are disposable by anyone who can edit documents; anything that
    has left Draft needs a privileged role.  Catalog items carry no
    status and need `items.delete`.
    """
    status = getattr(record, "status", None)
    if status is None:
        return has_permission(ROLE_DEFAULTS.get(role, set()), "items.delete")
    if status == "Draft":
        return has_permission(ROLE_DEFAULTS.get(role, set()), "documents.delete")
    return role in PRIVILEGED_ROLES


def can_change_account_status(actor_role: str, target_role: str) -> bool:
    """Only a superAdmin approves or rejects admin accounts, and never
    another superAdmin."""
    return actor_role == "superAdmin" and target_role != "superAdmin"
