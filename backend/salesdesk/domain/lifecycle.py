"""Status lifecycles.

One `StateMachine` primitive drives every status workflow in the app:
the four document kinds, persisted payments and admin-account approval.
Role checks come from `salesdesk.auth.permissions` so the same rule
holds on every surface.
"""

from dataclasses import dataclass, replace
from datetime import date
from typing import Mapping

from salesdesk.auth.permissions import can_change_account_status, can_transition
from salesdesk.domain.documents import DRAFT, Document, Invoice
from salesdesk.domain.money import ZERO
from salesdesk.middleware.exceptions import InvalidStateError, PermissionDeniedError


@dataclass(frozen=True)
class StateMachine:
    name: str
    initial: str
    transitions: Mapping[str, frozenset[str]]
    # States only the payment ledger may move a record into
    ledger_states: frozenset[str] = frozenset()

    @property
    def states(self) -> frozenset[str]:
        targets = set().union(*self.transitions.values()) if self.transitions else set()
        return frozenset(set(self.transitions) | targets)

    @property
    def terminal(self) -> frozenset[str]:
        return frozenset(s for s in self.states if not self.transitions.get(s))

    def allowed_from(self, current: str) -> frozenset[str]:
        return self.transitions.get(current, frozenset())

    def can(self, current: str, attempted: str) -> bool:
        return attempted in self.allowed_from(current)

    def validate(self, current: str, attempted: str) -> None:
        """Raise InvalidStateError unless current → attempted is an edge."""
        if attempted not in self.states:
            raise InvalidStateError(
                current, attempted, reason=f"unknown {self.name} status",
            )
        if current in self.terminal:
            raise InvalidStateError(
                current, attempted, reason=f"{current} is a terminal {self.name} status",
            )
        if not self.can(current, attempted):
            raise InvalidStateError(current, attempted)


def _edges(**kwargs) -> dict[str, frozenset[str]]:
    return {state: frozenset(targets) for state, targets in kwargs.items()}


PROPOSAL = StateMachine(
    name="proposal",
    initial=DRAFT,
    transitions=_edges(
        Draft={"Sent"},
        Sent={"Accepted", "Rejected"},
        Accepted=set(),
        Rejected=set(),
    ),
)

ESTIMATE = StateMachine(
    name="estimate",
    initial=DRAFT,
    transitions=_edges(
        Draft={"Pending"},
        Pending={"Approved", "Rejected"},
        Approved=set(),
        Rejected=set(),
    ),
)

CREDIT_NOTE = StateMachine(
    name="credit_note",
    initial=DRAFT,
    transitions=_edges(
        Draft={"Pending", "Issued"},
        Pending={"Issued", "Cancelled"},
        Issued={"Cancelled"},
        Cancelled=set(),
    ),
)

INVOICE = StateMachine(
    name="invoice",
    initial=DRAFT,
    transitions=_edges(
        Draft={"Unpaid"},
        Unpaid={"Partiallypaid", "Paid", "Overdue"},
        Partiallypaid={"Paid", "Overdue", "Unpaid"},
        Overdue={"Partiallypaid", "Paid"},
        # Refunds only
        Paid={"Partiallypaid", "Unpaid"},
    ),
    ledger_states=frozenset({"Partiallypaid", "Paid"}),
)

PAYMENT = StateMachine(
    name="payment",
    initial="Pending",
    transitions=_edges(
        Pending={"Completed", "Failed"},
        Completed={"Refunded"},
        Failed=set(),
        Refunded=set(),
    ),
)

ADMIN_ACCOUNT = StateMachine(
    name="admin_account",
    initial="pending",
    transitions=_edges(
        pending={"approved", "rejected"},
        approved={"rejected"},
        rejected={"approved"},
    ),
)

MACHINES: dict[str, StateMachine] = {
    m.name: m for m in (PROPOSAL, ESTIMATE, CREDIT_NOTE, INVOICE, PAYMENT, ADMIN_ACCOUNT)
}


def machine_for(kind: str) -> StateMachine:
    return MACHINES[kind]


# ── Document transitions ────────────────────────────────────

def transition(
    document: Document,
    to_state: str,
    role: str | None = None,
    via_ledger: bool = False,
) -> Document:
    """Move `document` to `to_state`, returning the new document.

    Raises InvalidStateError for edges the kind does not have, for
    leaving Draft without lines or with a negative total, and for
    ledger-owned states reached any other way.  When `role` is given it
    must also pass `can_transition`.  The input is never modified.
    """
    machine = machine_for(document.kind)
    current = document.status

    machine.validate(current, to_state)

    if to_state in machine.ledger_states and not via_ledger:
        raise InvalidStateError(
            current, to_state, reason="reached only by recording payments",
        )

    if current == DRAFT:
        if not document.items:
            raise InvalidStateError(
                current, to_state, reason=f"{document.kind} has no line items",
            )
        if document.total < ZERO:
            raise InvalidStateError(
                current, to_state, reason=f"{document.kind} total is negative",
            )

    if role is not None and not can_transition(role, document.kind, current, to_state):
        raise PermissionDeniedError(
            f"Role {role} may not move a {document.kind} from {current} to {to_state}"
        )

    return replace(document, status=to_state)


def mark_overdue(invoice: Invoice, today: date) -> Invoice:
    """Flag an unpaid or partially paid invoice whose due date has passed.

    Returns the invoice unchanged when it is not overdue.
    """
    if invoice.due_date is None or invoice.due_date >= today:
        return invoice
    if invoice.status not in ("Unpaid", "Partiallypaid"):
        return invoice
    return transition(invoice, "Overdue")


def check_account_transition(
    actor_role: str, target_role: str, current: str, attempted: str,
) -> None:
    """Admin-account approval workflow, on the same primitive as documents."""
    if not can_change_account_status(actor_role, target_role):
        raise PermissionDeniedError(
            "Only a superAdmin may change another admin's account status"
        )
    ADMIN_ACCOUNT.validate(current, attempted)
