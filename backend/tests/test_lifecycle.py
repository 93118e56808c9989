"""Status lifecycles and the role policy applied to them."""

from datetime import date
from decimal import Decimal

import pytest

from salesdesk.auth.permissions import can_change_account_status, can_delete, can_transition
from salesdesk.domain import catalog, documents as docs
from salesdesk.domain.lifecycle import (
    ADMIN_ACCOUNT,
    CREDIT_NOTE,
    ESTIMATE,
    INVOICE,
    PAYMENT,
    PROPOSAL,
    check_account_transition,
    mark_overdue,
    transition,
)
from salesdesk.middleware.exceptions import InvalidStateError, PermissionDeniedError

OWNER = "owner-1"
LINE = {"description": "Design", "quantity": 1, "rate": "100"}


def _doc(kind, items=(LINE,), **header):
    return docs.new_document(kind, OWNER, "Acme", items=list(items), **header)


@pytest.mark.unit
class TestMachines:

    def test_terminal_states(self):
        assert PROPOSAL.terminal == {"Accepted", "Rejected"}
        assert ESTIMATE.terminal == {"Approved", "Rejected"}
        assert CREDIT_NOTE.terminal == {"Cancelled"}
        assert INVOICE.terminal == frozenset()
        assert PAYMENT.terminal == {"Failed", "Refunded"}

    def test_validate_names_both_states(self):
        with pytest.raises(InvalidStateError) as exc:
            PROPOSAL.validate("Draft", "Accepted")
        assert exc.value.current == "Draft"
        assert exc.value.attempted == "Accepted"
        assert "Draft" in exc.value.message and "Accepted" in exc.value.message

    def test_unknown_status(self):
        with pytest.raises(InvalidStateError):
            INVOICE.validate("Unpaid", "Void")


@pytest.mark.unit
class TestDocumentTransitions:

    def test_proposal_happy_path(self):
        sent = transition(_doc("proposal"), "Sent")
        assert transition(sent, "Accepted").status == "Accepted"

    def test_estimate_happy_path(self):
        pending = transition(_doc("estimate"), "Pending")
        assert transition(pending, "Rejected").status == "Rejected"

    def test_credit_note_paths(self):
        cn = _doc("credit_note")
        assert transition(cn, "Issued").status == "Issued"
        pending = transition(cn, "Pending")
        assert transition(transition(pending, "Issued"), "Cancelled").status == "Cancelled"

    def test_terminal_refuses_without_mutation(self):
        accepted = transition(transition(_doc("proposal"), "Sent"), "Accepted")
        with pytest.raises(InvalidStateError) as exc:
            transition(accepted, "Rejected")
        assert "terminal" in exc.value.message
        assert accepted.status == "Accepted"

    def test_leaving_draft_needs_lines(self):
        with pytest.raises(InvalidStateError) as exc:
            transition(_doc("invoice", items=()), "Unpaid")
        assert "no line items" in exc.value.message

    def test_skipping_a_state(self):
        with pytest.raises(InvalidStateError):
            transition(_doc("proposal"), "Accepted")

    def test_paid_states_are_ledger_only(self):
        unpaid = transition(_doc("invoice"), "Unpaid")
        for target in ("Paid", "Partiallypaid"):
            with pytest.raises(InvalidStateError) as exc:
                transition(unpaid, target)
            assert "recording payments" in exc.value.message
        assert transition(unpaid, "Paid", via_ledger=True).status == "Paid"

    def test_input_never_modified(self):
        draft = _doc("invoice")
        transition(draft, "Unpaid")
        assert draft.status == "Draft"


@pytest.mark.unit
class TestMarkOverdue:

    def test_past_due_unpaid(self):
        unpaid = transition(_doc("invoice", due_date=date(2026, 1, 10)), "Unpaid")
        assert mark_overdue(unpaid, date(2026, 1, 11)).status == "Overdue"

    def test_due_today_is_not_overdue(self):
        unpaid = transition(_doc("invoice", due_date=date(2026, 1, 10)), "Unpaid")
        assert mark_overdue(unpaid, date(2026, 1, 10)) is unpaid

    def test_draft_and_paid_untouched(self):
        draft = _doc("invoice", due_date=date(2026, 1, 1))
        assert mark_overdue(draft, date(2026, 6, 1)) is draft
        paid = transition(transition(draft, "Unpaid"), "Paid", via_ledger=True)
        assert mark_overdue(paid, date(2026, 6, 1)) is paid

    def test_no_due_date(self):
        unpaid = transition(_doc("invoice"), "Unpaid")
        assert mark_overdue(unpaid, date(2030, 1, 1)) is unpaid


@pytest.mark.unit
class TestRolePolicy:

    def test_client_may_only_answer(self):
        assert can_transition("client", "proposal", "Sent", "Accepted")
        assert can_transition("client", "estimate", "Pending", "Rejected")
        assert not can_transition("client", "proposal", "Draft", "Sent")
        assert not can_transition("client", "invoice", "Draft", "Unpaid")

    def test_staff_cannot_cancel(self):
        assert can_transition("staff", "proposal", "Draft", "Sent")
        assert not can_transition("staff", "credit_note", "Issued", "Cancelled")
        assert can_transition("admin", "credit_note", "Issued", "Cancelled")

    def test_transition_enforces_role(self):
        draft = _doc("proposal")
        with pytest.raises(PermissionDeniedError):
            transition(draft, "Sent", role="client")
        sent = transition(draft, "Sent", role="staff")
        assert transition(sent, "Accepted", role="client").status == "Accepted"

    def test_machine_checked_before_role(self):
        with pytest.raises(InvalidStateError):
            transition(_doc("proposal"), "Accepted", role="client")

    def test_delete_policy(self):
        draft = _doc("invoice")
        unpaid = transition(draft, "Unpaid")
        item = catalog.create_item(OWNER, {"description": "Pen", "rate": 1})

        assert can_delete("staff", draft)
        assert not can_delete("staff", unpaid)
        assert can_delete("admin", unpaid)
        assert not can_delete("client", draft)
        assert not can_delete("staff", item)
        assert can_delete("admin", item)


@pytest.mark.unit
class TestAdminAccounts:

    def test_approval_workflow(self):
        check_account_transition("superAdmin", "admin", "pending", "approved")
        check_account_transition("superAdmin", "admin", "approved", "rejected")
        check_account_transition("superAdmin", "admin", "rejected", "approved")

    def test_only_super_admin_decides(self):
        assert not can_change_account_status("admin", "admin")
        with pytest.raises(PermissionDeniedError):
            check_account_transition("admin", "admin", "pending", "approved")

    def test_super_admin_cannot_be_rejected(self):
        with pytest.raises(PermissionDeniedError):
            check_account_transition("superAdmin", "superAdmin", "approved", "rejected")

    def test_no_way_back_to_pending(self):
        with pytest.raises(InvalidStateError):
            ADMIN_ACCOUNT.validate("approved", "pending")
