"""Payment ledger and reconciliation.

Persisted payments are the source of truth for what an invoice has
collected.  Recording, completing, refunding or removing a payment goes
through this module, which moves the invoice's `paid_amount` and status
in the same step.  Payments synthesized from invoice state
(`derive_from_invoices`) exist only to cross-check the ledger.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal

from salesdesk.domain.documents import DRAFT, Invoice
from salesdesk.domain.lifecycle import PAYMENT, transition
from salesdesk.domain.money import ZERO, parse_money, round_to_currency, to_cents
from salesdesk.middleware.exceptions import InvalidStateError, ValidationError

PAYMENT_MODES = ("Bank", "Stripe Checkout", "Cash", "Credit Card", "Other")
PAYMENT_STATUSES = ("Completed", "Pending", "Failed", "Refunded")

FULL = "full"
PARTIAL = "partial"
# Invoice statuses that imply a collected amount
DERIVABLE_STATUSES = frozenset({"Paid", "Partiallypaid"})

# Fixed namespace so derived payment ids are stable across processes
LEDGER_NAMESPACE = uuid.UUID("6f1c2a7e-3b8d-4e55-9a0f-5d2e8c41b7a3")


@dataclass(frozen=True)
class Payment:
    owner_id: str
    invoice_id: str
    amount: Decimal
    payment_date: date
    payment_mode: str
    transaction_id: str | None = None
    status: str = "Completed"
    currency: str = "USD"
    invoice_number: str | None = None
    customer_ref: str | None = None
    notes: str | None = None
    number: str | None = None
    # full | partial for payments synthesized from invoice state
    derived_kind: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


def derived_payment_id(invoice_id: str, kind: str) -> str:
    return str(uuid.uuid5(LEDGER_NAMESPACE, f"{invoice_id}:{kind}"))


# ── Derivation & statistics ─────────────────────────────────

def derive_from_invoices(invoices) -> list[Payment]:
    """Synthesize what each invoice's status says it has collected.

    Paid          → one full payment of paid_amount (or total if unset)
    Partiallypaid → one partial payment of paid_amount, when > 0
    anything else → nothing
    """
    derived: list[Payment] = []
    for invoice in invoices:
        if invoice.status == "Paid":
            kind, amount = FULL, invoice.paid_amount or invoice.total
        elif invoice.status == "Partiallypaid" and invoice.paid_amount > ZERO:
            kind, amount = PARTIAL, invoice.paid_amount
        else:
            continue
        derived.append(Payment(
            id=derived_payment_id(invoice.id, kind),
            owner_id=invoice.owner_id,
            invoice_id=invoice.id,
            invoice_number=invoice.number,
            customer_ref=invoice.customer_ref,
            amount=amount,
            currency=invoice.currency,
            payment_date=invoice.paid_date or invoice.issue_date,
            payment_mode=invoice.payment_mode or "Bank",
            status="Completed",
            derived_kind=kind,
        ))
    return derived


def stats(payments) -> dict:
    """Counts and sums over `payments`, overall and per status."""
    by_status = {s: 0 for s in PAYMENT_STATUSES}
    amount_by_status = {s: ZERO for s in PAYMENT_STATUSES}
    total_amount = ZERO
    count = 0
    for payment in payments:
        count += 1
        total_amount += payment.amount
        by_status[payment.status] = by_status.get(payment.status, 0) + 1
        amount_by_status[payment.status] = (
            amount_by_status.get(payment.status, ZERO) + payment.amount
        )
    return {
        "total": {"count": count, "total_amount": total_amount},
        "by_status": by_status,
        "amount_by_status": amount_by_status,
    }


# ── Invoice paid-amount bookkeeping ─────────────────────────

def paid_status(total: Decimal, paid_amount: Decimal) -> str:
    if paid_amount >= total and paid_amount > ZERO:
        return "Paid"
    if paid_amount > ZERO:
        return "Partiallypaid"
    return "Unpaid"


def apply_paid_amount(
    invoice: Invoice,
    paid_amount: Decimal,
    paid_date: date | None = None,
    payment_mode: str | None = None,
) -> Invoice:
    """Set the invoice's paid amount and move it to the matching status.

    An overdue invoice that falls back to nothing paid stays Overdue.
    """
    if invoice.status == DRAFT:
        raise InvalidStateError(DRAFT, "record_payment", reason="invoice is still a draft")

    paid_amount = max(paid_amount, ZERO)
    target = paid_status(invoice.total, paid_amount)
    updated = replace(
        invoice,
        paid_amount=paid_amount,
        paid_date=paid_date if paid_date is not None else invoice.paid_date,
        payment_mode=payment_mode or invoice.payment_mode,
    )
    if target == "Unpaid" and invoice.status in ("Unpaid", "Overdue"):
        return updated
    if target == invoice.status:
        return updated
    return transition(updated, target, via_ledger=True)


def _check_amount(invoice: Invoice, amount) -> Decimal:
    value = parse_money(amount, "amount")
    if value <= ZERO:
        raise ValidationError("amount", "must be > 0", amount)
    if round_to_currency(value, invoice.currency) != value:
        raise ValidationError(
            "amount", f"has more decimal places than {invoice.currency} allows", amount,
        )
    balance = invoice.balance_due
    if value > balance:
        raise ValidationError(
            "amount", f"must not exceed balance due of {to_cents(balance)}", amount,
        )
    return value


def record_payment(
    invoice: Invoice,
    amount,
    payment_date: date,
    payment_mode: str,
    transaction_id: str | None,
    notes: str | None = None,
    status: str = "Completed",
) -> tuple[Invoice, Payment]:
    """Validate and record a payment against `invoice`.

    A Completed payment updates the invoice immediately; a Pending one
    leaves it alone until `complete_payment`.
    """
    if invoice.status == DRAFT:
        raise InvalidStateError(DRAFT, "record_payment", reason="invoice is still a draft")
    if status not in ("Completed", "Pending"):
        raise ValidationError("status", "must be Completed or Pending", status)
    value = _check_amount(invoice, amount)
    if not transaction_id or not str(transaction_id).strip():
        raise ValidationError("transaction_id", "is required")
    if payment_mode not in PAYMENT_MODES:
        raise ValidationError(
            "payment_mode", f"must be one of {', '.join(PAYMENT_MODES)}", payment_mode,
        )
    if payment_date is None:
        raise ValidationError("payment_date", "is required")

    payment = Payment(
        owner_id=invoice.owner_id,
        invoice_id=invoice.id,
        invoice_number=invoice.number,
        customer_ref=invoice.customer_ref,
        amount=value,
        currency=invoice.currency,
        payment_date=payment_date,
        payment_mode=payment_mode,
        transaction_id=str(transaction_id).strip(),
        notes=notes,
        status=status,
    )
    if status == "Completed":
        invoice = apply_paid_amount(
            invoice, invoice.paid_amount + value, payment_date, payment_mode,
        )
    return invoice, payment


def complete_payment(invoice: Invoice, payment: Payment) -> tuple[Invoice, Payment]:
    PAYMENT.validate(payment.status, "Completed")
    _check_amount(invoice, payment.amount)
    updated = apply_paid_amount(
        invoice, invoice.paid_amount + payment.amount,
        payment.payment_date, payment.payment_mode,
    )
    return updated, replace(payment, status="Completed")


def fail_payment(payment: Payment) -> Payment:
    PAYMENT.validate(payment.status, "Failed")
    return replace(payment, status="Failed")


def refund_payment(invoice: Invoice, payment: Payment) -> tuple[Invoice, Payment]:
    """Refund a completed payment and take it back off the invoice."""
    PAYMENT.validate(payment.status, "Refunded")
    updated = apply_paid_amount(invoice, invoice.paid_amount - payment.amount)
    return updated, replace(payment, status="Refunded")


def remove_payment(invoice: Invoice, payment: Payment) -> Invoice:
    """Invoice state after deleting `payment` from the ledger."""
    if payment.status != "Completed":
        return invoice
    return apply_paid_amount(invoice, invoice.paid_amount - payment.amount)


# ── Reconciliation ──────────────────────────────────────────

@dataclass(frozen=True)
class InvoiceReconciliation:
    invoice_id: str
    invoice_number: str | None
    status: str
    total: Decimal
    paid_amount: Decimal
    recorded: Decimal           # Σ Completed persisted payments
    derived: Decimal            # Σ payments derived from invoice state
    consistent: bool


@dataclass(frozen=True)
class ReconciliationReport:
    lines: tuple[InvoiceReconciliation, ...]

    @property
    def mismatches(self) -> tuple[InvoiceReconciliation, ...]:
        return tuple(line for line in self.lines if not line.consistent)

    @property
    def recorded_total(self) -> Decimal:
        return sum((line.recorded for line in self.lines), ZERO)

    @property
    def derived_total(self) -> Decimal:
        return sum((line.derived for line in self.lines), ZERO)


def reconcile(invoices, payments, tolerance: Decimal = ZERO) -> ReconciliationReport:
    """Compare each non-draft invoice's paid amount, its recorded
    Completed payments and the payments derivable from its status."""
    recorded: dict[str, Decimal] = {}
    for payment in payments:
        if payment.status == "Completed":
            recorded[payment.invoice_id] = recorded.get(payment.invoice_id, ZERO) + payment.amount

    lines = []
    for invoice in invoices:
        if invoice.status == DRAFT:
            continue
        derived = sum((p.amount for p in derive_from_invoices([invoice])), ZERO)
        rec = recorded.get(invoice.id, ZERO)
        consistent = abs(to_cents(invoice.paid_amount) - to_cents(rec)) <= tolerance
        # Overdue invoices may hold partial payments that derivation cannot see
        if invoice.status in DERIVABLE_STATUSES:
            consistent = consistent and abs(to_cents(derived) - to_cents(rec)) <= tolerance
        lines.append(InvoiceReconciliation(
            invoice_id=invoice.id,
            invoice_number=invoice.number,
            status=invoice.status,
            total=invoice.total,
            paid_amount=invoice.paid_amount,
            recorded=rec,
            derived=derived,
            consistent=consistent,
        ))
    return ReconciliationReport(lines=tuple(lines))
