"""Reconciliation service: detects sales records whose numbers disagree.

Each check_* function compares stored values with values re-derived
from source data and returns a list of ReconciliationAlert objects
(unsaved).  `run_full_reconciliation` runs every check for one owner,
persists the alerts, and returns a run summary.

Nothing is ever corrected here; records are flagged for a person to fix.

Thresholds:
    - AMOUNT_TOLERANCE: ignore monetary variances up to this absolute value
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.config import settings
from salesdesk.domain.money import to_cents
from salesdesk.domain.totals import verify_totals
from salesdesk.middleware.exceptions import ConsistencyError, ValidationError
from salesdesk.models.reconciliation_alert import ReconciliationAlert
from salesdesk.services import store
from salesdesk.services.payments import reconcile_ledger

# ── Configurable thresholds ──────────────────────────────────
AMOUNT_TOLERANCE = Decimal(settings.amount_tolerance)


def _severity(variance_pct: float) -> str:
    """Map variance percentage to severity level."""
    abs_pct = abs(variance_pct) if variance_pct else 0
    if abs_pct >= 20:
        return "critical"
    if abs_pct >= 10:
        return "high"
    if abs_pct >= 5:
        return "medium"
    return "low"


def _safe_pct(expected: float, actual: float) -> float:
    """Calculate percentage variance safely."""
    if not expected:
        return 100.0 if actual else 0.0
    return round(abs(actual - expected) / abs(expected) * 100, 2)


def _alert_key(alert: ReconciliationAlert) -> tuple[str, str | None]:
    return alert.alert_type, (alert.entity_refs or {}).get("document_id")


# ─────────────────────────────────────────────────────────────
# CHECK 1:  stored document totals  ≠  totals derived from items
# ─────────────────────────────────────────────────────────────

async def check_document_totals(
    db: AsyncSession, owner_id: str, run_id: str,
) -> list[ReconciliationAlert]:
    """Re-derive every document's totals from its line items and
    discount, and flag rows whose stored subtotal/discount/tax/total
    no longer match."""
    alerts = []

    for row in await store.list_document_rows(db, owner_id):
        label = store.kind_label(row.kind)
        try:
            document = store.document_from_row(row)
            verify_totals(document, store.stored_totals(row))
        except ConsistencyError as exc:
            alerts.append(store.document_totals_alert(document, exc, run_id))
        except ValidationError as exc:
            alerts.append(ReconciliationAlert(
                owner_id=owner_id,
                alert_type="document_totals",
                severity="critical",
                title=f"{label} {row.number}: line items unreadable",
                description=f"{label} {row.number} has an invalid line item ({exc.message}).",
                unit=row.currency,
                entity_refs={"document_id": row.id, "kind": row.kind, "number": row.number},
                run_id=run_id,
            ))

    return alerts


# ─────────────────────────────────────────────────────────────
# CHECK 2:  invoice paid_amount  ≠  Σ Completed payments
# ─────────────────────────────────────────────────────────────

async def check_invoice_vs_payments(
    db: AsyncSession, owner_id: str, run_id: str,
) -> list[ReconciliationAlert]:
    """For each non-draft invoice, compare the paid amount it carries
    with the Completed payments recorded against it."""
    report = await reconcile_ledger(db, owner_id)
    alerts = []

    for line in report.lines:
        expected = to_cents(line.recorded)
        actual = to_cents(line.paid_amount)
        variance = actual - expected
        if abs(variance) <= AMOUNT_TOLERANCE:
            continue

        pct = _safe_pct(float(expected), float(actual))
        alerts.append(ReconciliationAlert(
            owner_id=owner_id,
            alert_type="invoice_vs_payments",
            severity=_severity(pct),
            title=f"Invoice {line.invoice_number}: paid amount ≠ recorded payments",
            description=(
                f"Invoice {line.invoice_number} shows {actual} paid but "
                f"Completed payments total {expected} "
                f"(variance {variance:+} / {pct:.1f}%)."
            ),
            expected_value=float(expected),
            actual_value=float(actual),
            variance=float(variance),
            variance_pct=pct,
            entity_refs={
                "document_id": line.invoice_id,
                "kind": "invoice",
                "number": line.invoice_number,
            },
            run_id=run_id,
        ))

    return alerts


# ─────────────────────────────────────────────────────────────
# CHECK 3:  payments derived from invoice status  ≠  ledger
# ─────────────────────────────────────────────────────────────

async def check_derived_vs_recorded(
    db: AsyncSession, owner_id: str, run_id: str,
) -> list[ReconciliationAlert]:
    """Paid / Partiallypaid invoices imply a collected amount.  Flag
    invoices where that implied amount disagrees with the ledger, e.g.
    a Paid invoice with no payment recorded at all."""
    report = await reconcile_ledger(db, owner_id)
    alerts = []

    for line in report.lines:
        if line.status not in ("Paid", "Partiallypaid"):
            continue
        expected = to_cents(line.recorded)
        actual = to_cents(line.derived)
        variance = actual - expected
        if abs(variance) <= AMOUNT_TOLERANCE:
            continue

        pct = _safe_pct(float(expected), float(actual))
        alerts.append(ReconciliationAlert(
            owner_id=owner_id,
            alert_type="derived_vs_recorded",
            severity=_severity(pct),
            title=f"Invoice {line.invoice_number}: {line.status} but ledger disagrees",
            description=(
                f"Invoice {line.invoice_number} is {line.status}, implying {actual} "
                f"collected, but the ledger holds {expected} in Completed payments."
            ),
            expected_value=float(expected),
            actual_value=float(actual),
            variance=float(variance),
            variance_pct=pct,
            entity_refs={
                "document_id": line.invoice_id,
                "kind": "invoice",
                "number": line.invoice_number,
            },
            run_id=run_id,
        ))

    return alerts


# ─────────────────────────────────────────────────────────────
# ORCHESTRATOR
# ─────────────────────────────────────────────────────────────

async def run_full_reconciliation(db: AsyncSession, owner_id: str) -> dict:
    """Execute all reconciliation checks, persist alerts, return summary.

    Returns:
        {
            "run_id": "...",
            "ran_at": "...",
            "total_alerts": int,
            "by_type": {"document_totals": int, ...},
            "by_severity": {"critical": int, "high": int, ...},
        }
    """
    run_id = str(uuid.uuid4())

    all_alerts: list[ReconciliationAlert] = []

    checks = [
        check_document_totals,
        check_invoice_vs_payments,
        check_derived_vs_recorded,
    ]

    for check_fn in checks:
        alerts = await check_fn(db, owner_id, run_id)
        all_alerts.extend(alerts)

    # Open alerts from earlier runs: still-detected mismatches keep their
    # existing alert, the rest are auto-resolved
    detected = {_alert_key(a) for a in all_alerts}
    old_open = await db.execute(
        select(ReconciliationAlert).where(
            ReconciliationAlert.owner_id == owner_id,
            ReconciliationAlert.status == "open",
            ReconciliationAlert.is_deleted == False,  # noqa: E712
        )
    )
    still_open = set()
    for old_alert in old_open.scalars().all():
        key = _alert_key(old_alert)
        if key in detected:
            still_open.add(key)
            continue
        old_alert.status = "resolved"
        old_alert.resolution_note = "Auto-resolved: mismatch no longer detected"
        old_alert.resolved_at = datetime.utcnow()

    for alert in all_alerts:
        if _alert_key(alert) not in still_open:
            db.add(alert)
    await db.flush()

    by_type: dict[str, int] = {}
    by_severity: dict[str, int] = {}
    for a in all_alerts:
        by_type[a.alert_type] = by_type.get(a.alert_type, 0) + 1
        by_severity[a.severity] = by_severity.get(a.severity, 0) + 1

    return {
        "run_id": run_id,
        "ran_at": datetime.utcnow().isoformat(),
        "total_alerts": len(all_alerts),
        "by_type": by_type,
        "by_severity": by_severity,
    }
