"""Reconciliation router: dashboard data and manual trigger.

Endpoints:
    GET  /                    Dashboard summary + open alerts
    POST /run                 Trigger a reconciliation run
    GET  /ledger              Invoice-by-invoice ledger comparison (no alerts written)
    GET  /alerts              List alerts with filters
    GET  /alerts/{alert_id}   Single alert detail
    PATCH /alerts/{alert_id}  Update alert status (acknowledge / resolve / dismiss)

All endpoints are scoped to the caller's owner and require
reconciliation.read; triggering a run or updating an alert requires
reconciliation.write.
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.deps import require_permission
from salesdesk.database import get_db
from salesdesk.middleware.exceptions import ResourceNotFoundError, ValidationError
from salesdesk.models.reconciliation_alert import ReconciliationAlert
from salesdesk.schemas.payment import LedgerReportOut
from salesdesk.schemas.reconciliation import (
    AlertOut,
    AlertUpdate,
    DashboardSummary,
    RunSummary,
)
from salesdesk.services.payments import reconcile_ledger
from salesdesk.services.reconciliation import run_full_reconciliation
from salesdesk.tenancy import SessionContext

router = APIRouter()

ACTIVE_STATUSES = ("open", "acknowledged")
UPDATABLE_STATUSES = ("acknowledged", "resolved", "dismissed")


def _owned(owner_id: str):
    return (
        ReconciliationAlert.owner_id == owner_id,
        ReconciliationAlert.is_deleted == False,  # noqa: E712
    )


async def _get_alert(db: AsyncSession, owner_id: str, alert_id: str) -> ReconciliationAlert:
    result = await db.execute(
        select(ReconciliationAlert).where(
            ReconciliationAlert.id == alert_id, *_owned(owner_id),
        )
    )
    alert = result.scalar_one_or_none()
    if not alert:
        raise ResourceNotFoundError("Alert", alert_id)
    return alert


# ── Dashboard summary ────────────────────────────────────────

@router.get("/", response_model=DashboardSummary)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("reconciliation.read")),
):
    """Return an aggregated reconciliation dashboard:
    open/acknowledged counts, breakdowns, and the most recent alerts."""
    owned = _owned(ctx.owner_id)

    count_q = await db.execute(
        select(ReconciliationAlert.status, func.count(ReconciliationAlert.id))
        .where(*owned)
        .group_by(ReconciliationAlert.status)
    )
    status_counts = dict(count_q.all())

    thirty_days_ago = datetime.utcnow() - timedelta(days=30)
    resolved_q = await db.execute(
        select(func.count(ReconciliationAlert.id)).where(
            *owned,
            ReconciliationAlert.status == "resolved",
            ReconciliationAlert.resolved_at >= thirty_days_ago,
        )
    )

    # Breakdowns cover open + acknowledged only
    type_q = await db.execute(
        select(ReconciliationAlert.alert_type, func.count(ReconciliationAlert.id))
        .where(*owned, ReconciliationAlert.status.in_(ACTIVE_STATUSES))
        .group_by(ReconciliationAlert.alert_type)
    )
    sev_q = await db.execute(
        select(ReconciliationAlert.severity, func.count(ReconciliationAlert.id))
        .where(*owned, ReconciliationAlert.status.in_(ACTIVE_STATUSES))
        .group_by(ReconciliationAlert.severity)
    )

    latest_q = await db.execute(
        select(ReconciliationAlert.run_id, ReconciliationAlert.created_at)
        .where(*owned, ReconciliationAlert.run_id.is_not(None))
        .order_by(ReconciliationAlert.created_at.desc())
        .limit(1)
    )
    latest_row = latest_q.first()

    alerts_q = await db.execute(
        select(ReconciliationAlert)
        .where(*owned, ReconciliationAlert.status.in_(ACTIVE_STATUSES))
        .order_by(
            # critical first, then by date
            ReconciliationAlert.severity.asc(),
            ReconciliationAlert.created_at.desc(),
        )
        .limit(50)
    )

    return DashboardSummary(
        total_open=status_counts.get("open", 0),
        total_acknowledged=status_counts.get("acknowledged", 0),
        total_resolved_30d=resolved_q.scalar() or 0,
        by_type=dict(type_q.all()),
        by_severity=dict(sev_q.all()),
        latest_run_id=latest_row.run_id if latest_row else None,
        latest_run_at=latest_row.created_at if latest_row else None,
        alerts=[AlertOut.model_validate(a) for a in alerts_q.scalars().all()],
    )


# ── Trigger a reconciliation run ─────────────────────────────

@router.post("/run", response_model=RunSummary, status_code=status.HTTP_201_CREATED)
async def trigger_run(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("reconciliation.write")),
):
    """Manually trigger a full reconciliation run.  Previous open alerts
    that no longer appear are auto-resolved."""
    summary = await run_full_reconciliation(db, ctx.owner_id)
    return RunSummary(owner_id=ctx.owner_id, **summary)


@router.get("/ledger", response_model=LedgerReportOut)
async def ledger_report(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("reconciliation.read")),
):
    report = await reconcile_ledger(db, ctx.owner_id)
    return LedgerReportOut.model_validate(report)


# ── Alerts ───────────────────────────────────────────────────

@router.get("/alerts", response_model=list[AlertOut])
async def list_alerts(
    alert_type: str | None = Query(None, description="Filter by alert_type"),
    severity: str | None = Query(None, description="Filter by severity"),
    alert_status: str | None = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("reconciliation.read")),
):
    stmt = select(ReconciliationAlert).where(*_owned(ctx.owner_id))
    if alert_type:
        stmt = stmt.where(ReconciliationAlert.alert_type == alert_type)
    if severity:
        stmt = stmt.where(ReconciliationAlert.severity == severity)
    if alert_status:
        stmt = stmt.where(ReconciliationAlert.status == alert_status)

    result = await db.execute(
        stmt.order_by(ReconciliationAlert.created_at.desc()).limit(limit).offset(offset)
    )
    return result.scalars().all()


@router.get("/alerts/{alert_id}", response_model=AlertOut)
async def get_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("reconciliation.read")),
):
    return await _get_alert(db, ctx.owner_id, alert_id)


@router.patch("/alerts/{alert_id}", response_model=AlertOut)
async def update_alert(
    alert_id: str,
    body: AlertUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_permission("reconciliation.write")),
):
    """Acknowledge, resolve, or dismiss an alert."""
    if body.status not in UPDATABLE_STATUSES:
        raise ValidationError(
            "status", f"must be one of: {', '.join(UPDATABLE_STATUSES)}", body.status,
        )

    alert = await _get_alert(db, ctx.owner_id, alert_id)
    alert.status = body.status
    if body.resolution_note:
        alert.resolution_note = body.resolution_note
    if body.status in ("resolved", "dismissed"):
        alert.resolved_at = datetime.utcnow()
        alert.resolved_by = ctx.user_id

    await db.flush()
    return alert
