"""Pydantic schemas for reconciliation alerts and runs."""

from datetime import datetime

from pydantic import BaseModel, computed_field


class AlertOut(BaseModel):
    """One flagged record.  The drifted values are never corrected; the
    alert carries what was stored next to what was re-derived."""
    id: str
    alert_type: str  # document_totals | invoice_vs_payments | derived_vs_recorded
    severity: str
    title: str
    description: str
    expected_value: float | None
    actual_value: float | None
    variance: float | None
    variance_pct: float | None
    unit: str | None
    entity_refs: dict | None
    status: str
    resolved_at: datetime | None
    resolved_by: str | None
    resolution_note: str | None
    run_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def document_id(self) -> str | None:
        return (self.entity_refs or {}).get("document_id")

    @computed_field
    @property
    def document_number(self) -> str | None:
        return (self.entity_refs or {}).get("number")


class AlertUpdate(BaseModel):
    status: str  # acknowledged | resolved | dismissed
    resolution_note: str | None = None


class RunSummary(BaseModel):
    owner_id: str
    run_id: str
    ran_at: str
    total_alerts: int
    by_type: dict[str, int]
    by_severity: dict[str, int]


class DashboardSummary(BaseModel):
    total_open: int
    total_acknowledged: int
    total_resolved_30d: int
    by_type: dict[str, int]
    by_severity: dict[str, int]
    latest_run_id: str | None
    latest_run_at: datetime | None
    alerts: list[AlertOut]
