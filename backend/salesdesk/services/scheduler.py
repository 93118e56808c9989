"""Background task scheduler: daily overdue sweep and reconciliation.

Uses FastAPI's lifespan context to start/stop an asyncio background loop
that fires once per day at the configured hour.  For every approved
admin account it marks past-due invoices Overdue, then runs a full
reconciliation.

Usage:
    In main.py:

        from salesdesk.services.scheduler import lifespan
        app = FastAPI(lifespan=lifespan, ...)

Configuration:
    RECONCILIATION_HOUR=2   (run at 02:00 UTC daily, via .env)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone

from fastapi import FastAPI
from sqlalchemy import select

from salesdesk.config import settings
from salesdesk.database import async_session
from salesdesk.models.admin_account import AdminAccount

logger = logging.getLogger("salesdesk.scheduler")


async def _run_for_owner(owner_id: str, today: date) -> dict | None:
    """Overdue sweep + reconciliation for one owner, in its own transaction."""
    from salesdesk.services.documents import mark_overdue_invoices
    from salesdesk.services.reconciliation import run_full_reconciliation

    try:
        async with async_session() as db:
            try:
                overdue = await mark_overdue_invoices(db, owner_id, today)
                summary = await run_full_reconciliation(db, owner_id)
                await db.commit()
                summary["overdue_marked"] = len(overdue)
                return summary
            except Exception:
                await db.rollback()
                raise
    except Exception:
        logger.exception("Daily run failed for owner %s", owner_id)
        return None


async def approved_owner_ids() -> list[str]:
    async with async_session() as db:
        result = await db.execute(
            select(AdminAccount.id).where(AdminAccount.status == "approved")
        )
        return [row[0] for row in result.all()]


async def run_daily_jobs(today: date | None = None) -> None:
    """Iterate over all approved owners and run the daily jobs for each."""
    today = today or datetime.now(timezone.utc).date()
    logger.info("Starting daily sales run")

    owners = await approved_owner_ids()
    logger.info("Found %d approved owners", len(owners))

    for owner_id in owners:
        summary = await _run_for_owner(owner_id, today)
        if summary:
            logger.info(
                "Owner %s: %d overdue, %d alerts (critical=%d, high=%d)",
                owner_id,
                summary["overdue_marked"],
                summary["total_alerts"],
                summary["by_severity"].get("critical", 0),
                summary["by_severity"].get("high", 0),
            )

    logger.info("Daily sales run complete for %d owners", len(owners))


def seconds_until(target_hour: int, now: datetime) -> float:
    """Seconds from `now` until the next `target_hour`:00 UTC."""
    next_run = now.replace(hour=target_hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def _scheduler_loop() -> None:
    """Sleep loop that fires the daily jobs once per day."""
    target_hour = settings.reconciliation_hour

    while True:
        wait_seconds = seconds_until(target_hour, datetime.now(timezone.utc))
        logger.info("Next daily run in %.0f seconds", wait_seconds)

        await asyncio.sleep(wait_seconds)

        try:
            await run_daily_jobs()
        except Exception:
            logger.exception("Unhandled error in daily run")

        # Small buffer to avoid running twice in the same minute
        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: start the scheduler on startup, cancel on shutdown."""
    task = asyncio.create_task(_scheduler_loop())
    logger.info("Daily scheduler started")
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Daily scheduler stopped")
