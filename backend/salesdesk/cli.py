"""Management CLI for the daily sales jobs.

Usage:
    python -m salesdesk.cli list-owners             # Show approved admin accounts
    python -m salesdesk.cli mark-overdue [OWNER]    # Overdue sweep (all owners by default)
    python -m salesdesk.cli reconcile [OWNER]       # Reconciliation run (all owners by default)
"""

import asyncio
import sys

from salesdesk.database import async_session
from salesdesk.services.documents import mark_overdue_invoices
from salesdesk.services.reconciliation import run_full_reconciliation
from salesdesk.services.scheduler import approved_owner_ids


async def _owners(owner_id: str | None) -> list[str]:
    return [owner_id] if owner_id else await approved_owner_ids()


async def list_owners():
    owners = await approved_owner_ids()
    for owner_id in owners:
        print(f"  {owner_id}")
    print(f"\n{len(owners)} owner(s)")


async def mark_overdue(owner_id: str | None = None):
    for owner in await _owners(owner_id):
        async with async_session() as db:
            updated = await mark_overdue_invoices(db, owner)
            await db.commit()
        print(f"  {owner}: {len(updated)} invoice(s) marked Overdue")


async def reconcile(owner_id: str | None = None):
    for owner in await _owners(owner_id):
        async with async_session() as db:
            summary = await run_full_reconciliation(db, owner)
            await db.commit()
        print(f"  {owner}: {summary['total_alerts']} alert(s) {summary['by_type']}")


COMMANDS = {
    "list-owners": list_owners,
    "mark-overdue": mark_overdue,
    "reconcile": reconcile,
}


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd not in COMMANDS:
        print("Usage: python -m salesdesk.cli [list-owners|mark-overdue|reconcile] [OWNER]")
        sys.exit(1)
    args = sys.argv[2:3] if cmd != "list-owners" else []
    asyncio.run(COMMANDS[cmd](*args))
