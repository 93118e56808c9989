"""Sequential document and payment numbers, per owner.

Format tokens:
  {prefix}   → kind prefix (PRO, EST, CN, INV, PAY)
  {seq:N}    → zero-padded sequence number, N digits, per owner and kind

Default format:  {prefix}-{seq:6}   e.g. INV-000042

The next number is one past the highest existing sequence, so deleting
a document from the middle of the sequence never produces a duplicate.
"""

import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.models.payment import Payment
from salesdesk.models.sales_document import SalesDocument

DEFAULT_FORMAT = "{prefix}-{seq:6}"

PREFIXES = {
    "proposal": "PRO",
    "estimate": "EST",
    "credit_note": "CN",
    "invoice": "INV",
    "payment": "PAY",
}


def _build_prefix(fmt: str, prefix: str) -> str:
    """Static part of the number, everything before {seq:N}."""
    static = fmt.replace("{prefix}", prefix)
    return re.sub(r"\{seq:\d+\}.*$", "", static)


async def _highest_sequence(
    db: AsyncSession, owner_id: str, entity: str, static_prefix: str,
) -> int:
    if entity == "payment":
        stmt = select(Payment.number).where(
            Payment.owner_id == owner_id,
            Payment.number.like(f"{static_prefix}%"),
        )
    else:
        stmt = select(SalesDocument.number).where(
            SalesDocument.owner_id == owner_id,
            SalesDocument.kind == entity,
            SalesDocument.number.like(f"{static_prefix}%"),
        )
    result = await db.execute(stmt)

    highest = 0
    for (number,) in result.all():
        tail = number[len(static_prefix):]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return highest


async def generate_number(
    db: AsyncSession,
    owner_id: str,
    entity: str,
    fmt: str = DEFAULT_FORMAT,
) -> str:
    """Generate the next number for `entity` within `owner_id`.

    Args:
        db: Database session
        owner_id: Tenant whose sequence to extend
        entity: One of "proposal", "estimate", "credit_note", "invoice", "payment"

    Returns:
        Generated number, e.g. "INV-000001"
    """
    prefix = PREFIXES[entity]
    static_prefix = _build_prefix(fmt, prefix)
    seq_num = await _highest_sequence(db, owner_id, entity, static_prefix) + 1

    seq_match = re.search(r"\{seq:(\d+)\}", fmt)
    seq_width = int(seq_match.group(1)) if seq_match else 6

    number = fmt.replace("{prefix}", prefix)
    return re.sub(r"\{seq:\d+\}", f"{seq_num:0{seq_width}d}", number)
