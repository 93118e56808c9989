"""CatalogItem: a reusable, owner-scoped line template.

Documents never reference catalog rows; lines are cloned at composition
time, so rows here can be edited or deleted freely.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.database import Base


class CatalogItem(Base):
    __tablename__ = "catalog_items"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # ── Content ──────────────────────────────────────────────
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    long_description: Mapped[str | None] = mapped_column(Text)
    unit: Mapped[str | None] = mapped_column(String(50))
    group_name: Mapped[str | None] = mapped_column(String(100), index=True)

    # ── Pricing ──────────────────────────────────────────────
    rate: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    # Percentages, 0–100
    tax1_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), default=Decimal("0"))
    tax2_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
