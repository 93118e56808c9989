"""AdminAccount: a tenant owner.

Every catalog item and document belongs to exactly one admin account
(`owner_id`).  The first account registered becomes an approved
superAdmin; later ones wait in `pending` until a superAdmin decides.

Lifecycle:  pending → approved | rejected,  approved ↔ rejected
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.database import Base


class AdminAccount(Base):
    __tablename__ = "admin_accounts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    # superAdmin | admin
    role: Mapped[str] = mapped_column(String(20), default="admin")
    # pending | approved | rejected
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
