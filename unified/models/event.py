"""SyncEvent model - append-only audit trail of pushes, pulls and sweeps."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin


class SyncEvent(UUIDMixin, Base):
    __tablename__ = "sync_event"

    type: Mapped[str] = mapped_column(String(100), index=True)  # crm.company.push, crm.user.pulled
    status: Mapped[str] = mapped_column(String(20))  # success, fail
    method: Mapped[str] = mapped_column(String(10))  # POST, GET, PULL
    url: Mapped[str] = mapped_column(String(255))
    provider: Mapped[str] = mapped_column(String(50))
    direction: Mapped[str] = mapped_column(String(10), default="0")
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant.id", ondelete="CASCADE"), index=True
    )
    details_json: Mapped[dict | None] = mapped_column(JSON, default=None)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<SyncEvent {self.type} {self.status}>"
