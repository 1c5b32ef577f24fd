"""Note model - free text attached to companies."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin


class Note(UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin, Base):
    __tablename__ = "crm_note"

    content: Mapped[str | None] = mapped_column(Text, default=None)
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_company.id", ondelete="SET NULL"), default=None, index=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_user.id", ondelete="SET NULL"), default=None
    )

    def __repr__(self) -> str:
        return f"<Note company={self.company_id}>"
