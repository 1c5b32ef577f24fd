"""Company model (CRM vertical)."""

from __future__ import annotations

import uuid

from sqlalchemy import BigInteger, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin


class Company(UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin, Base):
    __tablename__ = "crm_company"

    name: Mapped[str | None] = mapped_column(String(255), default=None)
    industry: Mapped[str | None] = mapped_column(String(255), default=None)
    number_of_employees: Mapped[int | None] = mapped_column(BigInteger, default=None)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_user.id", ondelete="SET NULL"), default=None
    )

    def __repr__(self) -> str:
        return f"<Company {self.name!r}>"
