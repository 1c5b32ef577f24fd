"""User model - provider-side account owners (CRM vertical)."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin


class User(UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin, Base):
    __tablename__ = "crm_user"

    name: Mapped[str | None] = mapped_column(String(255), default=None)
    email: Mapped[str | None] = mapped_column(String(255), default=None, index=True)

    def __repr__(self) -> str:
        return f"<User {self.email or self.name!r}>"
