"""Tenant model - the isolation root - and its provider connections."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin


class Tenant(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tenant"

    name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    # Owning project; webhooks are addressed per project.
    project_id: Mapped[str | None] = mapped_column(String(100), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    connections: Mapped[list["Connection"]] = relationship(
        back_populates="tenant", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Tenant {self.slug!r}>"


class Connection(UUIDMixin, TimestampMixin, Base):
    """A tenant's credentials for one provider.

    Tokens are stored as handed over by the credential store; decryption is
    not this service's concern.
    """

    __tablename__ = "connection"
    __table_args__ = (
        UniqueConstraint("tenant_id", "provider_slug", name="uq_connection_tenant_provider"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant.id", ondelete="CASCADE"), index=True
    )
    provider_slug: Mapped[str] = mapped_column(String(50), index=True)
    vertical: Mapped[str] = mapped_column(String(50), default="crm")
    access_token: Mapped[str] = mapped_column(Text)
    account_url: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str] = mapped_column(String(20), default="valid")

    tenant: Mapped["Tenant"] = relationship(back_populates="connections")

    def __repr__(self) -> str:
        return f"<Connection {self.provider_slug} tenant={self.tenant_id}>"
