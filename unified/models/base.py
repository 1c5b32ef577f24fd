"""Base model classes and mixins for unified models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


class Base(DeclarativeBase):
    pass


class UUIDMixin:
    """Adds a UUID primary key."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )


class TimestampMixin:
    """Adds created_at / modified_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class TenantMixin:
    """Adds tenant_id FK for multi-tenant isolation."""

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenant.id", ondelete="CASCADE"),
        index=True,
    )


class RemoteSyncMixin:
    """Provenance columns for a canonical record.

    ``(remote_id, remote_platform, tenant_id)`` is the identity triple; each
    canonical table enforces it with a unique constraint.
    """

    remote_id: Mapped[str | None] = mapped_column(String(255), default=None, index=True)
    remote_platform: Mapped[str | None] = mapped_column(String(50), default=None, index=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    @declared_attr.directive
    def __table_args__(cls):
        return (
            UniqueConstraint(
                "remote_id",
                "remote_platform",
                "tenant_id",
                name=f"uq_{cls.__tablename__}_identity",
            ),
        )
