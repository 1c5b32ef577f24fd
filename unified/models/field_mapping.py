"""Custom field definitions and values (EAV pattern)."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Attribute(UUIDMixin, TimestampMixin, TenantMixin, Base):
    """Tenant- and provider-scoped definition of a custom field."""

    __tablename__ = "attribute"
    __table_args__ = (
        UniqueConstraint(
            "slug", "provider_slug", "tenant_id", "object_kind", name="uq_attribute_scope"
        ),
    )

    slug: Mapped[str] = mapped_column(String(200), index=True)
    provider_slug: Mapped[str] = mapped_column(String(50), index=True)
    object_kind: Mapped[str] = mapped_column(String(50))  # company, note, user, comment
    remote_id: Mapped[str] = mapped_column(String(200))  # provider-native property name
    data_type: Mapped[str] = mapped_column(String(50), default="string")
    description: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<Attribute {self.slug!r} -> {self.provider_slug}:{self.remote_id}>"


class Entity(UUIDMixin, TimestampMixin, Base):
    """Anchors custom-field values to exactly one canonical record."""

    __tablename__ = "entity"

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, index=True)
    owner_type: Mapped[str] = mapped_column(String(50))

    def __repr__(self) -> str:
        return f"<Entity owner={self.owner_id}>"


class AttributeValue(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "attribute_value"
    __table_args__ = (
        UniqueConstraint("entity_id", "attribute_id", name="uq_value_entity_attribute"),
    )

    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("entity.id", ondelete="CASCADE"), index=True
    )
    attribute_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("attribute.id", ondelete="CASCADE"), index=True
    )
    data: Mapped[str] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0)  # first-seen order within the entity

    attribute: Mapped["Attribute"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<AttributeValue entity={self.entity_id} attribute={self.attribute_id}>"
