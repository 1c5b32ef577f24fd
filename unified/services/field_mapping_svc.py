"""Custom field definitions per tenant, provider and object kind."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.field_mapping import Attribute
from ..schemas.unified import FieldMapping


async def define_field(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    slug: str,
    provider_slug: str,
    object_kind: str,
    remote_id: str,
    data_type: str = "string",
    description: str | None = None,
) -> Attribute:
    """Create or repoint a field mapping; slugs are unique within their scope."""
    stmt = select(Attribute).where(
        Attribute.tenant_id == tenant_id,
        Attribute.slug == slug,
        Attribute.provider_slug == provider_slug,
        Attribute.object_kind == object_kind,
    )
    attr = (await db.execute(stmt)).scalar_one_or_none()
    if attr:
        attr.remote_id = remote_id
        attr.data_type = data_type
        if description is not None:
            attr.description = description
    else:
        attr = Attribute(
            tenant_id=tenant_id,
            slug=slug,
            provider_slug=provider_slug,
            object_kind=object_kind,
            remote_id=remote_id,
            data_type=data_type,
            description=description,
        )
        db.add(attr)

    await db.commit()
    await db.refresh(attr)
    return attr


async def list_field_mappings(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    provider_slug: str,
    object_kind: str,
) -> list[Attribute]:
    stmt = (
        select(Attribute)
        .where(
            Attribute.tenant_id == tenant_id,
            Attribute.provider_slug == provider_slug,
            Attribute.object_kind == object_kind,
        )
        .order_by(Attribute.created_at, Attribute.slug)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_custom_field_mappings(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    provider_slug: str,
    object_kind: str,
) -> list[FieldMapping]:
    """The ``(slug, remote property)`` pairs mappers work with."""
    attrs = await list_field_mappings(db, tenant_id, provider_slug, object_kind)
    return [FieldMapping(slug=a.slug, remote_id=a.remote_id) for a in attrs]
