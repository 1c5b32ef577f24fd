"""Typed accessor over the custom-field EAV tables.

Canonical records expose custom fields as ``[{slug: value}, ...]``. Storage is
``Entity -> AttributeValue -> Attribute``. This module is the only place that
reads or writes those three tables for record values.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Iterable, Iterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.field_mapping import Attribute, AttributeValue, Entity

logger = logging.getLogger(__name__)

# Stored for falsy values so the row still records that the field was seen.
NULL_PLACEHOLDER = "null"


def _encode(value: Any) -> str:
    if not value:
        return NULL_PLACEHOLDER
    if isinstance(value, str):
        return value
    return json.dumps(value)


class CustomFields:
    """Ordered slug -> value map."""

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    @classmethod
    def from_field_mappings(cls, entries: Iterable[dict[str, Any]] | None) -> "CustomFields":
        values: dict[str, Any] = {}
        for entry in entries or []:
            if isinstance(entry, dict):
                values.update(entry)
        return cls(values)

    def get(self, slug: str, default: Any = None) -> Any:
        return self._values.get(slug, default)

    def set(self, slug: str, value: Any) -> None:
        self._values[slug] = value

    def as_field_mappings(self) -> list[dict[str, Any]]:
        return [{slug: value} for slug, value in self._values.items()]

    def __contains__(self, slug: object) -> bool:
        return slug in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)

    def __repr__(self) -> str:
        return f"CustomFields({self._values!r})"

    # ── Persistence ─────────────────────────────────────────────────────────

    @classmethod
    async def load(cls, db: AsyncSession, owner_id: uuid.UUID) -> "CustomFields":
        """Read every stored value for a record; the placeholder reads as None."""
        stmt = (
            select(Attribute.slug, AttributeValue.data)
            .join(AttributeValue, AttributeValue.attribute_id == Attribute.id)
            .join(Entity, Entity.id == AttributeValue.entity_id)
            .where(Entity.owner_id == owner_id)
            .order_by(AttributeValue.position, Attribute.slug)
        )
        rows = (await db.execute(stmt)).all()
        return cls({slug: (None if data == NULL_PLACEHOLDER else data) for slug, data in rows})

    async def persist(
        self,
        db: AsyncSession,
        *,
        owner_id: uuid.UUID,
        owner_type: str,
        tenant_id: uuid.UUID,
        provider: str,
        object_kind: str,
    ) -> int:
        """Upsert values against the ``(provider, tenant, kind)`` definitions.

        Slugs without a definition are dropped. No commit is performed here.
        Returns the number of values written.
        """
        if not self._values:
            return 0

        stmt = select(Entity).where(Entity.owner_id == owner_id)
        entity = (await db.execute(stmt)).scalar_one_or_none()
        if not entity:
            entity = Entity(owner_id=owner_id, owner_type=owner_type)
            db.add(entity)
            await db.flush()

        stmt = select(Attribute).where(
            Attribute.tenant_id == tenant_id,
            Attribute.provider_slug == provider,
            Attribute.object_kind == object_kind,
            Attribute.slug.in_(list(self._values)),
        )
        attrs = {a.slug: a for a in (await db.execute(stmt)).scalars().all()}

        stmt = select(AttributeValue).where(AttributeValue.entity_id == entity.id)
        existing = {row.attribute_id: row for row in (await db.execute(stmt)).scalars().all()}
        next_position = max((row.position for row in existing.values()), default=-1) + 1

        written = 0
        for slug, value in self._values.items():
            attr = attrs.get(slug)
            if not attr:
                logger.debug("Dropping unknown custom field %r for %s/%s", slug, provider, object_kind)
                continue

            row = existing.get(attr.id)
            if row:
                row.data = _encode(value)
            else:
                row = AttributeValue(
                    entity_id=entity.id,
                    attribute_id=attr.id,
                    data=_encode(value),
                    position=next_position,
                )
                db.add(row)
                existing[attr.id] = row
                next_position += 1
            written += 1

        return written
